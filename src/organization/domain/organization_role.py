from enum import Enum
from typing import Optional


class OrganizationRole(Enum):
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


def is_admin_role(role: Optional["OrganizationRole"]) -> bool:
    if role is None:
        return False
    if role is OrganizationRole.ADMIN:
        return True
    if role is OrganizationRole.MEMBER:
        return False
    raise ValueError(f"Unhandled organization role: {role!r}")
