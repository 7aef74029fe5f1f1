from dataclasses import dataclass

from src.organization.domain.organization_role import OrganizationRole


@dataclass(frozen=True)
class Membership:
    user_id: str
    organization_id: str
    role: OrganizationRole = OrganizationRole.MEMBER
