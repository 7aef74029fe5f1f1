from abc import ABC, abstractmethod
from typing import Optional

from src.organization.domain.membership import Membership


class MembershipDirectory(ABC):
    """
    Membership-role lookup by (user, organization).
    """
    @abstractmethod
    def get_membership(self, user_id: str, organization_id: str) -> Optional[Membership]:
        pass
