from abc import ABC, abstractmethod
from typing import List, Optional
from uuid import UUID

from src.policy.domain.policy import Policy


class PolicyStore(ABC):
    """
    Persistence contract for spending policies.
    Implementations must reject a second policy for the same
    (organization, category, user-or-null) scope atomically.
    """

    @abstractmethod
    def add(self, policy: Policy) -> Policy:
        """Persist a new policy; raises PolicyScopeConflict if its scope is taken."""
        pass

    @abstractmethod
    def replace(self, policy: Policy) -> Policy:
        pass

    @abstractmethod
    def remove(self, policy_id: UUID) -> bool:
        pass

    @abstractmethod
    def get(self, policy_id: UUID) -> Optional[Policy]:
        pass

    @abstractmethod
    def list_scope(self, organization_id: str, category_id: str) -> List[Policy]:
        pass

    @abstractmethod
    def list_by_organization(self, organization_id: str) -> List[Policy]:
        pass

    @abstractmethod
    def list_by_category(self, category_id: str) -> List[Policy]:
        pass
