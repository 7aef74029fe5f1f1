from threading import Lock
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from src.policy.domain.policy import Policy
from src.policy.domain.policy_errors import PolicyScopeConflict
from src.policy.interfaces.policy_store import PolicyStore


class InMemoryPolicyStore(PolicyStore):
    def __init__(self):
        self._policies: Dict[UUID, Policy] = {}
        self._scope_index: Dict[Tuple[str, str, Optional[str]], UUID] = {}
        self._lock = Lock()

    def add(self, policy: Policy) -> Policy:
        with self._lock:
            if policy.scope_key in self._scope_index:
                raise PolicyScopeConflict(f"Scope already taken: {policy.scope_key}")
            self._policies[policy.id] = policy
            self._scope_index[policy.scope_key] = policy.id
        return policy

    def replace(self, policy: Policy) -> Policy:
        with self._lock:
            current = self._policies.get(policy.id)
            if current is None:
                raise KeyError(policy.id)
            if current.scope_key != policy.scope_key:
                raise ValueError("Policy scope is immutable")
            self._policies[policy.id] = policy
        return policy

    def remove(self, policy_id: UUID) -> bool:
        with self._lock:
            policy = self._policies.pop(policy_id, None)
            if policy is None:
                return False
            self._scope_index.pop(policy.scope_key, None)
            return True

    def get(self, policy_id: UUID) -> Optional[Policy]:
        with self._lock:
            return self._policies.get(policy_id)

    def list_scope(self, organization_id: str, category_id: str) -> List[Policy]:
        return [
            p for p in self._snapshot()
            if p.organization_id == organization_id and p.category_id == category_id
        ]

    def list_by_organization(self, organization_id: str) -> List[Policy]:
        return [p for p in self._snapshot() if p.organization_id == organization_id]

    def list_by_category(self, category_id: str) -> List[Policy]:
        return [p for p in self._snapshot() if p.category_id == category_id]

    def _snapshot(self) -> List[Policy]:
        with self._lock:
            return list(self._policies.values())
