from typing import List

from src.policy.domain.policy_mutation_audit import PolicyMutationAudit


class PolicyMutationAuditStore:
    """
    Append-only audit log for policy mutations.
    """

    def __init__(self):
        self._entries: List[PolicyMutationAudit] = []

    def append(self, entry: PolicyMutationAudit) -> None:
        self._entries.append(entry)

    def list_recent(self, limit: int = 200) -> List[PolicyMutationAudit]:
        if limit <= 0:
            return []
        return self._entries[-limit:]

    def list_for_target(self, target: str) -> List[PolicyMutationAudit]:
        return [e for e in self._entries if e.target == target]
