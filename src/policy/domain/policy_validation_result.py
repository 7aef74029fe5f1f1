from dataclasses import dataclass
from typing import Optional, Union

from src.policy.domain.policy import Policy, PolicyDraft
from src.policy.domain.policy_errors import PolicyErrorKind, PolicyValidationError


@dataclass(frozen=True)
class PolicyValidationResult:
    """
    Outcome of a policy write check: exactly one of `accepted` or `error` is set.
    `accepted` is a normalized draft for creates and the merged policy for updates.
    """
    accepted: Optional[Union[PolicyDraft, Policy]] = None
    error: Optional[PolicyValidationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @staticmethod
    def accept(value: Union[PolicyDraft, Policy]) -> "PolicyValidationResult":
        return PolicyValidationResult(accepted=value)

    @staticmethod
    def reject(kind: PolicyErrorKind, message: str) -> "PolicyValidationResult":
        return PolicyValidationResult(error=PolicyValidationError(kind=kind, message=message))
