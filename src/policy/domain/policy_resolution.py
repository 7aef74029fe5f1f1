from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

from src.policy.domain.policy import Policy


@dataclass(frozen=True)
class PrecedenceInfo:
    is_user_specific: bool
    has_organization_wide_policy: bool
    has_user_specific_policy: bool
    total_candidates_found: int


@dataclass(frozen=True)
class PolicyResolution:
    """
    The governing policy for a (organization, category, user) scope.
    `warnings` is non-empty only when the candidate set broke scope uniqueness.
    """
    policy: Policy
    precedence_info: PrecedenceInfo
    warnings: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        info = self.precedence_info
        return {
            "policy": self.policy.to_dict(),
            "precedence_info": {
                "is_user_specific": info.is_user_specific,
                "has_organization_wide_policy": info.has_organization_wide_policy,
                "has_user_specific_policy": info.has_user_specific_policy,
                "total_candidates_found": info.total_candidates_found,
            },
            "warnings": list(self.warnings),
        }
