from typing import Iterable, List, Optional

from src.infrastructure.logging.structured_logger import StructuredLogger
from src.policy.domain.policy import Policy
from src.policy.domain.policy_resolution import PolicyResolution, PrecedenceInfo


def _newest_first(policies: List[Policy]) -> List[Policy]:
    return sorted(policies, key=lambda p: (p.created_at, str(p.id)), reverse=True)


class PolicyResolver:
    """
    Picks the single policy governing an (organization, category, user) scope.
    Precedence is strict: user-specific override > organization-wide policy.
    Within one tier the newest policy wins, which only happens when scope
    uniqueness was broken upstream; that case is reported as a warning.
    """

    def __init__(self, logger: Optional[StructuredLogger] = None):
        self.logger = logger or StructuredLogger()

    def resolve(
        self,
        organization_id: str,
        category_id: str,
        target_user_id: Optional[str],
        candidate_policies: Iterable[Policy],
    ) -> Optional[PolicyResolution]:
        organization_wide: List[Policy] = []
        user_specific: List[Policy] = []
        for policy in candidate_policies:
            if policy.organization_id != organization_id or policy.category_id != category_id:
                continue
            if not policy.is_user_specific:
                organization_wide.append(policy)
            elif target_user_id is not None and policy.user_id == target_user_id:
                user_specific.append(policy)

        if not organization_wide and not user_specific:
            return None

        warnings = []
        for tier, members in (("user_specific", user_specific), ("organization_wide", organization_wide)):
            if len(members) > 1:
                warnings.append(
                    f"{len(members)} {tier} policies found for one scope; using the most recently created"
                )
                self.logger.warn(
                    "POLICY_SCOPE_DUPLICATE",
                    organization_id=organization_id,
                    category_id=category_id,
                    user_id=target_user_id,
                    tier=tier,
                    policy_ids=[str(p.id) for p in members],
                )

        tier = user_specific or organization_wide
        selected = _newest_first(tier)[0]

        return PolicyResolution(
            policy=selected,
            precedence_info=PrecedenceInfo(
                is_user_specific=selected.is_user_specific,
                has_organization_wide_policy=bool(organization_wide),
                has_user_specific_policy=bool(user_specific),
                total_candidates_found=len(organization_wide) + len(user_specific),
            ),
            warnings=tuple(warnings),
        )
