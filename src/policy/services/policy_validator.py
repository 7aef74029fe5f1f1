from dataclasses import replace
from decimal import Decimal
from typing import Iterable, Optional

from src.config.settings import settings
from src.organization.domain.expense_category import ExpenseCategory
from src.organization.domain.membership import Membership
from src.organization.domain.organization_role import OrganizationRole, is_admin_role
from src.policy.domain.policy import (
    AMOUNT_PRECISION,
    AMOUNT_SCALE,
    Policy,
    PolicyDraft,
    PolicyPatch,
    is_storable_amount,
)
from src.policy.domain.policy_enums import PolicyReviewRule
from src.policy.domain.policy_errors import PolicyErrorKind
from src.policy.domain.policy_validation_result import PolicyValidationResult

THRESHOLD_REQUIRED_MESSAGE = "Auto-approve threshold is required for conditional review policies"
AMOUNT_PRECISION_MESSAGE = (
    f"Amounts must have at most {AMOUNT_SCALE} decimal places "
    f"and at most {AMOUNT_PRECISION - AMOUNT_SCALE} digits before the point"
)


def _is_positive(value: Optional[Decimal]) -> bool:
    return value is not None and value > 0


class PolicyValidator:
    """
    Write-time rules for spending policies.

    Never raises for a business-rule violation and never touches storage:
    the caller supplies the acting role, the referenced category, the target
    membership and the policies already in scope, and persists the accepted
    value itself. The duplicate-scope check here is an early exit only; the
    store's uniqueness constraint is the real guarantee.
    """

    def __init__(self, name_max_length: int = settings.POLICY_NAME_MAX_LENGTH):
        self.name_max_length = name_max_length

    def validate_create(
        self,
        candidate: PolicyDraft,
        acting_role: Optional[OrganizationRole],
        category: Optional[ExpenseCategory],
        target_membership: Optional[Membership],
        existing_policies: Iterable[Policy],
    ) -> PolicyValidationResult:
        if not is_admin_role(acting_role):
            return PolicyValidationResult.reject(
                PolicyErrorKind.UNAUTHORIZED,
                "Only organization admins can create policies",
            )

        field_error = self._check_fields(
            candidate.name,
            candidate.max_amount,
            candidate.review_rule,
            candidate.auto_approve_threshold,
        )
        if field_error:
            return field_error

        if category is None or category.organization_id != candidate.organization_id:
            return PolicyValidationResult.reject(
                PolicyErrorKind.INVALID_REFERENCE,
                "Category not found in this organization",
            )

        if candidate.is_user_specific:
            if not candidate.user_id:
                return PolicyValidationResult.reject(
                    PolicyErrorKind.INVALID_TARGET,
                    "User ID is required for user-specific policies",
                )
            if (
                target_membership is None
                or target_membership.user_id != candidate.user_id
                or target_membership.organization_id != candidate.organization_id
            ):
                return PolicyValidationResult.reject(
                    PolicyErrorKind.INVALID_TARGET,
                    "User is not a member of this organization",
                )

        target_user = candidate.user_id if candidate.is_user_specific else None
        for existing in existing_policies:
            if existing.scope_key == (candidate.organization_id, candidate.category_id, target_user):
                return PolicyValidationResult.reject(
                    PolicyErrorKind.DUPLICATE_SCOPE,
                    "A user-specific policy already exists for this category and user"
                    if candidate.is_user_specific
                    else "An organization-wide policy already exists for this category",
                )

        if candidate.review_rule.requires_threshold and not _is_positive(candidate.auto_approve_threshold):
            return PolicyValidationResult.reject(PolicyErrorKind.MISSING_THRESHOLD, THRESHOLD_REQUIRED_MESSAGE)

        return PolicyValidationResult.accept(
            replace(candidate, name=candidate.name.strip(), user_id=target_user)
        )

    def validate_update(
        self,
        existing: Policy,
        patch: PolicyPatch,
        acting_role: Optional[OrganizationRole],
    ) -> PolicyValidationResult:
        if not is_admin_role(acting_role):
            return PolicyValidationResult.reject(
                PolicyErrorKind.UNAUTHORIZED,
                "Only organization admins can update policies",
            )

        merged = replace(existing, **patch.changes())

        field_error = self._check_fields(
            merged.name,
            merged.max_amount,
            merged.review_rule,
            merged.auto_approve_threshold,
        )
        if field_error:
            return field_error

        if merged.review_rule.requires_threshold and not _is_positive(merged.auto_approve_threshold):
            return PolicyValidationResult.reject(PolicyErrorKind.MISSING_THRESHOLD, THRESHOLD_REQUIRED_MESSAGE)

        return PolicyValidationResult.accept(replace(merged, name=merged.name.strip()))

    def _check_fields(
        self,
        name: str,
        max_amount: Optional[Decimal],
        review_rule: PolicyReviewRule,
        threshold: Optional[Decimal],
    ) -> Optional[PolicyValidationResult]:
        stripped = (name or "").strip()
        if not stripped or len(stripped) > self.name_max_length:
            return PolicyValidationResult.reject(
                PolicyErrorKind.INVALID_FIELD,
                f"Policy name must be between 1 and {self.name_max_length} characters",
            )
        if not _is_positive(max_amount):
            return PolicyValidationResult.reject(
                PolicyErrorKind.INVALID_FIELD,
                "Maximum amount must be positive",
            )
        if not is_storable_amount(max_amount):
            return PolicyValidationResult.reject(PolicyErrorKind.INVALID_FIELD, AMOUNT_PRECISION_MESSAGE)
        # A non-positive threshold on a conditional policy is reported as missing.
        if threshold is not None and threshold <= 0 and not review_rule.requires_threshold:
            return PolicyValidationResult.reject(
                PolicyErrorKind.INVALID_FIELD,
                "Auto-approve threshold must be positive",
            )
        if _is_positive(threshold) and not is_storable_amount(threshold):
            return PolicyValidationResult.reject(PolicyErrorKind.INVALID_FIELD, AMOUNT_PRECISION_MESSAGE)
        return None
