from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from src.organization.domain.expense_category import ExpenseCategory
from src.organization.domain.membership import Membership
from src.organization.domain.organization_role import OrganizationRole
from src.policy.domain.policy import Policy, PolicyDraft, PolicyPatch
from src.policy.domain.policy_enums import PolicyPeriod, PolicyReviewRule
from src.policy.domain.policy_errors import PolicyErrorKind
from src.policy.services.policy_validator import PolicyValidator

CATEGORY = ExpenseCategory(id="C", organization_id="O", name="Travel")
TARGET = Membership(user_id="U", organization_id="O", role=OrganizationRole.MEMBER)


def _draft(**overrides) -> PolicyDraft:
    fields = dict(
        organization_id="O",
        category_id="C",
        name="Travel cap",
        max_amount=Decimal("500"),
        period=PolicyPeriod.MONTHLY,
        review_rule=PolicyReviewRule.MANUAL_REVIEW,
    )
    fields.update(overrides)
    return PolicyDraft(**fields)


def _stored(**overrides) -> Policy:
    fields = dict(
        id=uuid4(),
        organization_id="O",
        category_id="C",
        name="Travel cap",
        max_amount=Decimal("500"),
        period=PolicyPeriod.MONTHLY,
        review_rule=PolicyReviewRule.MANUAL_REVIEW,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    fields.update(overrides)
    return Policy(**fields)


@pytest.fixture
def validator():
    return PolicyValidator()


def _create(validator, draft, role=OrganizationRole.ADMIN, category=CATEGORY, target=None, existing=()):
    return validator.validate_create(draft, role, category, target, list(existing))


# --- create ---

def test_admin_creates_organization_wide_policy(validator):
    result = _create(validator, _draft(name="  Travel cap  "))

    assert result.ok
    assert result.accepted.name == "Travel cap"
    assert result.accepted.user_id is None


@pytest.mark.parametrize("role", [OrganizationRole.MEMBER, None])
def test_non_admin_is_unauthorized(validator, role):
    result = _create(validator, _draft(), role=role)

    assert result.error.kind == PolicyErrorKind.UNAUTHORIZED


def test_category_from_other_organization_is_invalid_reference(validator):
    foreign = ExpenseCategory(id="C", organization_id="OTHER", name="Travel")

    result = _create(validator, _draft(), category=foreign)

    assert result.error.kind == PolicyErrorKind.INVALID_REFERENCE


def test_missing_category_is_invalid_reference(validator):
    result = _create(validator, _draft(), category=None)

    assert result.error.kind == PolicyErrorKind.INVALID_REFERENCE


def test_user_specific_without_user_id_is_invalid_target(validator):
    result = _create(validator, _draft(is_user_specific=True))

    assert result.error.kind == PolicyErrorKind.INVALID_TARGET
    assert "required" in result.error.message


def test_user_specific_for_non_member_is_invalid_target(validator):
    result = _create(validator, _draft(is_user_specific=True, user_id="U"), target=None)

    assert result.error.kind == PolicyErrorKind.INVALID_TARGET
    assert "not a member" in result.error.message


def test_second_organization_wide_policy_is_duplicate(validator):
    result = _create(validator, _draft(), existing=[_stored()])

    assert result.error.kind == PolicyErrorKind.DUPLICATE_SCOPE
    assert "organization-wide" in result.error.message


def test_second_override_for_same_user_is_duplicate(validator):
    existing = _stored(is_user_specific=True, user_id="U")

    result = _create(
        validator,
        _draft(is_user_specific=True, user_id="U"),
        target=TARGET,
        existing=[existing],
    )

    assert result.error.kind == PolicyErrorKind.DUPLICATE_SCOPE
    assert "user-specific" in result.error.message


def test_override_may_coexist_with_organization_wide_policy(validator):
    result = _create(
        validator,
        _draft(is_user_specific=True, user_id="U"),
        target=TARGET,
        existing=[_stored()],
    )

    assert result.ok
    assert result.accepted.user_id == "U"


def test_conditional_override_requires_threshold(validator):
    draft = _draft(is_user_specific=True, user_id="U", review_rule=PolicyReviewRule.CONDITIONAL)

    result = _create(validator, draft, target=TARGET)

    assert result.error.kind == PolicyErrorKind.MISSING_THRESHOLD


@pytest.mark.parametrize("threshold", ["0", "-5"])
def test_conditional_with_non_positive_threshold_is_missing_threshold(validator, threshold):
    draft = _draft(review_rule=PolicyReviewRule.CONDITIONAL, auto_approve_threshold=Decimal(threshold))

    result = _create(validator, draft)

    assert result.error.kind == PolicyErrorKind.MISSING_THRESHOLD


def test_conditional_override_with_threshold_succeeds(validator):
    draft = _draft(
        is_user_specific=True,
        user_id="U",
        review_rule=PolicyReviewRule.CONDITIONAL,
        auto_approve_threshold=Decimal("100"),
    )

    result = _create(validator, draft, target=TARGET)

    assert result.ok
    assert result.accepted.auto_approve_threshold == Decimal("100")


def test_organization_wide_policy_drops_stray_user_id(validator):
    result = _create(validator, _draft(is_user_specific=False, user_id="U"))

    assert result.ok
    assert result.accepted.user_id is None


@pytest.mark.parametrize(
    "overrides",
    [
        {"name": "   "},
        {"name": "x" * 101},
        {"max_amount": Decimal("0")},
        {"auto_approve_threshold": Decimal("-1")},
    ],
)
def test_invalid_fields_are_rejected(validator, overrides):
    result = _create(validator, _draft(**overrides))

    assert result.error.kind == PolicyErrorKind.INVALID_FIELD


# --- update ---

def test_update_merges_mutable_fields(validator):
    existing = _stored()

    result = validator.validate_update(
        existing,
        PolicyPatch(name="Renamed", max_amount=Decimal("750")),
        OrganizationRole.ADMIN,
    )

    assert result.ok
    assert result.accepted.name == "Renamed"
    assert result.accepted.max_amount == Decimal("750")
    assert result.accepted.id == existing.id
    assert result.accepted.scope_key == existing.scope_key


def test_update_by_member_is_unauthorized(validator):
    result = validator.validate_update(_stored(), PolicyPatch(name="x"), OrganizationRole.MEMBER)

    assert result.error.kind == PolicyErrorKind.UNAUTHORIZED


def test_update_to_conditional_without_threshold_fails(validator):
    result = validator.validate_update(
        _stored(),
        PolicyPatch(review_rule=PolicyReviewRule.CONDITIONAL),
        OrganizationRole.ADMIN,
    )

    assert result.error.kind == PolicyErrorKind.MISSING_THRESHOLD


def test_update_to_conditional_reuses_existing_threshold(validator):
    existing = _stored(auto_approve_threshold=Decimal("50"))

    result = validator.validate_update(
        existing,
        PolicyPatch(review_rule=PolicyReviewRule.CONDITIONAL),
        OrganizationRole.ADMIN,
    )

    assert result.ok
    assert result.accepted.auto_approve_threshold == Decimal("50")


def test_update_to_conditional_with_supplied_threshold(validator):
    result = validator.validate_update(
        _stored(),
        PolicyPatch(review_rule=PolicyReviewRule.CONDITIONAL, auto_approve_threshold=Decimal("25")),
        OrganizationRole.ADMIN,
    )

    assert result.ok
    assert result.accepted.review_rule == PolicyReviewRule.CONDITIONAL


# --- amount precision ---

@pytest.mark.parametrize(
    "overrides",
    [
        {"max_amount": Decimal("0.004")},
        {"max_amount": Decimal("10.005")},
        {"max_amount": Decimal("10000000000")},
        {"review_rule": PolicyReviewRule.CONDITIONAL, "auto_approve_threshold": Decimal("0.001")},
        {"review_rule": PolicyReviewRule.CONDITIONAL, "auto_approve_threshold": Decimal("1E+10")},
        {"auto_approve_threshold": Decimal("12.345")},
    ],
)
def test_amounts_that_would_not_survive_storage_are_rejected(validator, overrides):
    result = _create(validator, _draft(**overrides))

    assert result.error.kind == PolicyErrorKind.INVALID_FIELD


def test_largest_storable_amounts_are_accepted(validator):
    draft = _draft(
        max_amount=Decimal("9999999999.99"),
        review_rule=PolicyReviewRule.CONDITIONAL,
        auto_approve_threshold=Decimal("0.01"),
    )

    result = _create(validator, draft)

    assert result.ok


def test_trailing_zeros_are_not_extra_precision(validator):
    result = _create(validator, _draft(max_amount=Decimal("12.500")))

    assert result.ok


def test_update_with_over_precise_amount_is_rejected(validator):
    result = validator.validate_update(
        _stored(),
        PolicyPatch(max_amount=Decimal("0.004")),
        OrganizationRole.ADMIN,
    )

    assert result.error.kind == PolicyErrorKind.INVALID_FIELD
