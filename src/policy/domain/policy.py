from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Tuple
from uuid import UUID

from src.policy.domain.policy_enums import PolicyPeriod, PolicyReviewRule
from src.policy.domain.policy_errors import PolicyPayloadError

# Fields an update may touch; scope fields are fixed at creation.
MUTABLE_FIELDS = (
    "name",
    "description",
    "max_amount",
    "period",
    "review_rule",
    "auto_approve_threshold",
)

# Storage precision for money columns: at most 12 digits, 2 after the point.
AMOUNT_PRECISION = 12
AMOUNT_SCALE = 2
_AMOUNT_QUANTUM = Decimal(1).scaleb(-AMOUNT_SCALE)
_AMOUNT_LIMIT = Decimal(10) ** (AMOUNT_PRECISION - AMOUNT_SCALE)


def is_storable_amount(value: Decimal) -> bool:
    if not value.is_finite() or abs(value) >= _AMOUNT_LIMIT:
        return False
    return value == value.quantize(_AMOUNT_QUANTUM)


@dataclass(frozen=True)
class Policy:
    id: UUID
    organization_id: str
    category_id: str
    name: str
    max_amount: Decimal
    period: PolicyPeriod
    review_rule: PolicyReviewRule
    description: Optional[str] = None
    auto_approve_threshold: Optional[Decimal] = None
    is_user_specific: bool = False
    user_id: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: Optional[datetime] = None

    @property
    def scope_key(self) -> Tuple[str, str, Optional[str]]:
        return (
            self.organization_id,
            self.category_id,
            self.user_id if self.is_user_specific else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "organization_id": self.organization_id,
            "category_id": self.category_id,
            "name": self.name,
            "description": self.description,
            "max_amount": str(self.max_amount),
            "period": self.period.value,
            "review_rule": self.review_rule.value,
            "auto_approve_threshold": (
                str(self.auto_approve_threshold) if self.auto_approve_threshold is not None else None
            ),
            "is_user_specific": self.is_user_specific,
            "user_id": self.user_id,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class PolicyDraft:
    """
    Candidate policy submitted for creation.
    Carries no id or timestamps; those are assigned when the draft is accepted.
    """
    organization_id: str
    category_id: str
    name: str
    max_amount: Decimal
    period: PolicyPeriod
    review_rule: PolicyReviewRule
    description: Optional[str] = None
    auto_approve_threshold: Optional[Decimal] = None
    is_user_specific: bool = False
    user_id: Optional[str] = None


@dataclass(frozen=True)
class PolicyPatch:
    name: Optional[str] = None
    description: Optional[str] = None
    max_amount: Optional[Decimal] = None
    period: Optional[PolicyPeriod] = None
    review_rule: Optional[PolicyReviewRule] = None
    auto_approve_threshold: Optional[Decimal] = None

    def changes(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in MUTABLE_FIELDS if getattr(self, name) is not None}


def describe_policy(policy: Policy) -> str:
    scope = f"user {policy.user_id}" if policy.is_user_specific else "organization-wide"
    summary = (
        f"{policy.name}: up to {policy.max_amount} {policy.period.label}, "
        f"{policy.review_rule.label} ({scope})"
    )
    if policy.review_rule is PolicyReviewRule.CONDITIONAL and policy.auto_approve_threshold is not None:
        summary += f", auto-approve under {policy.auto_approve_threshold}"
    return summary


def _parse_amount(payload: Dict[str, Any], key: str) -> Optional[Decimal]:
    raw = payload.get(key)
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool) or not isinstance(raw, (int, float, str)):
        raise PolicyPayloadError(f"{key} must be a number")
    try:
        value = Decimal(str(raw))
    except InvalidOperation:
        raise PolicyPayloadError(f"{key} must be a number")
    if not value.is_finite():
        raise PolicyPayloadError(f"{key} must be a finite number")
    return value


def _parse_enum(enum_cls, payload: Dict[str, Any], key: str):
    raw = payload.get(key)
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise PolicyPayloadError(f"Invalid {key}: {raw}")
    try:
        return enum_cls(raw.upper())
    except ValueError:
        raise PolicyPayloadError(f"Invalid {key}: {raw}")


def _optional_str(payload: Dict[str, Any], key: str) -> Optional[str]:
    raw = payload.get(key)
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise PolicyPayloadError(f"{key} must be a string")
    return raw


def _optional_bool(payload: Dict[str, Any], key: str, default: bool) -> bool:
    raw = payload.get(key)
    if raw is None:
        return default
    if not isinstance(raw, bool):
        raise PolicyPayloadError(f"{key} must be true or false")
    return raw


def draft_from_payload(payload: Dict[str, Any]) -> PolicyDraft:
    for key in ("organization_id", "category_id", "name", "max_amount", "period", "review_rule"):
        if payload.get(key) is None:
            raise PolicyPayloadError(f"Missing required field: {key}")

    return PolicyDraft(
        organization_id=_optional_str(payload, "organization_id"),
        category_id=_optional_str(payload, "category_id"),
        name=_optional_str(payload, "name"),
        description=_optional_str(payload, "description"),
        max_amount=_parse_amount(payload, "max_amount"),
        period=_parse_enum(PolicyPeriod, payload, "period"),
        review_rule=_parse_enum(PolicyReviewRule, payload, "review_rule"),
        auto_approve_threshold=_parse_amount(payload, "auto_approve_threshold"),
        is_user_specific=_optional_bool(payload, "is_user_specific", False),
        user_id=_optional_str(payload, "user_id"),
    )


def patch_from_payload(payload: Dict[str, Any]) -> PolicyPatch:
    unknown = set(payload) - set(MUTABLE_FIELDS)
    if unknown:
        raise PolicyPayloadError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

    return PolicyPatch(
        name=_optional_str(payload, "name"),
        description=_optional_str(payload, "description"),
        max_amount=_parse_amount(payload, "max_amount"),
        period=_parse_enum(PolicyPeriod, payload, "period"),
        review_rule=_parse_enum(PolicyReviewRule, payload, "review_rule"),
        auto_approve_threshold=_parse_amount(payload, "auto_approve_threshold"),
    )


def policy_from_draft(draft: PolicyDraft, policy_id: UUID, created_at: datetime) -> Policy:
    return Policy(
        id=policy_id,
        organization_id=draft.organization_id,
        category_id=draft.category_id,
        name=draft.name,
        description=draft.description,
        max_amount=draft.max_amount,
        period=draft.period,
        review_rule=draft.review_rule,
        auto_approve_threshold=draft.auto_approve_threshold,
        is_user_specific=draft.is_user_specific,
        user_id=draft.user_id if draft.is_user_specific else None,
        created_at=created_at,
    )
