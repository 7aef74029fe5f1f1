from enum import Enum


class PolicyPeriod(Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"

    @property
    def label(self) -> str:
        return self.value.lower()


class PolicyReviewRule(Enum):
    AUTO_APPROVE = "AUTO_APPROVE"
    MANUAL_REVIEW = "MANUAL_REVIEW"
    CONDITIONAL = "CONDITIONAL"

    @property
    def label(self) -> str:
        if self is PolicyReviewRule.AUTO_APPROVE:
            return "Auto Approve"
        if self is PolicyReviewRule.MANUAL_REVIEW:
            return "Manual Review"
        if self is PolicyReviewRule.CONDITIONAL:
            return "Conditional"
        raise ValueError(f"Unhandled review rule: {self!r}")

    @property
    def requires_threshold(self) -> bool:
        if self is PolicyReviewRule.CONDITIONAL:
            return True
        if self in (PolicyReviewRule.AUTO_APPROVE, PolicyReviewRule.MANUAL_REVIEW):
            return False
        raise ValueError(f"Unhandled review rule: {self!r}")
