from sqlalchemy import Boolean, Column, DateTime, Numeric, String, UniqueConstraint, Index
from sqlalchemy.orm import declarative_base
import uuid

from src.policy.domain.policy import AMOUNT_PRECISION, AMOUNT_SCALE

Base = declarative_base()


class PolicyModel(Base):
    __tablename__ = "policies"
    __table_args__ = (
        # scope_user_key is the user id for overrides and "" for organization-wide rows,
        # so both uniqueness invariants hold as one atomic constraint.
        UniqueConstraint("organization_id", "category_id", "scope_user_key", name="uq_policies_scope"),
        Index("ix_policies_organization_category", "organization_id", "category_id"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    organization_id = Column(String, nullable=False)
    category_id = Column(String, nullable=False, index=True)

    name = Column(String(100), nullable=False)
    description = Column(String, nullable=True)

    max_amount = Column(Numeric(AMOUNT_PRECISION, AMOUNT_SCALE), nullable=False)
    period = Column(String, nullable=False)
    review_rule = Column(String, nullable=False)
    auto_approve_threshold = Column(Numeric(AMOUNT_PRECISION, AMOUNT_SCALE), nullable=True)

    is_user_specific = Column(Boolean, nullable=False, default=False)
    user_id = Column(String, nullable=True)
    scope_user_key = Column(String, nullable=False, default="")

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)
