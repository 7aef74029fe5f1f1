from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from src.infrastructure.persistence.models import Base, PolicyModel
from src.policy.domain.policy import Policy
from src.policy.domain.policy_enums import PolicyPeriod, PolicyReviewRule
from src.policy.domain.policy_errors import PolicyScopeConflict
from src.policy.interfaces.policy_store import PolicyStore


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops the offset on read; stored values are always UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlPolicyStore(PolicyStore):
    """
    SQLAlchemy-backed policy store.
    Scope uniqueness is enforced by the `uq_policies_scope` constraint, so two
    concurrent creates for one scope cannot both commit.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._sessions = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
        self.ensure_schema()

    @classmethod
    def from_dsn(cls, dsn: str) -> "SqlPolicyStore":
        engine = create_engine(dsn, pool_pre_ping=True, future=True)
        return cls(engine)

    def ensure_schema(self) -> None:
        Base.metadata.create_all(bind=self.engine, tables=[PolicyModel.__table__])

    def add(self, policy: Policy) -> Policy:
        with self._sessions() as session:
            session.add(self._map_to_model(policy, PolicyModel()))
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise PolicyScopeConflict(f"Scope already taken: {policy.scope_key}") from exc
        return policy

    def replace(self, policy: Policy) -> Policy:
        with self._sessions() as session:
            model = self._find(session, policy.id)
            if model is None:
                raise KeyError(policy.id)
            if (model.organization_id, model.category_id, model.scope_user_key) != (
                policy.organization_id,
                policy.category_id,
                policy.user_id if policy.is_user_specific else "",
            ):
                raise ValueError("Policy scope is immutable")
            self._map_to_model(policy, model)
            session.commit()
        return policy

    def remove(self, policy_id: UUID) -> bool:
        with self._sessions() as session:
            model = self._find(session, policy_id)
            if model is None:
                return False
            session.delete(model)
            session.commit()
            return True

    def get(self, policy_id: UUID) -> Optional[Policy]:
        with self._sessions() as session:
            model = self._find(session, policy_id)
            return self._map_to_domain(model) if model else None

    def list_scope(self, organization_id: str, category_id: str) -> List[Policy]:
        with self._sessions() as session:
            rows = (
                session.query(PolicyModel)
                .filter_by(organization_id=organization_id, category_id=category_id)
                .order_by(PolicyModel.created_at.asc())
                .all()
            )
            return [self._map_to_domain(row) for row in rows]

    def list_by_organization(self, organization_id: str) -> List[Policy]:
        with self._sessions() as session:
            rows = session.query(PolicyModel).filter_by(organization_id=organization_id).all()
            return [self._map_to_domain(row) for row in rows]

    def list_by_category(self, category_id: str) -> List[Policy]:
        with self._sessions() as session:
            rows = session.query(PolicyModel).filter_by(category_id=category_id).all()
            return [self._map_to_domain(row) for row in rows]

    @staticmethod
    def _find(session: Session, policy_id: UUID) -> Optional[PolicyModel]:
        return session.query(PolicyModel).filter_by(id=str(policy_id)).first()

    @staticmethod
    def _map_to_model(policy: Policy, model: PolicyModel) -> PolicyModel:
        model.id = str(policy.id)
        model.organization_id = policy.organization_id
        model.category_id = policy.category_id
        model.name = policy.name
        model.description = policy.description
        model.max_amount = policy.max_amount
        model.period = policy.period.value
        model.review_rule = policy.review_rule.value
        model.auto_approve_threshold = policy.auto_approve_threshold
        model.is_user_specific = policy.is_user_specific
        model.user_id = policy.user_id if policy.is_user_specific else None
        model.scope_user_key = policy.user_id if policy.is_user_specific else ""
        model.created_at = _as_utc(policy.created_at).astimezone(timezone.utc)
        model.updated_at = _as_utc(policy.updated_at).astimezone(timezone.utc) if policy.updated_at else None
        return model

    @staticmethod
    def _map_to_domain(model: PolicyModel) -> Policy:
        return Policy(
            id=UUID(model.id),
            organization_id=model.organization_id,
            category_id=model.category_id,
            name=model.name,
            description=model.description,
            max_amount=model.max_amount,
            period=PolicyPeriod(model.period),
            review_rule=PolicyReviewRule(model.review_rule),
            auto_approve_threshold=model.auto_approve_threshold,
            is_user_specific=bool(model.is_user_specific),
            user_id=model.user_id,
            created_at=_as_utc(model.created_at),
            updated_at=_as_utc(model.updated_at),
        )
