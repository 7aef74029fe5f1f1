from dataclasses import replace
from typing import Any, Dict, List, Optional
from uuid import UUID

from src.infrastructure.logging.structured_logger import StructuredLogger
from src.organization.domain.membership import Membership
from src.organization.domain.organization_role import is_admin_role
from src.organization.interfaces.category_directory import CategoryDirectory
from src.organization.interfaces.membership_directory import MembershipDirectory
from src.policy.domain.policy import Policy, PolicyDraft, PolicyPatch, policy_from_draft
from src.policy.domain.policy_errors import (
    PolicyErrorKind,
    PolicyOperationError,
    PolicyScopeConflict,
    PolicyValidationError,
)
from src.policy.domain.policy_mutation_audit import PolicyMutationAudit
from src.policy.domain.policy_resolution import PolicyResolution
from src.policy.domain.policy_validation_result import PolicyValidationResult
from src.policy.interfaces.policy_id_source import PolicyIdSource
from src.policy.interfaces.policy_store import PolicyStore
from src.policy.interfaces.policy_time_source import PolicyTimeSource
from src.policy.services.policy_resolver import PolicyResolver
from src.policy.services.policy_validator import PolicyValidator
from src.policy.services.system_sources import RandomPolicyIdSource, SystemPolicyTimeSource
from src.policy.store.mutation_audit_store import PolicyMutationAuditStore

NOT_A_MEMBER_MESSAGE = "You are not a member of this organization"


def _fail(kind: PolicyErrorKind, message: str) -> PolicyOperationError:
    return PolicyOperationError(PolicyValidationError(kind=kind, message=message))


def _raise_if_rejected(result: PolicyValidationResult) -> None:
    if not result.ok:
        raise PolicyOperationError(result.error)


class PolicyService:
    """
    Request-facing policy operations.
    Looks up memberships, categories and stored policies, runs the validator
    before every write and the resolver for every decision, and audits each
    successful mutation.
    """

    def __init__(
        self,
        store: PolicyStore,
        memberships: MembershipDirectory,
        categories: CategoryDirectory,
        validator: Optional[PolicyValidator] = None,
        resolver: Optional[PolicyResolver] = None,
        audit_store: Optional[PolicyMutationAuditStore] = None,
        time_source: Optional[PolicyTimeSource] = None,
        id_source: Optional[PolicyIdSource] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        self.store = store
        self.memberships = memberships
        self.categories = categories
        self.logger = logger or StructuredLogger()
        self.validator = validator or PolicyValidator()
        self.resolver = resolver or PolicyResolver(logger=self.logger)
        self.audit_store = audit_store or PolicyMutationAuditStore()
        self.time_source = time_source or SystemPolicyTimeSource()
        self.id_source = id_source or RandomPolicyIdSource()

    def create_policy(self, actor_id: str, draft: PolicyDraft) -> Policy:
        actor = self.memberships.get_membership(actor_id, draft.organization_id)
        category = self.categories.get_category(draft.category_id)
        target = None
        if draft.is_user_specific and draft.user_id:
            target = self.memberships.get_membership(draft.user_id, draft.organization_id)

        result = self.validator.validate_create(
            candidate=draft,
            acting_role=actor.role if actor else None,
            category=category,
            target_membership=target,
            existing_policies=self.store.list_scope(draft.organization_id, draft.category_id),
        )
        _raise_if_rejected(result)

        policy = policy_from_draft(result.accepted, self.id_source.new_id(), self.time_source.now())
        try:
            self.store.add(policy)
        except PolicyScopeConflict:
            raise _fail(
                PolicyErrorKind.DUPLICATE_SCOPE,
                "A user-specific policy already exists for this category and user"
                if policy.is_user_specific
                else "An organization-wide policy already exists for this category",
            )

        self._audit(actor, "policy_create", policy.id, before={}, after=policy.to_dict())
        return policy

    def update_policy(self, actor_id: str, policy_id: UUID, patch: PolicyPatch) -> Policy:
        existing = self._require_policy(policy_id)
        actor = self.memberships.get_membership(actor_id, existing.organization_id)

        result = self.validator.validate_update(existing, patch, actor.role if actor else None)
        _raise_if_rejected(result)

        updated = replace(result.accepted, updated_at=self.time_source.now())
        try:
            self.store.replace(updated)
        except KeyError:
            raise _fail(PolicyErrorKind.NOT_FOUND, "Policy not found")

        self._audit(actor, "policy_update", policy_id, before=existing.to_dict(), after=updated.to_dict())
        return updated

    def delete_policy(self, actor_id: str, policy_id: UUID) -> Policy:
        existing = self._require_policy(policy_id)
        actor = self.memberships.get_membership(actor_id, existing.organization_id)
        if not is_admin_role(actor.role if actor else None):
            raise _fail(PolicyErrorKind.UNAUTHORIZED, "Only organization admins can delete policies")

        if not self.store.remove(policy_id):
            raise _fail(PolicyErrorKind.NOT_FOUND, "Policy not found")

        self._audit(actor, "policy_delete", policy_id, before=existing.to_dict(), after={})
        return existing

    def get_policy(self, actor_id: str, policy_id: UUID) -> Policy:
        policy = self._require_policy(policy_id)
        self._require_member(actor_id, policy.organization_id)
        return policy

    def list_by_organization(self, actor_id: str, organization_id: str) -> List[Policy]:
        self._require_member(actor_id, organization_id)
        category_names: Dict[str, str] = {}

        def _category_name(category_id: str) -> str:
            if category_id not in category_names:
                category = self.categories.get_category(category_id)
                category_names[category_id] = category.name if category else ""
            return category_names[category_id]

        policies = self.store.list_by_organization(organization_id)
        return sorted(policies, key=lambda p: (p.is_user_specific, _category_name(p.category_id), p.name))

    def list_by_category(self, actor_id: str, category_id: str) -> List[Policy]:
        category = self.categories.get_category(category_id)
        if category is None:
            raise _fail(PolicyErrorKind.NOT_FOUND, "Category not found")
        self._require_member(actor_id, category.organization_id)
        policies = self.store.list_by_category(category_id)
        return sorted(policies, key=lambda p: (p.is_user_specific, p.name))

    def resolve_policy(
        self,
        actor_id: str,
        organization_id: str,
        category_id: str,
        user_id: Optional[str] = None,
    ) -> Optional[PolicyResolution]:
        actor = self._require_member(actor_id, organization_id)
        target_user_id = user_id or actor_id
        if target_user_id != actor_id and not is_admin_role(actor.role):
            raise _fail(PolicyErrorKind.UNAUTHORIZED, "Only admins can resolve policies for other users")

        return self.resolver.resolve(
            organization_id=organization_id,
            category_id=category_id,
            target_user_id=target_user_id,
            candidate_policies=self.store.list_scope(organization_id, category_id),
        )

    def to_view(self, policy: Policy) -> Dict[str, Any]:
        view = policy.to_dict()
        category = self.categories.get_category(policy.category_id)
        view["category"] = {
            "id": policy.category_id,
            "name": category.name if category else None,
        }
        return view

    def list_audit(self, limit: int = 200) -> List[PolicyMutationAudit]:
        return self.audit_store.list_recent(limit=limit)

    def _require_policy(self, policy_id: UUID) -> Policy:
        policy = self.store.get(policy_id)
        if policy is None:
            raise _fail(PolicyErrorKind.NOT_FOUND, "Policy not found")
        return policy

    def _require_member(self, actor_id: str, organization_id: str) -> Membership:
        membership = self.memberships.get_membership(actor_id, organization_id)
        if membership is None:
            raise _fail(PolicyErrorKind.UNAUTHORIZED, NOT_A_MEMBER_MESSAGE)
        return membership

    def _audit(
        self,
        actor: Membership,
        action: str,
        policy_id: UUID,
        before: Dict[str, Any],
        after: Dict[str, Any],
    ) -> None:
        entry = PolicyMutationAudit(
            id=self.id_source.new_id(),
            actor=actor.user_id,
            role=actor.role.value,
            action=action,
            target=str(policy_id),
            at=self.time_source.now(),
            before=before,
            after=after,
        )
        self.audit_store.append(entry)
        self.logger.emit(
            "POLICY_MUTATION",
            action=action,
            policy_id=str(policy_id),
            actor=actor.user_id,
            organization_id=actor.organization_id,
        )
