from typing import Any, Callable, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException

from src.policy.domain.policy import draft_from_payload, patch_from_payload
from src.policy.domain.policy_errors import PolicyErrorKind, PolicyOperationError, PolicyPayloadError
from src.policy.services.policy_service import PolicyService

_STATUS_BY_KIND = {
    PolicyErrorKind.UNAUTHORIZED: 403,
    PolicyErrorKind.NOT_FOUND: 404,
    PolicyErrorKind.DUPLICATE_SCOPE: 409,
    PolicyErrorKind.INVALID_REFERENCE: 400,
    PolicyErrorKind.INVALID_TARGET: 400,
    PolicyErrorKind.MISSING_THRESHOLD: 400,
    PolicyErrorKind.INVALID_FIELD: 400,
}


def header_user(x_user_id: Optional[str] = Header(None)) -> str:
    """
    Reads the acting user id set by the upstream authentication layer.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing user identity")
    return x_user_id


def _http_error(exc: PolicyOperationError) -> HTTPException:
    return HTTPException(
        status_code=_STATUS_BY_KIND[exc.kind],
        detail={"code": exc.kind.value, "message": exc.error.message},
    )


def build_policy_router(
    service: PolicyService,
    current_user: Callable[..., str] = header_user,
):
    router = APIRouter(prefix="/policies/v1", tags=["policies"])

    @router.post("/policies", status_code=201)
    def create_policy(payload: Dict[str, Any], actor_id: str = Depends(current_user)):
        try:
            draft = draft_from_payload(payload)
        except PolicyPayloadError as exc:
            raise HTTPException(status_code=400, detail={"code": "INVALID_FIELD", "message": str(exc)})
        try:
            return service.to_view(service.create_policy(actor_id, draft))
        except PolicyOperationError as exc:
            raise _http_error(exc)

    @router.get("/policies/{policy_id}")
    def get_policy(policy_id: UUID, actor_id: str = Depends(current_user)):
        try:
            return service.to_view(service.get_policy(actor_id, policy_id))
        except PolicyOperationError as exc:
            raise _http_error(exc)

    @router.patch("/policies/{policy_id}")
    def update_policy(policy_id: UUID, payload: Dict[str, Any], actor_id: str = Depends(current_user)):
        try:
            patch = patch_from_payload(payload)
        except PolicyPayloadError as exc:
            raise HTTPException(status_code=400, detail={"code": "INVALID_FIELD", "message": str(exc)})
        try:
            return service.to_view(service.update_policy(actor_id, policy_id, patch))
        except PolicyOperationError as exc:
            raise _http_error(exc)

    @router.delete("/policies/{policy_id}")
    def delete_policy(policy_id: UUID, actor_id: str = Depends(current_user)):
        try:
            deleted = service.delete_policy(actor_id, policy_id)
        except PolicyOperationError as exc:
            raise _http_error(exc)
        return {"status": "ok", "policy_id": str(deleted.id)}

    @router.get("/organizations/{organization_id}/policies")
    def list_organization_policies(organization_id: str, actor_id: str = Depends(current_user)):
        try:
            policies = service.list_by_organization(actor_id, organization_id)
        except PolicyOperationError as exc:
            raise _http_error(exc)
        return {"items": [service.to_view(p) for p in policies]}

    @router.get("/categories/{category_id}/policies")
    def list_category_policies(category_id: str, actor_id: str = Depends(current_user)):
        try:
            policies = service.list_by_category(actor_id, category_id)
        except PolicyOperationError as exc:
            raise _http_error(exc)
        return {"items": [service.to_view(p) for p in policies]}

    @router.get("/organizations/{organization_id}/categories/{category_id}/resolve")
    def resolve_policy(
        organization_id: str,
        category_id: str,
        user_id: Optional[str] = None,
        actor_id: str = Depends(current_user),
    ):
        try:
            resolution = service.resolve_policy(actor_id, organization_id, category_id, user_id)
        except PolicyOperationError as exc:
            raise _http_error(exc)
        if resolution is None:
            return {"policy": None, "precedence_info": None, "warnings": []}
        body = resolution.to_dict()
        body["policy"] = service.to_view(resolution.policy)
        return body

    return router
