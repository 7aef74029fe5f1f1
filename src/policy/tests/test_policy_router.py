import pytest

fastapi = pytest.importorskip("fastapi")
from fastapi.testclient import TestClient

from src.organization.domain.expense_category import ExpenseCategory
from src.organization.domain.organization_role import OrganizationRole
from src.organization.store.in_memory_directory import (
    InMemoryCategoryDirectory,
    InMemoryMembershipDirectory,
)
from src.policy.api.policy_app import create_app
from src.policy.services.policy_service import PolicyService
from src.policy.store.in_memory_policy_store import InMemoryPolicyStore


def _client() -> TestClient:
    memberships = InMemoryMembershipDirectory()
    memberships.add("admin", "O", OrganizationRole.ADMIN)
    memberships.add("U", "O", OrganizationRole.MEMBER)
    categories = InMemoryCategoryDirectory()
    categories.add(ExpenseCategory(id="C", organization_id="O", name="Travel"))
    categories.add(ExpenseCategory(id="X", organization_id="OTHER", name="Foreign"))
    service = PolicyService(
        store=InMemoryPolicyStore(),
        memberships=memberships,
        categories=categories,
    )
    return TestClient(create_app(service))


def _as(user_id: str) -> dict:
    return {"x-user-id": user_id}


def _payload(**overrides) -> dict:
    payload = {
        "organization_id": "O",
        "category_id": "C",
        "name": "Travel cap",
        "max_amount": 500,
        "period": "MONTHLY",
        "review_rule": "MANUAL_REVIEW",
    }
    payload.update(overrides)
    return payload


def test_create_and_resolve_override():
    client = _client()

    org_wide = client.post("/policies/v1/policies", json=_payload(), headers=_as("admin"))
    override = client.post(
        "/policies/v1/policies",
        json=_payload(
            name="Override",
            max_amount=1000,
            review_rule="AUTO_APPROVE",
            is_user_specific=True,
            user_id="U",
        ),
        headers=_as("admin"),
    )
    resolved = client.get("/policies/v1/organizations/O/categories/C/resolve", headers=_as("U"))

    assert org_wide.status_code == 201
    assert override.status_code == 201
    assert resolved.status_code == 200
    body = resolved.json()
    assert body["policy"]["id"] == override.json()["id"]
    assert body["precedence_info"] == {
        "is_user_specific": True,
        "has_organization_wide_policy": True,
        "has_user_specific_policy": True,
        "total_candidates_found": 2,
    }


def test_resolve_without_policy_returns_null():
    client = _client()

    response = client.get("/policies/v1/organizations/O/categories/C/resolve", headers=_as("U"))

    assert response.status_code == 200
    assert response.json()["policy"] is None


def test_missing_identity_is_rejected():
    client = _client()

    response = client.get("/policies/v1/organizations/O/policies")

    assert response.status_code == 401


def test_member_create_is_forbidden():
    client = _client()

    response = client.post("/policies/v1/policies", json=_payload(), headers=_as("U"))

    assert response.status_code == 403
    assert response.json()["detail"]["code"] == "UNAUTHORIZED"


def test_duplicate_scope_is_conflict():
    client = _client()
    client.post("/policies/v1/policies", json=_payload(), headers=_as("admin"))

    response = client.post("/policies/v1/policies", json=_payload(name="Again"), headers=_as("admin"))

    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "DUPLICATE_SCOPE"


@pytest.mark.parametrize(
    "overrides, code",
    [
        ({"category_id": "X"}, "INVALID_REFERENCE"),
        ({"review_rule": "CONDITIONAL"}, "MISSING_THRESHOLD"),
        ({"is_user_specific": True}, "INVALID_TARGET"),
        ({"period": "HOURLY"}, "INVALID_FIELD"),
    ],
)
def test_validation_failures_are_bad_requests(overrides, code):
    client = _client()

    response = client.post("/policies/v1/policies", json=_payload(**overrides), headers=_as("admin"))

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == code


def test_update_list_and_delete():
    client = _client()
    created = client.post("/policies/v1/policies", json=_payload(), headers=_as("admin")).json()
    policy_url = f"/policies/v1/policies/{created['id']}"

    patched = client.patch(policy_url, json={"max_amount": "750"}, headers=_as("admin"))
    listed = client.get("/policies/v1/categories/C/policies", headers=_as("U"))
    deleted = client.delete(policy_url, headers=_as("admin"))
    missing = client.get(policy_url, headers=_as("admin"))

    assert patched.status_code == 200
    assert patched.json()["max_amount"] == "750"
    assert [item["id"] for item in listed.json()["items"]] == [created["id"]]
    assert deleted.json() == {"status": "ok", "policy_id": created["id"]}
    assert missing.status_code == 404


def test_patch_rejects_scope_fields():
    client = _client()
    created = client.post("/policies/v1/policies", json=_payload(), headers=_as("admin")).json()

    response = client.patch(
        f"/policies/v1/policies/{created['id']}",
        json={"user_id": "U"},
        headers=_as("admin"),
    )

    assert response.status_code == 400


def test_policy_responses_embed_category():
    client = _client()
    created = client.post("/policies/v1/policies", json=_payload(), headers=_as("admin")).json()

    fetched = client.get(f"/policies/v1/policies/{created['id']}", headers=_as("U")).json()
    resolved = client.get("/policies/v1/organizations/O/categories/C/resolve", headers=_as("U")).json()

    assert created["category"] == {"id": "C", "name": "Travel"}
    assert fetched["category"]["name"] == "Travel"
    assert resolved["policy"]["category"]["name"] == "Travel"


def test_string_boolean_is_rejected():
    client = _client()

    response = client.post(
        "/policies/v1/policies",
        json=_payload(is_user_specific="false", user_id="U"),
        headers=_as("admin"),
    )

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "INVALID_FIELD"
