import os

from src.config.settings import settings
from src.organization.domain.expense_category import ExpenseCategory
from src.organization.domain.organization_role import OrganizationRole
from src.organization.store.in_memory_directory import (
    InMemoryCategoryDirectory,
    InMemoryMembershipDirectory,
)
from src.policy.api.policy_app import run_server
from src.policy.services.policy_service import PolicyService
from src.policy.store.in_memory_policy_store import InMemoryPolicyStore
from src.policy.store.sql_policy_store import SqlPolicyStore


def main():
    print("Initializing DEV environment...")

    # 1. Directories (seeded demo organization)
    memberships = InMemoryMembershipDirectory()
    memberships.add("dev-admin", "dev-org", OrganizationRole.ADMIN)
    memberships.add("dev-member", "dev-org", OrganizationRole.MEMBER)

    categories = InMemoryCategoryDirectory()
    categories.add(ExpenseCategory(id="travel", organization_id="dev-org", name="Travel"))
    categories.add(ExpenseCategory(id="meals", organization_id="dev-org", name="Meals"))

    # 2. Policy storage
    if os.getenv("POLICY_STORE", "memory") == "sql":
        store = SqlPolicyStore.from_dsn(settings.DATABASE_URL)
    else:
        store = InMemoryPolicyStore()

    # 3. Service + HTTP
    service = PolicyService(store=store, memberships=memberships, categories=categories)
    print(f"Serving policy API on {settings.API_HOST}:{settings.API_PORT} (send X-User-Id: dev-admin)")
    run_server(service)


if __name__ == "__main__":
    main()
