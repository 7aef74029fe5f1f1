from threading import Lock
from typing import Dict, List, Optional, Tuple

from src.organization.domain.expense_category import ExpenseCategory
from src.organization.domain.membership import Membership
from src.organization.domain.organization_role import OrganizationRole
from src.organization.interfaces.category_directory import CategoryDirectory
from src.organization.interfaces.membership_directory import MembershipDirectory


class InMemoryMembershipDirectory(MembershipDirectory):
    def __init__(self):
        self._memberships: Dict[Tuple[str, str], Membership] = {}
        self._lock = Lock()

    def add(self, user_id: str, organization_id: str, role: OrganizationRole = OrganizationRole.MEMBER) -> Membership:
        membership = Membership(user_id=user_id, organization_id=organization_id, role=role)
        with self._lock:
            self._memberships[(user_id, organization_id)] = membership
        return membership

    def remove(self, user_id: str, organization_id: str) -> bool:
        with self._lock:
            return self._memberships.pop((user_id, organization_id), None) is not None

    def get_membership(self, user_id: str, organization_id: str) -> Optional[Membership]:
        with self._lock:
            return self._memberships.get((user_id, organization_id))

    def list_members(self, organization_id: str) -> List[Membership]:
        with self._lock:
            members = list(self._memberships.values())
        return [m for m in members if m.organization_id == organization_id]


class InMemoryCategoryDirectory(CategoryDirectory):
    def __init__(self):
        self._categories: Dict[str, ExpenseCategory] = {}
        self._lock = Lock()

    def add(self, category: ExpenseCategory) -> ExpenseCategory:
        with self._lock:
            self._categories[category.id] = category
        return category

    def get_category(self, category_id: str) -> Optional[ExpenseCategory]:
        with self._lock:
            return self._categories.get(category_id)

    def list_by_organization(self, organization_id: str) -> List[ExpenseCategory]:
        with self._lock:
            categories = list(self._categories.values())
        items = [c for c in categories if c.organization_id == organization_id]
        items.sort(key=lambda c: c.name)
        return items
