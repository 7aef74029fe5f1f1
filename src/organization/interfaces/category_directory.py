from abc import ABC, abstractmethod
from typing import Optional

from src.organization.domain.expense_category import ExpenseCategory


class CategoryDirectory(ABC):
    @abstractmethod
    def get_category(self, category_id: str) -> Optional[ExpenseCategory]:
        pass
