from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ExpenseCategory:
    """
    Expense category owned by exactly one organization.
    """
    id: str
    organization_id: str
    name: str
    description: Optional[str] = None
