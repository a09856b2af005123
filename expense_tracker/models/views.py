"""
Derived View Models

Results returned by the aggregation layer (`expense_tracker.analytics`).
These are read-only snapshots computed from the state; they are never
stored and never fed back into the reducer.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from expense_tracker.models.ledger import Account, Budget, Category


class ViewModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class AccountSummary(ViewModel):
    """Balance and activity of a single account."""

    account: Account
    balance: float
    total_income: float = 0.0
    total_expense: float = Field(default=0.0, description="Magnitude of expenses")
    transaction_count: int = Field(default=0, ge=0)


class IncomeExpenseTotals(ViewModel):
    income: float = 0.0
    expense: float = Field(default=0.0, description="Magnitude of expenses")
    income_count: int = 0
    expense_count: int = 0

    @property
    def net(self) -> float:
        return self.income - self.expense


class BudgetProgress(ViewModel):
    """
    How much of a monthly budget has been used.

    `progress` is clamped to [0, 1]; 1 means the budget is used up or
    exceeded, `is_over_budget` tells the two apart.
    """

    budget: Budget
    category: Optional[Category] = None
    spent: float
    remaining: float
    progress: float = Field(..., ge=0.0, le=1.0)

    @property
    def is_over_budget(self) -> bool:
        return self.spent > self.budget.amount


class BudgetOverview(ViewModel):
    """All budgets of one month with their combined totals."""

    month: str
    items: tuple[BudgetProgress, ...] = ()
    budgeted: float = 0.0
    spent: float = 0.0
    remaining: float = 0.0


class MonthlyTotal(ViewModel):
    month: str = Field(..., description="YYYY-MM")
    total: float = 0.0


class CategoryBreakdown(ViewModel):
    category: Category
    total: float = Field(default=0.0, description="Magnitude of expenses")
    count: int = 0
