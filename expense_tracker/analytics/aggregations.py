"""
Aggregations

Read-only views computed from the ledger: balances, income/expense
totals, budget progress, monthly trends and category breakdowns.

Every function takes its inputs explicitly and has no side effects.
Expense totals are always reported as positive magnitudes.
Transactions whose date cannot be parsed are left out of every
date-based view.
"""

from collections import defaultdict
from datetime import datetime
from typing import Iterable, Optional, Sequence, Union

from expense_tracker.analytics.periods import (
    Instant,
    add_months,
    month_key,
    parse_instant,
)
from expense_tracker.models.ledger import (
    DEFAULT_CATEGORY_ID,
    Account,
    Budget,
    Category,
    Transaction,
)
from expense_tracker.models.views import (
    AccountSummary,
    BudgetOverview,
    BudgetProgress,
    CategoryBreakdown,
    IncomeExpenseTotals,
    MonthlyTotal,
)


DEFAULT_ALERT_THRESHOLD = 0.9


# =============================================================================
# BALANCES
# =============================================================================

def account_balance(account: Account, transactions: Iterable[Transaction]) -> float:
    """Initial balance plus every amount booked against the account."""
    return account.initial_balance + sum(
        t.amount for t in transactions if t.account_id == account.id
    )


def account_summaries(
    accounts: Sequence[Account],
    transactions: Sequence[Transaction],
) -> list[AccountSummary]:
    """Balance and activity per account, in account order."""
    by_account: dict[str, list[Transaction]] = defaultdict(list)
    for transaction in transactions:
        by_account[transaction.account_id].append(transaction)

    summaries = []
    for account in accounts:
        booked = by_account.get(account.id, [])
        totals = income_expense_totals(booked)
        summaries.append(AccountSummary(
            account=account,
            balance=account_balance(account, booked),
            total_income=totals.income,
            total_expense=totals.expense,
            transaction_count=len(booked),
        ))
    return summaries


def aggregate_balance(accounts: Sequence[Account], transactions: Sequence[Transaction]) -> float:
    """Combined balance of the accounts that count toward totals."""
    return sum(
        account_balance(account, transactions)
        for account in accounts
        if account.include_in_balance
    )


# =============================================================================
# FILTERING AND TOTALS
# =============================================================================

def filter_transactions(
    transactions: Sequence[Transaction],
    categories: Sequence[Category],
    accounts: Sequence[Account],
    account_id: Optional[str] = None,
    start: Optional[Instant] = None,
    end: Optional[Instant] = None,
    query: str = "",
) -> list[Transaction]:
    """
    Narrow the ledger the way the transaction list does.

    Filters apply in order: account, then the inclusive date range, then
    a case-insensitive search on title, category name and account name.
    """
    result = list(transactions)

    if account_id is not None:
        result = [t for t in result if t.account_id == account_id]

    start_at = parse_instant(start)
    end_at = parse_instant(end)
    if start_at is not None or end_at is not None:
        in_range = []
        for transaction in result:
            when = parse_instant(transaction.date)
            if when is None:
                continue
            if start_at is not None and when < start_at:
                continue
            if end_at is not None and when > end_at:
                continue
            in_range.append(transaction)
        result = in_range

    needle = (query or "").strip().lower()
    if needle:
        category_names = {c.id: c.name.lower() for c in categories}
        account_names = {a.id: a.name.lower() for a in accounts}
        result = [
            t for t in result
            if needle in t.title.lower()
            or needle in category_names.get(t.category_id or "", "")
            or needle in account_names.get(t.account_id, "")
        ]

    return result


def income_expense_totals(transactions: Iterable[Transaction]) -> IncomeExpenseTotals:
    income = expense = 0.0
    income_count = expense_count = 0
    for transaction in transactions:
        if transaction.amount >= 0:
            income += transaction.amount
            income_count += 1
        else:
            expense += abs(transaction.amount)
            expense_count += 1
    return IncomeExpenseTotals(
        income=income,
        expense=expense,
        income_count=income_count,
        expense_count=expense_count,
    )


def summary_totals(
    transactions: Sequence[Transaction],
    accounts: Sequence[Account],
    account_id: Optional[str] = None,
) -> IncomeExpenseTotals:
    """
    Totals for one account, or for "all accounts".

    The all-accounts view leaves out accounts excluded from balances.
    """
    if account_id is not None:
        return income_expense_totals(t for t in transactions if t.account_id == account_id)
    included = {a.id for a in accounts if a.include_in_balance}
    return income_expense_totals(t for t in transactions if t.account_id in included)


# =============================================================================
# BUDGETS
# =============================================================================

def budget_progress(
    budget: Budget,
    transactions: Iterable[Transaction],
    category: Optional[Category] = None,
) -> BudgetProgress:
    """
    Spending against a monthly budget.

    spent     = sum of expense magnitudes in the budget's category and month
    remaining = max(0, amount - spent)
    progress  = 0 for a zero budget, else min(1, spent / amount)
    """
    spent = sum(
        abs(t.amount)
        for t in transactions
        if t.is_expense
        and t.category_id == budget.category_id
        and month_key(t.date) == budget.month
    )
    progress = 0.0 if budget.amount == 0 else min(1.0, spent / budget.amount)
    return BudgetProgress(
        budget=budget,
        category=category,
        spent=spent,
        remaining=max(0.0, budget.amount - spent),
        progress=progress,
    )


def should_send_budget_alert(
    progress: BudgetProgress,
    threshold: float = DEFAULT_ALERT_THRESHOLD,
) -> bool:
    return progress.budget.amount > 0 and progress.progress >= threshold


def month_budget_overview(
    budgets: Sequence[Budget],
    transactions: Sequence[Transaction],
    categories: Sequence[Category],
    month: str,
) -> BudgetOverview:
    """Every budget of a month, sorted by category name, with combined totals."""
    category_by_id = {c.id: c for c in categories}
    items = [
        budget_progress(budget, transactions, category_by_id.get(budget.category_id))
        for budget in budgets
        if budget.month == month
    ]
    items.sort(key=lambda item: (item.category.name.lower() if item.category else ""))

    budgeted = sum(item.budget.amount for item in items)
    spent = sum(item.spent for item in items)
    return BudgetOverview(
        month=month,
        items=tuple(items),
        budgeted=budgeted,
        spent=spent,
        remaining=max(0.0, budgeted - spent),
    )


# =============================================================================
# TRENDS AND BREAKDOWNS
# =============================================================================

def monthly_expense_trend(
    transactions: Iterable[Transaction],
    months: int = 6,
    reference: Optional[datetime] = None,
) -> list[MonthlyTotal]:
    """
    Expense totals for the trailing `months` calendar months.

    Includes the reference month, oldest first, zero-filled.
    """
    if months <= 0:
        return []
    reference = parse_instant(reference) or datetime.now().astimezone()
    keys = [
        add_months(reference, offset).strftime("%Y-%m")
        for offset in range(-(months - 1), 1)
    ]
    totals = dict.fromkeys(keys, 0.0)
    for transaction in transactions:
        if not transaction.is_expense:
            continue
        key = month_key(transaction.date)
        if key in totals:
            totals[key] += abs(transaction.amount)
    return [MonthlyTotal(month=key, total=total) for key, total in totals.items()]


def category_breakdown(
    transactions: Iterable[Transaction],
    categories: Sequence[Category],
) -> list[CategoryBreakdown]:
    """
    Expense total and count per category.

    Every category is listed, including those with no activity.
    Expenses pointing at an unknown category count toward
    "uncategorized" (or the first category if that is missing).
    """
    if not categories:
        return []
    known = {c.id for c in categories}
    fallback_id = DEFAULT_CATEGORY_ID if DEFAULT_CATEGORY_ID in known else categories[0].id

    totals: dict[str, float] = defaultdict(float)
    counts: dict[str, int] = defaultdict(int)
    for transaction in transactions:
        if not transaction.is_expense:
            continue
        category_id = transaction.category_id if transaction.category_id in known else fallback_id
        totals[category_id] += abs(transaction.amount)
        counts[category_id] += 1

    return [
        CategoryBreakdown(category=c, total=totals[c.id], count=counts[c.id])
        for c in categories
    ]


# =============================================================================
# CALENDAR
# =============================================================================

DayLike = Union[datetime, str]


def day_key(value: Optional[DayLike]) -> Optional[str]:
    """YYYY-MM-DD of the instant's own calendar date."""
    parsed = parse_instant(value)
    return parsed.strftime("%Y-%m-%d") if parsed else None


def transactions_on_day(transactions: Iterable[Transaction], day: DayLike) -> list[Transaction]:
    key = day_key(day)
    return [t for t in transactions if key is not None and day_key(t.date) == key]


def day_total(transactions: Iterable[Transaction], day: DayLike) -> float:
    """Net signed amount booked on a day."""
    return sum(t.amount for t in transactions_on_day(transactions, day))


def active_days(transactions: Iterable[Transaction], month: Optional[str] = None) -> list[str]:
    """Sorted day keys with at least one transaction, optionally within one month."""
    days = {day_key(t.date) for t in transactions}
    days.discard(None)
    if month is not None:
        days = {d for d in days if d.startswith(f"{month}-")}
    return sorted(days)
