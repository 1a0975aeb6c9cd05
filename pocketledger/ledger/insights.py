"""
Dashboard insights.

Pure functions over already-loaded models; nothing here touches the store.
"""

from typing import Callable, Iterable, Mapping, Optional, Union

from pocketledger.models.ledger import (
    OVERALL_BUDGET_CATEGORY,
    BillSessionSummary,
    Budget,
    BudgetUsage,
    IncomeExpenseTotals,
    Transaction,
    TransactionType,
)


PLACEHOLDER = "—"


def spent_by_category(transactions: Iterable[Transaction]) -> dict[str, float]:
    """Expense totals keyed by category id. Income is ignored."""
    spent: dict[str, float] = {}
    for txn in transactions:
        if txn.type != TransactionType.EXPENSE.value:
            continue
        spent[txn.category_id] = spent.get(txn.category_id, 0.0) + txn.amount
    return spent


def total_income_expense(transactions: Iterable[Transaction]) -> IncomeExpenseTotals:
    income = 0.0
    expense = 0.0
    for txn in transactions:
        if txn.type == TransactionType.INCOME.value:
            income += txn.amount
        else:
            expense += txn.amount
    return IncomeExpenseTotals(income=income, expense=expense, net=income - expense)


def _usage(category_id: str, limit: float, spent: float) -> BudgetUsage:
    if limit > 0:
        percent = min(100.0, spent / limit * 100.0)
    else:
        percent = 100.0 if spent > 0 else 0.0
    return BudgetUsage(
        category_id=category_id,
        limit=limit,
        spent=spent,
        remaining=limit - spent,
        percent_used=percent,
    )


def budget_usage(
    budgets: Iterable[Budget],
    transactions: Iterable[Transaction],
) -> list[BudgetUsage]:
    """
    Spending against each budget, in the order the budgets are given.

    The "all" budget is measured against total expense; every other
    budget against its own category.
    """
    txns = list(transactions)
    by_category = spent_by_category(txns)
    total_expense = total_income_expense(txns).expense

    usages = []
    for budget in budgets:
        if budget.category_id == OVERALL_BUDGET_CATEGORY:
            spent = total_expense
        else:
            spent = by_category.get(budget.category_id, 0.0)
        usages.append(_usage(budget.category_id, budget.limit, spent))
    return usages


def summary_insight_line(
    summary: BillSessionSummary,
    category_names: Optional[Union[Mapping[str, str], Callable[[str], str]]] = None,
    currency: str = "LKR",
) -> str:
    """
    One-line description of a bill session summary, e.g.

        Top category: Food (LKR 150.00). Biggest bill: B (LKR 250.00).

    category_names may be a mapping or a lookup function (such as
    UserProfile.category_name); unknown ids are shown as-is.
    """
    if callable(category_names):
        name_of = category_names
    else:
        names = category_names or {}

        def name_of(category_id: str) -> str:
            return names.get(category_id, category_id)

    top = summary.top_category
    top_text = (
        f"{name_of(top.category_id)} ({currency} {top.total:.2f})" if top else PLACEHOLDER
    )
    biggest = summary.biggest
    big_text = (
        f"{biggest.merchant} ({currency} {biggest.amount:.2f})" if biggest else PLACEHOLDER
    )
    return f"Top category: {top_text}. Biggest bill: {big_text}."
