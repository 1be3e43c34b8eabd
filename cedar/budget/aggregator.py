"""
Budget Aggregation

Turns the full transaction collection into a BudgetSummary.

GUARANTEES:
- Pure: no side effects, same input gives the same output
- Totals are order-independent (math.fsum is exactly rounded)
- Income never reaches the per-category expense ranking
- Ranking ties keep the order in which categories were first seen
"""

import math
from collections.abc import Iterable

from cedar.budget.currency import normalize
from cedar.models.transaction import (
    BudgetSummary,
    CategoryTotal,
    Transaction,
    TransactionType,
)

DEFAULT_TOP_N = 3


def summarize(
    transactions: Iterable[Transaction],
    top_n: int = DEFAULT_TOP_N,
) -> BudgetSummary:
    """
    Summarize transactions in reference dollars.

    Args:
        transactions: Any iterable of admitted transactions, in any order
        top_n: Maximum number of expense categories to rank

    Returns:
        A new BudgetSummary. An empty input gives all zeros and no
        ranked categories.
    """
    income: list[float] = []
    expenses: list[float] = []
    by_category: dict[str, list[float]] = {}

    for tx in transactions:
        amount = normalize(tx.amount, tx.currency)
        if tx.type == TransactionType.INCOME:
            income.append(amount)
        else:
            expenses.append(amount)
            by_category.setdefault(tx.category.value, []).append(amount)

    total_income = math.fsum(income)
    total_expenses = math.fsum(expenses)

    return BudgetSummary(
        total_income=total_income,
        total_expenses=total_expenses,
        remaining_budget=total_income - total_expenses,
        top_expenses=rank_categories(by_category, top_n),
    )


def rank_categories(
    by_category: dict[str, list[float]],
    top_n: int = DEFAULT_TOP_N,
) -> tuple[CategoryTotal, ...]:
    """Top `top_n` categories by accumulated amount, descending."""
    totals = [
        CategoryTotal(category=category, amount=math.fsum(amounts))
        for category, amounts in by_category.items()
    ]
    # sorted() is stable: equal totals stay in first-seen order
    totals = sorted(totals, key=lambda total: total.amount, reverse=True)
    return tuple(totals[:max(top_n, 0)])
