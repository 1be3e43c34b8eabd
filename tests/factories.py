"""Builders for test data."""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

from cedar.models import (
    Currency,
    ExpenseCategory,
    IncomeCategory,
    Transaction,
    TransactionCandidate,
    TransactionSource,
    TransactionType,
)


class StepClock:
    """Deterministic clock: each call is one second after the previous."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self._now = start

    def __call__(self) -> datetime:
        current = self._now
        self._now += timedelta(seconds=1)
        return current


class FrozenClock:
    """Always returns the same instant."""

    def __init__(self, now: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def make_transaction(
    amount: float,
    currency: Currency = Currency.FRESH_USD,
    type: TransactionType = TransactionType.EXPENSE,
    category=None,
) -> Transaction:
    if category is None:
        category = (
            ExpenseCategory.GROCERIES
            if type == TransactionType.EXPENSE
            else IncomeCategory.SALARY_USD
        )
    return Transaction(
        id=uuid4(),
        amount=amount,
        currency=currency,
        type=type,
        category=category,
    )


def expense(amount: float, category: ExpenseCategory, currency: Currency = Currency.FRESH_USD) -> Transaction:
    return make_transaction(amount, currency, TransactionType.EXPENSE, category)


def income(amount: float, currency: Currency = Currency.FRESH_USD) -> Transaction:
    return make_transaction(amount, currency, TransactionType.INCOME, IncomeCategory.SALARY_USD)


def candidate(
    amount=100,
    currency="Fresh USD",
    type="EXPENSE",
    category="Groceries",
    source=TransactionSource.FORM,
) -> TransactionCandidate:
    return TransactionCandidate(
        amount=amount,
        currency=currency,
        type=type,
        category=category,
        source=source,
    )
