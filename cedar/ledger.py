"""
Transaction Ledger

The explicitly owned state of one budgeting session: the transaction
collection and the summary derived from it.

DESIGN DECISION: `admit` is the only way in. Forms, chat proposals and
receipt proposals all go through it, and through the same validator.
The summary is rebuilt from the full collection after every admission,
so it can never be stale.

The ledger is single-writer and synchronous: an admission and the summary
rebuild happen in one step, with nothing awaited in between.
"""

from collections.abc import Callable, Iterator
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from cedar.audit import AuditLogger
from cedar.budget.aggregator import DEFAULT_TOP_N, summarize
from cedar.budget.currency import describe_amount
from cedar.models.transaction import (
    BudgetSummary,
    Transaction,
    TransactionCandidate,
    utc_now,
)
from cedar.validation import AdmissionError, TransactionValidator


class Ledger:
    """
    Append-only transaction collection plus its current summary.

    Transactions are kept newest first (display order). Aggregation does
    not depend on that order.
    """

    def __init__(
        self,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        top_n: int = DEFAULT_TOP_N,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], UUID] = uuid4,
    ):
        self._validator = validator or TransactionValidator()
        self._audit_logger = audit_logger
        self._top_n = top_n
        self._clock = clock
        self._id_factory = id_factory
        self._transactions: list[Transaction] = []
        self._summary = BudgetSummary.empty()

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        """All admitted transactions, newest first."""
        return tuple(self._transactions)

    @property
    def summary(self) -> BudgetSummary:
        """Summary of the current collection."""
        return self._summary

    @property
    def validator(self) -> TransactionValidator:
        return self._validator

    def __len__(self) -> int:
        return len(self._transactions)

    def __iter__(self) -> Iterator[Transaction]:
        return iter(self.transactions)

    def admit(
        self,
        candidate: TransactionCandidate,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Validate a candidate and add it to the ledger.

        Args:
            candidate: Untrusted transaction fields from any collaborator
            correlation_id: Ties the audit event to the user action

        Returns:
            The stored Transaction, with a fresh id and timestamp

        Raises:
            AdmissionError: the candidate was refused; the ledger and
                its summary are unchanged
        """
        try:
            fields = self._validator.admissible_fields(candidate)
        except AdmissionError as e:
            if self._audit_logger:
                self._audit_logger.log_transaction_rejected(
                    field=e.field,
                    reason=str(e),
                    source=candidate.source.value,
                    correlation_id=correlation_id,
                )
            raise

        transaction = Transaction(
            id=self._id_factory(),
            date=self._clock(),
            source=candidate.source,
            **fields,
        )
        self._insert(transaction)
        self._summary = summarize(self._transactions, self._top_n)

        if self._audit_logger:
            self._audit_logger.log_transaction_admitted(
                transaction_id=transaction.id,
                description=(
                    f"{transaction.type.value} {transaction.category.value} "
                    f"{describe_amount(transaction.amount, transaction.currency)}"
                ),
                details={
                    "amount": transaction.amount,
                    "currency": transaction.currency.value,
                    "type": transaction.type.value,
                    "category": transaction.category.value,
                    "source": transaction.source.value,
                    "amount_usd": round(transaction.amount_usd, 2),
                },
                correlation_id=correlation_id,
            )

        return transaction

    def _insert(self, transaction: Transaction) -> None:
        """Insert keeping `date` descending; a new record goes before equal dates."""
        for index, existing in enumerate(self._transactions):
            if existing.date <= transaction.date:
                self._transactions.insert(index, transaction)
                return
        self._transactions.append(transaction)
