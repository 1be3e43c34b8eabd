"""
Core Data Models for Cedar Budget

These models define the strict schemas for all transaction data flowing
through the system. They are designed to:
1. Keep the income and expense category sets closed and disjoint
2. Separate untrusted candidates from admitted transactions
3. Make derived data (summaries) immutable
4. Be serializable for logging and the assistant context

DESIGN DECISION: A TransactionCandidate carries whatever a form or the AI
supplied, untouched. Only the admission path turns it into a Transaction.
"""

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


def utc_now() -> datetime:
    """Timezone-aware current time, used for every generated timestamp."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

def _lookup(enum_cls, value: Any):
    """Match an enum member by value or by name, ignoring case and spacing."""
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        return None
    wanted = value.strip().casefold()
    for member in enum_cls:
        if wanted in (member.value.casefold(), member.name.casefold()):
            return member
    return None


class Currency(str, Enum):
    """
    Currencies a transaction can be stated in.

    DESIGN DECISION: Fresh USD and Lollar are both dollars but are kept
    apart because users track them separately. Both normalize 1:1.
    """
    LBP = "LBP"
    FRESH_USD = "Fresh USD"
    LOLLAR = "Lollar"

    @classmethod
    def lookup(cls, value: Any) -> Optional["Currency"]:
        """Find a currency by label ("Fresh USD") or name ("FRESH_USD")."""
        return _lookup(cls, value)


class TransactionType(str, Enum):
    """Direction of a transaction."""
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"

    @classmethod
    def lookup(cls, value: Any) -> Optional["TransactionType"]:
        return _lookup(cls, value)


class ExpenseCategory(str, Enum):
    """
    Expense categories tuned to Lebanese household spending.

    Values are the display labels shown to the user and the assistant.
    """
    RENT_HOUSING = "Rent/Housing"
    GENERATOR_FUEL = "Generator/Fuel"
    GROCERIES = "Groceries"
    MEDICINE = "Medicine"
    EDUCATION = "Education (Tuition)"
    DINING_OUT = "Dining Out/Coffee"
    SHOPPING = "Shopping/Retail"
    ENTERTAINMENT = "Entertainment"
    TRANSPORT = "Car Maintenance/Transport"
    TELECOM_INTERNET = "Telecom/Internet"


class IncomeCategory(str, Enum):
    """Income categories. Disjoint from ExpenseCategory labels."""
    SALARY_USD = "Salary (Fresh USD)"
    SALARY_LBP = "Salary (LBP)"
    REMITTANCE = "Remittance"
    FREELANCE = "Freelance Income"
    OTHER = "Other"


Category = Union[ExpenseCategory, IncomeCategory]


def categories_for(transaction_type: TransactionType) -> type[Enum]:
    """Return the category enumeration that matches a transaction type."""
    if transaction_type == TransactionType.INCOME:
        return IncomeCategory
    return ExpenseCategory


def lookup_category(
    transaction_type: TransactionType,
    value: Any,
) -> Optional[Category]:
    """Find a category within the type's enumeration, or None."""
    return _lookup(categories_for(transaction_type), value)


class TransactionSource(str, Enum):
    """Where a transaction candidate came from."""
    FORM = "form"
    CHAT = "chat"
    RECEIPT = "receipt"


# =============================================================================
# TRANSACTION MODELS
# =============================================================================

class TransactionCandidate(BaseModel):
    """
    A transaction proposed by a collaborator.

    CRITICAL: This is UNTRUSTED data. It may come from a form or from the
    assistant's parsedTransaction payload. Fields are deliberately loose;
    the TransactionValidator decides what is admissible.
    """
    model_config = ConfigDict(frozen=True)

    amount: Any = Field(
        default=None,
        description="Amount as supplied (number or numeric string)"
    )
    currency: Any = Field(
        default=None,
        description="Currency label or name as supplied"
    )
    type: Any = Field(
        default=None,
        description="INCOME or EXPENSE as supplied"
    )
    category: Any = Field(
        default=None,
        description="Category label as supplied"
    )
    source: TransactionSource = Field(
        default=TransactionSource.FORM,
        description="Collaborator that produced this candidate"
    )


class Transaction(BaseModel):
    """
    An admitted transaction.

    Immutable once created. Only Ledger.admit creates these, after the
    candidate has passed validation.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique transaction ID"
    )
    amount: float = Field(
        ...,
        gt=0,
        description="Magnitude in the transaction's own currency"
    )
    currency: Currency
    type: TransactionType
    category: Category
    date: datetime = Field(
        default_factory=utc_now,
        description="When the transaction was admitted (UTC)"
    )
    source: TransactionSource = TransactionSource.FORM

    @field_validator('amount')
    @classmethod
    def validate_finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("Amount must be a finite number")
        return v

    @model_validator(mode='after')
    def validate_category_matches_type(self) -> 'Transaction':
        """Income categories and expense categories never mix."""
        if not isinstance(self.category, categories_for(self.type)):
            raise ValueError(
                f"Category '{self.category.value}' is not a valid "
                f"{self.type.value.lower()} category"
            )
        return self

    @property
    def amount_usd(self) -> float:
        """Amount normalized to the reference currency."""
        from cedar.budget.currency import normalize

        return normalize(self.amount, self.currency)

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE


# =============================================================================
# SUMMARY MODELS
# =============================================================================

class CategoryTotal(BaseModel):
    """Accumulated reference-currency spend for one expense category."""
    model_config = ConfigDict(frozen=True)

    category: str
    amount: float


class BudgetSummary(BaseModel):
    """
    Derived budget figures, all in the reference currency (USD).

    CRITICAL: Never mutated. Always rebuilt from the full transaction set
    by cedar.budget.aggregator.summarize.
    """
    model_config = ConfigDict(frozen=True)

    total_income: float = 0.0
    total_expenses: float = 0.0
    remaining_budget: float = 0.0
    top_expenses: tuple[CategoryTotal, ...] = ()

    @property
    def is_over_budget(self) -> bool:
        """Negative remaining budget is a valid state, not an error."""
        return self.remaining_budget < 0

    @classmethod
    def empty(cls) -> 'BudgetSummary':
        return cls()


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage candidate validation.

    Stage 1: Schema validation (amount, currency, type, category)
    Stage 2: Semantic validation (suspicious but admissible values)
    """

    validated_at: datetime = Field(
        default_factory=utc_now
    )

    schema_valid: bool = Field(
        ...,
        description="Did schema validation pass?"
    )
    semantic_valid: bool = Field(
        ...,
        description="Did semantic validation pass?"
    )
    is_valid: bool = Field(
        ...,
        description="Can the candidate be admitted?"
    )

    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    # Warnings don't block but should be shown
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
