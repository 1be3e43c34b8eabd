"""
Two-Stage Transaction Validation

DESIGN DECISION: Every candidate goes through the same validator,
whether it was typed into the form or extracted by the assistant.
AI output gets no shortcut.

STAGE 1 - SCHEMA VALIDATION (errors, block admission):
- Amount is a finite positive number
- Currency is LBP, Fresh USD or Lollar
- Type is INCOME or EXPENSE
- Category belongs to the enumeration for that type

STAGE 2 - SEMANTIC VALIDATION (warnings, never block):
- LBP amounts so small they were probably meant as dollars
- Amounts far above what a household budget sees

IMPORTANT: Validation NEVER silently fixes issues.
Stage 1 only interprets representations (e.g. "895,000" or "fresh usd");
it never changes a value.
"""

import math
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from cedar.budget.currency import normalize
from cedar.config import get_settings
from cedar.models.transaction import (
    Currency,
    TransactionCandidate,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    categories_for,
    lookup_category,
)

# Below this many pounds, an "LBP" amount is almost certainly dollars
MIN_PLAUSIBLE_LBP = 1000


class AdmissionError(Exception):
    """Base exception for candidates the ledger refuses to admit."""

    def __init__(self, issue: ValidationIssue):
        self.issue = issue
        self.field = issue.field
        super().__init__(issue.message)


class InvalidAmountError(AdmissionError):
    """Amount is missing, non-numeric, non-finite, zero or negative."""
    pass


class InvalidCategoryError(AdmissionError):
    """Category does not belong to the enumeration for the given type."""
    pass


class InvalidCurrencyError(AdmissionError):
    """Currency is not one of LBP, Fresh USD, Lollar."""
    pass


class InvalidTransactionTypeError(AdmissionError):
    """Type is neither INCOME nor EXPENSE."""
    pass


_ERROR_FOR_FIELD = {
    "amount": InvalidAmountError,
    "currency": InvalidCurrencyError,
    "type": InvalidTransactionTypeError,
    "category": InvalidCategoryError,
}


def coerce_amount(value: Any) -> Optional[float]:
    """
    Read an amount as a float, or None if it is not a finite number.

    Accepts ints, floats, Decimals and numeric strings with thousands
    separators ("895,000"). Booleans are not amounts.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return None
        value = text
    elif not isinstance(value, (int, float, Decimal)):
        return None
    try:
        # Huge ints overflow, signaling NaN refuses conversion
        number = float(Decimal(value)) if isinstance(value, str) else float(value)
    except (ValueError, OverflowError, InvalidOperation):
        return None
    if not math.isfinite(number):
        return None
    return number


class TransactionValidator:
    """
    Validates transaction candidates through a two-stage pipeline.

    Use `validate` for a non-raising preview (shown next to AI proposals)
    and `admissible_fields` at the admission boundary.
    """

    def __init__(self, large_amount_warning_usd: Optional[float] = None):
        """
        Initialize validator.

        Args:
            large_amount_warning_usd: Reference amount above which a
                warning is raised. Defaults to the app setting.
        """
        if large_amount_warning_usd is None:
            large_amount_warning_usd = get_settings().app.large_amount_warning_usd
        self._large_amount_usd = large_amount_warning_usd

    def _validate_schema(
        self,
        candidate: TransactionCandidate,
    ) -> tuple[dict, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (parsed_fields, list_of_issues)
        parsed_fields only holds the fields that passed.
        """
        issues = []
        fields = {}

        amount = coerce_amount(candidate.amount)
        if amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_format" if candidate.amount is not None else "missing",
                message=f"Amount must be a number, got {candidate.amount!r}",
                severity="error",
                suggested_fix="Enter the amount using digits only",
            ))
        elif amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
                suggested_fix="Record money going out as an expense, not a negative amount",
            ))
        else:
            fields["amount"] = amount

        currency = Currency.lookup(candidate.currency)
        if currency is None:
            issues.append(ValidationIssue(
                field="currency",
                issue_type="invalid_value",
                message=f"Unknown currency: {candidate.currency!r}",
                severity="error",
                suggested_fix=f"Use one of: {', '.join(c.value for c in Currency)}",
            ))
        else:
            fields["currency"] = currency

        tx_type = TransactionType.lookup(candidate.type)
        if tx_type is None:
            issues.append(ValidationIssue(
                field="type",
                issue_type="invalid_value",
                message=f"Transaction type must be INCOME or EXPENSE, got {candidate.type!r}",
                severity="error",
            ))
        else:
            fields["type"] = tx_type
            category = lookup_category(tx_type, candidate.category)
            if category is None:
                allowed = ", ".join(c.value for c in categories_for(tx_type))
                issues.append(ValidationIssue(
                    field="category",
                    issue_type="invalid_value",
                    message=(
                        f"'{candidate.category}' is not a valid "
                        f"{tx_type.value.lower()} category"
                    ),
                    severity="error",
                    suggested_fix=f"Choose one of: {allowed}",
                ))
            else:
                fields["category"] = category

        return fields, issues

    def _validate_semantic(
        self,
        fields: dict,
    ) -> list[ValidationIssue]:
        """
        Stage 2: Semantic validation.

        Only runs on fields that passed stage 1. Produces warnings only.
        """
        issues = []
        amount = fields["amount"]
        currency = fields["currency"]

        if currency == Currency.LBP and amount < MIN_PLAUSIBLE_LBP:
            issues.append(ValidationIssue(
                field="currency",
                issue_type="suspicious_value",
                message=(
                    f"{amount:,.2f} LBP is less than one cent; "
                    "was this amount in dollars?"
                ),
                severity="warning",
                suggested_fix="Switch the currency to Fresh USD or Lollar if so",
            ))

        usd = normalize(amount, currency)
        if usd > self._large_amount_usd:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount (${usd:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify the amount and currency",
            ))

        return issues

    def validate(self, candidate: TransactionCandidate) -> ValidationResult:
        """
        Run the full two-stage pipeline without raising.

        Stage 2 only runs when stage 1 passes.
        """
        fields, all_issues = self._validate_schema(candidate)
        schema_valid = not any(issue.severity == "error" for issue in all_issues)

        semantic_valid = False
        if schema_valid:
            all_issues.extend(self._validate_semantic(fields))
            semantic_valid = not any(issue.severity == "error" for issue in all_issues)

        return ValidationResult(
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=all_issues,
            warnings=[i.message for i in all_issues if i.severity == "warning"],
        )

    def admissible_fields(self, candidate: TransactionCandidate) -> dict:
        """
        Return the typed amount, currency, type and category of a candidate.

        Raises:
            AdmissionError: the subclass matching the first failing field
        """
        fields, issues = self._validate_schema(candidate)
        for issue in issues:
            if issue.severity == "error":
                raise _ERROR_FOR_FIELD[issue.field](issue)
        return fields

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Generate a short summary of validation results for the UI.
        """
        if result.is_valid and not result.warnings:
            return "✅ Looks good. Confirm to add it to your budget."

        lines = []

        if not result.schema_valid:
            lines.append("❌ This transaction can't be added:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please double-check:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
