"""Tests for the two-stage transaction validator."""

from decimal import Decimal

import pytest

from cedar.models import Currency, ExpenseCategory, IncomeCategory, TransactionType
from cedar.validation import (
    AdmissionError,
    InvalidAmountError,
    InvalidCategoryError,
    InvalidCurrencyError,
    InvalidTransactionTypeError,
    TransactionValidator,
    coerce_amount,
)
from tests.factories import candidate


class TestCoerceAmount:
    """Tests for reading amounts from untrusted input."""

    @pytest.mark.parametrize("value,expected", [
        (100, 100.0),
        (12.5, 12.5),
        (Decimal("3.25"), 3.25),
        ("895,000", 895000.0),
        (" 42 ", 42.0),
        ("-5", -5.0),
    ])
    def test_numeric_values(self, value, expected):
        """Test numbers and numeric strings are read."""
        assert coerce_amount(value) == expected

    @pytest.mark.parametrize("value", [
        None, True, False, "", "abc", "12abc", float("nan"), float("inf"), "nan", [1], {},
    ])
    def test_non_numeric_values(self, value):
        """Test anything that is not a finite number gives None."""
        assert coerce_amount(value) is None

    @pytest.mark.parametrize("value", [10 ** 400, "1" + "0" * 400, "sNaN", Decimal("sNaN"), "-inf"])
    def test_unconvertible_values(self, value):
        """Test overflowing and signaling values give None instead of raising."""
        assert coerce_amount(value) is None


class TestSchemaValidation:
    """Stage 1: errors block admission."""

    def test_valid_candidate(self, validator):
        """Test a well-formed candidate passes both stages."""
        result = validator.validate(candidate())
        assert result.schema_valid
        assert result.semantic_valid
        assert result.is_valid
        assert result.issues == []

    def test_admissible_fields_are_typed(self, validator):
        """Test labels are turned into enumeration members."""
        fields = validator.admissible_fields(
            candidate(amount="895,000", currency="lbp", type="expense", category="groceries")
        )
        assert fields == {
            "amount": 895000.0,
            "currency": Currency.LBP,
            "type": TransactionType.EXPENSE,
            "category": ExpenseCategory.GROCERIES,
        }

    @pytest.mark.parametrize("amount", [0, -10, "abc", None, float("nan")])
    def test_invalid_amount(self, validator, amount):
        """Test zero, negative, non-numeric and missing amounts are refused."""
        with pytest.raises(InvalidAmountError) as exc_info:
            validator.admissible_fields(candidate(amount=amount))
        assert exc_info.value.field == "amount"

    def test_invalid_currency(self, validator):
        """Test currencies outside the closed set are refused."""
        with pytest.raises(InvalidCurrencyError):
            validator.admissible_fields(candidate(currency="EUR"))

    def test_invalid_type(self, validator):
        """Test types other than INCOME and EXPENSE are refused."""
        with pytest.raises(InvalidTransactionTypeError):
            validator.admissible_fields(candidate(type="TRANSFER"))

    def test_category_not_in_type_enumeration(self, validator):
        """Test an expense label on an income candidate is refused."""
        with pytest.raises(InvalidCategoryError) as exc_info:
            validator.admissible_fields(candidate(type="INCOME", category="Groceries"))
        assert "income category" in str(exc_info.value)

    def test_unknown_category(self, validator):
        """Test made-up categories are refused."""
        with pytest.raises(InvalidCategoryError):
            validator.admissible_fields(candidate(category="Yacht"))

    def test_income_category_accepted(self, validator):
        """Test income categories work for income candidates."""
        fields = validator.admissible_fields(
            candidate(type="INCOME", category="Salary (Fresh USD)", amount=800)
        )
        assert fields["category"] == IncomeCategory.SALARY_USD

    def test_errors_are_admission_errors(self, validator):
        """Test every refusal shares one base class."""
        with pytest.raises(AdmissionError):
            validator.admissible_fields(candidate(amount=-1))

    def test_first_failing_field_is_reported(self, validator):
        """Test amount is checked before currency."""
        with pytest.raises(InvalidAmountError):
            validator.admissible_fields(candidate(amount="x", currency="EUR"))

    def test_validate_collects_all_errors(self, validator):
        """Test the preview lists every failing field."""
        result = validator.validate(candidate(amount="x", currency="EUR", type="TRANSFER"))
        assert not result.schema_valid
        assert not result.is_valid
        assert {i.field for i in result.issues} == {"amount", "currency", "type"}
        assert result.error_count == 3

    def test_validate_never_raises(self, validator):
        """Test the preview reports instead of raising."""
        result = validator.validate(candidate(amount=None, currency=None, type=None, category=None))
        assert result.has_errors


class TestSemanticValidation:
    """Stage 2: warnings never block."""

    def test_tiny_lbp_amount_warns(self, validator):
        """Test an LBP amount under 1,000 suggests a currency mix-up."""
        result = validator.validate(candidate(amount=50, currency="LBP"))
        assert result.is_valid
        assert len(result.warnings) == 1
        assert "dollars" in result.warnings[0]

    def test_large_amount_warns(self):
        """Test amounts above the threshold are flagged."""
        validator = TransactionValidator(large_amount_warning_usd=1000)
        result = validator.validate(candidate(amount=5000))
        assert result.is_valid
        assert any("unusually high" in w for w in result.warnings)

    def test_large_lbp_amount_uses_reference_value(self):
        """Test the threshold applies to the dollar equivalent."""
        validator = TransactionValidator(large_amount_warning_usd=1000)
        assert validator.validate(candidate(amount=89_500_000, currency="LBP")).warnings == []
        assert validator.validate(candidate(amount=89_500_001, currency="LBP")).warnings

    def test_threshold_defaults_to_settings(self, monkeypatch):
        """Test the threshold is read from app settings."""
        monkeypatch.setenv("LARGE_AMOUNT_WARNING_USD", "10")
        validator = TransactionValidator()
        assert validator.validate(candidate(amount=11)).warnings

    def test_semantic_skipped_when_schema_fails(self, validator):
        """Test warnings are not computed for refused candidates."""
        result = validator.validate(candidate(amount=-50, currency="LBP"))
        assert not result.semantic_valid
        assert result.warnings == []


class TestUserFriendlySummary:
    """Tests for the UI summary text."""

    def test_clean_candidate(self, validator):
        """Test a clean preview invites confirmation."""
        summary = validator.get_user_friendly_summary(validator.validate(candidate()))
        assert "Looks good" in summary

    def test_errors_and_fixes_listed(self, validator):
        """Test errors carry their suggested fix."""
        summary = validator.get_user_friendly_summary(validator.validate(candidate(currency="EUR")))
        assert "can't be added" in summary
        assert "Fresh USD" in summary

    def test_warnings_listed(self, validator):
        """Test warnings are shown separately."""
        summary = validator.get_user_friendly_summary(validator.validate(candidate(amount=5, currency="LBP")))
        assert "double-check" in summary
