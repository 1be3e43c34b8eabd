"""Transaction validation package."""

from cedar.validation.validator import (
    AdmissionError,
    InvalidAmountError,
    InvalidCategoryError,
    InvalidCurrencyError,
    InvalidTransactionTypeError,
    TransactionValidator,
    coerce_amount,
)

__all__ = [
    "AdmissionError",
    "InvalidAmountError",
    "InvalidCategoryError",
    "InvalidCurrencyError",
    "InvalidTransactionTypeError",
    "TransactionValidator",
    "coerce_amount",
]
