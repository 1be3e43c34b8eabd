"""Receipt image services."""

from cedar.services.image.receipt_inspector import (
    ReceiptImageInspector,
    ReceiptRejectedError,
)

__all__ = ["ReceiptImageInspector", "ReceiptRejectedError"]
