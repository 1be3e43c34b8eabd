"""Assistant output parsing package."""

from cedar.parsing.payload import (
    PAYLOAD_KEY,
    ParsedTransactionPayload,
    parse_assistant_text,
    strip_code_fence,
)

__all__ = [
    "PAYLOAD_KEY",
    "ParsedTransactionPayload",
    "parse_assistant_text",
    "strip_code_fence",
]
