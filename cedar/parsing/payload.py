"""
Assistant Payload Parsing

The assistant answers either in free text or with a JSON object of the
shape {"parsedTransaction": {amount, currency, type, category}}.

This module only recognizes the SHAPE. It never decides whether the
values are acceptable; the ledger's admission path does that after the
user confirms.
"""

import json
import re
from typing import Any, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cedar.models.transaction import TransactionCandidate, TransactionSource

logger = structlog.get_logger(__name__)

PAYLOAD_KEY = "parsedTransaction"

_FENCE = re.compile(r"^```[a-zA-Z]*\s*\n?(?P<body>.*?)\n?\s*```$", re.DOTALL)


class ParsedTransactionPayload(BaseModel):
    """The inner object of a parsedTransaction payload."""
    model_config = ConfigDict(extra="ignore")

    amount: Any = Field(...)
    currency: Any = Field(...)
    type: Any = Field(...)
    category: Any = Field(...)


def strip_code_fence(text: str) -> str:
    """Remove a surrounding Markdown code fence, if any."""
    text = text.strip()
    match = _FENCE.match(text)
    if match:
        return match.group("body").strip()
    return text


def parse_assistant_text(
    text: Optional[str],
    source: TransactionSource = TransactionSource.CHAT,
) -> Optional[TransactionCandidate]:
    """
    Extract a transaction candidate from assistant text.

    Args:
        text: Raw assistant response
        source: Which flow produced the text (chat or receipt)

    Returns:
        A TransactionCandidate if the whole text is a parsedTransaction
        object, otherwise None (treat as conversational text).
    """
    if not text:
        return None

    body = strip_code_fence(text)
    if not (body.startswith("{") and body.endswith("}")):
        return None

    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        logger.debug("assistant_text_not_json", length=len(body))
        return None

    inner = data.get(PAYLOAD_KEY) if isinstance(data, dict) else None
    if not isinstance(inner, dict):
        return None

    try:
        payload = ParsedTransactionPayload.model_validate(inner)
    except ValidationError as e:
        logger.info("parsed_transaction_incomplete", errors=e.error_count())
        return None

    return TransactionCandidate(
        amount=payload.amount,
        currency=payload.currency,
        type=payload.type,
        category=payload.category,
        source=source,
    )
