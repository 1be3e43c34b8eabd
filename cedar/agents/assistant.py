"""
Cedar Assistant

DESIGN DECISION: The assistant is a TRANSLATOR, not a bookkeeper.

CRITICAL BOUNDARIES:

1. CHAT:
   - CAN: Answer budget questions from the transaction history it is given
   - CAN: Turn a described transaction into a parsedTransaction payload
   - CANNOT: Add anything to the ledger

2. RECEIPT ANALYSIS:
   - CAN: Read a receipt image and propose an expense
   - CANNOT: Skip the user's confirmation

Every payload the assistant returns is parsed into an untrusted
TransactionCandidate. The user confirms; the ledger validates.
"""

from collections.abc import Sequence
from typing import Optional

import google.generativeai as genai
import structlog

from cedar.budget.currency import LBP_TO_USD_RATE, describe_amount
from cedar.config import GeminiSettings, get_settings
from cedar.models.chat import AssistantMode, AssistantReply, GroundingSource
from cedar.models.transaction import (
    ExpenseCategory,
    IncomeCategory,
    Transaction,
    TransactionSource,
)
from cedar.parsing import parse_assistant_text

logger = structlog.get_logger(__name__)


class AssistantError(Exception):
    """The assistant could not produce a reply. Message is user-facing."""
    pass


def _labels(enum_cls) -> str:
    return ", ".join(member.value for member in enum_cls)


SYSTEM_INSTRUCTION = f"""You are "Cedar," a friendly specialized AI financial assistant focused exclusively on helping users in Lebanon manage their personal budget, track transactions, and generate practical savings advice.

## 1. CORE IDENTITY AND EXCHANGE RATE POLICY
*   **Name & Persona:** You are Cedar. Your tone is professional, practical, empathetic, and highly familiar with the Lebanese economic environment.
*   **Fixed Exchange Rate Policy:** For all transactions, you MUST use a FIXED EXCHANGE RATE of 1 USD = {LBP_TO_USD_RATE} LBP.
*   **Currency Handling:** Present budget figures in US Dollars first, with the LBP value alongside. Fresh USD and Lollar both count 1:1 as USD.

## 2. TRANSACTION TRACKING PROTOCOL
When a user describes a transaction, extract it and present it back for confirmation in a structured format.
*   **Required Data Points:** Amount, Currency (LBP, Fresh USD, or Lollar), Type (INCOME or EXPENSE), and Category.
*   **Categories:**
    *   **EXPENSES:** {_labels(ExpenseCategory)}.
    *   **INCOME:** {_labels(IncomeCategory)}.
*   **Processing:** When you identify a transaction, respond ONLY with a JSON object with the key "parsedTransaction". No text before or after it.
    Example user input: "I bought groceries for 895,000 LBP"
    Required response:
    {{"parsedTransaction": {{"amount": 895000, "currency": "LBP", "type": "EXPENSE", "category": "Groceries"}}}}
    If the message is conversational and not a transaction, respond naturally.

## 3. BUDGET & SAVINGS INSIGHTS
*   **Budget Status Reporting:** When asked for a budget summary, use the transaction data provided: Total Income, Total Expenses, Top 3 Spending Categories, and Remaining Budget (all in USD).
*   **Scenario Planning:** For savings questions, offer practical "what-if" scenarios tied to the Lebanese context (generator subscriptions, imported groceries, fuel).
*   **Local Nudges:** Be empathetic and solution-oriented. Suggest re-allocation between categories rather than blame."""


RECEIPT_PROMPT = f"""You are an expert receipt reader for Lebanese users. Analyze this receipt image and extract key information.
Identify the total amount spent and suggest an expense category from this list: {_labels(ExpenseCategory)}.
If you identify a transaction, respond ONLY with a JSON object with the key "parsedTransaction". The currency will likely be LBP or Fresh USD.
Example response:
{{"parsedTransaction": {{"amount": 150000, "currency": "LBP", "type": "EXPENSE", "category": "Groceries"}}}}
If the image is not a receipt or is unreadable, respond with a short conversational explanation."""

EXTRACTED_FROM_CHAT = "I've extracted the following transaction from your message. Do you want to add it?"
EXTRACTED_FROM_RECEIPT = "I've extracted the following from your receipt. Do you want to add it?"


def transactions_to_context(transactions: Sequence[Transaction]) -> str:
    """
    Render the transaction history for the system instruction.

    The assistant only ever sees this text, never the ledger.
    """
    if not transactions:
        return "The user has not logged any transactions yet."
    lines = [
        f"- {tx.type.value}: {tx.category.value} - "
        f"{describe_amount(tx.amount, tx.currency)} on {tx.date.date().isoformat()}"
        for tx in transactions
    ]
    return "Here is the user's transaction history:\n" + "\n".join(lines)


def _response_text(response) -> str:
    """Text of a response; blocked or empty responses give ''."""
    try:
        return (response.text or "").strip()
    except ValueError:
        return ""


def _grounding_sources(response) -> list[GroundingSource]:
    """Web sources from search grounding metadata, if any."""
    sources = []
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return sources
    metadata = getattr(candidates[0], "grounding_metadata", None)
    for chunk in getattr(metadata, "grounding_chunks", None) or []:
        web = getattr(chunk, "web", None)
        if web is not None and getattr(web, "uri", None):
            sources.append(GroundingSource(title=web.title or web.uri, uri=web.uri))
    return sources


class CedarAssistant:
    """
    Gemini-backed chat and receipt reader.

    RESPONSIBILITIES:
    - Answer questions with the transaction history as context
    - Turn free text and receipt photos into proposals

    BOUNDARIES:
    - NEVER writes to the ledger
    - NEVER marks a proposal as trusted
    """

    def __init__(self, settings: Optional[GeminiSettings] = None):
        self._settings = settings or get_settings().gemini
        genai.configure(api_key=self._settings.api_key)

    def _model_name(self, mode: AssistantMode) -> str:
        return {
            AssistantMode.FAST: self._settings.fast_model,
            AssistantMode.SMART: self._settings.smart_model,
            AssistantMode.GENIUS: self._settings.genius_model,
            AssistantMode.SEARCH: self._settings.search_model,
        }[mode]

    def _chat_model(
        self,
        mode: AssistantMode,
        transactions: Sequence[Transaction],
    ) -> genai.GenerativeModel:
        return genai.GenerativeModel(
            model_name=self._model_name(mode),
            system_instruction=f"{SYSTEM_INSTRUCTION}\n\n{transactions_to_context(transactions)}",
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            },
        )

    async def respond(
        self,
        prompt: str,
        transactions: Sequence[Transaction],
        mode: AssistantMode = AssistantMode.SMART,
    ) -> AssistantReply:
        """
        Get Cedar's reply to a chat message.

        Returns:
            AssistantReply; `proposal` is set when the reply was a
            parsedTransaction payload.

        Raises:
            AssistantError: the Gemini call failed
        """
        model = self._chat_model(mode, transactions)
        kwargs = {}
        if mode == AssistantMode.SEARCH:
            kwargs["tools"] = "google_search_retrieval"

        try:
            response = await model.generate_content_async(prompt, **kwargs)
        except Exception as e:
            logger.error("assistant_call_failed", mode=mode.value, error=str(e))
            raise AssistantError(
                "Failed to get a response from Cedar. "
                "Please check your API key and network connection."
            ) from e

        text = _response_text(response) or "Sorry, I couldn't process that."
        proposal = parse_assistant_text(text, source=TransactionSource.CHAT)
        if proposal is not None:
            text = EXTRACTED_FROM_CHAT

        return AssistantReply(
            text=text,
            proposal=proposal,
            sources=_grounding_sources(response),
        )

    async def analyze_receipt(
        self,
        image_bytes: bytes,
        mime_type: str,
    ) -> AssistantReply:
        """
        Read a receipt photo and propose an expense.

        Raises:
            AssistantError: the Gemini call failed
        """
        model = genai.GenerativeModel(
            model_name=self._settings.receipt_model,
            generation_config={
                "temperature": 0.1,
                "max_output_tokens": 1024,
            },
        )

        try:
            response = await model.generate_content_async([
                {"mime_type": mime_type, "data": image_bytes},
                RECEIPT_PROMPT,
            ])
        except Exception as e:
            logger.error("receipt_analysis_failed", error=str(e))
            raise AssistantError("Failed to analyze the receipt.") from e

        text = _response_text(response) or "Sorry, I couldn't analyze the receipt."
        proposal = parse_assistant_text(text, source=TransactionSource.RECEIPT)
        if proposal is not None:
            text = EXTRACTED_FROM_RECEIPT

        return AssistantReply(text=text, proposal=proposal)
