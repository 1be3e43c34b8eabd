"""
Chat Models for Cedar Budget

The assistant transcript and the proposals it carries.

CRITICAL: A proposal is only a suggestion. It becomes a Transaction
exclusively through ChatFlow.confirm_proposal, which calls Ledger.admit.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from cedar.models.transaction import (
    TransactionCandidate,
    ValidationResult,
    utc_now,
)


class ChatSender(str, Enum):
    """Who wrote a chat message."""
    USER = "user"
    CEDAR = "cedar"


class AssistantMode(str, Enum):
    """
    Assistant modes offered in the chat page.

    Each mode maps to a configured model name.
    SEARCH additionally enables Google Search grounding.
    """
    FAST = "fast"
    SMART = "smart"
    GENIUS = "genius"
    SEARCH = "search"


class ProposalStatus(str, Enum):
    """
    Lifecycle of an AI-proposed transaction.

    A proposal is resolved exactly once.
    """
    PENDING = "pending"        # Shown to user, awaiting a decision
    CONFIRMED = "confirmed"    # User confirmed and the ledger admitted it
    CANCELLED = "cancelled"    # User declined
    REJECTED = "rejected"      # User confirmed but admission refused it


class GroundingSource(BaseModel):
    """A web source the assistant cited (search mode only)."""

    title: str
    uri: str


class AssistantReply(BaseModel):
    """
    What the assistant returned for one request.

    If the text was a parsedTransaction payload, `proposal` holds the
    extracted candidate. It is still untrusted.
    """

    text: str
    proposal: Optional[TransactionCandidate] = None
    sources: list[GroundingSource] = Field(default_factory=list)

    @property
    def is_proposal(self) -> bool:
        return self.proposal is not None


class ChatMessage(BaseModel):
    """One entry in the chat transcript."""

    id: UUID = Field(default_factory=uuid4)
    sender: ChatSender
    text: str
    created_at: datetime = Field(default_factory=utc_now)

    sources: list[GroundingSource] = Field(default_factory=list)

    # Proposal fields (cedar messages only)
    proposal: Optional[TransactionCandidate] = None
    proposal_status: Optional[ProposalStatus] = None
    validation: Optional[ValidationResult] = Field(
        default=None,
        description="Preview validation shown next to the proposal"
    )
    transaction_id: Optional[UUID] = Field(
        default=None,
        description="ID of the admitted transaction once confirmed"
    )

    @property
    def is_proposal(self) -> bool:
        return self.proposal is not None

    @property
    def awaiting_decision(self) -> bool:
        return self.proposal_status == ProposalStatus.PENDING
