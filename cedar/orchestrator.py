"""
Main Orchestrator for Cedar Budget

This module ties together all the components and defines the
end-to-end flows for:
1. Chat (message -> assistant -> reply or proposal -> confirm -> admit)
2. Receipt (photo -> quality check -> assistant -> proposal -> confirm -> admit)
3. Media (speech, image, video)

DESIGN DECISION: The orchestrator enforces the boundaries:
- No AI proposal reaches the ledger without human confirmation
- Every proposal is admitted through Ledger.admit, like form input
- Video polling is bounded and cancellable
- Every step is audited
"""

from typing import Optional
from uuid import UUID

from cedar.agents import (
    AssistantError,
    CedarAssistant,
    MediaGenerationError,
    MediaStudio,
    pcm_to_wav,
)
from cedar.audit import AuditLogger, InMemoryAuditTrail, create_correlation_id
from cedar.config import AppSettings, get_settings
from cedar.ledger import Ledger
from cedar.models.chat import (
    AssistantMode,
    AssistantReply,
    ChatMessage,
    ChatSender,
    ProposalStatus,
)
from cedar.models.media import VideoAspectRatio, VideoStatus
from cedar.models.transaction import Transaction
from cedar.polling import CancellationEvent, PollCancelledError, PollError
from cedar.services.image import ReceiptImageInspector, ReceiptRejectedError
from cedar.validation import AdmissionError

WELCOME_MESSAGE = (
    "Hello! I'm Cedar, your financial assistant for Lebanon. Tell me about a "
    "transaction, upload a receipt, or ask me about your budget."
)
CONFIRMED_MESSAGE = "Done! The transaction has been added to your budget."
CANCELLED_MESSAGE = "No problem, I didn't add it."


class ProposalError(Exception):
    """The message is not a proposal awaiting a decision."""
    pass


class ChatFlow:
    """
    Orchestrates the chat and receipt flows.

    Flow:
    1. User message or receipt photo
    2. Assistant reply (text, or a parsedTransaction proposal)
    3. Proposal is previewed against the validator (PAUSE - user decides)
    4. Confirm -> Ledger.admit / Cancel -> nothing stored

    Human confirmation (step 4) is MANDATORY.
    The system NEVER auto-admits.
    """

    def __init__(
        self,
        ledger: Ledger,
        assistant: Optional[CedarAssistant] = None,
        inspector: Optional[ReceiptImageInspector] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._ledger = ledger
        self._assistant = assistant or CedarAssistant()
        self._inspector = inspector or ReceiptImageInspector()
        self._audit_logger = audit_logger
        self._history: list[ChatMessage] = [
            ChatMessage(sender=ChatSender.CEDAR, text=WELCOME_MESSAGE)
        ]

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    @property
    def history(self) -> tuple[ChatMessage, ...]:
        """The transcript, oldest first."""
        return tuple(self._history)

    def _append(self, message: ChatMessage) -> ChatMessage:
        self._history.append(message)
        return message

    def _reply_message(
        self,
        reply: AssistantReply,
        correlation_id: UUID,
    ) -> ChatMessage:
        """Turn an assistant reply into a transcript entry, previewing any proposal."""
        message = ChatMessage(
            sender=ChatSender.CEDAR,
            text=reply.text,
            sources=reply.sources,
        )
        if reply.proposal is not None:
            message.proposal = reply.proposal
            message.proposal_status = ProposalStatus.PENDING
            message.validation = self._ledger.validator.validate(reply.proposal)
            if self._audit_logger:
                self._audit_logger.log_proposal_presented(
                    message_id=message.id,
                    source=reply.proposal.source.value,
                    issue_count=len(message.validation.issues),
                    correlation_id=correlation_id,
                )
        return self._append(message)

    def _error_message(
        self,
        error: Exception,
        service: str,
        correlation_id: UUID,
    ) -> ChatMessage:
        if self._audit_logger:
            self._audit_logger.log_external_service_error(
                service=service,
                error_message=str(error.__cause__ or error),
                correlation_id=correlation_id,
            )
        return self._append(ChatMessage(sender=ChatSender.CEDAR, text=str(error)))

    async def send_message(
        self,
        text: str,
        mode: AssistantMode = AssistantMode.SMART,
        correlation_id: Optional[UUID] = None,
    ) -> ChatMessage:
        """
        Send a user message and record Cedar's reply.

        Returns:
            Cedar's message. Assistant failures become an apology message
            rather than an exception.
        """
        correlation_id = correlation_id or create_correlation_id()
        self._append(ChatMessage(sender=ChatSender.USER, text=text))

        try:
            reply = await self._assistant.respond(text, self._ledger.transactions, mode)
        except AssistantError as e:
            return self._error_message(e, "gemini", correlation_id)

        message = self._reply_message(reply, correlation_id)
        if self._audit_logger:
            self._audit_logger.log_assistant_responded(
                message_id=message.id,
                mode=mode.value,
                is_proposal=message.is_proposal,
                correlation_id=correlation_id,
            )
        return message

    async def analyze_receipt(
        self,
        image_bytes: bytes,
        filename: str,
        mime_type: str,
        correlation_id: Optional[UUID] = None,
    ) -> ChatMessage:
        """
        Check a receipt photo locally, then ask the assistant to read it.

        Unusable photos are never sent; the reply asks for a retake.
        """
        correlation_id = correlation_id or create_correlation_id()
        self._append(ChatMessage(sender=ChatSender.USER, text=f"📎 Receipt: {filename}"))

        try:
            upload, assessment = self._inspector.inspect(image_bytes, filename, mime_type)
        except ReceiptRejectedError as e:
            if self._audit_logger:
                self._audit_logger.log_receipt_rejected(
                    upload_id=None,
                    filename=filename,
                    reason=str(e),
                    correlation_id=correlation_id,
                )
            text = "\n".join([str(e), *(f"• {issue}" for issue in e.issues)])
            return self._append(ChatMessage(sender=ChatSender.CEDAR, text=text))

        try:
            reply = await self._assistant.analyze_receipt(image_bytes, upload.mime_type)
        except AssistantError as e:
            return self._error_message(e, "gemini", correlation_id)

        message = self._reply_message(reply, correlation_id)
        if self._audit_logger:
            self._audit_logger.log_receipt_analyzed(
                upload_id=upload.upload_id,
                filename=filename,
                quality=assessment.quality.value,
                is_proposal=message.is_proposal,
                correlation_id=correlation_id,
            )
        return message

    def _pending(self, message_id: UUID) -> ChatMessage:
        for message in self._history:
            if message.id == message_id:
                if not message.awaiting_decision:
                    raise ProposalError(f"Message {message_id} has no pending proposal")
                return message
        raise ProposalError(f"Message {message_id} not found")

    def confirm_proposal(
        self,
        message_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        User confirmed a proposal: admit it to the ledger.

        Raises:
            ProposalError: unknown message, or already resolved
            AdmissionError: the ledger refused the candidate; the proposal
                is marked REJECTED
        """
        correlation_id = correlation_id or create_correlation_id()
        message = self._pending(message_id)

        try:
            transaction = self._ledger.admit(message.proposal, correlation_id)
        except AdmissionError:
            message.proposal_status = ProposalStatus.REJECTED
            raise

        message.proposal_status = ProposalStatus.CONFIRMED
        message.transaction_id = transaction.id

        if self._audit_logger:
            self._audit_logger.log_user_confirmed(
                message_id=message.id,
                transaction_id=transaction.id,
                correlation_id=correlation_id,
            )

        self._append(ChatMessage(sender=ChatSender.CEDAR, text=CONFIRMED_MESSAGE))
        return transaction

    def cancel_proposal(
        self,
        message_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        User declined a proposal. Nothing is stored.

        Raises:
            ProposalError: unknown message, or already resolved
        """
        message = self._pending(message_id)
        message.proposal_status = ProposalStatus.CANCELLED

        if self._audit_logger:
            self._audit_logger.log_user_cancelled(
                message_id=message.id,
                correlation_id=correlation_id or create_correlation_id(),
            )

        self._append(ChatMessage(sender=ChatSender.CEDAR, text=CANCELLED_MESSAGE))


class MediaFlow:
    """
    Orchestrates speech, image and video generation.

    Generated media is returned to the caller and never stored.
    """

    def __init__(
        self,
        studio: Optional[MediaStudio] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._studio = studio or MediaStudio()
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().app

    def _service_error(self, error: Exception, correlation_id: UUID) -> None:
        if self._audit_logger:
            self._audit_logger.log_external_service_error(
                service="gemini-media",
                error_message=str(error.__cause__ or error),
                correlation_id=correlation_id,
            )

    async def speak(self, text: str, correlation_id: Optional[UUID] = None) -> bytes:
        """
        Read text aloud.

        Returns:
            WAV bytes ready for playback

        Raises:
            MediaGenerationError
        """
        correlation_id = correlation_id or create_correlation_id()
        try:
            pcm = await self._studio.speak(text)
        except MediaGenerationError as e:
            self._service_error(e, correlation_id)
            raise

        if self._audit_logger:
            self._audit_logger.log_media_generated(
                kind="speech",
                details={"characters": len(text), "pcm_bytes": len(pcm)},
                correlation_id=correlation_id,
            )
        return pcm_to_wav(pcm)

    async def generate_image(
        self,
        prompt: str,
        aspect_ratio: str = "1:1",
        image_size: str = "1K",
        correlation_id: Optional[UUID] = None,
    ) -> str:
        """
        Generate an image.

        Returns:
            A data: URL

        Raises:
            MediaGenerationError
        """
        correlation_id = correlation_id or create_correlation_id()
        try:
            url = await self._studio.generate_image(prompt, aspect_ratio, image_size)
        except MediaGenerationError as e:
            self._service_error(e, correlation_id)
            raise

        if self._audit_logger:
            self._audit_logger.log_media_generated(
                kind="image",
                details={"aspect_ratio": aspect_ratio, "image_size": image_size},
                correlation_id=correlation_id,
            )
        return url

    async def generate_video(
        self,
        prompt: str,
        aspect_ratio: VideoAspectRatio = VideoAspectRatio.LANDSCAPE,
        cancel_event: Optional[CancellationEvent] = None,
        correlation_id: Optional[UUID] = None,
    ) -> VideoStatus:
        """
        Generate a video, polling at the configured interval.

        Raises:
            MediaGenerationError: the job failed
            PollTimeoutError: attempt cap reached
            PollCancelledError: `cancel_event` was set
        """
        correlation_id = correlation_id or create_correlation_id()
        if self._audit_logger:
            self._audit_logger.log_video_started(
                prompt=prompt,
                aspect_ratio=aspect_ratio.value,
                correlation_id=correlation_id,
            )

        try:
            status = await self._studio.generate_video(
                prompt,
                aspect_ratio,
                interval_seconds=self._settings.video_poll_interval_seconds,
                max_attempts=self._settings.video_max_poll_attempts,
                cancel_event=cancel_event,
            )
        except PollError as e:
            if self._audit_logger:
                self._audit_logger.log_video_stopped(
                    attempts=e.attempts,
                    cancelled=isinstance(e, PollCancelledError),
                    correlation_id=correlation_id,
                )
            raise
        except MediaGenerationError as e:
            self._service_error(e, correlation_id)
            raise

        if self._audit_logger:
            self._audit_logger.log_media_generated(
                kind="video",
                details={
                    "aspect_ratio": aspect_ratio.value,
                    "bytes": len(status.video_bytes or b""),
                },
                correlation_id=correlation_id,
            )
        return status


def create_app_components() -> tuple[Ledger, ChatFlow, MediaFlow]:
    """
    Factory function to create all application components.

    All flows share one audit logger backed by an in-memory trail, and
    one ledger for the session.

    Returns:
        (ledger, chat_flow, media_flow)
    """
    settings = get_settings()
    audit_logger = AuditLogger(InMemoryAuditTrail())

    ledger = Ledger(
        audit_logger=audit_logger,
        top_n=settings.app.top_expense_count,
    )

    chat_flow = ChatFlow(
        ledger,
        assistant=CedarAssistant(settings.gemini),
        inspector=ReceiptImageInspector(settings.app),
        audit_logger=audit_logger,
    )

    media_flow = MediaFlow(
        studio=MediaStudio(settings.gemini),
        audit_logger=audit_logger,
        settings=settings.app,
    )

    return ledger, chat_flow, media_flow
