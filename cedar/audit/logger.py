"""
Audit Logger

DESIGN DECISION: Every ledger write and every assistant proposal decision
is logged. This provides:
1. Complete traceability from chat message to transaction
2. Debugging capability for assistant output
3. A visible history of rejected candidates

The audit logger:
- Is synchronous: ledger writes happen in one step, so does their audit
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from cedar.audit.trail import AuditTrailInterface
from cedar.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


def configure_logging(level: str = "INFO") -> None:
    """
    Configure structlog for local JSON logging.

    Called once at startup by the UI; safe to call again.
    """
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
        force=True,
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit trail (for the session's history view)
    """

    def __init__(
        self,
        trail: Optional[AuditTrailInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            trail: Storage for events. If None, only logs locally.
        """
        self._trail = trail
        self._logger = structlog.get_logger("cedar.audit")

    @property
    def trail(self) -> Optional[AuditTrailInterface]:
        return self._trail

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Appends to the trail if one is configured.

        Returns True if the trail write succeeded (or no trail configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._trail is not None:
            try:
                return self._trail.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_trail_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_transaction_admitted(
        self,
        transaction_id: UUID,
        description: str,
        details: dict,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a ledger admission."""
        self.log(AuditEventBuilder.transaction_admitted(
            transaction_id=transaction_id,
            description=description,
            details=details,
            correlation_id=correlation_id,
        ))

    def log_transaction_rejected(
        self,
        field: str,
        reason: str,
        source: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a refused candidate."""
        self.log(AuditEventBuilder.transaction_rejected(
            field=field,
            reason=reason,
            source=source,
            correlation_id=correlation_id,
        ))

    def log_proposal_presented(
        self,
        message_id: UUID,
        source: str,
        issue_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.proposal_presented(
            message_id=message_id,
            source=source,
            issue_count=issue_count,
            correlation_id=correlation_id,
        ))

    def log_user_confirmed(
        self,
        message_id: UUID,
        transaction_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.user_confirmed(
            message_id=message_id,
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        ))

    def log_user_cancelled(
        self,
        message_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.user_cancelled(
            message_id=message_id,
            correlation_id=correlation_id,
        ))

    def log_assistant_responded(
        self,
        message_id: UUID,
        mode: str,
        is_proposal: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.assistant_responded(
            message_id=message_id,
            mode=mode,
            is_proposal=is_proposal,
            correlation_id=correlation_id,
        ))

    def log_receipt_analyzed(
        self,
        upload_id: UUID,
        filename: str,
        quality: str,
        is_proposal: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.receipt_analyzed(
            upload_id=upload_id,
            filename=filename,
            quality=quality,
            is_proposal=is_proposal,
            correlation_id=correlation_id,
        ))

    def log_receipt_rejected(
        self,
        upload_id: Optional[UUID],
        filename: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.receipt_rejected(
            upload_id=upload_id,
            filename=filename,
            reason=reason,
            correlation_id=correlation_id,
        ))

    def log_media_generated(
        self,
        kind: str,
        details: dict,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a completed speech, image or video generation."""
        self.log(AuditEventBuilder.media_generated(
            kind=kind,
            details=details,
            correlation_id=correlation_id,
        ))

    def log_video_started(
        self,
        prompt: str,
        aspect_ratio: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.video_started(
            prompt=prompt,
            aspect_ratio=aspect_ratio,
            correlation_id=correlation_id,
        ))

    def log_video_stopped(
        self,
        attempts: int,
        cancelled: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a video poll that ended without a video."""
        self.log(AuditEventBuilder.video_stopped(
            attempts=attempts,
            cancelled=cancelled,
            correlation_id=correlation_id,
        ))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., one chat message).
    Pass it through all subsequent operations.
    """
    return uuid4()
