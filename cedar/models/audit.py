"""
Audit Models for Cedar Budget

Every ledger write, every assistant proposal decision and every external
AI call is recorded as an audit event. This provides:
1. Traceability from a chat message to the transaction it produced
2. Debugging information when the assistant misbehaves
3. A record of every rejected candidate

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from cedar.models.transaction import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ledger
    TRANSACTION_ADMITTED = "transaction_admitted"
    TRANSACTION_REJECTED = "transaction_rejected"

    # Human confirmation
    PROPOSAL_PRESENTED = "proposal_presented"
    USER_CONFIRMED = "user_confirmed"
    USER_CANCELLED = "user_cancelled"

    # Assistant
    ASSISTANT_RESPONDED = "assistant_responded"
    RECEIPT_ANALYZED = "receipt_analyzed"
    RECEIPT_REJECTED = "receipt_rejected"

    # Media generation
    SPEECH_GENERATED = "speech_generated"
    IMAGE_GENERATED = "image_generated"
    VIDEO_STARTED = "video_started"
    VIDEO_COMPLETED = "video_completed"
    VIDEO_TIMED_OUT = "video_timed_out"
    VIDEO_CANCELLED = "video_cancelled"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'message', 'video')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one chat exchange)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_admitted(tx, correlation_id)
        event = AuditEventBuilder.user_confirmed(message_id, tx_id, correlation_id)
    """

    @staticmethod
    def transaction_admitted(
        transaction_id: UUID,
        description: str,
        details: dict,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADMITTED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction admitted: {description}",
            details=details,
        )

    @staticmethod
    def transaction_rejected(
        field: str,
        reason: str,
        source: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="candidate",
            correlation_id=correlation_id,
            description=f"Transaction rejected: invalid {field}",
            error_message=reason,
            details={
                "field": field,
                "source": source,
            },
        )

    @staticmethod
    def proposal_presented(
        message_id: UUID,
        source: str,
        issue_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROPOSAL_PRESENTED,
            entity_type="message",
            entity_id=message_id,
            correlation_id=correlation_id,
            description=f"Transaction proposal from {source} presented for review",
            details={
                "source": source,
                "issue_count": issue_count,
            },
        )

    @staticmethod
    def user_confirmed(
        message_id: UUID,
        transaction_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_CONFIRMED,
            entity_type="message",
            entity_id=message_id,
            correlation_id=correlation_id,
            description="User confirmed proposed transaction",
            details={
                "transaction_id": str(transaction_id),
            },
            is_user_action=True,
        )

    @staticmethod
    def user_cancelled(
        message_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_CANCELLED,
            entity_type="message",
            entity_id=message_id,
            correlation_id=correlation_id,
            description="User cancelled proposed transaction",
            is_user_action=True,
        )

    @staticmethod
    def assistant_responded(
        message_id: UUID,
        mode: str,
        is_proposal: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ASSISTANT_RESPONDED,
            entity_type="message",
            entity_id=message_id,
            correlation_id=correlation_id,
            description=f"Assistant responded in {mode} mode",
            details={
                "mode": mode,
                "is_proposal": is_proposal,
            },
        )

    @staticmethod
    def receipt_analyzed(
        upload_id: UUID,
        filename: str,
        quality: str,
        is_proposal: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_ANALYZED,
            entity_type="receipt",
            entity_id=upload_id,
            correlation_id=correlation_id,
            description=f"Receipt analyzed: {filename[:200]}",
            details={
                "filename": filename,
                "quality": quality,
                "is_proposal": is_proposal,
            },
            is_user_action=True,
        )

    @staticmethod
    def receipt_rejected(
        upload_id: Optional[UUID],
        filename: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="receipt",
            entity_id=upload_id,
            correlation_id=correlation_id,
            description=f"Receipt rejected: {filename[:200]}",
            error_message=reason,
            details={
                "filename": filename,
            },
        )

    @staticmethod
    def media_generated(
        kind: str,
        details: dict,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        event_type = {
            "speech": AuditEventType.SPEECH_GENERATED,
            "image": AuditEventType.IMAGE_GENERATED,
            "video": AuditEventType.VIDEO_COMPLETED,
        }[kind]
        return AuditEvent(
            event_type=event_type,
            entity_type=kind,
            correlation_id=correlation_id,
            description=f"{kind.capitalize()} generated",
            details=details,
        )

    @staticmethod
    def video_started(
        prompt: str,
        aspect_ratio: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VIDEO_STARTED,
            entity_type="video",
            correlation_id=correlation_id,
            description="Video generation started",
            details={
                "prompt": prompt[:200],
                "aspect_ratio": aspect_ratio,
            },
            is_user_action=True,
        )

    @staticmethod
    def video_stopped(
        attempts: int,
        cancelled: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        if cancelled:
            return AuditEvent(
                event_type=AuditEventType.VIDEO_CANCELLED,
                entity_type="video",
                correlation_id=correlation_id,
                description=f"Video generation cancelled after {attempts} checks",
                details={"attempts": attempts},
                is_user_action=True,
            )
        return AuditEvent(
            event_type=AuditEventType.VIDEO_TIMED_OUT,
            severity=AuditSeverity.WARNING,
            entity_type="video",
            correlation_id=correlation_id,
            description=f"Video generation timed out after {attempts} checks",
            details={"attempts": attempts},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
