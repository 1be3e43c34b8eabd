"""Tests for the audit logger and in-memory trail."""

from uuid import uuid4

from cedar.audit import AuditLogger, InMemoryAuditTrail, create_correlation_id
from cedar.audit.trail import AuditTrailInterface
from cedar.models import AuditEvent, AuditEventBuilder, AuditEventType


class FailingTrail(AuditTrailInterface):
    def append_event(self, event):
        raise IOError("disk full")

    def get_events_by_correlation_id(self, correlation_id):
        return []

    def get_events_by_entity(self, entity_type, entity_id):
        return []

    def get_recent_events(self, limit=100):
        return []


class TestInMemoryAuditTrail:
    """Tests for the session audit trail."""

    def test_append_and_query_by_correlation(self):
        """Test events are grouped by correlation id in order."""
        trail = InMemoryAuditTrail()
        cid = uuid4()
        first = AuditEvent(event_type=AuditEventType.PROPOSAL_PRESENTED, description="a", correlation_id=cid)
        other = AuditEvent(event_type=AuditEventType.SYSTEM_ERROR, description="b")
        second = AuditEvent(event_type=AuditEventType.USER_CONFIRMED, description="c", correlation_id=cid)
        for event in (first, other, second):
            assert trail.append_event(event)
        assert trail.get_events_by_correlation_id(cid) == [first, second]
        assert len(trail) == 3

    def test_query_by_entity(self):
        """Test events are found by the entity they describe."""
        trail = InMemoryAuditTrail()
        message_id = uuid4()
        trail.append_event(AuditEventBuilder.user_cancelled(message_id=message_id))
        trail.append_event(AuditEventBuilder.user_cancelled(message_id=uuid4()))
        events = trail.get_events_by_entity("message", message_id)
        assert len(events) == 1
        assert events[0].entity_id == message_id

    def test_recent_events_newest_first(self):
        """Test recent events are returned newest first and limited."""
        trail = InMemoryAuditTrail()
        events = [AuditEvent(event_type=AuditEventType.SYSTEM_ERROR, description=str(i)) for i in range(5)]
        for event in events:
            trail.append_event(event)
        assert trail.get_recent_events(2) == [events[4], events[3]]
        assert trail.get_recent_events(0) == []


class TestAuditLogger:
    """Tests for AuditLogger."""

    def test_log_appends_to_empty_trail(self):
        """Test the first event reaches a fresh trail."""
        trail = InMemoryAuditTrail()
        logger = AuditLogger(trail)
        logger.log_user_cancelled(message_id=uuid4())
        assert len(trail) == 1

    def test_log_without_trail(self):
        """Test local-only logging succeeds."""
        logger = AuditLogger()
        assert logger.log(AuditEvent(event_type=AuditEventType.SYSTEM_ERROR, description="x"))

    def test_trail_failure_does_not_raise(self):
        """Test a broken trail never crashes the caller."""
        logger = AuditLogger(FailingTrail())
        assert logger.log(AuditEvent(event_type=AuditEventType.SYSTEM_ERROR, description="x")) is False

    def test_helpers_set_event_types(self):
        """Test the helper methods record the matching event type."""
        trail = InMemoryAuditTrail()
        logger = AuditLogger(trail)
        cid = create_correlation_id()
        logger.log_video_started(prompt="cedars", aspect_ratio="16:9", correlation_id=cid)
        logger.log_video_stopped(attempts=60, cancelled=False, correlation_id=cid)
        logger.log_media_generated(kind="image", details={}, correlation_id=cid)
        logger.log_external_service_error(service="gemini", error_message="boom", correlation_id=cid)
        assert [e.event_type for e in trail.get_events_by_correlation_id(cid)] == [
            AuditEventType.VIDEO_STARTED,
            AuditEventType.VIDEO_TIMED_OUT,
            AuditEventType.IMAGE_GENERATED,
            AuditEventType.EXTERNAL_SERVICE_ERROR,
        ]

    def test_log_error_records_system_error(self):
        """Test startup failures are recorded as system errors."""
        trail = InMemoryAuditTrail()
        logger = AuditLogger(trail)
        logger.log_error(
            error_type="ValidationError",
            error_message="GEMINI_API_KEY is missing",
            details={"stage": "startup"},
        )
        (event,) = trail.get_recent_events()
        assert event.event_type == AuditEventType.SYSTEM_ERROR
        assert event.error_message == "GEMINI_API_KEY is missing"
        assert event.details == {"stage": "startup"}

    def test_long_receipt_filename_is_truncated(self):
        """Test an oversized upload name still builds a valid event."""
        filename = "r" * 2000 + ".jpg"
        analyzed = AuditEventBuilder.receipt_analyzed(
            upload_id=uuid4(), filename=filename, quality="good", is_proposal=True,
        )
        rejected = AuditEventBuilder.receipt_rejected(
            upload_id=None, filename=filename, reason="too dark",
        )
        assert len(analyzed.description) <= 500
        assert len(rejected.description) <= 500
        assert analyzed.details["filename"] == filename

    def test_correlation_ids_unique(self):
        """Test correlation ids are fresh."""
        assert create_correlation_id() != create_correlation_id()
