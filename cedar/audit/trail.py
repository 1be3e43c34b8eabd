"""
In-Session Audit Trail

Append-only store for audit events. Lives as long as the session does;
nothing is written to disk.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from cedar.models.audit import AuditEvent


class AuditTrailInterface(ABC):
    """
    Abstract interface for audit event storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """Append an event. Returns True if stored."""
        pass

    @abstractmethod
    def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        """All events for one user action, in chronological order."""
        pass

    @abstractmethod
    def get_events_by_entity(self, entity_type: str, entity_id: UUID) -> list[AuditEvent]:
        """All events about one entity, in chronological order."""
        pass

    @abstractmethod
    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """Most recent events, newest first."""
        pass


class InMemoryAuditTrail(AuditTrailInterface):
    """Audit trail held in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    def __len__(self) -> int:
        return len(self._events)

    def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    def get_events_by_entity(self, entity_type: str, entity_id: UUID) -> list[AuditEvent]:
        return [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events[-limit:])) if limit > 0 else []
