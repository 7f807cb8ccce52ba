"""
In-memory audit storage.

Keeps a bounded history of audit events for the running process. Useful
for an "activity" view in the host shell and for asserting on audit
output in tests.
"""

from collections import deque
from typing import Optional
from uuid import UUID

from acca_client.models.audit import AuditEvent
from acca_client.services.storage.interface import AuditStorageInterface


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only, bounded, in-memory audit log."""

    def __init__(self, max_events: Optional[int] = 1000):
        self._events: deque[AuditEvent] = deque(maxlen=max_events)

    def __len__(self) -> int:
        return len(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
