"""
Abstract Storage Interface

DESIGN DECISION: We define abstract interfaces for the two things the
client persists:
1. The bearer token (must survive app restarts)
2. Audit events (optional, for a local activity history)

This allows us to:
- Swap a plain file for an OS keychain later
- Use in-memory storage for testing
- Keep the session logic decoupled from where the token lives
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from acca_client.models.audit import AuditEvent


class TokenStorageInterface(ABC):
    """
    Abstract interface for bearer token persistence.

    Implementations must never raise from these methods: a storage
    failure degrades to "no token".
    """

    @abstractmethod
    async def get_token(self) -> Optional[str]:
        """
        Read the persisted token.

        Returns:
            The token, or None if absent or unreadable
        """
        pass

    @abstractmethod
    async def set_token(self, token: str) -> None:
        """
        Persist the token, replacing any previous one.

        Args:
            token: Opaque bearer credential
        """
        pass

    @abstractmethod
    async def delete_token(self) -> None:
        """Remove the persisted token. Deleting an absent token is a no-op."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one reconciliation session).

        Args:
            correlation_id: The correlation identifier

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Args:
            limit: Maximum number of events to return

        Returns:
            List of recent events (newest first)
        """
        pass

