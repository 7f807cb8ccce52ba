"""Tests for the audit logger."""

from uuid import UUID

import pytest

from acca_client.audit import AuditLogger, create_correlation_id
from acca_client.models.audit import AuditEventBuilder, AuditEventType
from acca_client.services.storage import AuditStorageInterface


class FailingAuditStorage(AuditStorageInterface):
    async def append_event(self, event):
        raise RuntimeError("disk full")

    async def get_events_by_correlation_id(self, correlation_id):
        return []

    async def get_recent_events(self, limit=100):
        return []


class TestAuditLogger:
    """Tests for AuditLogger."""

    @pytest.mark.asyncio
    async def test_persists_events(self, audit_logger, audit_storage):
        """Test events reach the configured storage."""
        await audit_logger.log_logged_out(server_acknowledged=True)

        events = await audit_storage.get_recent_events()
        assert [e.event_type for e in events] == [AuditEventType.LOGGED_OUT]

    @pytest.mark.asyncio
    async def test_local_only(self):
        """Test logging without storage succeeds."""
        logger = AuditLogger()
        assert await logger.log(AuditEventBuilder.session_restored()) is True

    @pytest.mark.asyncio
    async def test_storage_failure_is_swallowed(self):
        """Test a failing storage never breaks the caller."""
        logger = AuditLogger(FailingAuditStorage())
        ok = await logger.log(AuditEventBuilder.forced_logout(message="expired"))
        assert ok is False

    @pytest.mark.asyncio
    async def test_auth_failed_helper(self, audit_logger, audit_storage):
        """Test the auth failure helper records the operation."""
        await audit_logger.log_auth_failed(
            operation="registration",
            reason="Email taken",
            status=422,
        )

        event = (await audit_storage.get_recent_events())[0]
        assert event.description == "Registration failed"
        assert event.error_message == "Email taken"

    def test_correlation_id(self):
        """Test correlation IDs are unique UUIDs."""
        first = create_correlation_id()
        assert isinstance(first, UUID)
        assert first != create_correlation_id()
