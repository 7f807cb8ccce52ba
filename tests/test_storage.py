"""Tests for token and audit storage."""

import json
import os
import stat
from uuid import uuid4

import pytest

from acca_client.models.audit import AuditEventBuilder
from acca_client.services.storage import (
    FileTokenStorage,
    InMemoryAuditStorage,
    InMemoryTokenStorage,
)


class TestFileTokenStorage:
    """Tests for the credentials file."""

    @pytest.fixture
    def path(self, tmp_path):
        return tmp_path / "acca" / "credentials.json"

    @pytest.mark.asyncio
    async def test_missing_file_means_no_token(self, path):
        """Test a fresh install has no token."""
        storage = FileTokenStorage(path=path, storage_key="acca_auth_token")
        assert await storage.get_token() is None

    @pytest.mark.asyncio
    async def test_set_get_delete(self, path):
        """Test the token survives a new storage instance and can be removed."""
        await FileTokenStorage(path=path, storage_key="k").set_token("tok")

        storage = FileTokenStorage(path=path, storage_key="k")
        assert await storage.get_token() == "tok"

        await storage.delete_token()
        assert await storage.get_token() is None
        assert not path.exists()

    @pytest.mark.asyncio
    async def test_file_is_owner_only(self, path):
        """Test the credentials file is not readable by others."""
        await FileTokenStorage(path=path, storage_key="k").set_token("tok")
        mode = stat.S_IMODE(os.stat(path).st_mode)
        assert mode == 0o600

    @pytest.mark.asyncio
    async def test_keys_share_one_file(self, path):
        """Test deleting one key keeps the others."""
        await FileTokenStorage(path=path, storage_key="a").set_token("one")
        await FileTokenStorage(path=path, storage_key="b").set_token("two")

        await FileTokenStorage(path=path, storage_key="a").delete_token()

        assert json.loads(path.read_text()) == {"b": "two"}

    @pytest.mark.asyncio
    async def test_corrupt_file_degrades_to_no_token(self, path):
        """Test an unreadable file is treated as logged out, not raised."""
        path.parent.mkdir(parents=True)
        path.write_text("{not json")
        storage = FileTokenStorage(path=path, storage_key="k")

        assert await storage.get_token() is None

        await storage.set_token("fresh")
        assert await storage.get_token() == "fresh"

    @pytest.mark.asyncio
    async def test_delete_without_file(self, path):
        """Test deleting when nothing is stored is a no-op."""
        await FileTokenStorage(path=path, storage_key="k").delete_token()
        assert not path.exists()


class TestInMemoryTokenStorage:
    """Tests for process-local token storage."""

    @pytest.mark.asyncio
    async def test_lifecycle(self):
        """Test set, get and delete."""
        storage = InMemoryTokenStorage(token="seed")
        assert await storage.get_token() == "seed"
        await storage.set_token("next")
        assert await storage.get_token() == "next"
        await storage.delete_token()
        assert await storage.get_token() is None


class TestInMemoryAuditStorage:
    """Tests for the bounded audit history."""

    @pytest.mark.asyncio
    async def test_bounded(self):
        """Test old events fall off once full."""
        storage = InMemoryAuditStorage(max_events=2)
        for _ in range(3):
            await storage.append_event(AuditEventBuilder.logged_out(server_acknowledged=True))
        assert len(storage) == 2

    @pytest.mark.asyncio
    async def test_recent_first(self):
        """Test recent events come newest first."""
        storage = InMemoryAuditStorage()
        first = AuditEventBuilder.logged_out(server_acknowledged=True)
        second = AuditEventBuilder.forced_logout(message="expired")
        await storage.append_event(first)
        await storage.append_event(second)

        events = await storage.get_recent_events(limit=1)

        assert events == [second]

    @pytest.mark.asyncio
    async def test_by_correlation_id(self):
        """Test events are filtered by correlation ID."""
        storage = InMemoryAuditStorage()
        correlation_id = uuid4()
        await storage.append_event(AuditEventBuilder.row_skipped(1, True, correlation_id))
        await storage.append_event(AuditEventBuilder.row_skipped(1, False, uuid4()))

        events = await storage.get_events_by_correlation_id(correlation_id)

        assert len(events) == 1
        assert events[0].details == {"matched": True}
