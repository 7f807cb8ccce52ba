"""
Tests for the Session Manager.

Covers the token lifecycle, the two-factor branch, forced logout and
background validation against a fake server.
"""

import asyncio

import httpx
import pytest

from acca_client.models.api import NETWORK_ERROR_MESSAGE
from acca_client.models.audit import AuditEventType
from acca_client.models.auth import AppState
from acca_client.services.auth import AuthService
from acca_client.session import SESSION_EXPIRED_TITLE, SessionManager


LOGIN_OK = (200, {
    "success": True,
    "message": "Login successful",
    "data": {
        "access_token": "tok-1",
        "user": {"id": 1, "name": "Asha", "email": "asha@example.com"},
    },
})

VALID = (200, {
    "success": True,
    "data": {"valid": True, "user": {"id": 1, "name": "Asha Updated", "email": "asha@example.com"}},
})

UNAUTHORIZED = (401, {"success": False, "message": "Unauthenticated."})


class TestSessionManager:
    """Tests for SessionManager operations."""

    @pytest.fixture
    def notes(self):
        return []

    @pytest.fixture
    def manager(self, api_client, token_storage, audit_logger, session_settings, notes):
        return SessionManager(
            auth_service=AuthService(api_client),
            token_storage=token_storage,
            audit_logger=audit_logger,
            notifier=lambda title, message: notes.append((title, message)),
            settings=session_settings,
            auto_validate=False,
        )

    # ==================== TOKEN LIFECYCLE ====================

    @pytest.mark.asyncio
    async def test_login_persists_token(self, server, manager, token_storage):
        """Test a successful login stores the token and the user."""
        server.add("POST", "/login", LOGIN_OK)

        result = await manager.login("asha@example.com", "secret")

        assert result.success is True
        assert await token_storage.get_token() == "tok-1"
        assert manager.is_authenticated is True
        assert manager.user.name == "Asha"
        assert manager.loading is False

    @pytest.mark.asyncio
    async def test_logout_clears_token_when_server_unreachable(
        self, server, manager, token_storage, notes
    ):
        """Test logout clears local state even if the server call fails."""
        server.add("POST", "/login", LOGIN_OK)
        server.add("POST", "/logout", httpx.ConnectError("offline"))
        await manager.login("asha@example.com", "secret")

        await manager.logout()

        assert await token_storage.get_token() is None
        assert manager.is_authenticated is False
        assert manager.user is None
        assert notes == [("Logged Out", "You have been logged out.")]
        assert server.calls("POST", "/logout")[0].headers["Authorization"] == "Bearer tok-1"

    @pytest.mark.asyncio
    async def test_logout_swallows_unexpected_request_errors(
        self, server, manager, token_storage, notes, audit_storage
    ):
        """Test logout completes when the server call raises outside httpx.HTTPError."""
        server.add("POST", "/login", LOGIN_OK)
        server.add("POST", "/logout", httpx.InvalidURL("bad url"))
        await manager.login("asha@example.com", "secret")

        await manager.logout()

        assert await token_storage.get_token() is None
        assert manager.is_authenticated is False
        assert notes == [("Logged Out", "You have been logged out.")]
        events = await audit_storage.get_recent_events()
        assert events[0].event_type == AuditEventType.LOGGED_OUT
        assert events[0].details == {"server_acknowledged": False}

    @pytest.mark.asyncio
    async def test_logout_without_message(self, server, manager, notes):
        """Test show_message=False stays silent."""
        server.add("POST", "/logout", (200, {"success": True}))
        await manager.logout(show_message=False)
        assert notes == []

    # ==================== LOGIN / REGISTER ====================

    @pytest.mark.asyncio
    async def test_two_factor_challenge(self, server, manager, token_storage, audit_storage):
        """Test a two-factor challenge stores no token."""
        server.add("POST", "/login", (200, {
            "success": True,
            "data": {"requires_two_factor": True},
        }))

        result = await manager.login("asha@example.com", "secret")

        assert result.success is False
        assert result.requires_two_factor is True
        assert await token_storage.get_token() is None
        assert manager.is_authenticated is False
        events = await audit_storage.get_recent_events()
        assert events[0].event_type == AuditEventType.TWO_FACTOR_REQUIRED

    @pytest.mark.asyncio
    async def test_login_user_with_null_fields(self, server, manager):
        """Test null profile fields from the server still populate the user."""
        server.add("POST", "/login", (200, {
            "success": True,
            "data": {
                "access_token": "tok-1",
                "user": {"id": 1, "name": None, "email": "asha@example.com", "two_factor_enabled": None},
            },
        }))

        result = await manager.login("asha@example.com", "secret")

        assert result.success is True
        assert manager.user is not None
        assert manager.user.id == 1
        assert manager.user.two_factor_enabled is False
        assert manager.user.name == ""

    @pytest.mark.asyncio
    async def test_login_rejected(self, server, manager):
        """Test server message and field errors are passed through."""
        server.add("POST", "/login", (422, {
            "success": False,
            "message": "Invalid credentials",
            "errors": {"email": ["These credentials do not match our records."]},
        }))

        result = await manager.login("asha@example.com", "wrong")

        assert result.success is False
        assert result.message == "Invalid credentials"
        assert result.errors == {"email": ["These credentials do not match our records."]}
        assert manager.is_authenticated is False

    @pytest.mark.asyncio
    async def test_login_network_error(self, server, manager):
        """Test transport failures become a generic failure."""
        server.add("POST", "/login", httpx.ConnectError("offline"))

        result = await manager.login("asha@example.com", "secret")

        assert result.success is False
        assert result.message == NETWORK_ERROR_MESSAGE

    @pytest.mark.asyncio
    async def test_login_body_failure_flag(self, server, manager, token_storage):
        """Test a 200 with success false in the body is a failure."""
        server.add("POST", "/login", (200, {"success": False, "message": "Account locked"}))

        result = await manager.login("asha@example.com", "secret")

        assert result.success is False
        assert result.message == "Account locked"
        assert await token_storage.get_token() is None

    @pytest.mark.asyncio
    async def test_register_password_mismatch(self, server, manager):
        """Test mismatched passwords are rejected without a request."""
        result = await manager.register("Asha", "asha@example.com", "one", "two")

        assert result.success is False
        assert "confirm_password" in result.errors
        assert server.requests == []

    @pytest.mark.asyncio
    async def test_register_with_token_key(self, server, manager, token_storage):
        """Test registration accepts the token under `token`."""
        server.add("POST", "/register", (201, {
            "success": True,
            "data": {"token": "tok-r", "user": {"id": 2, "name": "Ravi"}},
        }))

        result = await manager.register("Ravi", "ravi@example.com", "pw", "pw")

        assert result.success is True
        assert await token_storage.get_token() == "tok-r"
        assert manager.is_authenticated is True

    @pytest.mark.asyncio
    async def test_register_without_token(self, server, manager):
        """Test registration without a token leaves the user logged out."""
        server.add("POST", "/register", (201, {"success": True, "message": "Check your email"}))

        result = await manager.register("Ravi", "ravi@example.com", "pw", "pw")

        assert result.success is True
        assert result.message == "Check your email"
        assert manager.is_authenticated is False

    # ==================== STARTUP ====================

    @pytest.mark.asyncio
    async def test_check_auth_status_without_token(self, server, manager):
        """Test no stored token means logged out, with no request."""
        await manager.check_auth_status()

        assert manager.is_authenticated is False
        assert manager.loading is False
        assert server.requests == []

    @pytest.mark.asyncio
    async def test_check_auth_status_restores_user(self, server, manager, token_storage):
        """Test a stored token is trusted and the profile merged."""
        await token_storage.set_token("tok-1")
        server.add("GET", "/profile", (200, {"success": True, "data": {"user": {"id": 1, "name": "Asha"}}}))

        await manager.check_auth_status()

        assert manager.is_authenticated is True
        assert manager.user.name == "Asha"

    @pytest.mark.asyncio
    async def test_check_auth_status_rejected_token(self, server, manager, token_storage, notes):
        """Test a rejected stored token logs out silently."""
        await token_storage.set_token("stale")
        server.add("GET", "/profile", UNAUTHORIZED)

        await manager.check_auth_status()

        assert manager.is_authenticated is False
        assert manager.session_expired is False
        assert await token_storage.get_token() is None
        assert notes == []

    @pytest.mark.asyncio
    async def test_check_auth_status_server_down(self, server, manager, token_storage):
        """Test a server error keeps the optimistic session."""
        await token_storage.set_token("tok-1")
        server.add("GET", "/profile", (500, {"success": False}))

        await manager.check_auth_status()

        assert manager.is_authenticated is True
        assert await token_storage.get_token() == "tok-1"

    # ==================== VALIDATION ====================

    @pytest.mark.asyncio
    async def test_validate_without_token(self, server, manager):
        """Test validation without a token makes no request."""
        assert await manager.validate_session() is False
        assert server.requests == []

    @pytest.mark.asyncio
    async def test_validate_refreshes_user(self, server, manager):
        """Test a valid session refreshes the user snapshot."""
        server.add("POST", "/login", LOGIN_OK)
        server.add("GET", "/validate-session", VALID)
        await manager.login("asha@example.com", "secret")

        assert await manager.validate_session() is True
        assert manager.user.name == "Asha Updated"

    @pytest.mark.asyncio
    async def test_validate_network_error_keeps_session(self, server, manager):
        """Test network errors never log out."""
        server.add("POST", "/login", LOGIN_OK)
        server.add("GET", "/validate-session", httpx.ConnectError("offline"))
        await manager.login("asha@example.com", "secret")

        assert await manager.validate_session() is True
        assert manager.is_authenticated is True

    @pytest.mark.asyncio
    async def test_forced_logout_is_idempotent(
        self, server, manager, token_storage, notes, audit_storage
    ):
        """Test a 401 forces logout once; later checks make no request."""
        server.add("POST", "/login", LOGIN_OK)
        server.add("GET", "/validate-session", UNAUTHORIZED)
        await manager.login("asha@example.com", "secret")

        assert await manager.validate_session() is False
        assert manager.session_expired is True
        assert manager.is_authenticated is False
        assert await token_storage.get_token() is None
        assert notes == [(SESSION_EXPIRED_TITLE, "Your session has expired. Please login again.")]

        assert await manager.validate_session() is False
        assert len(server.calls("GET", "/validate-session")) == 1
        assert len(notes) == 1

        events = await audit_storage.get_recent_events()
        assert events[0].event_type == AuditEventType.FORCED_LOGOUT

    @pytest.mark.asyncio
    async def test_login_clears_session_expired(self, server, manager):
        """Test a new login clears the expired flag."""
        server.add("POST", "/login", LOGIN_OK)
        await manager.force_logout()
        assert manager.session_expired is True

        await manager.login("asha@example.com", "secret")

        assert manager.session_expired is False

    @pytest.mark.asyncio
    async def test_concurrent_validations_share_one_request(self, server, manager):
        """Test overlapping validations are coalesced."""
        server.add("POST", "/login", LOGIN_OK)
        server.add("GET", "/validate-session", VALID)
        await manager.login("asha@example.com", "secret")

        results = await asyncio.gather(
            manager.validate_session(),
            manager.validate_session(),
        )

        assert results == [True, True]
        assert len(server.calls("GET", "/validate-session")) == 1

    @pytest.mark.asyncio
    async def test_foreground_triggers_validation(self, server, manager):
        """Test returning from background validates immediately."""
        server.add("POST", "/login", LOGIN_OK)
        server.add("GET", "/validate-session", VALID)
        await manager.login("asha@example.com", "secret")

        assert await manager.handle_app_state_change(AppState.ACTIVE) is None
        assert await manager.handle_app_state_change(AppState.BACKGROUND) is None
        assert await manager.handle_app_state_change(AppState.ACTIVE) is True
        assert len(server.calls("GET", "/validate-session")) == 1

    @pytest.mark.asyncio
    async def test_foreground_when_logged_out(self, server, manager):
        """Test no validation happens when there is no session."""
        await manager.handle_app_state_change(AppState.BACKGROUND)
        assert await manager.handle_app_state_change(AppState.ACTIVE) is None
        assert server.requests == []

    @pytest.mark.asyncio
    async def test_update_user(self, server, manager):
        """Test partial profile updates are merged."""
        server.add("POST", "/login", LOGIN_OK)
        await manager.login("asha@example.com", "secret")

        manager.update_user(mobile="+91 98450 00000")

        assert manager.user.mobile == "+91 98450 00000"
        assert manager.user.name == "Asha"

    @pytest.mark.asyncio
    async def test_update_user_invalid_keeps_previous(self, server, manager):
        """Test an update the user model rejects leaves the held user unchanged."""
        server.add("POST", "/login", LOGIN_OK)
        await manager.login("asha@example.com", "secret")

        manager.update_user(id=None, name="Broken")

        assert manager.user.id == 1
        assert manager.user.name == "Asha"


class TestBackgroundValidation:
    """Tests for the validation timer."""

    @pytest.fixture
    def manager(self, api_client, token_storage, session_settings):
        settings = session_settings.model_copy(update={"check_interval_seconds": 0.05})
        return SessionManager(
            auth_service=AuthService(api_client),
            token_storage=token_storage,
            notifier=lambda title, message: None,
            settings=settings,
        )

    @pytest.mark.asyncio
    async def test_timer_runs_while_authenticated(self, server, manager):
        """Test the timer validates immediately and then periodically."""
        server.add("POST", "/login", LOGIN_OK)
        server.add("POST", "/logout", (200, {"success": True}))
        server.add("GET", "/validate-session", VALID)

        await manager.login("asha@example.com", "secret")
        assert manager.is_validating is True

        await asyncio.sleep(0.13)
        assert len(server.calls("GET", "/validate-session")) >= 2

        await manager.logout(show_message=False)
        assert manager.is_validating is False
        await asyncio.sleep(0.01)
        count = len(server.calls("GET", "/validate-session"))
        await asyncio.sleep(0.1)
        assert len(server.calls("GET", "/validate-session")) == count

    @pytest.mark.asyncio
    async def test_timer_forces_logout(self, server, manager, token_storage):
        """Test the timer ends a revoked session."""
        server.add("POST", "/login", LOGIN_OK)
        server.add("GET", "/validate-session", UNAUTHORIZED)

        await manager.login("asha@example.com", "secret")
        await asyncio.sleep(0.02)

        assert manager.session_expired is True
        assert manager.is_authenticated is False
        assert manager.is_validating is False
        assert await token_storage.get_token() is None
        await manager.aclose()
