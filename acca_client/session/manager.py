"""
Session Manager

Owns the authenticated/unauthenticated state of the client: the bearer
token, the user snapshot, and detection of server-side invalidation
(e.g. an admin revoking the session) while the app is idle.

DESIGN DECISION: Authentication is optimistic-then-verify.
- Fast phase: a persisted token is enough to show the authenticated shell.
- Slow phase: the server confirms it. The slow phase may only DOWNGRADE
  (401/403 ends the session); it never upgrades anything.

FAILURE SEMANTICS:
- Network errors never log the user out.
- Only 401/403 from the profile fetch or session validation do.
- There is no backoff; the validation interval is the retry mechanism.
"""

import asyncio
from typing import Callable, Optional

import structlog
from pydantic import ValidationError

from acca_client.audit import AuditLogger
from acca_client.config import SessionSettings, get_settings
from acca_client.models.api import NETWORK_ERROR_MESSAGE, ApiResponse
from acca_client.models.auth import AppState, AuthResult, SessionState, User
from acca_client.services.auth import AuthService
from acca_client.services.storage import TokenStorageInterface


logger = structlog.get_logger(__name__)

# (title, message) -> None; the host shell shows it to the user
Notifier = Callable[[str, str], None]

SESSION_EXPIRED_TITLE = "Session Expired"
LOGGED_OUT_TITLE = "Logged Out"
LOGGED_OUT_MESSAGE = "You have been logged out."
TWO_FACTOR_MESSAGE = "Two-factor authentication required"
PASSWORD_MISMATCH_MESSAGE = "Passwords do not match"

_BACKGROUND_STATES = (AppState.INACTIVE, AppState.BACKGROUND)


class SessionManager:
    """
    Client session lifecycle.

    One instance is constructed per running app and handed to the UI
    shell. It is not a module-level singleton.

    Usage:
        manager = SessionManager(auth_service, token_storage)
        await manager.check_auth_status()
        if not manager.is_authenticated:
            result = await manager.login(email, password)
    """

    def __init__(
        self,
        auth_service: AuthService,
        token_storage: TokenStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        notifier: Optional[Notifier] = None,
        settings: Optional[SessionSettings] = None,
        auto_validate: bool = True,
    ):
        """
        Args:
            auth_service: Auth endpoints
            token_storage: Where the bearer token is persisted
            audit_logger: Audit sink; local-only logging if None
            notifier: Callback used to surface messages to the user
            settings: Session settings; loaded from environment if None
            auto_validate: Run the background validation timer while
                           authenticated
        """
        self._auth = auth_service
        self._token_storage = token_storage
        self._audit = audit_logger or AuditLogger()
        self._notifier = notifier
        self._settings = settings or get_settings().session
        self._auto_validate = auto_validate

        self._state = SessionState()
        self._app_state = AppState.ACTIVE
        self._validation_task: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Task] = None

    # -------------------------------------------------------------------
    # Read-only state
    # -------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        """Snapshot of the current session state."""
        return self._state.model_copy()

    @property
    def is_authenticated(self) -> bool:
        return self._state.is_authenticated

    @property
    def session_expired(self) -> bool:
        return self._state.session_expired

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def user(self) -> Optional[User]:
        return self._state.user

    @property
    def token(self) -> Optional[str]:
        return self._state.token

    @property
    def is_validating(self) -> bool:
        """True while the background validation timer is running."""
        return self._validation_task is not None and not self._validation_task.done()

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------

    def _enter_authenticated(self, token: str, user: Optional[User]) -> None:
        self._state.token = token
        self._state.user = user
        self._state.loading = False
        self._state.session_expired = False
        self._start_session_validation()

    def _leave_authenticated(self) -> None:
        self._stop_session_validation()
        self._state.token = None
        self._state.user = None
        self._state.loading = False

    def _notify(self, title: str, message: str) -> None:
        if self._notifier is not None:
            self._notifier(title, message)
        else:
            logger.info("session_notification", title=title, message=message)

    # -------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------

    async def check_auth_status(self) -> None:
        """
        Restore the session at app start.

        A persisted token marks the session authenticated immediately;
        the profile fetch that follows can only end it (401/403).
        """
        saved_token = await self._token_storage.get_token()

        if not saved_token:
            self._state.token = None
            self._state.user = None
            self._state.loading = False
            return

        self._enter_authenticated(saved_token, self._state.user)
        await self._audit.log_session_restored()

        result = await self._auth.get_profile()

        if self._state.token != saved_token:
            # Logged out or re-authenticated while the profile was loading
            return

        if result.success:
            user = User.from_payload(result.extract("user"))
            if user is not None:
                self._state.user = user
        elif result.is_auth_failure:
            await self._token_storage.delete_token()
            self._leave_authenticated()
            await self._audit.log_session_invalidated(status=result.status)
        # Any other failure: verification failed, authentication did not

    async def login(
        self,
        email: str,
        password: str,
        two_factor_code: Optional[str] = None,
    ) -> AuthResult:
        """
        Log in with credentials.

        Returns:
            AuthResult. `requires_two_factor` is set when the server wants
            a code; call again with `two_factor_code`.
        """
        result = await self._auth.login(email, password, two_factor_code)
        payload = result.payload if isinstance(result.payload, dict) else {}

        if result.success and payload.get("requires_two_factor"):
            await self._audit.log_two_factor_required()
            return AuthResult(
                success=False,
                requires_two_factor=True,
                message=TWO_FACTOR_MESSAGE,
            )

        token = payload.get("access_token")
        if result.success and result.body_success and token:
            user = User.from_payload(payload.get("user"))
            await self._token_storage.set_token(token)
            self._enter_authenticated(token, user)
            await self._audit.log_login_succeeded(user_id=user.id if user else None)
            return AuthResult(success=True, message=result.message or "Login successful!")

        return await self._auth_failure(result, "login", "Login failed")

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        confirm_password: str,
    ) -> AuthResult:
        """
        Create an account.

        The server may or may not log the new user in; the session is
        authenticated only if it returns a token.
        """
        if password != confirm_password:
            return AuthResult(
                success=False,
                message=PASSWORD_MISMATCH_MESSAGE,
                errors={"confirm_password": [PASSWORD_MISMATCH_MESSAGE]},
            )

        result = await self._auth.register(name, email, password, confirm_password)
        payload = result.payload if isinstance(result.payload, dict) else {}

        if result.success and result.body_success:
            token = payload.get("access_token") or payload.get("token")
            user = User.from_payload(payload.get("user"))
            if token:
                await self._token_storage.set_token(token)
                self._enter_authenticated(token, user)
            await self._audit.log_registered(
                user_id=user.id if user else None,
                authenticated=bool(token),
            )
            return AuthResult(
                success=True,
                message=result.message or "Registration successful!",
            )

        return await self._auth_failure(result, "registration", "Registration failed")

    async def _auth_failure(
        self,
        result: ApiResponse,
        operation: str,
        default_message: str,
    ) -> AuthResult:
        if result.is_network_error:
            await self._audit.log_auth_failed(
                operation=operation,
                reason=result.error_message,
                status=None,
            )
            return AuthResult(success=False, message=NETWORK_ERROR_MESSAGE)

        message = result.message or default_message
        await self._audit.log_auth_failed(
            operation=operation,
            reason=message,
            status=result.status,
        )
        return AuthResult(success=False, message=message, errors=result.errors)

    async def logout(self, show_message: bool = True) -> None:
        """
        Log out.

        The server call is best effort; local state is cleared no matter
        how it ends.
        """
        self._stop_session_validation()
        acknowledged = False
        try:
            token = self._state.token or await self._token_storage.get_token()
            if token:
                result = await self._auth.logout(token=token)
                acknowledged = result.success
        except Exception as e:
            logger.warning("logout_request_failed", error=str(e))
        finally:
            await self._token_storage.delete_token()
            self._leave_authenticated()
            self._state.session_expired = False

        await self._audit.log_logged_out(server_acknowledged=acknowledged)
        if show_message:
            self._notify(LOGGED_OUT_TITLE, LOGGED_OUT_MESSAGE)

    async def force_logout(self, message: Optional[str] = None) -> None:
        """
        End the session because the server no longer honours it.

        This is the only path that sets `session_expired`.
        """
        message = message or self._settings.expired_message
        self._stop_session_validation()
        await self._token_storage.delete_token()
        self._leave_authenticated()
        self._state.session_expired = True

        await self._audit.log_forced_logout(message=message)
        self._notify(SESSION_EXPIRED_TITLE, message)

    async def validate_session(self) -> bool:
        """
        Ask the server whether the session is still valid.

        Concurrent callers (timer tick and foreground event) share one
        in-flight request.

        Returns:
            False if there is no token or the server rejected it (401/403);
            True otherwise, including on network failure.
        """
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.ensure_future(self._validate_session())
        return await asyncio.shield(self._inflight)

    async def _validate_session(self) -> bool:
        saved_token = await self._token_storage.get_token()
        if not saved_token:
            return False

        result = await self._auth.validate_session()

        if result.success:
            payload = result.payload
            if isinstance(payload, dict) and payload.get("valid"):
                user = User.from_payload(payload.get("user"))
                if user is not None and self._state.token == saved_token:
                    self._state.user = user
                return True

        if result.is_auth_failure:
            if await self._token_storage.get_token() != saved_token:
                # A different session was started while this check ran
                return False
            await self.force_logout()
            return False

        if result.is_network_error:
            logger.debug("session_validation_unreachable", error=result.error)
        return True

    def update_user(self, **changes) -> None:
        """
        Merge partial profile data into the held user.

        An update the User model rejects is logged and the previous user
        is kept.
        """
        if self._state.user is None:
            return
        try:
            self._state.user = self._state.user.merged(changes)
        except ValidationError as e:
            logger.warning(
                "user_update_rejected",
                fields=sorted(changes),
                errors=e.error_count(),
            )

    # -------------------------------------------------------------------
    # Background validation
    # -------------------------------------------------------------------

    def _start_session_validation(self) -> None:
        if not self._auto_validate:
            return
        self._stop_session_validation()
        self._validation_task = asyncio.get_running_loop().create_task(
            self._validation_loop()
        )

    def _stop_session_validation(self) -> None:
        task, self._validation_task = self._validation_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _validation_loop(self) -> None:
        """Validate now, then every check interval, while authenticated."""
        interval = self._settings.check_interval_seconds
        while self._state.is_authenticated:
            await self.validate_session()
            await asyncio.sleep(interval)

    async def handle_app_state_change(self, next_state: AppState) -> Optional[bool]:
        """
        Feed host lifecycle changes in.

        Returning to the foreground while authenticated triggers an
        immediate validation, since timers may not run in the background.

        Returns:
            The validation outcome if one was triggered, else None
        """
        previous, self._app_state = self._app_state, AppState(next_state)
        if (
            previous in _BACKGROUND_STATES
            and self._app_state == AppState.ACTIVE
            and self.is_authenticated
        ):
            return await self.validate_session()
        return None

    async def aclose(self) -> None:
        """Stop background work without touching the stored token."""
        self._stop_session_validation()
        inflight, self._inflight = self._inflight, None
        if inflight is not None and not inflight.done():
            inflight.cancel()
