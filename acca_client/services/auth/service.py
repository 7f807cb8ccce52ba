"""
Auth Service

Thin wrappers over the authentication, profile, two-factor and device
session endpoints. Every method returns the raw ApiResponse; state
changes (storing tokens, clearing sessions) belong to SessionManager.

SECURITY: Passwords and two-factor codes are sent in request bodies only
and never logged.
"""

from typing import Any, Optional

from pydantic import ValidationError

from acca_client.models.api import ApiResponse
from acca_client.models.auth import DeviceSession
from acca_client.services.api import ApiClient, Endpoints


class AuthService:
    """Authentication endpoints of the ACCA API."""

    def __init__(self, api: ApiClient):
        self._api = api

    async def login(
        self,
        email: str,
        password: str,
        two_factor_code: Optional[str] = None,
    ) -> ApiResponse:
        body = {"email": email, "password": password}
        if two_factor_code:
            body["two_factor_code"] = two_factor_code
        return await self._api.post(Endpoints.LOGIN, json=body, authenticated=False)

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        confirm_password: str,
    ) -> ApiResponse:
        return await self._api.post(
            Endpoints.REGISTER,
            json={
                "name": name,
                "email": email,
                "password": password,
                "confirm_password": confirm_password,
            },
            authenticated=False,
        )

    async def logout(self, token: Optional[str] = None) -> ApiResponse:
        return await self._api.post(Endpoints.LOGOUT, token=token)

    async def get_profile(self) -> ApiResponse:
        return await self._api.get(Endpoints.PROFILE)

    async def get_user(self) -> ApiResponse:
        return await self._api.get(Endpoints.USER)

    async def update_profile(self, profile: dict[str, Any]) -> ApiResponse:
        return await self._api.put(Endpoints.PROFILE, json=profile)

    async def validate_session(self) -> ApiResponse:
        """Lightweight check that the server still honours our token."""
        return await self._api.get(Endpoints.VALIDATE_SESSION)

    # -------------------------------------------------------------------
    # Passwords
    # -------------------------------------------------------------------

    async def change_password(
        self,
        current_password: str,
        password: str,
        password_confirmation: str,
    ) -> ApiResponse:
        return await self._api.post(
            Endpoints.CHANGE_PASSWORD,
            json={
                "current_password": current_password,
                "password": password,
                "password_confirmation": password_confirmation,
            },
        )

    async def forgot_password(self, email: str) -> ApiResponse:
        return await self._api.post(
            Endpoints.FORGOT_PASSWORD,
            json={"email": email},
            authenticated=False,
        )

    async def reset_password(
        self,
        email: str,
        reset_token: str,
        password: str,
        password_confirmation: str,
    ) -> ApiResponse:
        return await self._api.post(
            Endpoints.RESET_PASSWORD,
            json={
                "email": email,
                "token": reset_token,
                "password": password,
                "password_confirmation": password_confirmation,
            },
            authenticated=False,
        )

    # -------------------------------------------------------------------
    # Two-factor authentication
    # -------------------------------------------------------------------

    async def get_two_factor_status(self) -> ApiResponse:
        return await self._api.get(Endpoints.TWO_FACTOR_STATUS)

    async def setup_two_factor(self) -> ApiResponse:
        """Ask the server for a new secret and QR code."""
        return await self._api.post(Endpoints.TWO_FACTOR_SETUP)

    async def verify_two_factor(self, code: str) -> ApiResponse:
        return await self._api.post(Endpoints.TWO_FACTOR_VERIFY, json={"code": code})

    async def disable_two_factor(self, password: str) -> ApiResponse:
        return await self._api.post(
            Endpoints.TWO_FACTOR_DISABLE,
            json={"password": password},
        )

    # -------------------------------------------------------------------
    # Device sessions
    # -------------------------------------------------------------------

    async def get_sessions(self) -> list[DeviceSession]:
        """
        List the user's active sessions.

        Returns an empty list if the request fails; the sessions screen
        shows "no active sessions" in that case.
        """
        result = await self._api.get(Endpoints.SESSIONS)
        if not result.success:
            return []
        sessions = result.extract("sessions")
        if not isinstance(sessions, list):
            return []
        parsed = []
        for item in sessions:
            try:
                parsed.append(DeviceSession.model_validate(item))
            except ValidationError:
                # Skip malformed entries
                continue
        return parsed

    async def revoke_session(self, session_id: int) -> ApiResponse:
        return await self._api.delete(Endpoints.session(session_id))

    async def revoke_other_sessions(self) -> ApiResponse:
        return await self._api.post(Endpoints.SESSIONS_REVOKE_OTHERS)
