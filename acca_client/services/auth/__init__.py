"""Auth services package."""

from acca_client.services.auth.service import AuthService

__all__ = ["AuthService"]
