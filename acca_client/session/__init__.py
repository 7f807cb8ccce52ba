"""Session management package."""

from acca_client.session.manager import (
    SESSION_EXPIRED_TITLE,
    Notifier,
    SessionManager,
)

__all__ = ["SESSION_EXPIRED_TITLE", "Notifier", "SessionManager"]
