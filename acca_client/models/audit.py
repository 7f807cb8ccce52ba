"""
Audit Models for the ACCA client core

Every significant session and reconciliation action is recorded.
This provides:
1. Traceability of logins, logouts and forced logouts
2. Debugging information when the server rejects a save
3. A record of what was committed during reconciliation

DESIGN DECISION: Audit events never carry credentials. Tokens,
passwords and two-factor codes are not accepted by any builder.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Session lifecycle
    LOGIN_SUCCEEDED = "login_succeeded"
    AUTH_FAILED = "auth_failed"
    TWO_FACTOR_REQUIRED = "two_factor_required"
    REGISTERED = "registered"
    LOGGED_OUT = "logged_out"
    SESSION_RESTORED = "session_restored"
    SESSION_INVALIDATED = "session_invalidated"
    FORCED_LOGOUT = "forced_logout"

    # Reconciliation
    STATEMENT_PROCESSED = "statement_processed"
    TRANSACTION_SAVED = "transaction_saved"
    BULK_SAVED = "bulk_saved"
    SAVE_FAILED = "save_failed"
    ROW_SKIPPED = "row_skipped"
    RECONCILE_CLEARED = "reconcile_cleared"
    VALIDATION_FAILED = "validation_failed"

    # System events
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'session', 'account')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one reconciliation session)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.login_succeeded(user_id=7)
        event = AuditEventBuilder.row_skipped(account_id, matched=True, correlation_id)
    """

    @staticmethod
    def login_succeeded(user_id: Optional[int]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGIN_SUCCEEDED,
            entity_type="user",
            entity_id=str(user_id) if user_id is not None else None,
            description="User logged in",
            is_user_action=True,
        )

    @staticmethod
    def auth_failed(operation: str, reason: str, status: Optional[int]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTH_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="session",
            description=f"{operation.capitalize()} failed",
            details={"operation": operation, "status": status},
            error_message=reason,
            is_user_action=True,
        )

    @staticmethod
    def two_factor_required() -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TWO_FACTOR_REQUIRED,
            entity_type="session",
            description="Login paused for two-factor code",
            is_user_action=True,
        )

    @staticmethod
    def registered(user_id: Optional[int], authenticated: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REGISTERED,
            entity_type="user",
            entity_id=str(user_id) if user_id is not None else None,
            description="User registered",
            details={"authenticated": authenticated},
            is_user_action=True,
        )

    @staticmethod
    def logged_out(server_acknowledged: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGGED_OUT,
            entity_type="session",
            description="User logged out",
            details={"server_acknowledged": server_acknowledged},
            is_user_action=True,
        )

    @staticmethod
    def session_restored() -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_RESTORED,
            entity_type="session",
            description="Session restored from stored token",
        )

    @staticmethod
    def session_invalidated(status: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_INVALIDATED,
            severity=AuditSeverity.WARNING,
            entity_type="session",
            description=f"Stored token rejected by server ({status})",
            details={"status": status},
        )

    @staticmethod
    def forced_logout(message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FORCED_LOGOUT,
            severity=AuditSeverity.WARNING,
            entity_type="session",
            description="Session ended by server",
            details={"message": message},
        )

    @staticmethod
    def statement_processed(
        account_id: int,
        filename: str,
        processed: int,
        matched: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATEMENT_PROCESSED,
            entity_type="account",
            entity_id=str(account_id),
            correlation_id=correlation_id,
            description=f"Statement processed: {processed} rows, {matched} matched",
            details={
                "filename": filename,
                "processed": processed,
                "matched": matched,
                "unmatched": processed - matched,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_saved(
        account_id: int,
        merchant_name: str,
        amount: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_SAVED,
            entity_type="account",
            entity_id=str(account_id),
            correlation_id=correlation_id,
            description=f"Transaction saved: {merchant_name} - {amount}",
            details={"merchant_name": merchant_name, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def bulk_saved(
        account_id: int,
        count: int,
        discarded_matched: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BULK_SAVED,
            entity_type="account",
            entity_id=str(account_id),
            correlation_id=correlation_id,
            description=f"{count} transactions saved",
            details={"count": count, "discarded_matched": discarded_matched},
            is_user_action=True,
        )

    @staticmethod
    def save_failed(
        account_id: int,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="account",
            entity_id=str(account_id),
            correlation_id=correlation_id,
            description="Server rejected reconciliation save",
            error_message=error_message,
        )

    @staticmethod
    def row_skipped(
        account_id: int,
        matched: bool,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ROW_SKIPPED,
            entity_type="account",
            entity_id=str(account_id),
            correlation_id=correlation_id,
            description="Matched row confirmed" if matched else "Unmatched row skipped",
            details={"matched": matched},
            is_user_action=True,
        )

    @staticmethod
    def reconcile_cleared(
        account_id: int,
        discarded: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECONCILE_CLEARED,
            entity_type="account",
            entity_id=str(account_id),
            correlation_id=correlation_id,
            description=f"Reconciliation cleared ({discarded} rows discarded)",
            details={"discarded": discarded},
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        account_id: int,
        issues: list[dict],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="account",
            entity_id=str(account_id),
            correlation_id=correlation_id,
            description=f"Validation failed with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def external_service_error(
        endpoint: str,
        error_message: str,
        status: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"API request failed: {endpoint}",
            error_message=error_message,
            details={"endpoint": endpoint, "status": status},
            correlation_id=correlation_id,
        )
