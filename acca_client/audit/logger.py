"""
Audit Logger

DESIGN DECISION: Every significant session and reconciliation action is
logged. This provides:
1. Traceability of who was logged out, and why
2. Debugging capability when the server rejects a save
3. A local activity history the host shell can display

The audit logger:
- Is async so callers can await it inside their own flows
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from acca_client.models.audit import AuditEvent, AuditEventBuilder
from acca_client.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through the stdlib root logger at `level`."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
    )


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An optional AuditStorageInterface (for an activity history)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("acca_client.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value == "error":
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    # -------------------------------------------------------------------
    # Session lifecycle
    # -------------------------------------------------------------------

    async def log_login_succeeded(self, user_id: Optional[int]) -> None:
        await self.log(AuditEventBuilder.login_succeeded(user_id=user_id))

    async def log_auth_failed(
        self,
        operation: str,
        reason: str,
        status: Optional[int],
    ) -> None:
        await self.log(AuditEventBuilder.auth_failed(
            operation=operation,
            reason=reason,
            status=status,
        ))

    async def log_two_factor_required(self) -> None:
        await self.log(AuditEventBuilder.two_factor_required())

    async def log_registered(self, user_id: Optional[int], authenticated: bool) -> None:
        await self.log(AuditEventBuilder.registered(
            user_id=user_id,
            authenticated=authenticated,
        ))

    async def log_logged_out(self, server_acknowledged: bool) -> None:
        await self.log(AuditEventBuilder.logged_out(
            server_acknowledged=server_acknowledged,
        ))

    async def log_session_restored(self) -> None:
        await self.log(AuditEventBuilder.session_restored())

    async def log_session_invalidated(self, status: int) -> None:
        await self.log(AuditEventBuilder.session_invalidated(status=status))

    async def log_forced_logout(self, message: str) -> None:
        await self.log(AuditEventBuilder.forced_logout(message=message))

    # -------------------------------------------------------------------
    # Reconciliation
    # -------------------------------------------------------------------

    async def log_statement_processed(
        self,
        account_id: int,
        filename: str,
        processed: int,
        matched: int,
        correlation_id: UUID,
    ) -> None:
        """Log a bank statement that was parsed and matched."""
        event = AuditEventBuilder.statement_processed(
            account_id=account_id,
            filename=filename,
            processed=processed,
            matched=matched,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_saved(
        self,
        account_id: int,
        merchant_name: str,
        amount: str,
        correlation_id: UUID,
    ) -> None:
        """Log a single statement row committed as a transaction."""
        event = AuditEventBuilder.transaction_saved(
            account_id=account_id,
            merchant_name=merchant_name,
            amount=amount,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_bulk_saved(
        self,
        account_id: int,
        count: int,
        discarded_matched: int,
        correlation_id: UUID,
    ) -> None:
        """Log a bulk save of all unmatched rows."""
        event = AuditEventBuilder.bulk_saved(
            account_id=account_id,
            count=count,
            discarded_matched=discarded_matched,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_save_failed(
        self,
        account_id: int,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.save_failed(
            account_id=account_id,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_row_skipped(
        self,
        account_id: int,
        matched: bool,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.row_skipped(
            account_id=account_id,
            matched=matched,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_reconcile_cleared(
        self,
        account_id: int,
        discarded: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.reconcile_cleared(
            account_id=account_id,
            discarded=discarded,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        account_id: int,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        """Log a save blocked by local validation."""
        event = AuditEventBuilder.validation_failed(
            account_id=account_id,
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    # -------------------------------------------------------------------
    # Errors
    # -------------------------------------------------------------------

    async def log_external_service_error(
        self,
        endpoint: str,
        error_message: str,
        status: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a failed API request."""
        event = AuditEventBuilder.external_service_error(
            endpoint=endpoint,
            error_message=error_message,
            status=status,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user flow (e.g., one reconciliation
    session). Pass it through all subsequent operations.
    """
    return uuid4()
