"""
Data Models Package

This package contains all Pydantic models used by the ACCA client core.
All data crossing the API boundary is parsed into these schemas.
"""

from acca_client.models.api import (
    ApiResponse,
    ValidationIssue,
    unwrap_payload,
)
from acca_client.models.auth import (
    AppState,
    AuthResult,
    DeviceSession,
    SessionState,
    User,
)
from acca_client.models.transaction import (
    EDITABLE_FIELDS,
    Category,
    OperationResult,
    ProcessResult,
    ReconcileState,
    ReconcileSummary,
    ReconcileTransaction,
    Transaction,
    TransactionType,
    safe_decimal,
)
from acca_client.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # API envelope
    "ApiResponse",
    "ValidationIssue",
    "unwrap_payload",
    # Auth models
    "AppState",
    "AuthResult",
    "DeviceSession",
    "SessionState",
    "User",
    # Transaction models
    "EDITABLE_FIELDS",
    "Category",
    "OperationResult",
    "ProcessResult",
    "ReconcileState",
    "ReconcileSummary",
    "ReconcileTransaction",
    "Transaction",
    "TransactionType",
    "safe_decimal",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
