"""Bank reconciliation package."""

from acca_client.reconcile.matcher import (
    date_key,
    find_match,
    is_match,
    match_rows,
    normalize_statement_row,
)
from acca_client.reconcile.session import (
    ConfirmCallback,
    ReconciliationError,
    ReconciliationSession,
)
from acca_client.reconcile.validator import validate_row, validate_rows

__all__ = [
    # Matching
    "date_key",
    "find_match",
    "is_match",
    "match_rows",
    "normalize_statement_row",
    # Validation
    "validate_row",
    "validate_rows",
    # Working list
    "ConfirmCallback",
    "ReconciliationError",
    "ReconciliationSession",
]
