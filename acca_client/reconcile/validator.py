"""
Reconciliation Row Validation

DESIGN DECISION: A row is checked before ANY request is sent. A row that
fails stays in the working list untouched; validation never fills in or
corrects values, it only reports them for the user to fix.

Required to save a statement row:
- merchant_name
- a non-zero amount
- date
- type
- category_id, unless the row is a transfer
"""

from typing import Iterable, Optional

from acca_client.models.api import ValidationIssue
from acca_client.models.transaction import ReconcileTransaction, TransactionType


def validate_row(row: ReconcileTransaction, row_index: Optional[int] = None) -> list[ValidationIssue]:
    """
    Check one row against the save constraints.

    Returns: list of issues (empty if the row can be saved)
    """
    issues = []

    if not row.merchant_name:
        issues.append(ValidationIssue(
            field="merchant_name",
            issue_type="missing",
            message="Merchant name is required",
            row_index=row_index,
        ))

    if not row.amount:
        issues.append(ValidationIssue(
            field="amount",
            issue_type="invalid_value",
            message="Amount must not be zero",
            row_index=row_index,
        ))

    if not row.date:
        issues.append(ValidationIssue(
            field="date",
            issue_type="missing",
            message="Date is required",
            row_index=row_index,
        ))

    if row.type is None:
        issues.append(ValidationIssue(
            field="type",
            issue_type="missing",
            message="Transaction type is required",
            row_index=row_index,
        ))
    elif row.type != TransactionType.TRANSFER and row.category_id is None:
        issues.append(ValidationIssue(
            field="category_id",
            issue_type="missing",
            message="Please select a category",
            row_index=row_index,
        ))

    return issues


def validate_rows(rows: Iterable[tuple[int, ReconcileTransaction]]) -> list[ValidationIssue]:
    """Check (index, row) pairs, collecting every issue found."""
    issues = []
    for index, row in rows:
        issues.extend(validate_row(row, row_index=index))
    return issues
