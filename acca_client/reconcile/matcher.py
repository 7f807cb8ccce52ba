"""
Reconciliation Matcher

Partitions bank statement rows into matched / unmatched against the
transactions already recorded on the account.

A row matches an existing transaction when ALL of these hold:
1. Same calendar date (time of day ignored, no timezone conversion)
2. Amounts differ by strictly less than the tolerance
3. Merchant names are equal ignoring case

DESIGN DECISION: First match wins and candidates are not consumed, so
one existing transaction can match several statement rows. This mirrors
how the server-side data has always been reconciled.
"""

from decimal import Decimal
from typing import Any, Iterable, Optional

from acca_client.models.transaction import (
    RECONCILE_TYPES,
    ReconcileTransaction,
    Transaction,
    TransactionType,
    safe_decimal,
)


DEFAULT_TOLERANCE = Decimal("0.01")


def date_key(value: Optional[str]) -> str:
    """
    Calendar-date portion of a date or datetime string.

    "2024-03-01T08:00:00Z" and "2024-03-01 08:00:00" both give "2024-03-01".
    """
    if not value:
        return ""
    text = str(value).strip()
    for separator in ("T", " "):
        text = text.split(separator, 1)[0]
    return text


def _merchant_key(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def is_match(
    row: ReconcileTransaction,
    existing: Transaction,
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> bool:
    """Whether a statement row is the same money movement as `existing`."""
    row_date = date_key(row.date)
    row_merchant = _merchant_key(row.merchant_name)
    # Blank rows would otherwise match every blank server record
    if not row_date or not row_merchant:
        return False

    if row_date != date_key(existing.date):
        return False
    if abs(row.amount - existing.amount) >= tolerance:
        return False
    return row_merchant == _merchant_key(existing.merchant_name)


def find_match(
    row: ReconcileTransaction,
    existing: Iterable[Transaction],
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> Optional[Transaction]:
    """First existing transaction matching `row`, or None."""
    for candidate in existing:
        if is_match(row, candidate, tolerance):
            return candidate
    return None


def _row_type(value: Any) -> TransactionType:
    try:
        row_type = TransactionType(str(value).strip().lower())
    except ValueError:
        return TransactionType.EXPENSE
    if row_type not in RECONCILE_TYPES:
        return TransactionType.EXPENSE
    return row_type


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def normalize_statement_row(raw: dict[str, Any]) -> ReconcileTransaction:
    """
    Build an unmatched working row from one parsed statement row.

    Bank exports name their columns differently, so the merchant falls
    back to description then payee, and notes fall back to reference.
    """
    merchant = raw.get("merchant_name") or raw.get("description") or raw.get("payee")
    notes = raw.get("notes") or raw.get("reference")
    return ReconcileTransaction(
        date=_text(raw.get("date")),
        merchant_name=_text(merchant),
        description=_text(raw.get("description")),
        amount=safe_decimal(raw.get("amount")),
        type=_row_type(raw.get("type")),
        notes=_text(notes),
    )


def match_rows(
    rows: Iterable[ReconcileTransaction],
    existing: list[Transaction],
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> list[ReconcileTransaction]:
    """
    Mark each row matched or unmatched.

    Returns new row objects; the input rows are left untouched.
    """
    result = []
    for row in rows:
        match = find_match(row, existing, tolerance)
        if match is None:
            result.append(row.model_copy(update={
                "is_matched": False,
                "matched_data": None,
            }))
        else:
            result.append(row.model_copy(update={
                "is_matched": True,
                "matched_data": match,
            }))
    return result
