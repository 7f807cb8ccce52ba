"""
Transaction and Reconciliation Models

These models define the shapes flowing through bank reconciliation:
1. Transactions already recorded against an account (server data)
2. Bank statement rows being reconciled (working data, UI memory only)
3. Results of reconciliation operations

DESIGN DECISION: Money is held as Decimal. Server JSON carries floats,
so amounts are converted leniently on the way in and back to float only
when building request payloads.
"""

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from acca_client.models.api import ValidationIssue


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """Transaction types known to the server."""
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"
    ASSET = "asset"
    LIABILITY = "liability"


# Types a bank statement row can be saved as
RECONCILE_TYPES = frozenset({
    TransactionType.INCOME,
    TransactionType.EXPENSE,
    TransactionType.TRANSFER,
})


class ReconcileState(str, Enum):
    """
    Reconciliation session states.

    EMPTY -> UPLOADED <-> EDITING -> (SAVING) -> EMPTY | UPLOADED
    """
    EMPTY = "empty"
    UPLOADED = "uploaded"
    EDITING = "editing"
    SAVING = "saving"


def safe_decimal(value: Any) -> Decimal:
    """Convert a server/CSV amount to Decimal, falling back to zero."""
    if value is None or value == "" or isinstance(value, bool):
        return Decimal("0")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).replace(",", "").strip())
        except (InvalidOperation, TypeError, ValueError):
            return Decimal("0")
    # NaN and Infinity parse as Decimals but are not amounts
    if not result.is_finite():
        return Decimal("0")
    return result


def optional_int(value: Any) -> Optional[int]:
    """Convert a server id to int, or None if it is not one."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


# =============================================================================
# SERVER DATA
# =============================================================================

class Transaction(BaseModel):
    """
    A transaction already recorded on the server.

    Parsed leniently: the server adds relations (category, account,
    expense_categories) that reconciliation never reads.

    CRITICAL: Only date, merchant and amount take part in matching. A
    malformed id or reference field degrades to None so that the record
    stays a match candidate instead of being dropped.
    """
    model_config = ConfigDict(extra="ignore")

    id: Optional[int] = None
    type: Optional[str] = None
    amount: Decimal = Decimal("0")
    merchant_name: Optional[str] = None
    description: Optional[str] = None
    date: str = ""
    category_id: Optional[int] = None
    account_id: Optional[int] = None
    payment_method: Optional[int] = None
    notes: Optional[str] = None

    @field_validator('amount', mode='before')
    @classmethod
    def coerce_amount(cls, v: Any) -> Decimal:
        return safe_decimal(v)

    @field_validator('id', 'category_id', 'account_id', 'payment_method', mode='before')
    @classmethod
    def coerce_reference(cls, v: Any) -> Optional[int]:
        return optional_int(v)

    @field_validator('type', 'merchant_name', 'description', 'notes', mode='before')
    @classmethod
    def coerce_text(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)

    @field_validator('date', mode='before')
    @classmethod
    def coerce_date(cls, v: Any) -> str:
        return "" if v is None else str(v)


class Category(BaseModel):
    """A transaction category (categories are scoped to a type)."""
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    type: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None


# =============================================================================
# RECONCILIATION WORKING DATA
# =============================================================================

# Fields the user may edit on a statement row
EDITABLE_FIELDS = frozenset({
    "date",
    "merchant_name",
    "description",
    "amount",
    "type",
    "category_id",
    "notes",
})


class ReconcileTransaction(BaseModel):
    """
    One bank statement row in the reconciliation working list.

    CRITICAL: A row is either matched (has matched_data) or unmatched.
    Unmatched rows need a category before saving, except transfers.
    """
    model_config = ConfigDict(validate_assignment=True, str_strip_whitespace=True)

    date: str = ""
    merchant_name: str = ""
    description: str = ""
    amount: Decimal = Decimal("0")
    type: TransactionType = TransactionType.EXPENSE
    category_id: Optional[int] = None
    notes: str = ""

    is_matched: bool = False
    matched_data: Optional[Transaction] = None

    @field_validator('amount', mode='before')
    @classmethod
    def coerce_amount(cls, v: Any) -> Decimal:
        return safe_decimal(v)

    @field_validator('type')
    @classmethod
    def reconcilable_type(cls, v: TransactionType) -> TransactionType:
        if v not in RECONCILE_TYPES:
            raise ValueError(f"Statement rows cannot be saved as '{v.value}'")
        return v

    @model_validator(mode='after')
    def match_consistency(self) -> 'ReconcileTransaction':
        if self.is_matched != (self.matched_data is not None):
            raise ValueError("matched_data must be present iff is_matched")
        return self

    def to_create_payload(self, account_id: int) -> dict[str, Any]:
        """Body of a transaction-creation request for this row."""
        return {
            "merchant_name": self.merchant_name,
            "description": self.description or self.merchant_name,
            "amount": float(self.amount),
            "type": self.type.value,
            "date": self.date,
            "category_id": self.category_id,
            "payment_method": account_id,
            "notes": self.notes,
        }


# =============================================================================
# RESULTS
# =============================================================================

class OperationResult(BaseModel):
    """Outcome of a reconciliation save/skip/clear operation."""

    success: bool
    message: str = ""
    issues: list[ValidationIssue] = Field(default_factory=list)
    saved_count: int = 0

    @property
    def has_issues(self) -> bool:
        return len(self.issues) > 0


class ProcessResult(BaseModel):
    """Outcome of processing one bank statement file."""

    success: bool
    message: str = ""
    processed: int = 0
    matched: int = 0
    unmatched: int = 0


class ReconcileSummary(BaseModel):
    """Counts and totals shown above the reconciliation list."""

    matched_count: int = 0
    unmatched_count: int = 0
    matched_total: Decimal = Decimal("0")
    unmatched_total: Decimal = Decimal("0")

    @property
    def total_count(self) -> int:
        return self.matched_count + self.unmatched_count
