"""
Reconciliation Session

Holds the working list of bank statement rows for one account and runs
the save workflow over it.

Flow:
1. Process → Upload statement, server parses it, rows are matched
2. Edit → User fixes merchant, amount, type, category... per row
3. Resolve → Each row is saved, confirmed (matched) or skipped
4. Bulk → Or every unmatched row is saved in one request

State machine:
    EMPTY -> UPLOADED <-> EDITING -> (SAVING) -> EMPTY | UPLOADED

DESIGN DECISION: Rows are validated locally before ANY request. A row
that fails validation or is rejected by the server stays in the list.
Matched/unmatched counters are derived from the list, never kept
separately, so they cannot drift.

CONCURRENCY: Rows are removed by identity after an awaited request, so
a skip that happened while the request was in flight cannot shift the
wrong row out of the list.
"""

from decimal import Decimal
from typing import Any, Callable, Optional

import structlog
from pydantic import ValidationError

from acca_client.audit import AuditLogger, create_correlation_id
from acca_client.config import ReconcileSettings, get_settings
from acca_client.models.transaction import (
    EDITABLE_FIELDS,
    Category,
    OperationResult,
    ProcessResult,
    ReconcileState,
    ReconcileSummary,
    ReconcileTransaction,
    Transaction,
)
from acca_client.reconcile.matcher import match_rows, normalize_statement_row
from acca_client.reconcile.validator import validate_row, validate_rows
from acca_client.services.api import Endpoints
from acca_client.services.finance import (
    AccountService,
    CategoryService,
    TransactionService,
)


logger = structlog.get_logger(__name__)

# (title, message) -> True to proceed
ConfirmCallback = Callable[[str, str], bool]

CLEAR_TITLE = "Clear All"
CLEAR_MESSAGE = "Are you sure you want to clear all reconciliation data?"
BULK_INVALID_MESSAGE = "Please fill in all required fields for all transactions"


class ReconciliationError(Exception):
    """Raised for calls that can never succeed (bad index, unknown field)."""
    pass


class ReconciliationSession:
    """
    Reconciliation working list for one account.

    Usage:
        session = ReconciliationSession(account_id, tx_service, acc_service, cat_service)
        result = await session.process_statement(csv_bytes, "march.csv")
        await session.update_field(0, "category_id", 12)
        await session.save_single(0)
    """

    def __init__(
        self,
        account_id: int,
        transaction_service: TransactionService,
        account_service: AccountService,
        category_service: CategoryService,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[ReconcileSettings] = None,
    ):
        self.account_id = account_id
        self._transactions = transaction_service
        self._accounts = account_service
        self._categories_service = category_service
        self._audit = audit_logger or AuditLogger()
        self._settings = settings or get_settings().reconcile

        self._rows: list[ReconcileTransaction] = []
        self._categories: list[Category] = []
        self._edited = False
        self._saves_in_flight = 0
        self.correlation_id = create_correlation_id()

    # -------------------------------------------------------------------
    # Read-only state
    # -------------------------------------------------------------------

    @property
    def rows(self) -> list[ReconcileTransaction]:
        return list(self._rows)

    @property
    def matched_count(self) -> int:
        return sum(1 for row in self._rows if row.is_matched)

    @property
    def unmatched_count(self) -> int:
        return sum(1 for row in self._rows if not row.is_matched)

    @property
    def categories(self) -> list[Category]:
        """Categories last loaded for the selected row type."""
        return list(self._categories)

    @property
    def state(self) -> ReconcileState:
        if self._saves_in_flight:
            return ReconcileState.SAVING
        if not self._rows:
            return ReconcileState.EMPTY
        if self._edited:
            return ReconcileState.EDITING
        return ReconcileState.UPLOADED

    def summary(self) -> ReconcileSummary:
        """Counts and amount totals for the list header."""
        matched = [row for row in self._rows if row.is_matched]
        unmatched = [row for row in self._rows if not row.is_matched]
        return ReconcileSummary(
            matched_count=len(matched),
            unmatched_count=len(unmatched),
            matched_total=sum((row.amount for row in matched), Decimal("0")),
            unmatched_total=sum((row.amount for row in unmatched), Decimal("0")),
        )

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------

    def _row_at(self, index: int) -> ReconcileTransaction:
        if not 0 <= index < len(self._rows):
            raise ReconciliationError(
                f"Row {index} does not exist ({len(self._rows)} rows)"
            )
        return self._rows[index]

    def _remove(self, rows: list[ReconcileTransaction]) -> None:
        doomed = {id(row) for row in rows}
        self._rows = [row for row in self._rows if id(row) not in doomed]
        if not self._rows:
            self._edited = False

    async def load_categories(self, transaction_type: str) -> list[Category]:
        """
        Load categories for a transaction type.

        On failure the previously loaded list is kept.
        """
        categories = await self._categories_service.get_for_transaction(transaction_type)
        if categories is None:
            logger.warning(
                "categories_unavailable",
                account_id=self.account_id,
                transaction_type=transaction_type,
            )
        else:
            self._categories = categories
        return self.categories

    # -------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------

    async def process_statement(
        self,
        content: bytes,
        filename: str,
        mime_type: str = "text/csv",
        existing: Optional[list[Transaction]] = None,
    ) -> ProcessResult:
        """
        Upload a bank statement and match its rows.

        Args:
            content: Raw file bytes
            filename: Original file name
            mime_type: File MIME type
            existing: Account transactions to match against. Fetched from
                      the server when None.

        Returns:
            ProcessResult with processed/matched/unmatched counts
        """
        if len(content) > self._settings.max_upload_size_bytes:
            return ProcessResult(
                success=False,
                message=f"File exceeds {self._settings.max_upload_size_mb} MB limit",
            )

        result = await self._transactions.process_statement(content, filename, mime_type)
        if not result.success:
            await self._audit.log_external_service_error(
                endpoint=Endpoints.TRANSACTION_PROCESS_CSV,
                error_message=result.error_message,
                status=result.status,
                correlation_id=self.correlation_id,
            )
            return ProcessResult(success=False, message=result.error_message)

        payload = result.payload
        raw_rows = payload if isinstance(payload, list) else []
        rows = [normalize_statement_row(raw) for raw in raw_rows if isinstance(raw, dict)]

        if existing is None:
            existing = await self._accounts.get_transactions(self.account_id)
            if existing is None:
                return ProcessResult(
                    success=False,
                    message="Could not load account transactions to match against",
                )

        matched_rows = match_rows(rows, existing, self._settings.amount_tolerance)
        self._rows.extend(matched_rows)

        matched = sum(1 for row in matched_rows if row.is_matched)
        unmatched = len(matched_rows) - matched

        await self.load_categories(self._settings.default_type)
        await self._audit.log_statement_processed(
            account_id=self.account_id,
            filename=filename,
            processed=len(matched_rows),
            matched=matched,
            correlation_id=self.correlation_id,
        )

        return ProcessResult(
            success=True,
            message=(
                f"Processed {len(matched_rows)} transactions. "
                f"{matched} matched, {unmatched} unmatched."
            ),
            processed=len(matched_rows),
            matched=matched,
            unmatched=unmatched,
        )

    async def update_field(self, index: int, field: str, value: Any) -> ReconcileTransaction:
        """
        Edit one field of a row in place.

        Changing `type` clears the category and reloads categories for the
        new type.

        Raises:
            ReconciliationError: Unknown row, non-editable field or a value
                                 the field cannot hold
        """
        row = self._row_at(index)
        if field not in EDITABLE_FIELDS:
            raise ReconciliationError(f"Field '{field}' cannot be edited")

        try:
            setattr(row, field, value)
        except ValidationError as e:
            raise ReconciliationError(f"Invalid value for '{field}': {value!r}") from e

        self._edited = True

        if field == "type":
            row.category_id = None
            await self.load_categories(row.type.value)

        return row

    async def skip(self, index: int) -> OperationResult:
        """Remove a row without saving it (confirms a matched row)."""
        row = self._row_at(index)
        self._remove([row])
        await self._audit.log_row_skipped(
            account_id=self.account_id,
            matched=row.is_matched,
            correlation_id=self.correlation_id,
        )
        return OperationResult(
            success=True,
            message="Match confirmed" if row.is_matched else "Transaction skipped",
        )

    async def save_single(self, index: int) -> OperationResult:
        """
        Save one unmatched row as a transaction on this account.

        A matched row already exists on the server; it is confirmed
        (skipped) instead of saved twice.
        """
        row = self._row_at(index)
        if row.is_matched:
            return await self.skip(index)

        issues = validate_row(row, row_index=index)
        if issues:
            await self._audit.log_validation_failed(
                account_id=self.account_id,
                issues=[issue.model_dump() for issue in issues],
                correlation_id=self.correlation_id,
            )
            return OperationResult(success=False, message=issues[0].message, issues=issues)

        self._saves_in_flight += 1
        try:
            result = await self._transactions.bulk_create([
                row.to_create_payload(self.account_id)
            ])
        finally:
            self._saves_in_flight -= 1

        if not result.success:
            await self._audit.log_save_failed(
                account_id=self.account_id,
                error_message=result.error_message,
                correlation_id=self.correlation_id,
            )
            return OperationResult(success=False, message=result.error_message)

        self._remove([row])
        await self._audit.log_transaction_saved(
            account_id=self.account_id,
            merchant_name=row.merchant_name,
            amount=str(row.amount),
            correlation_id=self.correlation_id,
        )
        return OperationResult(success=True, message="Transaction saved", saved_count=1)

    async def save_all(self) -> OperationResult:
        """
        Save every unmatched row in one request.

        All-or-nothing: one invalid row aborts before any request. On
        success the whole list is cleared, matched rows included.
        """
        snapshot = list(self._rows)
        unmatched = [(i, row) for i, row in enumerate(snapshot) if not row.is_matched]
        discarded_matched = len(snapshot) - len(unmatched)

        if not unmatched:
            self._remove(snapshot)
            return OperationResult(success=True, message="No unmatched transactions to save")

        issues = validate_rows(unmatched)
        if issues:
            await self._audit.log_validation_failed(
                account_id=self.account_id,
                issues=[issue.model_dump() for issue in issues],
                correlation_id=self.correlation_id,
            )
            return OperationResult(success=False, message=BULK_INVALID_MESSAGE, issues=issues)

        payloads = [row.to_create_payload(self.account_id) for _, row in unmatched]

        self._saves_in_flight += 1
        try:
            result = await self._transactions.bulk_create(payloads)
        finally:
            self._saves_in_flight -= 1

        if not result.success:
            await self._audit.log_save_failed(
                account_id=self.account_id,
                error_message=result.error_message,
                correlation_id=self.correlation_id,
            )
            return OperationResult(success=False, message=result.error_message)

        self._remove(snapshot)
        await self._audit.log_bulk_saved(
            account_id=self.account_id,
            count=len(payloads),
            discarded_matched=discarded_matched,
            correlation_id=self.correlation_id,
        )
        return OperationResult(
            success=True,
            message=f"{len(payloads)} transactions saved",
            saved_count=len(payloads),
        )

    async def clear(self, confirm: ConfirmCallback) -> OperationResult:
        """Discard every row after the user confirms."""
        if not self._rows:
            return OperationResult(success=True, message="Nothing to clear")
        if not confirm(CLEAR_TITLE, CLEAR_MESSAGE):
            return OperationResult(success=False, message="Clear cancelled")

        discarded = len(self._rows)
        self._remove(list(self._rows))
        await self._audit.log_reconcile_cleared(
            account_id=self.account_id,
            discarded=discarded,
            correlation_id=self.correlation_id,
        )
        return OperationResult(success=True, message=f"{discarded} rows cleared")
