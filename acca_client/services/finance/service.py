"""
Finance Services

Account, transaction and category endpoints used by reconciliation.

DESIGN DECISION: Parsing helpers here return None when the request
failed, and a (possibly empty) list when it succeeded. Callers can then
tell "the account has no transactions" apart from "we could not load
them", which matters before matching a statement.
"""

from typing import Any, Optional

import structlog
from pydantic import ValidationError

from acca_client.config import ReconcileSettings, get_settings
from acca_client.models.api import ApiResponse
from acca_client.models.transaction import Category, Transaction
from acca_client.services.api import ApiClient, Endpoints


logger = structlog.get_logger(__name__)


def _parse_list(items: Any, model: type) -> list:
    """Validate a list of dicts into `model`, skipping malformed entries."""
    if not isinstance(items, list):
        return []
    parsed = []
    for item in items:
        try:
            parsed.append(model.model_validate(item))
        except ValidationError as e:
            logger.warning(
                "malformed_item_skipped",
                model=model.__name__,
                errors=e.error_count(),
            )
            continue
    return parsed


class AccountService:
    """Account endpoints."""

    def __init__(self, api: ApiClient):
        self._api = api

    async def get_by_id(self, account_id: int) -> ApiResponse:
        return await self._api.get(Endpoints.account(account_id))

    async def get_transactions(self, account_id: int) -> Optional[list[Transaction]]:
        """
        All transactions recorded against an account.

        Returns:
            The transactions, or None if the request failed
        """
        result = await self._api.get(Endpoints.account_transactions(account_id))
        if not result.success:
            return None
        return _parse_list(result.extract("transactions"), Transaction)


class TransactionService:
    """Transaction endpoints, including statement processing."""

    def __init__(
        self,
        api: ApiClient,
        settings: Optional[ReconcileSettings] = None,
    ):
        self._api = api
        self._settings = settings or get_settings().reconcile

    async def create(self, payload: dict[str, Any]) -> ApiResponse:
        return await self._api.post(Endpoints.TRANSACTIONS, json=payload)

    async def bulk_create(self, payloads: list[dict[str, Any]]) -> ApiResponse:
        """Create several transactions in one request."""
        return await self._api.post(
            Endpoints.TRANSACTION_BULK_CREATE,
            json={"transactions": payloads},
        )

    async def process_statement(
        self,
        content: bytes,
        filename: str,
        mime_type: str = "text/csv",
    ) -> ApiResponse:
        """
        Upload a bank statement for server-side parsing.

        The server answers with a list of raw rows (date, merchant_name or
        description or payee, amount, type, notes or reference).
        """
        files = {self._settings.csv_field_name: (filename, content, mime_type)}
        return await self._api.post(Endpoints.TRANSACTION_PROCESS_CSV, files=files)


class CategoryService:
    """Category endpoints."""

    def __init__(self, api: ApiClient):
        self._api = api

    async def get_for_transaction(self, transaction_type: str) -> Optional[list[Category]]:
        """
        Categories usable for a transaction of the given type.

        Returns:
            The categories, or None if the request failed
        """
        result = await self._api.get(
            Endpoints.CATEGORIES_FOR_TRANSACTION,
            params={"type": transaction_type},
        )
        if not result.success:
            return None
        return _parse_list(result.payload, Category)
