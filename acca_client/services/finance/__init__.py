"""Finance services package."""

from acca_client.services.finance.service import (
    AccountService,
    CategoryService,
    TransactionService,
)

__all__ = ["AccountService", "CategoryService", "TransactionService"]
