"""Services package."""

from acca_client.services.api import ApiClient, Endpoints
from acca_client.services.auth import AuthService
from acca_client.services.finance import (
    AccountService,
    CategoryService,
    TransactionService,
)
from acca_client.services.storage import (
    AuditStorageInterface,
    FileTokenStorage,
    InMemoryAuditStorage,
    InMemoryTokenStorage,
    TokenStorageInterface,
)

__all__ = [
    # API gateway
    "ApiClient",
    "Endpoints",
    # Endpoint services
    "AccountService",
    "AuthService",
    "CategoryService",
    "TransactionService",
    # Storage services
    "AuditStorageInterface",
    "FileTokenStorage",
    "InMemoryAuditStorage",
    "InMemoryTokenStorage",
    "TokenStorageInterface",
]
