"""
Storage Services Package

Provides abstract interfaces and concrete implementations for the token
store and the audit log.
"""

from acca_client.services.storage.interface import (
    AuditStorageInterface,
    TokenStorageInterface,
)
from acca_client.services.storage.memory import InMemoryAuditStorage
from acca_client.services.storage.token_store import (
    FileTokenStorage,
    InMemoryTokenStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "TokenStorageInterface",
    # Implementations
    "FileTokenStorage",
    "InMemoryAuditStorage",
    "InMemoryTokenStorage",
]
