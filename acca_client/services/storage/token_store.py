"""
Token Storage Implementations

FileTokenStorage keeps the bearer token in a small JSON document readable
only by the current user. InMemoryTokenStorage is used by tests and by
hosts that do not want the token to outlive the process.

Both follow the contract of TokenStorageInterface: failures are logged
and never raised.
"""

import json
import os
from pathlib import Path
from typing import Optional

import structlog

from acca_client.config import get_settings
from acca_client.services.storage.interface import TokenStorageInterface


logger = structlog.get_logger(__name__)

# Owner read/write only
TOKEN_FILE_MODE = 0o600


class FileTokenStorage(TokenStorageInterface):
    """
    Token storage backed by a JSON file.

    The file maps storage keys to tokens, so several keys can share one
    credentials file.
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        storage_key: Optional[str] = None,
    ):
        settings = get_settings().session
        self._path = Path(path) if path is not None else settings.token_storage_path
        self._key = storage_key or settings.storage_key

    @property
    def path(self) -> Path:
        return self._path

    def _read_document(self) -> dict:
        if not self._path.exists():
            return {}
        document = json.loads(self._path.read_text(encoding="utf-8"))
        return document if isinstance(document, dict) else {}

    def _write_document(self, document: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(document), encoding="utf-8")
        os.chmod(tmp_path, TOKEN_FILE_MODE)
        tmp_path.replace(self._path)

    async def get_token(self) -> Optional[str]:
        try:
            token = self._read_document().get(self._key)
        except (OSError, ValueError) as e:
            logger.error("token_read_failed", path=str(self._path), error=str(e))
            return None
        return token if isinstance(token, str) and token else None

    async def set_token(self, token: str) -> None:
        try:
            document = self._read_document()
        except (OSError, ValueError):
            # Unreadable file is overwritten
            document = {}
        document[self._key] = token
        try:
            self._write_document(document)
        except OSError as e:
            logger.error("token_write_failed", path=str(self._path), error=str(e))

    async def delete_token(self) -> None:
        try:
            document = self._read_document()
            if self._key not in document:
                return
            del document[self._key]
            if document:
                self._write_document(document)
            else:
                self._path.unlink(missing_ok=True)
        except (OSError, ValueError) as e:
            logger.error("token_delete_failed", path=str(self._path), error=str(e))


class InMemoryTokenStorage(TokenStorageInterface):
    """Token storage that lives only as long as the process."""

    def __init__(self, token: Optional[str] = None):
        self._token = token

    async def get_token(self) -> Optional[str]:
        return self._token

    async def set_token(self, token: str) -> None:
        self._token = token

    async def delete_token(self) -> None:
        self._token = None
