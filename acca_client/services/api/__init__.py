"""API gateway package."""

from acca_client.services.api.client import ApiClient
from acca_client.services.api.endpoints import Endpoints

__all__ = ["ApiClient", "Endpoints"]
