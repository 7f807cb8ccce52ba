"""
API Envelope Models

Every call through the API gateway client produces an ApiResponse,
whether the server answered, answered with an error, or could not be
reached at all. Callers never see transport exceptions.

DESIGN DECISION: The server wraps payloads as
{success, message, data, errors}, but some endpoints nest `data` twice
and some return bare lists. All unwrapping happens in `unwrap_payload`
so call sites never repeat it.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


# The server nests `data` at most twice (e.g. data.data.transactions)
MAX_ENVELOPE_DEPTH = 2

AUTH_FAILURE_STATUSES = (401, 403)

NETWORK_ERROR_MESSAGE = "Network error. Please try again."


def unwrap_payload(body: Any, key: Optional[str] = None) -> Any:
    """
    Peel `data` envelopes off a decoded response body.

    Args:
        body: Decoded JSON body
        key: Optional key to look for at each envelope level
             (e.g. 'user', 'transactions')

    Returns:
        The innermost payload, the value under `key`, or None when `key`
        was requested but the payload is neither a dict holding it nor a list.
    """
    value = body
    for _ in range(MAX_ENVELOPE_DEPTH):
        if not isinstance(value, dict):
            break
        if key is not None and key in value:
            return value[key]
        if "data" not in value:
            break
        value = value["data"]

    if key is None:
        return value
    if isinstance(value, dict):
        return value.get(key)
    return value if isinstance(value, list) else None


class ApiResponse(BaseModel):
    """
    Result of one request to the API gateway.

    `success` mirrors the HTTP outcome (2xx). `status` is None when the
    request never produced an HTTP response (connection refused, timeout).
    """

    success: bool
    status: Optional[int] = None
    body: Any = None
    message: Optional[str] = None
    error: Optional[str] = None
    errors: Optional[dict[str, Any]] = None

    @property
    def is_auth_failure(self) -> bool:
        """401/403 is the authoritative invalidation signal."""
        return self.status in AUTH_FAILURE_STATUSES

    @property
    def is_network_error(self) -> bool:
        return self.status is None and not self.success

    @property
    def payload(self) -> Any:
        """Innermost `data` payload of the body."""
        return unwrap_payload(self.body)

    def extract(self, key: str) -> Any:
        """Value stored under `key` at any envelope level."""
        return unwrap_payload(self.body, key)

    @property
    def body_success(self) -> bool:
        """
        The `success` flag inside the body.

        Falls back to the HTTP outcome when the body carries no flag.
        """
        if isinstance(self.body, dict) and "success" in self.body:
            return bool(self.body["success"])
        return self.success

    @property
    def error_message(self) -> str:
        """Best human-readable description of a failure."""
        return self.message or self.error or "Request failed"

    @classmethod
    def network_failure(cls, error: str = NETWORK_ERROR_MESSAGE) -> "ApiResponse":
        return cls(success=False, status=None, error=error)


class ValidationIssue(BaseModel):
    """A single validation issue found before any request was sent."""

    field: str = Field(..., description="Field with the issue")
    issue_type: str = Field(
        ...,
        description="Type of issue (missing, mismatch, invalid_value)"
    )
    message: str = Field(..., description="Human-readable description")
    row_index: Optional[int] = Field(
        default=None,
        description="Working-list row the issue belongs to, for batch checks"
    )
