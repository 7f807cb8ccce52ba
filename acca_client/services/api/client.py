"""
API Gateway Client using httpx

This is the only place that talks HTTP. Every other service calls
`ApiClient.request` and receives an ApiResponse.

This client handles:
1. Attaching the bearer token from token storage
2. JSON and multipart bodies
3. Retrying idempotent GETs when the connection could not be made
4. Turning every transport failure into an ApiResponse

CRITICAL: `request` never raises for network problems. Callers decide
what a failed request means (e.g. session validation treats it as
"presumed valid").
"""

from typing import Any, Optional

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from acca_client.config import ApiSettings, get_settings
from acca_client.models.api import NETWORK_ERROR_MESSAGE, ApiResponse
from acca_client.services.storage import TokenStorageInterface


logger = structlog.get_logger(__name__)

# Failures where the request provably never reached the server
RETRYABLE_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout)

INVALID_RESPONSE_MESSAGE = "Invalid response from server"


class ApiClient:
    """
    Authenticated HTTP client for the ACCA API.

    One instance is shared by all services. Close it with `aclose()` or
    use it as an async context manager.
    """

    def __init__(
        self,
        token_storage: TokenStorageInterface,
        settings: Optional[ApiSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._token_storage = token_storage
        self._settings = settings or get_settings().api
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the underlying httpx client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._settings.base_url,
                timeout=self._settings.timeout_seconds,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _build_headers(
        self,
        authenticated: bool,
        token: Optional[str],
    ) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if authenticated:
            auth_token = token or await self._token_storage.get_token()
            if auth_token:
                headers["Authorization"] = f"Bearer {auth_token}"
        return headers

    async def _send(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        """
        Send one request.

        GETs are retried on connection failures; other methods are sent
        exactly once since the server may already have acted on them.
        """
        client = self._get_client()
        if method != "GET":
            return await client.request(method, endpoint, **kwargs)

        response = None
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._settings.retry_attempts),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            reraise=True,
        ):
            with attempt:
                response = await client.request(method, endpoint, **kwargs)
        return response

    def _to_api_response(self, response: httpx.Response) -> ApiResponse:
        """Decode a server response into the uniform envelope."""
        body: Any = None
        decode_failed = False
        if response.content:
            try:
                body = response.json()
            except ValueError:
                decode_failed = True

        message = None
        errors = None
        if isinstance(body, dict):
            if isinstance(body.get("message"), str):
                message = body["message"]
            if isinstance(body.get("errors"), dict):
                errors = body["errors"]

        if decode_failed:
            return ApiResponse(
                success=False,
                status=response.status_code,
                error=INVALID_RESPONSE_MESSAGE,
            )

        success = response.is_success
        return ApiResponse(
            success=success,
            status=response.status_code,
            body=body,
            message=message,
            errors=errors,
            error=None if success else (message or f"Request failed ({response.status_code})"),
        )

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json: Any = None,
        params: Optional[dict[str, Any]] = None,
        files: Optional[dict[str, Any]] = None,
        authenticated: bool = True,
        token: Optional[str] = None,
    ) -> ApiResponse:
        """
        Perform a request against the API.

        Args:
            method: HTTP method
            endpoint: Path relative to the base URL
            json: JSON body
            params: Query parameters (None values are dropped)
            files: Multipart files, as accepted by httpx
            authenticated: Attach the stored bearer token
            token: Explicit token, overriding the stored one

        Returns:
            ApiResponse; transport failures come back with status None
        """
        method = method.upper()
        headers = await self._build_headers(authenticated, token)
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        try:
            response = await self._send(
                method,
                endpoint,
                headers=headers,
                json=json,
                params=params or None,
                files=files,
            )
        except httpx.HTTPError as e:
            logger.warning(
                "api_request_failed",
                method=method,
                endpoint=endpoint,
                error=str(e),
            )
            return ApiResponse.network_failure(error=str(e) or NETWORK_ERROR_MESSAGE)

        result = self._to_api_response(response)
        if not result.success:
            logger.info(
                "api_request_rejected",
                method=method,
                endpoint=endpoint,
                status=result.status,
            )
        return result

    async def get(self, endpoint: str, **kwargs) -> ApiResponse:
        return await self.request("GET", endpoint, **kwargs)

    async def post(self, endpoint: str, **kwargs) -> ApiResponse:
        return await self.request("POST", endpoint, **kwargs)

    async def put(self, endpoint: str, **kwargs) -> ApiResponse:
        return await self.request("PUT", endpoint, **kwargs)

    async def delete(self, endpoint: str, **kwargs) -> ApiResponse:
        return await self.request("DELETE", endpoint, **kwargs)
