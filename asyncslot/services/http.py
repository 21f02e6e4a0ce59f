"""
HTTP transport for operation and stream slots.

Provides:
- A lazily created, shared httpx.AsyncClient
- HttpChunkSource: chunk source reading a streamed response body as text
- request_json(): one-shot JSON request used by wrapped operations

httpx exceptions are mapped onto the service error taxonomy so callers only
ever see ServiceError subclasses from this module.
"""

from typing import Any, AsyncIterator

import httpx
from loguru import logger

from asyncslot.services.errors import (
    HTTPStatusError,
    RateLimitError,
    RequestTimeoutError,
    ServiceError,
    StreamError,
)
from asyncslot.services.stream import BaseChunkSource, StreamRequest
from asyncslot.settings import global_settings

# Shared client instance
_http_client: httpx.AsyncClient | None = None


async def get_http_client() -> httpx.AsyncClient:
    """Get or create the shared HTTP client."""
    global _http_client
    if _http_client is None or _http_client.is_closed:
        _http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(global_settings.http_timeout),
            follow_redirects=True,
        )
    return _http_client


async def close_http_client() -> None:
    """Close the shared HTTP client."""
    global _http_client
    if _http_client:
        await _http_client.aclose()
        _http_client = None
        logger.debug("HTTP client closed")


def _error_detail(response: httpx.Response) -> str | None:
    """Pull a provider error message out of a JSON error body, if any."""
    try:
        payload = response.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if payload.get("message"):
        return str(payload["message"])
    return None


def raise_for_status(
    response: httpx.Response,
    service_id: str,
    detail: str | None = None,
) -> None:
    """Raise the matching ServiceError for a non-2xx response."""
    if response.is_success:
        return

    if response.status_code == 429:
        retry_after = response.headers.get("Retry-After")
        try:
            seconds = float(retry_after) if retry_after else None
        except ValueError:
            seconds = None
        raise RateLimitError(service_id, retry_after=seconds, message=detail)

    raise HTTPStatusError(response.status_code, service_id=service_id, message=detail)


async def request_json(
    url: str,
    method: str = "POST",
    headers: dict[str, str] | None = None,
    json_data: dict[str, Any] | None = None,
    timeout: float | None = None,
    service_id: str = "http",
    client: httpx.AsyncClient | None = None,
) -> Any:
    """
    Make a JSON request and return the decoded body.

    Raises:
        RequestTimeoutError: If the request times out
        RateLimitError: On HTTP 429
        HTTPStatusError: For other non-2xx responses
        ServiceError: For transport errors
    """
    http = client or await get_http_client()
    req_timeout = timeout or global_settings.http_timeout

    try:
        response = await http.request(
            method=method,
            url=url,
            headers=headers,
            json=json_data,
            timeout=req_timeout,
        )
    except httpx.TimeoutException as e:
        raise RequestTimeoutError(service_id, req_timeout) from e
    except httpx.RequestError as e:
        raise ServiceError(str(e), service_id=service_id) from e

    if not response.is_success:
        raise_for_status(response, service_id, detail=_error_detail(response))

    try:
        return response.json()
    except ValueError as e:
        raise ServiceError(
            f"Invalid JSON from {url}: {response.text[:200]}",
            service_id=service_id,
        ) from e


class HttpChunkSource(BaseChunkSource):
    """
    Chunk source backed by an httpx streaming response.

    Each chunk is whatever text the transport delivered in one read, decoded
    incrementally so multi-byte characters split across reads stay intact.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        service_id: str = "stream",
        timeout: float | None = None,
        debug: bool = False,
    ):
        self._client = client
        self.service_id = service_id
        self._timeout = timeout
        self._debug = debug

    async def open(self, request: StreamRequest) -> AsyncIterator[str]:
        client = self._client or await get_http_client()
        timeout = self._timeout or global_settings.http_timeout

        try:
            async with client.stream(
                request.method,
                request.endpoint,
                headers=request.headers,
                json=request.body,
                timeout=timeout,
            ) as response:
                self._log(f"{request.method} {request.endpoint} -> {response.status_code}")
                raise_for_status(response, self.service_id)
                async for chunk in response.aiter_text():
                    yield chunk
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(self.service_id, timeout) from e
        except httpx.RequestError as e:
            raise StreamError(str(e), service_id=self.service_id) from e

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[HttpChunkSource] {message}")
