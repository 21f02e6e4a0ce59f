"""
Exceptions raised by slot transports and AI providers.

Everything derives from ServiceError, so callers can catch one type and still
read `service_id` to tell which endpoint failed.
"""


class ServiceError(Exception):
    """Base exception for transport and provider failures."""

    def __init__(self, message: str, service_id: str | None = None):
        self.service_id = service_id
        super().__init__(message)


class RequestTimeoutError(ServiceError):
    """No response within the configured timeout."""

    def __init__(self, service_id: str, timeout: float):
        self.timeout = timeout
        super().__init__(f"'{service_id}' did not respond within {timeout}s", service_id=service_id)


class RateLimitError(ServiceError):
    """HTTP 429 from the remote endpoint."""

    def __init__(
        self,
        service_id: str,
        retry_after: float | None = None,
        message: str | None = None,
    ):
        self.retry_after = retry_after
        msg = message or f"'{service_id}' is rate limiting requests"
        if retry_after:
            msg += f" (Retry-After: {retry_after}s)"
        super().__init__(msg, service_id=service_id)


class HTTPStatusError(ServiceError):
    """Response carried a non-2xx status."""

    def __init__(
        self,
        status_code: int,
        service_id: str | None = None,
        message: str | None = None,
    ):
        self.status_code = status_code
        super().__init__(
            message or f"HTTP error! status: {status_code}",
            service_id=service_id,
        )


class StreamError(ServiceError):
    """Stream could not be opened or the transport failed mid-read."""


class ProviderConfigError(ServiceError):
    """AI provider is unknown or missing required settings."""
