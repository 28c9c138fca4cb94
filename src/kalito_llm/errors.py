from __future__ import annotations


class ProviderError(Exception):
    """Base error for adapter failures; also covers unmapped upstream statuses."""


class ConfigurationError(ProviderError):
    pass


class AuthenticationError(ProviderError):
    pass


class RateLimitError(ProviderError):
    def __init__(self, message: str = "Rate limit exceeded.", retry_after_seconds: int | None = None):
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class ModelNotFoundError(ProviderError):
    pass


class UpstreamProtocolError(ProviderError):
    """Unexpected upstream response shape / contract mismatch."""


class RequestTimeoutError(ProviderError):
    """Server-side request deadline exceeded."""


def parse_retry_after(value: str | None) -> int | None:
    if value and value.strip().isdigit():
        return int(value.strip())
    return None


def upstream_status_error(
    *,
    vendor: str,
    model: str,
    status_code: int,
    detail: str | None = None,
    retry_after: str | None = None,
) -> ProviderError:
    if status_code in (401, 403):
        return AuthenticationError(f"{vendor} API authentication failed for {model}. Please check your API key.")
    if status_code == 429:
        return RateLimitError(
            f"{vendor} {model}: Rate limit exceeded. Please try again shortly.",
            retry_after_seconds=parse_retry_after(retry_after),
        )
    if status_code == 404:
        return ModelNotFoundError(f'Model "{model}" not found or not accessible on {vendor}.')
    return ProviderError(f"{vendor} API error ({status_code}) for {model}: {detail or 'Unknown error'}")


_ERROR_TYPES: tuple[tuple[type[ProviderError], str], ...] = (
    (AuthenticationError, "authentication_error"),
    (RateLimitError, "rate_limit_error"),
    (ModelNotFoundError, "not_found_error"),
    (ConfigurationError, "invalid_request_error"),
    (UpstreamProtocolError, "upstream_error"),
    (RequestTimeoutError, "timeout"),
)


def error_type(exc: BaseException) -> str:
    """The ``type`` string clients see in error bodies and in-band stream errors."""
    for cls, name in _ERROR_TYPES:
        if isinstance(exc, cls):
            return name
    return "api_error"
