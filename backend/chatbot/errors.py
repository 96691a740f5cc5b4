"""Error taxonomy for request handling and provider streaming.

Request-level errors (``ValidationError``, ``NotFoundError``,
``PolicyBlockedError``, ``RateLimitError``) are raised before a stream
starts and map directly to an HTTP status.  Provider errors are raised by
adapters once a stream is under way and are reported in-band instead.
"""

from __future__ import annotations

from typing import Any


class ChatError(Exception):
    """Base class for errors that carry an HTTP status."""

    status_code: int = 500

    def __init__(self, message: str, *, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(ChatError):
    """Missing or malformed request fields."""

    status_code = 400


class NotFoundError(ChatError):
    """A referenced session does not exist."""

    status_code = 404


class PolicyBlockedError(ChatError):
    """Content rejected by the safety policy."""

    status_code = 400


class RateLimitError(ChatError):
    """Request rate or per-user quota exceeded."""

    status_code = 429


class AuthenticationError(ChatError):
    """Missing or invalid bearer token."""

    status_code = 401


class StreamAbortedError(Exception):
    """The client went away or cancelled while the provider was streaming."""

    def __init__(self, message: str = "Stream aborted") -> None:
        super().__init__(message)


class ProviderError(Exception):
    """Failure reported by an upstream model provider."""

    def __init__(
        self,
        message: str,
        *,
        provider: str = "",
        status: int | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.status = status
        self.code = code


class ProviderAuthError(ProviderError):
    """Upstream rejected our credentials, or none were configured."""


class ProviderQuotaError(ProviderError):
    """Upstream rate limit or billing quota hit."""


class UpstreamGenericError(ProviderError):
    """Any other upstream failure."""


_QUOTA_CODES = {"insufficient_quota", "rate_limit_exceeded", "resource_exhausted"}


def classify_provider_exception(exc: BaseException, provider: str) -> ProviderError:
    """Wrap an SDK exception in the matching ``ProviderError`` subclass.

    SDKs disagree on where the HTTP status lives, so ``status_code``,
    ``status`` and ``code`` are all inspected.
    """
    if isinstance(exc, ProviderError):
        return exc

    status: int | None = None
    code: str | None = None
    for attr in ("status_code", "status", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and status is None:
            status = value
        elif isinstance(value, str) and code is None:
            code = value
    body = getattr(exc, "body", None)
    if code is None and isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and isinstance(error.get("code"), str):
            code = error["code"]

    message = str(exc) or exc.__class__.__name__
    if status == 429 or (code and code.lower() in _QUOTA_CODES):
        return ProviderQuotaError(message, provider=provider, status=status, code=code)
    if status in (401, 403):
        return ProviderAuthError(message, provider=provider, status=status, code=code)
    return UpstreamGenericError(message, provider=provider, status=status, code=code)


def describe_provider_error(exc: ProviderError, provider_label: str) -> str:
    """Turn a provider error into the text shown to (and stored for) the user."""
    if isinstance(exc, ProviderQuotaError):
        return (
            f"{provider_label} API quota exceeded. "
            "Please check your API key billing details."
        )
    if isinstance(exc, ProviderAuthError):
        return (
            f"Invalid {provider_label} API key. "
            "Please check your credentials in settings."
        )
    return exc.message or "An error occurred while generating response"
