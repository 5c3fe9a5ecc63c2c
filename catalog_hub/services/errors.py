"""Domain errors.

Every error carries a machine-readable `code` and the HTTP status it maps to,
so routers can render the structured error envelope without knowing the
individual classes.
"""

from __future__ import annotations

from typing import Any


class CatalogError(RuntimeError):
    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, *, detail: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class NotFoundError(CatalogError):
    code = "NOT_FOUND"
    status_code = 404


class BadRequestError(CatalogError):
    code = "BAD_REQUEST"
    status_code = 400


class ConfigInvalidError(CatalogError):
    """Merchant source config is missing, unparsable or blank."""

    code = "CONFIG_INVALID"
    status_code = 400


class UpstreamError(CatalogError):
    """Storefront call failed terminally (non-retryable or retries exhausted)."""

    code = "UPSTREAM_ERROR"
    status_code = 502


class AuthFailedError(UpstreamError):
    code = "UPSTREAM_AUTH_FAILED"


class RateLimitedError(UpstreamError):
    code = "UPSTREAM_RATE_LIMITED"


class UpstreamUnavailableError(UpstreamError):
    code = "UPSTREAM_UNAVAILABLE"


class ProtocolError(UpstreamError):
    """GraphQL `errors[]` present, or the response lacks a usable data payload."""

    code = "UPSTREAM_PROTOCOL_ERROR"


class SyncInProgressError(CatalogError):
    code = "SYNC_IN_PROGRESS"
    status_code = 409


class InternalError(CatalogError):
    code = "INTERNAL_ERROR"
    status_code = 500
