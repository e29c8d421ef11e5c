"""
Domain exceptions for the auth core.
Each carries the HTTP status and the stable error code rendered by api.errors.
"""
from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised at startup when signing secrets (or other required settings) are missing."""


class AuthError(Exception):
    status_code: int = 401
    error_code: str = "UNAUTHENTICATED"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class Unauthenticated(AuthError):
    status_code = 401
    error_code = "UNAUTHENTICATED"


class Forbidden(AuthError):
    status_code = 403
    error_code = "FORBIDDEN"


class StoreUnavailable(AuthError):
    """Session store could not be reached. Requests fail closed."""
    status_code = 500
    error_code = "STORE_UNAVAILABLE"
