"""Async client for the storefront auth API."""

from .coordinator import RefreshCoordinator
from .exceptions import ClientAuthError, ClientAuthErrorCodes
from .http_client import StorefrontClient
from .models import ClientConfig

__all__ = [
    "StorefrontClient",
    "ClientConfig",
    "RefreshCoordinator",
    "ClientAuthError",
    "ClientAuthErrorCodes",
]
