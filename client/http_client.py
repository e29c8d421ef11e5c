"""Storefront API client with transparent access-token refresh."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .coordinator import RefreshCoordinator
from .exceptions import ClientAuthError, ClientAuthErrorCodes
from .models import ClientConfig

logger = logging.getLogger(__name__)

REFRESH_PATH = "/auth/refresh-token"
LOGIN_PATH = "/auth/login"
SIGNUP_PATH = "/auth/signup"
# a 401 from these is final; refreshing on them would loop
NO_REFRESH_PATHS = (REFRESH_PATH, LOGIN_PATH, SIGNUP_PATH)

REFRESHED_TOKEN_HEADER = "X-Access-Token"


class StorefrontClient:
    """
    httpx client that keeps access-token expiry invisible to callers.

    Every request carries the stored access token as a bearer credential.
    On a 401 the request joins the single shared refresh and is replayed
    once with the new token. If the refresh fails, every waiting request
    fails with ClientAuthError and the stored credentials are dropped.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or ClientConfig()
        self._http = httpx.AsyncClient(
            base_url=self._config.base_url,
            headers={"Content-Type": "application/json"},
            timeout=self._config.timeout_seconds,
            transport=transport,
        )
        self._access_token: str | None = None
        self._coordinator = RefreshCoordinator(
            timeout_seconds=self._config.refresh_timeout_seconds,
            on_reject=lambda _: self.clear_credentials(),
        )

    async def __aenter__(self) -> "StorefrontClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    @property
    def access_token(self) -> str | None:
        return self._access_token

    @property
    def coordinator(self) -> RefreshCoordinator:
        return self._coordinator

    def clear_credentials(self) -> None:
        self._access_token = None
        self._http.cookies.clear()

    def _remember(self, response: httpx.Response) -> None:
        """Pick up an access token handed back by the server."""
        token = response.headers.get(REFRESHED_TOKEN_HEADER)
        if not token and response.is_success and "json" in response.headers.get("content-type", ""):
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                token = body.get("access_token")
        if token:
            self._access_token = token

    async def _send(self, method: str, url: str, token: str | None, **kwargs: Any) -> httpx.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        if token:
            headers["Authorization"] = f"Bearer {token}"
        response = await self._http.request(method, url, headers=headers, **kwargs)
        self._remember(response)
        return response

    @staticmethod
    def _skips_refresh(url: str) -> bool:
        path = httpx.URL(url).path
        return any(path.endswith(p) for p in NO_REFRESH_PATHS)

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request; recover once from an expired access token."""
        generation = self._coordinator.generation
        sent_with = self._access_token
        response = await self._send(method, url, sent_with, **kwargs)
        if response.status_code != 401 or self._skips_refresh(url):
            return response

        failure = self._coordinator.failed_since(generation)
        if self._access_token is not None and self._access_token != sent_with:
            # someone refreshed while this request was in flight
            token = self._access_token
        elif failure is not None:
            raise ClientAuthError(
                code=getattr(failure, "code", ClientAuthErrorCodes.REFRESH_FAILED),
                message=f"{method} {url}: token refresh already failed",
                cause=failure,
            )
        else:
            token = await self._coordinator.await_or_start(self._refresh_access_token)

        retry = await self._send(method, url, token, **kwargs)
        if retry.status_code == 401:
            raise ClientAuthError(
                code=ClientAuthErrorCodes.UNAUTHENTICATED,
                message=f"{method} {url}: still unauthorized after token refresh",
            )
        return retry

    async def _refresh_access_token(self) -> str:
        logger.info("access token rejected; refreshing")
        response = await self._http.post(REFRESH_PATH)
        if response.status_code != 200:
            raise ClientAuthError(
                code=ClientAuthErrorCodes.REFRESH_FAILED,
                message=f"refresh: HTTP {response.status_code}: {response.text}",
            )
        token = response.json().get("access_token")
        if not token:
            raise ClientAuthError(
                code=ClientAuthErrorCodes.REFRESH_FAILED,
                message="No access token received from refresh",
            )
        self._access_token = token
        return token

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def put(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("DELETE", url, **kwargs)

    # auth endpoints

    async def signup(self, name: str, email: str, password: str) -> dict[str, Any]:
        resp = await self.post(SIGNUP_PATH, json={"name": name, "email": email, "password": password})
        resp.raise_for_status()
        return resp.json()["user"]

    async def login(self, email: str, password: str) -> dict[str, Any]:
        resp = await self.post(LOGIN_PATH, json={"email": email, "password": password})
        if resp.status_code == 401:
            raise ClientAuthError(
                code=ClientAuthErrorCodes.UNAUTHENTICATED,
                message="Invalid email or password",
            )
        resp.raise_for_status()
        return resp.json()["user"]

    async def refresh(self) -> str:
        """Force a refresh, joining one already in flight."""
        return await self._coordinator.await_or_start(self._refresh_access_token)

    async def profile(self) -> dict[str, Any]:
        resp = await self.get("/auth/profile")
        resp.raise_for_status()
        return resp.json()["user"]

    async def logout(self) -> None:
        try:
            resp = await self.post("/auth/logout")
            resp.raise_for_status()
        finally:
            self.clear_credentials()
