"""
Session guard: the per-request gate in front of protected views.

    extract credential -> verify access token
        VALID    -> authorized
        EXPIRED  -> silent refresh from the refresh_token cookie
        INVALID  -> 401
        MISSING  -> 401

A refresh token is honored only when it verifies against the refresh secret
AND equals the value the session store holds for its identity. Store outages
raise StoreUnavailable (500); nothing here ever grants access on an error.
"""
from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from flask import current_app

from models import storage
from models.session_store import SessionStore
from models.user import User
from utils.credentials import (
    REFRESHED_TOKEN_HEADER,
    extract_credential,
    refresh_cookie,
    set_access_cookie,
    set_refresh_cookie,
)
from utils.exceptions import Unauthenticated
from utils.security import TokenIssuer, TokenPair, TokenStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Refreshed:
    access_token: str
    # only set when rotation is enabled
    refresh_token: Optional[str] = None


@dataclass(frozen=True)
class GuardResult:
    user: object
    refreshed: Optional[Refreshed] = None


def _load_user(identity: str):
    return storage.get(User, identity)


class SessionGuard:
    def __init__(
        self,
        issuer: TokenIssuer,
        store: SessionStore,
        rotate_refresh_tokens: bool = False,
        load_user: Callable[[str], object] = _load_user,
    ):
        self.issuer = issuer
        self.store = store
        self.rotate_refresh_tokens = rotate_refresh_tokens
        self.load_user = load_user

    @property
    def refresh_ttl_seconds(self) -> int:
        return int(self.issuer.refresh_ttl.total_seconds())

    @property
    def access_ttl_seconds(self) -> int:
        return int(self.issuer.access_ttl.total_seconds())

    # session lifecycle

    def start_session(self, identity: str) -> TokenPair:
        """Issue a fresh pair and make its refresh token the only valid one for identity."""
        pair = self.issuer.issue(identity)
        self.store.put(identity, pair.refresh_token, self.refresh_ttl_seconds)
        return pair

    def end_session(self, identity: str) -> None:
        self.store.delete(identity)

    def refresh(self, refresh_token: Optional[str]) -> tuple[str, Refreshed]:
        """
        Exchange a refresh token for a new access token.
        Returns (identity, Refreshed). Raises Unauthenticated when the token is
        missing, fails verification, or is not the one the store holds.
        """
        check = self.issuer.verify_refresh(refresh_token)
        if check.status is TokenStatus.MISSING:
            raise Unauthenticated("No refresh token provided")
        if not check.valid:
            raise Unauthenticated("Invalid refresh token")

        identity = check.identity
        stored = self.store.get(identity)
        if stored is None or not hmac.compare_digest(stored, refresh_token):
            logger.warning("rejected revoked refresh token for user %s", identity)
            raise Unauthenticated("Refresh token revoked")

        if self.rotate_refresh_tokens:
            pair = self.start_session(identity)
            return identity, Refreshed(pair.access_token, pair.refresh_token)
        return identity, Refreshed(self.issuer.issue_access(identity))

    # request gate

    def authenticate(self, request) -> GuardResult:
        token = extract_credential(request)
        check = self.issuer.verify_access(token)

        if check.status is TokenStatus.VALID:
            return GuardResult(self._resolve(check.identity))

        if check.status is TokenStatus.EXPIRED:
            identity, refreshed = self.refresh(refresh_cookie(request))
            logger.info("silently refreshed access token for user %s", identity)
            return GuardResult(self._resolve(identity), refreshed)

        if check.status is TokenStatus.MISSING:
            raise Unauthenticated("Unauthorized - No token provided")
        logger.debug("access token rejected: %s", check.reason)
        raise Unauthenticated("Unauthorized - Invalid token")

    def _resolve(self, identity: str):
        user = self.load_user(identity)
        if user is None:
            raise Unauthenticated("Unauthorized - User not found")
        return user


def get_guard() -> SessionGuard:
    return current_app.extensions["session_guard"]


def apply_refreshed(response, refreshed: Refreshed, guard: SessionGuard):
    """Hand the new credentials back to the client as cookies and a header."""
    set_access_cookie(response, refreshed.access_token, guard.access_ttl_seconds)
    response.headers[REFRESHED_TOKEN_HEADER] = refreshed.access_token
    if refreshed.refresh_token:
        set_refresh_cookie(response, refreshed.refresh_token, guard.refresh_ttl_seconds)
    return response
