"""
Credential transport.

An access token may arrive as `Authorization: Bearer <token>` or as the
`access_token` cookie. Extractors are tried in order and the first one that
yields a token wins. The refresh token only ever travels in the
`refresh_token` cookie.
"""
from __future__ import annotations

from typing import Callable, Optional, Sequence

from flask import current_app

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"
REFRESHED_TOKEN_HEADER = "X-Access-Token"

CredentialExtractor = Callable[[object], Optional[str]]


def bearer_header(request) -> Optional[str]:
    auth = request.headers.get("Authorization", "")
    scheme, _, token = auth.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def access_cookie(request) -> Optional[str]:
    return request.cookies.get(ACCESS_COOKIE) or None


def refresh_cookie(request) -> Optional[str]:
    return request.cookies.get(REFRESH_COOKIE) or None


CREDENTIAL_SOURCES: Sequence[CredentialExtractor] = (bearer_header, access_cookie)


def extract_credential(request, sources: Sequence[CredentialExtractor] = CREDENTIAL_SOURCES) -> Optional[str]:
    for source in sources:
        token = source(request)
        if token:
            return token
    return None


def _cookie_kwargs(max_age: int) -> dict:
    cfg = current_app.config
    return {
        "max_age": max_age,
        "httponly": True,
        "secure": bool(cfg.get("COOKIE_SECURE", False)),
        "samesite": cfg.get("COOKIE_SAMESITE", "Strict"),
        "path": "/",
    }


def set_access_cookie(response, token: str, max_age: int) -> None:
    response.set_cookie(ACCESS_COOKIE, token, **_cookie_kwargs(max_age))


def set_refresh_cookie(response, token: str, max_age: int) -> None:
    response.set_cookie(REFRESH_COOKIE, token, **_cookie_kwargs(max_age))


def clear_auth_cookies(response) -> None:
    cfg = current_app.config
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(
            name,
            path="/",
            secure=bool(cfg.get("COOKIE_SECURE", False)),
            httponly=True,
            samesite=cfg.get("COOKIE_SAMESITE", "Strict"),
        )
