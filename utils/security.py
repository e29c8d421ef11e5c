"""
security helpers:
- Argon2 password hashing via argon2-cffi
- Access/refresh JWT issuing and verification via PyJWT
- JTI generation for token identifiers

Verification never raises for a bad token: it returns a TokenCheck tagged
with VALID, EXPIRED, INVALID or MISSING so the session guard can switch on it.
"""
from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerifyMismatchError

from utils.exceptions import ConfigurationError

ph = PasswordHasher()

ACCESS = "access"
REFRESH = "refresh"


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """ Verify a plaintext password using argon2
    """
    try:
        return ph.verify(password_hash, password)
    except (VerifyMismatchError, InvalidHashError):
        return False


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenStatus(enum.Enum):
    VALID = "valid"
    EXPIRED = "expired"
    INVALID = "invalid"
    MISSING = "missing"


@dataclass(frozen=True)
class TokenCheck:
    status: TokenStatus
    identity: Optional[str] = None
    reason: str = ""

    @property
    def valid(self) -> bool:
        return self.status is TokenStatus.VALID


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


class TokenIssuer:
    """
    Signs and verifies the access/refresh pair.

    The two kinds use distinct secrets, and each token carries a `type` claim
    so one kind can never be accepted in place of the other.
    """

    def __init__(
        self,
        access_secret: str | None,
        refresh_secret: str | None,
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
        algorithm: str = "HS256",
        issuer: str = "storefront-auth",
        clock: Callable[[], datetime] = _utcnow,
    ):
        if not access_secret or not refresh_secret:
            raise ConfigurationError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must be set")
        if access_secret == refresh_secret:
            raise ConfigurationError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ")
        self._secrets = {ACCESS: access_secret, REFRESH: refresh_secret}
        self._ttls = {ACCESS: access_ttl, REFRESH: refresh_ttl}
        self.algorithm = algorithm
        self.issuer = issuer
        self.clock = clock

    @classmethod
    def from_config(cls, config) -> "TokenIssuer":
        return cls(
            access_secret=config.get("ACCESS_TOKEN_SECRET"),
            refresh_secret=config.get("REFRESH_TOKEN_SECRET"),
            access_ttl=config.get("ACCESS_TOKEN_EXPIRES", timedelta(minutes=15)),
            refresh_ttl=config.get("REFRESH_TOKEN_EXPIRES", timedelta(days=7)),
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
            issuer=config.get("JWT_ISSUER", "storefront-auth"),
        )

    @property
    def access_ttl(self) -> timedelta:
        return self._ttls[ACCESS]

    @property
    def refresh_ttl(self) -> timedelta:
        return self._ttls[REFRESH]

    def _encode(self, identity: str, kind: str) -> str:
        now = self.clock()
        payload = {
            "iss": self.issuer,
            "sub": str(identity),
            "iat": int(now.timestamp()),
            "exp": int((now + self._ttls[kind]).timestamp()),
            "type": kind,
            "jti": generate_jti(),
        }
        return jwt.encode(payload, self._secrets[kind], algorithm=self.algorithm)

    def issue(self, identity: str) -> TokenPair:
        return TokenPair(
            access_token=self._encode(identity, ACCESS),
            refresh_token=self._encode(identity, REFRESH),
        )

    def issue_access(self, identity: str) -> str:
        return self._encode(identity, ACCESS)

    def _verify(self, token: str | None, kind: str) -> TokenCheck:
        if not token:
            return TokenCheck(TokenStatus.MISSING, reason="No token provided")
        try:
            # time claims are compared below against our own clock
            claims = jwt.decode(
                token,
                self._secrets[kind],
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={"verify_exp": False, "verify_iat": False, "require": ["exp", "iat", "sub"]},
            )
        except jwt.InvalidTokenError as exc:
            return TokenCheck(TokenStatus.INVALID, reason=f"Invalid token: {exc}")

        if claims.get("type") != kind:
            return TokenCheck(TokenStatus.INVALID, reason="Wrong token type")
        identity = str(claims["sub"])
        if self.clock().timestamp() > int(claims["exp"]):
            return TokenCheck(TokenStatus.EXPIRED, identity=identity, reason="Token expired")
        return TokenCheck(TokenStatus.VALID, identity=identity)

    def verify_access(self, token: str | None) -> TokenCheck:
        return self._verify(token, ACCESS)

    def verify_refresh(self, token: str | None) -> TokenCheck:
        return self._verify(token, REFRESH)
