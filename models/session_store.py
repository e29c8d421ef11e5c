"""
Refresh-token session store.

One record per identity: key `refresh_token:<user_id>`, value the current
refresh token, expiring with the refresh token's lifetime. Writing a new
token for an identity replaces the old one, so at most one refresh token is
ever honored per user.
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Tuple

from redis import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from utils.exceptions import ConfigurationError, StoreUnavailable

logger = logging.getLogger(__name__)

KEY_PREFIX = "refresh_token:"


def session_key(identity: str) -> str:
    return f"{KEY_PREFIX}{identity}"


class SessionStore:
    """Interface shared by the Redis and in-memory backends."""

    def put(self, identity: str, refresh_token: str, ttl_seconds: int) -> None:
        raise NotImplementedError

    def get(self, identity: str) -> Optional[str]:
        raise NotImplementedError

    def delete(self, identity: str) -> None:
        raise NotImplementedError

    def ping(self) -> bool:
        raise NotImplementedError


class RedisSessionStore(SessionStore):
    """Redis-backed store. SET ... EX gives atomic overwrite plus expiry."""

    def __init__(self, client: Redis):
        self.client = client

    @classmethod
    def from_url(cls, redis_url: str, *, socket_timeout: float = 5.0) -> "RedisSessionStore":
        client = Redis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client)

    def _call(self, op: str, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except (RedisConnectionError, RedisTimeoutError) as exc:
            logger.error("session store %s failed: %s", op, exc)
            raise StoreUnavailable("Session store unavailable") from exc

    def put(self, identity: str, refresh_token: str, ttl_seconds: int) -> None:
        self._call("put", self.client.set, session_key(identity), refresh_token, ex=max(1, int(ttl_seconds)))

    def get(self, identity: str) -> Optional[str]:
        value = self._call("get", self.client.get, session_key(identity))
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    def delete(self, identity: str) -> None:
        self._call("delete", self.client.delete, session_key(identity))

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except (RedisConnectionError, RedisTimeoutError):
            return False


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MemorySessionStore(SessionStore):
    """
    Process-local store for development and tests.
    Expiry is checked on read, against an injectable clock.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow):
        self.clock = clock
        self._records: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()

    def put(self, identity: str, refresh_token: str, ttl_seconds: int) -> None:
        expires_at = self.clock().timestamp() + max(1, int(ttl_seconds))
        with self._lock:
            self._records[session_key(identity)] = (refresh_token, expires_at)

    def get(self, identity: str) -> Optional[str]:
        key = session_key(identity)
        with self._lock:
            record = self._records.get(key)
            if record is None:
                return None
            token, expires_at = record
            if self.clock().timestamp() > expires_at:
                del self._records[key]
                return None
            return token

    def delete(self, identity: str) -> None:
        with self._lock:
            self._records.pop(session_key(identity), None)

    def ping(self) -> bool:
        return True


def build_session_store(config) -> SessionStore:
    """Select the backend named by SESSION_STORE."""
    backend = (config.get("SESSION_STORE") or "redis").lower()
    if backend == "memory":
        return MemorySessionStore()
    if backend == "redis":
        url = config.get("REDIS_URL")
        if not url:
            raise ConfigurationError("REDIS_URL must be set when SESSION_STORE=redis")
        return RedisSessionStore.from_url(url, socket_timeout=float(config.get("REDIS_SOCKET_TIMEOUT", 5.0)))
    raise ConfigurationError(f"Unknown SESSION_STORE backend: {backend}")
