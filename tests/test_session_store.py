"""Tests for the refresh-token session stores."""

from unittest.mock import MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from models.session_store import (
    MemorySessionStore,
    RedisSessionStore,
    build_session_store,
    session_key,
)
from utils.exceptions import ConfigurationError, StoreUnavailable


class TestMemorySessionStore:
    def test_put_get_delete(self, clock):
        store = MemorySessionStore(clock=clock)
        assert store.get("u1") is None
        store.put("u1", "R1", 60)
        assert store.get("u1") == "R1"
        store.delete("u1")
        assert store.get("u1") is None

    def test_put_overwrites(self, clock):
        store = MemorySessionStore(clock=clock)
        store.put("u1", "R1", 60)
        store.put("u1", "R2", 60)
        assert store.get("u1") == "R2"

    def test_record_expires_with_ttl(self, clock):
        store = MemorySessionStore(clock=clock)
        store.put("u1", "R1", 60)
        clock.advance(seconds=60)
        assert store.get("u1") == "R1"
        clock.advance(seconds=1)
        assert store.get("u1") is None

    def test_store_and_issuer_share_the_expiry_boundary(self, guard, clock):
        pair = guard.start_session("u1")
        clock.advance(days=7)
        assert guard.issuer.verify_refresh(pair.refresh_token).valid
        assert guard.store.get("u1") == pair.refresh_token

        clock.advance(seconds=1)
        assert not guard.issuer.verify_refresh(pair.refresh_token).valid
        assert guard.store.get("u1") is None

    def test_overwrite_resets_expiry(self, clock):
        store = MemorySessionStore(clock=clock)
        store.put("u1", "R1", 60)
        clock.advance(seconds=50)
        store.put("u1", "R2", 60)
        clock.advance(seconds=50)
        assert store.get("u1") == "R2"

    def test_identities_are_independent(self, clock):
        store = MemorySessionStore(clock=clock)
        store.put("u1", "R1", 60)
        store.put("u2", "R2", 60)
        store.delete("u1")
        assert store.get("u2") == "R2"

    def test_delete_missing_is_noop(self, clock):
        MemorySessionStore(clock=clock).delete("nobody")


class TestRedisSessionStore:
    def test_put_sets_key_with_expiry(self):
        client = MagicMock()
        RedisSessionStore(client).put("u1", "R1", 604800)
        client.set.assert_called_once_with("refresh_token:u1", "R1", ex=604800)

    def test_get_reads_key(self):
        client = MagicMock()
        client.get.return_value = "R1"
        assert RedisSessionStore(client).get("u1") == "R1"
        client.get.assert_called_once_with(session_key("u1"))

    def test_get_decodes_bytes(self):
        client = MagicMock()
        client.get.return_value = b"R1"
        assert RedisSessionStore(client).get("u1") == "R1"

    def test_get_missing(self):
        client = MagicMock()
        client.get.return_value = None
        assert RedisSessionStore(client).get("u1") is None

    def test_delete(self):
        client = MagicMock()
        RedisSessionStore(client).delete("u1")
        client.delete.assert_called_once_with("refresh_token:u1")

    @pytest.mark.parametrize("error", [RedisConnectionError("down"), RedisTimeoutError("slow")])
    def test_outage_raises_store_unavailable(self, error):
        client = MagicMock()
        client.get.side_effect = error
        with pytest.raises(StoreUnavailable):
            RedisSessionStore(client).get("u1")

    def test_ping_reports_outage(self):
        client = MagicMock()
        client.ping.side_effect = RedisConnectionError("down")
        assert RedisSessionStore(client).ping() is False


class TestBuildSessionStore:
    def test_memory_backend(self):
        assert isinstance(build_session_store({"SESSION_STORE": "memory"}), MemorySessionStore)

    def test_redis_backend(self):
        store = build_session_store({"SESSION_STORE": "redis", "REDIS_URL": "redis://localhost:6379/0"})
        assert isinstance(store, RedisSessionStore)

    def test_redis_without_url(self):
        with pytest.raises(ConfigurationError):
            build_session_store({"SESSION_STORE": "redis", "REDIS_URL": ""})

    def test_unknown_backend(self):
        with pytest.raises(ConfigurationError):
            build_session_store({"SESSION_STORE": "memcached"})
