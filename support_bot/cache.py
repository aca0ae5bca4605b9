"""
Cache Backends for Support Bot
==============================

Short-lived per-user state (the selected product and the conversation log)
lives in a key-value cache with per-key TTLs. Two interchangeable backends
implement the same small contract:

- get / set(ttl) / delete: JSON values by key
- expire: (re)set the TTL of a key
- rpush / lrange / lset: JSON list values (Redis list semantics, inclusive
  ranges, negative indices count from the end)
- flush / close: maintenance and shutdown

Backends:
---------
- **MemoryCache**: in-process dict guarded by a threading.Lock. Default for
  development and used by the test suite.
- **RedisCache**: the `redis` client, selected when REDIS_URL is configured.
  Every call goes through a bounded retry on connection errors.

The cache is advisory. Callers must treat a missing key as "nothing stored"
and fall back to the durable database where it matters.

Usage:
------
    from support_bot.cache import build_cache

    cache = build_cache()
    cache.set("selected:42", {"orderId": "A1", "productIndex": 0}, ttl=3600)
    cache.rpush("chat:42", {"prompt": "hi", "reply": "hello"})
    cache.expire("chat:42", 86400)
"""

import json
import logging
import threading
import time
from typing import Any, Dict, List, Optional, Tuple

import redis

from . import config
from .retry import retry_call

logger = logging.getLogger(__name__)


def _normalize_range(length: int, start: int, end: int) -> Tuple[int, int]:
    """Translate Redis-style inclusive (start, end) into a Python slice."""
    if start < 0:
        start = max(length + start, 0)
    if end < 0:
        end = length + end
    end = min(end, length - 1)
    return start, end + 1


class MemoryCache:
    """Thread-safe in-process cache with per-key expiry."""

    def __init__(self) -> None:
        # key -> (expires_at or None, serialized value or list of serialized values)
        self._store: Dict[str, Tuple[Optional[float], Any]] = {}
        self._lock = threading.Lock()

    def _live_entry(self, key: str) -> Optional[Tuple[Optional[float], Any]]:
        entry = self._store.get(key)
        if entry is None:
            return None
        expires_at, _ = entry
        if expires_at is not None and expires_at <= time.time():
            del self._store[key]
            return None
        return entry

    def get(self, key: str) -> Any:
        with self._lock:
            entry = self._live_entry(key)
            if entry is None or isinstance(entry[1], list):
                return None
            return json.loads(entry[1])

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        expires_at = time.time() + ttl if ttl else None
        with self._lock:
            self._store[key] = (expires_at, json.dumps(value))

    def delete(self, *keys: str) -> int:
        removed = 0
        with self._lock:
            for key in keys:
                if self._store.pop(key, None) is not None:
                    removed += 1
        return removed

    def expire(self, key: str, ttl: int) -> bool:
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                return False
            self._store[key] = (time.time() + ttl, entry[1])
            return True

    def rpush(self, key: str, value: Any) -> int:
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                entry = (None, [])
            expires_at, items = entry
            items = list(items)
            items.append(json.dumps(value))
            self._store[key] = (expires_at, items)
            return len(items)

    def lrange(self, key: str, start: int = 0, end: int = -1) -> List[Any]:
        with self._lock:
            entry = self._live_entry(key)
            if entry is None or not isinstance(entry[1], list):
                return []
            items = entry[1]
            lo, hi = _normalize_range(len(items), start, end)
            return [json.loads(item) for item in items[lo:hi]]

    def lset(self, key: str, index: int, value: Any) -> None:
        with self._lock:
            entry = self._live_entry(key)
            if entry is None or not isinstance(entry[1], list):
                raise KeyError(key)
            expires_at, items = entry
            items = list(items)
            items[index] = json.dumps(value)
            self._store[key] = (expires_at, items)

    def flush(self) -> None:
        with self._lock:
            self._store.clear()

    def close(self) -> None:
        self.flush()


class RedisCache:
    """Redis-backed cache storing JSON strings."""

    RETRYABLE = (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError)

    def __init__(self, url: str, client: Optional[redis.Redis] = None) -> None:
        self._redis = client or redis.Redis.from_url(url, decode_responses=True)

    def _call(self, description: str, func):
        return retry_call(func, retry_on=self.RETRYABLE, description=f"redis {description}")

    def get(self, key: str) -> Any:
        raw = self._call("get", lambda: self._redis.get(key))
        if raw is None:
            return None
        return json.loads(raw)

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        payload = json.dumps(value)
        self._call("set", lambda: self._redis.set(key, payload, ex=ttl or None))

    def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(self._call("delete", lambda: self._redis.delete(*keys)))

    def expire(self, key: str, ttl: int) -> bool:
        return bool(self._call("expire", lambda: self._redis.expire(key, ttl)))

    def rpush(self, key: str, value: Any) -> int:
        payload = json.dumps(value)
        return int(self._call("rpush", lambda: self._redis.rpush(key, payload)))

    def lrange(self, key: str, start: int = 0, end: int = -1) -> List[Any]:
        raw_items = self._call("lrange", lambda: self._redis.lrange(key, start, end))
        return [json.loads(item) for item in raw_items]

    def lset(self, key: str, index: int, value: Any) -> None:
        payload = json.dumps(value)
        self._call("lset", lambda: self._redis.lset(key, index, payload))

    def flush(self) -> None:
        self._call("flushdb", lambda: self._redis.flushdb())

    def close(self) -> None:
        self._redis.close()


def build_cache(redis_url: Optional[str] = None):
    """Return a RedisCache when a URL is configured, otherwise a MemoryCache."""
    if redis_url is None:
        redis_url = config.REDIS_URL
    if redis_url:
        logger.info("Using Redis cache backend")
        return RedisCache(redis_url)
    logger.info("REDIS_URL not set, using in-memory cache backend")
    return MemoryCache()
