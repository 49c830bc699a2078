"""Swappable geocode result cache.

The default is NullGeocodeCache (every lookup goes to the provider). The
in-memory and Redis backends bound provider call volume with a TTL. Only
successful lookups are ever stored.
"""
from __future__ import annotations

import hashlib
import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

from roadbook.models.geo import Coordinate

logger = logging.getLogger(__name__)

_PREFIX = "rb:geocode"


# ── Keys ──────────────────────────────────────────────────────────────────

def reverse_key(coordinate: Coordinate) -> str:
    return f"{_PREFIX}:reverse:{coordinate.lat:.6f},{coordinate.lng:.6f}"


def forward_key(address: str) -> str:
    normalized = " ".join(address.lower().split())
    h = hashlib.sha256(normalized.encode()).hexdigest()[:16]
    return f"{_PREFIX}:forward:{h}"


# ── Backends ──────────────────────────────────────────────────────────────

class GeocodeCache(ABC):
    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        pass


class NullGeocodeCache(GeocodeCache):
    """No caching: repeated identical lookups re-query the provider."""

    def get(self, key: str) -> Optional[Any]:
        return None

    def set(self, key: str, value: Any) -> None:
        return None


class TTLGeocodeCache(GeocodeCache):
    """Process-local cache with per-entry expiry."""

    def __init__(self, ttl_s: float, *, clock=time.monotonic) -> None:
        self.ttl_s = ttl_s
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Any]] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = (self._clock() + self.ttl_s, value)

    def __len__(self) -> int:
        return len(self._entries)


class RedisGeocodeCache(GeocodeCache):
    """JSON values in Redis. Any Redis failure degrades to a cache miss."""

    def __init__(self, client, ttl_s: int) -> None:
        self._client = client
        self.ttl_s = ttl_s

    def get(self, key: str) -> Optional[Any]:
        try:
            raw = self._client.get(key)
            if raw is None:
                return None
            return json.loads(raw)
        except Exception as exc:
            logger.warning("Redis geocode cache read failed (%s)", exc)
            return None

    def set(self, key: str, value: Any) -> None:
        try:
            self._client.set(key, json.dumps(value), ex=self.ttl_s)
        except Exception as exc:
            logger.warning("Redis geocode cache write failed (%s)", exc)


def build_cache(settings) -> GeocodeCache:
    """Pick the cache backend named by settings.geocode_cache_backend."""
    backend = (settings.geocode_cache_backend or "none").strip().lower()
    if backend == "memory":
        return TTLGeocodeCache(settings.geocode_cache_ttl_s)
    if backend == "redis":
        if not settings.redis_url:
            logger.warning("geocode_cache_backend=redis but no redis_url set, caching disabled")
            return NullGeocodeCache()
        import redis

        try:
            client = redis.Redis.from_url(
                settings.redis_url, decode_responses=True, socket_connect_timeout=3
            )
            client.ping()
            logger.info("Redis geocode cache connected: %s", settings.redis_url)
        except Exception as exc:
            logger.warning("Redis unavailable (%s), running without geocode cache", exc)
            return NullGeocodeCache()
        return RedisGeocodeCache(client, settings.geocode_cache_ttl_s)
    if backend != "none":
        logger.warning("Unknown geocode cache backend '%s', caching disabled", backend)
    return NullGeocodeCache()
