"""
In-memory result cache: per-entry TTL plus a global size cap.

Created once at process start (API lifespan) and injected into the
orchestrator; cleared at shutdown. A single lock guards the whole store.
Expired entries are never returned: get() drops them lazily and put()
sweeps them before inserting. When the store is still full after the
sweep, the oldest entries by created_at are evicted.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, TypeVar

from backend_bubbles.bubbles_logging import get_logger
from backend_bubbles.bubbles_logging.logger import short_address

logger = get_logger(__name__)

T = TypeVar("T")

KEY_PREFIX = "analysis:"
DEFAULT_TTL_SEC = 5 * 60
DEFAULT_MAX_ENTRIES = 1000


def cache_key(address: str) -> str:
    return f"{KEY_PREFIX}{address}"


def _whole(value: float) -> float:
    return int(value) if float(value).is_integer() else value


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    result: T
    created_at: float
    ttl_sec: float

    def age(self, now: float) -> float:
        return now - self.created_at

    def expires_in(self, now: float) -> float:
        return self.ttl_sec - self.age(now)

    def is_expired(self, now: float) -> bool:
        return self.age(now) > self.ttl_sec


@dataclass(frozen=True)
class CacheEntryStats:
    address: str
    age_minutes: int
    expires_in_minutes: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "ageMinutes": self.age_minutes,
            "expiresInMinutes": self.expires_in_minutes,
        }


@dataclass(frozen=True)
class CacheStats:
    total_entries: int
    max_size: int
    ttl_minutes: float
    entries: list[CacheEntryStats] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalEntries": self.total_entries,
            "maxSize": self.max_size,
            "ttlMinutes": self.ttl_minutes,
            "entries": [e.to_dict() for e in self.entries],
        }


class ResultCache(Generic[T]):
    """Address-keyed store of finalized analysis results."""

    def __init__(
        self,
        *,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        default_ttl_sec: float = DEFAULT_TTL_SEC,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        if default_ttl_sec <= 0:
            raise ValueError("default_ttl_sec must be positive")
        self._max_entries = max_entries
        self._default_ttl = default_ttl_sec
        self._clock = clock
        self._entries: dict[str, CacheEntry[T]] = {}
        self._lock = threading.Lock()

    @property
    def max_entries(self) -> int:
        return self._max_entries

    @property
    def default_ttl_sec(self) -> float:
        return self._default_ttl

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, address: object) -> bool:
        """Presence check without expiry handling; for diagnostics only."""
        with self._lock:
            return isinstance(address, str) and cache_key(address) in self._entries

    def get(self, address: str) -> T | None:
        key = cache_key(address)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                logger.debug("cache_expired", wallet_id=short_address(address))
                return None
        logger.debug("cache_hit", wallet_id=short_address(address))
        return entry.result

    def put(self, address: str, result: T, ttl_sec: float | None = None) -> None:
        ttl = self._default_ttl if ttl_sec is None else ttl_sec
        if ttl <= 0:
            raise ValueError("ttl_sec must be positive")
        key = cache_key(address)
        with self._lock:
            now = self._clock()
            self._purge_expired(now)
            self._evict_oldest(exclude=key)
            # Re-insert so dict order follows insertion time
            self._entries.pop(key, None)
            self._entries[key] = CacheEntry(result=result, created_at=now, ttl_sec=ttl)
        logger.debug("cache_stored", wallet_id=short_address(address), ttl_sec=ttl)

    def cleanup(self) -> int:
        """Remove expired entries; return how many were removed."""
        with self._lock:
            return self._purge_expired(self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> CacheStats:
        """Read-only view of live entries (key, age, remaining TTL). Does not mutate."""
        with self._lock:
            now = self._clock()
            live = [(k, e) for k, e in self._entries.items() if not e.is_expired(now)]
        return CacheStats(
            total_entries=len(live),
            max_size=self._max_entries,
            ttl_minutes=_whole(self._default_ttl / 60),
            entries=[
                CacheEntryStats(
                    address=k[len(KEY_PREFIX):],
                    age_minutes=round(e.age(now) / 60),
                    expires_in_minutes=round(e.expires_in(now) / 60),
                )
                for k, e in live
            ],
        )

    def _purge_expired(self, now: float) -> int:
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for k in expired:
            del self._entries[k]
        if expired:
            logger.info("cache_expired_cleanup", removed=len(expired))
        return len(expired)

    def _evict_oldest(self, exclude: str) -> None:
        """Make room for one insert; an overwrite of an existing key needs no room."""
        if exclude in self._entries:
            return
        overflow = len(self._entries) - self._max_entries + 1
        if overflow <= 0:
            return
        oldest = sorted(self._entries.items(), key=lambda kv: kv[1].created_at)[:overflow]
        for k, _ in oldest:
            del self._entries[k]
        logger.info("cache_size_cleanup", removed=len(oldest), max_entries=self._max_entries)
