"""Short-lived, filter-keyed read cache for collection reads."""

import json
import time
from dataclasses import dataclass
from typing import Any, Callable

from refood.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class CacheEntry:
    """A cached payload and the moment it was stored."""

    key: str
    payload: Any
    timestamp: float


class CacheLayer:
    """In-memory cache owned by a reservation service instance.

    Entries are served only while younger than the freshness window.
    Any mutation calls ``invalidate`` which drops every entry.
    """

    def __init__(
        self,
        freshness_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.freshness_seconds = freshness_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    @staticmethod
    def make_key(namespace: str, filters: dict[str, Any] | None = None) -> str:
        """Deterministic key for a namespace and its active filters."""
        active = {k: v for k, v in (filters or {}).items() if v not in (None, "")}
        return f"{namespace}:{json.dumps(active, sort_keys=True, default=str)}"

    def get(self, key: str) -> Any:
        """Return the cached payload, or None on a miss."""
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("cache_miss", key=key, reason="absent")
            return None

        age = self._clock() - entry.timestamp
        if age >= self.freshness_seconds:
            del self._entries[key]
            logger.debug("cache_miss", key=key, reason="stale", age_seconds=round(age, 1))
            return None

        logger.debug("cache_hit", key=key, age_seconds=round(age, 1))
        return entry.payload

    def put(self, key: str, value: Any) -> None:
        """Store a payload under the key."""
        self._entries[key] = CacheEntry(key=key, payload=value, timestamp=self._clock())

    def invalidate(self) -> None:
        """Drop every entry."""
        dropped = len(self._entries)
        self._entries.clear()
        logger.debug("cache_invalidated", dropped=dropped)

    def __len__(self) -> int:
        return len(self._entries)
