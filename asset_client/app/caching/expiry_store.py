"""
In-memory TTL store backing the response cache.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from shared.errors import ValidationError
from shared.logging import get_logger


DEFAULT_TTL = 300.0


@dataclass
class CacheEntry:
    """A cached value and the horizon it is valid for."""

    key: str
    value: Any
    inserted_at: float
    ttl: float

    def expired(self, now: float) -> bool:
        return now - self.inserted_at >= self.ttl


def validate_ttl(ttl: float) -> float:
    """Reject negative or non-numeric TTLs."""
    if isinstance(ttl, bool) or not isinstance(ttl, (int, float)):
        raise ValidationError("TTL must be a number of seconds", details={"ttl": repr(ttl)})
    if ttl < 0:
        raise ValidationError("TTL must not be negative", details={"ttl": ttl})
    return float(ttl)


class ExpiryStore:
    """Entries keyed by cache key, each with an insertion time and a TTL.

    Expired entries are evicted lazily when read; there is no background
    sweep, so an expired entry stays in ``keys()`` until something reads it.
    """

    def __init__(self, default_ttl: float = DEFAULT_TTL, clock: Callable[[], float] = time.time):
        self.default_ttl = validate_ttl(default_ttl)
        self.clock = clock
        self.logger = get_logger("asset_client.expiry_store")
        self._entries: Dict[str, CacheEntry] = {}

    def put(self, key: str, value: Any, ttl: Optional[float] = None) -> CacheEntry:
        """Store or refresh an entry. ``ttl=None`` falls back to the default."""
        resolved = self.default_ttl if ttl is None else validate_ttl(ttl)
        entry = CacheEntry(key=key, value=value, inserted_at=self.clock(), ttl=resolved)
        self._entries[key] = entry
        return entry

    def has_expired(self, key: str) -> bool:
        """True when the key is unknown or past its TTL."""
        entry = self._entries.get(key)
        if entry is None:
            return True
        return entry.expired(self.clock())

    def get(self, key: str, default: Any = None) -> Any:
        """Return the live value for ``key`` or ``default``.

        An expired entry is removed as a side effect, so callers cannot tell
        "never cached" from "expired and evicted".
        """
        if self.has_expired(key):
            if self.remove(key):
                self.logger.debug("Evicted expired cache entry", key=key)
            return default
        return self._entries[key].value

    def entry(self, key: str) -> Optional[CacheEntry]:
        """Raw entry lookup without an expiry check."""
        return self._entries.get(key)

    def remove(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def keys(self) -> List[str]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
