"""
Response cache manager for the Asset Manager client.
"""

import re
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Set, Union, TYPE_CHECKING

from shared.errors import InvalidPattern
from shared.logging import get_logger
from .expiry_store import DEFAULT_TTL, ExpiryStore, validate_ttl
from .keys import CacheKeys, derive_key

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


_MISSING = object()


class CacheManager:
    """Session-wide response cache.

    Owns the expiry store, the per-scope TTL override table and the set of
    keys the request gate may serve without dispatch. Every operation is
    synchronous, so under a single event loop no two mutations interleave.
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.time,
        *,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.logger = get_logger("asset_client.cache_manager")
        self.metrics = metrics
        self._store = ExpiryStore(default_ttl, clock)
        self._ttl_overrides: Dict[str, float] = {}
        self._satisfied: Set[str] = set()

    @property
    def default_ttl(self) -> float:
        return self._store.default_ttl

    def get(
        self,
        method: str,
        url: str,
        params: Optional[Mapping[str, Any]] = None,
        default: Any = None,
        *,
        source: str = "cached_api",
    ) -> Any:
        """Get a live cached value, evicting it first if it has expired."""
        return self.get_by_key(derive_key(method, url, params), default, source=source)

    def get_by_key(self, key: str, default: Any = None, *, source: str = "cached_api") -> Any:
        """Get a live cached value by its derived key."""
        present = key in self._store
        value = self._store.get(key, _MISSING)

        if value is _MISSING:
            self._satisfied.discard(key)
            if present:
                self._record("cache_evictions_total", reason="expired")
            self._record("cache_misses_total", source=source)
            return default

        self._record("cache_hits_total", source=source)
        return value

    def ttl_for(self, key: str, url: str = "") -> Optional[float]:
        """TTL override registered for the longest scope matching the key or url."""
        if not url:
            parsed = CacheKeys.parse_key(key)
            url = parsed["url"] if parsed else ""

        best_scope: Optional[str] = None
        for scope in self._ttl_overrides:
            if key.startswith(scope) or url.startswith(scope):
                if best_scope is None or len(scope) > len(best_scope):
                    best_scope = scope

        if best_scope is None:
            return None
        return self._ttl_overrides[best_scope]

    def set(
        self,
        method: str,
        url: str,
        params: Optional[Mapping[str, Any]],
        value: Any,
        ttl: Optional[float] = None,
    ) -> str:
        """Store or refresh a cached value and return its key.

        TTL resolution: explicit ``ttl``, then the scope override, then the
        store default.
        """
        key = derive_key(method, url, params)
        if ttl is None:
            ttl = self.ttl_for(key, url)

        entry = self._store.put(key, value, ttl)
        self.logger.debug("Cached response", key=key, ttl=entry.ttl)
        return key

    def invalidate(self, substring: str) -> int:
        """Remove every entry whose key contains ``substring``."""
        removed = self._remove_where(lambda key: substring in key)
        self._record("cache_invalidations_total", kind="substring")
        self.logger.debug("Invalidated cache entries", substring=substring, removed=removed)
        return removed

    def invalidate_pattern(self, pattern: Union[str, "re.Pattern[str]"]) -> int:
        """Remove every entry whose key matches the regular expression.

        Raises InvalidPattern, before touching any entry, if the pattern does
        not compile to a text regular expression.
        """
        try:
            regex = re.compile(pattern)
        except (re.error, TypeError) as exc:
            self.logger.warning("Rejected invalidation pattern", pattern=str(pattern), error=str(exc))
            raise InvalidPattern(pattern, str(exc)) from exc
        if not isinstance(regex.pattern, str):
            raise InvalidPattern(pattern, "bytes patterns cannot match text cache keys")

        removed = self._remove_where(lambda key: regex.search(key) is not None)
        self._record("cache_invalidations_total", kind="pattern")
        self.logger.debug("Invalidated cache entries", pattern=regex.pattern, removed=removed)
        return removed

    def clear(self) -> None:
        """Drop all entries, satisfied markers and TTL overrides."""
        removed = len(self._store)
        self._store.clear()
        self._satisfied.clear()
        self._ttl_overrides.clear()
        self._record("cache_evictions_total", amount=removed, reason="clear")
        self.logger.info("Cleared response cache", removed=removed)

    def set_ttl(self, scope: str, ttl: float) -> None:
        """Register a TTL override for future entries under ``scope``."""
        self._ttl_overrides[scope] = validate_ttl(ttl)
        self.logger.debug("Registered TTL override", scope=scope, ttl=ttl)

    def get_stats(self) -> Dict[str, Any]:
        """Entry count and keys; cached values are never included."""
        keys = self._store.keys()
        return {"entry_count": len(keys), "keys": keys}

    def mark_satisfied(self, key: str) -> None:
        self._satisfied.add(key)

    def is_satisfied(self, key: str) -> bool:
        return key in self._satisfied

    def discard_satisfied(self, key: str) -> None:
        self._satisfied.discard(key)

    def entry_ttl(self, key: str) -> Optional[float]:
        """TTL the stored entry was written with, or None when absent."""
        entry = self._store.entry(key)
        return entry.ttl if entry is not None else None

    def _remove_where(self, predicate: Callable[[str], bool]) -> int:
        doomed: List[str] = [key for key in self._store.keys() if predicate(key)]
        for key in doomed:
            self._store.remove(key)
            self._satisfied.discard(key)

        if doomed:
            self._record("cache_evictions_total", amount=len(doomed), reason="invalidated")
        return len(doomed)

    def _record(self, metric_name: str, amount: float = 1, **labels) -> None:
        if self.metrics and amount:
            self.metrics.increment_counter(metric_name, amount, **labels)
