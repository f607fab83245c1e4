"""Analysis caching for identical inputs.

Results are keyed by a SHA-256 over the uploaded content and its request
metadata, so re-submitting the same file for the same application returns the
same analysis without another LLM call. Entries live in process memory and
expire after 24 hours.
"""

import base64
import hashlib
import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Optional, Union

from archlens.constants import ANALYSIS_CACHE_TTL_SECONDS, CACHE_SWEEP_INTERVAL_SECONDS

logger = logging.getLogger(__name__)

# Marks a miss so that a cached None is still a hit
_MISSING = object()


def generate_analysis_hash(
    content: Union[str, bytes],
    app_id: Optional[str] = None,
    component_name: Optional[str] = None,
    environment: Optional[str] = None,
    version: Optional[str] = None,
) -> str:
    """Hash file content together with the request metadata.

    Bytes are base64-encoded first. Metadata is serialized in a fixed key
    order, so the same content submitted with different metadata always gets a
    different key.

    Returns:
        Hex SHA-256 digest
    """
    if isinstance(content, (bytes, bytearray)):
        content = base64.b64encode(bytes(content)).decode("ascii")

    metadata = json.dumps(
        {
            "appId": app_id or "",
            "componentName": component_name or "",
            "environment": environment or "",
            "version": version or "",
        },
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(f"{content}::{metadata}".encode("utf-8")).hexdigest()


@dataclass
class CachedAnalysis:
    """A cached analysis and its lifetime."""

    hash: str
    analysis: Any
    timestamp: datetime
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.now()) > self.expires_at

    def to_dict(self) -> dict:
        return {
            "hash": self.hash[:16] + "...",
            "timestamp": self.timestamp.isoformat(),
            "expires_at": self.expires_at.isoformat(),
        }


class AnalysisCache:
    """In-memory cache of analysis results keyed by content hash."""

    def __init__(
        self,
        ttl: Union[timedelta, float] = ANALYSIS_CACHE_TTL_SECONDS,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize cache.

        Args:
            ttl: Lifetime of an entry (timedelta or seconds)
            clock: Returns the current time; tests pass a fake
        """
        self.ttl = ttl if isinstance(ttl, timedelta) else timedelta(seconds=ttl)
        self._clock = clock
        self._entries: dict[str, CachedAnalysis] = {}
        self._lock = threading.RLock()
        self._key_locks: dict[str, threading.Lock] = {}
        self._sweeper: Optional[threading.Thread] = None
        self._stop_sweep = threading.Event()

    # ---------- lookups ----------

    def get(self, hash: str) -> Optional[Any]:
        """Return the cached analysis, or None if absent or expired.

        Expired entries are removed as they are found. A cached ``None`` reads
        the same as a miss; use ``get_or_compute`` or ``in`` to tell them apart.
        """
        value = self._lookup(hash)
        return None if value is _MISSING else value

    def _lookup(self, hash: str) -> Any:
        with self._lock:
            cached = self._entries.get(hash)
            if cached is None:
                return _MISSING

            if cached.is_expired(self._clock()):
                del self._entries[hash]
                return _MISSING

        logger.info(f"Using cached analysis for hash: {hash[:8]}...")
        return cached.analysis

    def put(self, hash: str, analysis: Any) -> CachedAnalysis:
        """Store an analysis, replacing any previous entry for the hash."""
        now = self._clock()
        entry = CachedAnalysis(hash=hash, analysis=analysis, timestamp=now, expires_at=now + self.ttl)
        with self._lock:
            self._entries[hash] = entry

        logger.info(f"Cached analysis for hash: {hash[:8]}... (expires: {entry.expires_at.isoformat()})")
        return entry

    # Names used by the rest of the application
    get_cached_analysis = get
    cache_analysis = put

    def get_or_compute(self, hash: str, compute: Callable[[], Any]) -> Any:
        """Return the cached analysis or compute, cache and return it.

        Concurrent callers for the same hash wait for a single computation.
        If ``compute`` raises, nothing is cached and the error propagates.
        """
        cached = self._lookup(hash)
        if cached is not _MISSING:
            return cached

        with self._lock:
            key_lock = self._key_locks.setdefault(hash, threading.Lock())

        with key_lock:
            # Another caller may have filled the entry while we waited
            cached = self._lookup(hash)
            if cached is not _MISSING:
                return cached

            try:
                value = compute()
                self.put(hash, value)
                return value
            finally:
                with self._lock:
                    self._key_locks.pop(hash, None)

    # ---------- maintenance ----------

    def invalidate(self, hash: str) -> bool:
        with self._lock:
            return self._entries.pop(hash, None) is not None

    def clear_expired(self) -> int:
        """Remove every expired entry.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        with self._lock:
            expired = [h for h, entry in self._entries.items() if entry.is_expired(now)]
            for h in expired:
                del self._entries[h]

        if expired:
            logger.info(f"Cleared {len(expired)} expired cache entries")
        return len(expired)

    def clear_all(self) -> int:
        with self._lock:
            size = len(self._entries)
            self._entries.clear()

        logger.info(f"Cleared all cache ({size} entries)")
        return size

    def list_entries(self) -> list[CachedAnalysis]:
        with self._lock:
            return list(self._entries.values())

    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics.

        Returns:
            Dict with the entry count and a summary of each entry
        """
        entries = self.list_entries()
        now = self._clock()
        expired = sum(1 for e in entries if e.is_expired(now))
        return {
            "size": len(entries),
            "valid_entries": len(entries) - expired,
            "expired_entries": expired,
            "ttl_seconds": int(self.ttl.total_seconds()),
            "entries": [e.to_dict() for e in entries],
        }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, hash: str) -> bool:
        with self._lock:
            cached = self._entries.get(hash)
            return cached is not None and not cached.is_expired(self._clock())

    # ---------- background sweep ----------

    def start_sweeper(self, interval: float = CACHE_SWEEP_INTERVAL_SECONDS) -> None:
        """Clear expired entries every ``interval`` seconds in a daemon thread."""
        if self._sweeper and self._sweeper.is_alive():
            return

        self._stop_sweep.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop,
            args=(interval,),
            name="archlens-cache-sweeper",
            daemon=True,
        )
        self._sweeper.start()

    def stop_sweeper(self) -> None:
        self._stop_sweep.set()
        if self._sweeper:
            self._sweeper.join(timeout=5)
            self._sweeper = None

    def _sweep_loop(self, interval: float) -> None:
        while not self._stop_sweep.wait(interval):
            self.clear_expired()


# ==================== Default instance ====================

_default_cache: Optional[AnalysisCache] = None
_default_lock = threading.Lock()


def get_default_cache() -> AnalysisCache:
    """Process-wide cache, created on first use with its hourly sweep running."""
    global _default_cache
    with _default_lock:
        if _default_cache is None:
            _default_cache = AnalysisCache()
            _default_cache.start_sweeper()
        return _default_cache


def set_default_cache(cache: Optional[AnalysisCache]) -> None:
    """Replace the process-wide cache (``None`` drops it)."""
    global _default_cache
    with _default_lock:
        if _default_cache is not None and _default_cache is not cache:
            _default_cache.stop_sweeper()
        _default_cache = cache


def get_cached_analysis(hash: str) -> Optional[Any]:
    return get_default_cache().get(hash)


def cache_analysis(hash: str, analysis: Any) -> None:
    get_default_cache().put(hash, analysis)


def clear_expired_cache() -> int:
    return get_default_cache().clear_expired()


def clear_all_cache() -> int:
    return get_default_cache().clear_all()


def get_cache_stats() -> dict[str, Any]:
    return get_default_cache().get_stats()
