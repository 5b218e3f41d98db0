"""
Resolution Cache - Skip full-tree scans for repeated lookups.

Entries are keyed by a locator's content hash and remember which node won
in which snapshot (version plus content digest), plus that node's
fingerprint. The cache only ever speeds things up:
- an entry from an older snapshot version is dropped when it is next
  looked up (no eager sweep on every mutation)
- an entry from a different tree at the same version is dropped too;
  versions alone do not identify a snapshot
- a hit is still fingerprint-checked by the tracker before it is trusted
- Handles are never stored; entries hold plain ids and hashes

Concurrent resolutions of the same locator may race to write. For one
key and snapshot the first write wins (all writers computed the same
deterministic result anyway), and a write from an older version never
replaces a newer entry.
"""

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """What a past resolution of one locator produced."""
    version: int
    node_id: str
    fingerprint: str
    confidence: float
    low_confidence: bool = False
    digest: str = ""


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    expired: int = 0
    conflicts: int = 0
    evictions: int = 0
    rejected_writes: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "expired": self.expired,
            "conflicts": self.conflicts,
            "evictions": self.evictions,
            "rejected_writes": self.rejected_writes,
        }


class ResolutionCache:
    """
    Bounded, thread-safe, least-recently-used map of locator key -> CacheEntry.

    Usage:
        cache = ResolutionCache(max_entries=512)
        entry = cache.get(locator.key, snapshot.version, snapshot.digest)
        cache.put(locator.key, CacheEntry(snapshot.version, node.id, fp, 1.0, digest=snapshot.digest))
    """

    def __init__(self, max_entries: int = 1024):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self.stats = CacheStats()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str, version: int, digest: Optional[str] = None) -> Optional[CacheEntry]:
        """
        Entry for ``key`` recorded at ``version`` (and ``digest``, if given).

        Entries recorded at an older version, or at the same version over a
        different tree, are removed here, lazily.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.stats.misses += 1
                return None
            if entry.version < version:
                del self._entries[key]
                self.stats.expired += 1
                self.stats.misses += 1
                return None
            if entry.version > version:
                # Caller holds an older snapshot than the one cached against
                self.stats.misses += 1
                return None
            if digest is not None and entry.digest != digest:
                del self._entries[key]
                self.stats.conflicts += 1
                self.stats.misses += 1
                return None
            self._entries.move_to_end(key)
            self.stats.hits += 1
            return entry

    def put(self, key: str, entry: CacheEntry) -> bool:
        """
        Store ``entry`` unless an entry for the same snapshot or a newer
        version exists. A same-version entry over a different tree is replaced.

        Returns:
            True if this write won
        """
        with self._lock:
            existing = self._entries.get(key)
            if existing is not None and (
                existing.version > entry.version
                or (existing.version == entry.version and existing.digest == entry.digest)
            ):
                self.stats.rejected_writes += 1
                return False

            self._entries[key] = entry
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                self.stats.evictions += 1
                logger.debug(f"Evicted cache entry {evicted[:8]}")
            return True

    def invalidate(self, key: str) -> None:
        """Drop the entry for ``key`` if any."""
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
