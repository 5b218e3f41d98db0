"""
Handle Tracker - resolve -> Handle -> revalidate -> re-resolve.

A Handle remembers the node it resolved to, the locator that found it and
that node's fingerprint. Dereferencing checks the stored id against the
current snapshot:

- id present and fingerprint unchanged: return the node directly (no search)
- id gone, or fingerprint changed: the handle is stale, so the original
  locator is resolved again and a new Handle is returned
- that re-resolution fails: HandleLostError, the element is really gone

The tracker performs only in-memory work. It never awaits, never retries,
and never holds on to Handles; the optional cache stores ids and hashes,
scoped to the snapshot content they were computed from.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from resilient_locator.config import Settings, get_settings
from resilient_locator.dom.snapshot import Node, Snapshot
from resilient_locator.engine.cache import CacheEntry, ResolutionCache
from resilient_locator.engine.composite import ResolutionResult, rank_candidates
from resilient_locator.engine.fingerprint import generate_fingerprint
from resilient_locator.engine.policy import StabilityPolicy
from resilient_locator.exceptions import HandleLostError, ResolutionError
from resilient_locator.locator.describe import describe
from resilient_locator.locator.models import Locator

logger = logging.getLogger(__name__)


@dataclass
class Handle:
    """
    Caller-owned reference to a resolved element.

    Attributes:
        node_id: Snapshot node id the locator resolved to
        locator: Locator used, kept for re-resolution
        fingerprint: Fingerprint of the node when last validated
        confidence: Confidence of the resolution that produced this handle
        low_confidence: True if that resolution was below threshold
        version: Snapshot version the handle was last validated against
        last_known_good: Unix timestamp of the last successful validation
    """
    node_id: str
    locator: Locator
    fingerprint: str
    confidence: float
    low_confidence: bool = False
    version: int = 0
    last_known_good: float = field(default_factory=time.time)

    def __repr__(self) -> str:
        flag = ", low_confidence" if self.low_confidence else ""
        return (
            f"Handle(node_id={self.node_id!r}, fingerprint={self.fingerprint!r}, "
            f"confidence={self.confidence}{flag}, version={self.version})"
        )


@dataclass(frozen=True)
class Dereference:
    """
    Result of dereferencing a handle.

    Attributes:
        node: The current node
        handle: The handle to keep using (a new one if ``refreshed``)
        refreshed: True when the old handle was stale and re-resolved
    """
    node: Node
    handle: Handle
    refreshed: bool = False


class HandleTracker:
    """
    Owns the resolve / dereference lifecycle and the resolution cache.

    Usage:
        tracker = HandleTracker()
        handle = tracker.resolve(locator, snapshot_v1)
        ...
        result = tracker.dereference(handle, snapshot_v2)
        handle = result.handle
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        policy: Optional[StabilityPolicy] = None,
        cache: Optional[ResolutionCache] = None,
    ):
        settings = settings or get_settings()
        self.settings = settings
        self.policy = policy or StabilityPolicy.from_settings(settings.stability)

        if cache is not None:
            self.cache: Optional[ResolutionCache] = cache
        elif settings.cache.enabled:
            self.cache = ResolutionCache(max_entries=settings.cache.max_entries)
        else:
            self.cache = None

    def fingerprint(self, node: Node) -> str:
        return generate_fingerprint(node, self.policy)

    def rank(self, locator: Locator, snapshot: Snapshot) -> ResolutionResult:
        """Full ranking without raising on ambiguous / missing outcomes."""
        return rank_candidates(locator, snapshot, self.settings.resolver, self.policy)

    def resolve(self, locator: Locator, snapshot: Snapshot) -> Handle:
        """
        Resolve ``locator`` and wrap the winner in a new Handle.

        Raises:
            InvalidStrategyError: A relative anchor matched nothing
            AmbiguousMatchError: Several candidates tie for the top
            ElementNotFoundError: No trustworthy candidate
        """
        cached = self._from_cache(locator, snapshot)
        if cached is not None:
            return cached

        result = self.rank(locator, snapshot)
        winner = result.raise_for_status()
        fingerprint = self.fingerprint(winner.node)

        if result.low_confidence:
            logger.warning(
                f"Low-confidence match for {describe(locator)}: "
                f"{winner.node.tag}#{winner.node.id} at {winner.confidence:.2f} "
                f"(threshold {self.settings.resolver.min_confidence:.2f})"
            )

        if self.cache is not None:
            self.cache.put(locator.key, CacheEntry(
                version=snapshot.version,
                node_id=winner.node.id,
                fingerprint=fingerprint,
                confidence=winner.confidence,
                low_confidence=result.low_confidence,
                digest=snapshot.digest,
            ))

        return Handle(
            node_id=winner.node.id,
            locator=locator,
            fingerprint=fingerprint,
            confidence=winner.confidence,
            low_confidence=result.low_confidence,
            version=snapshot.version,
        )

    def _from_cache(self, locator: Locator, snapshot: Snapshot) -> Optional[Handle]:
        if self.cache is None:
            return None

        key = locator.key
        entry = self.cache.get(key, snapshot.version, snapshot.digest)
        if entry is None:
            return None

        node = snapshot.get(entry.node_id)
        if node is None or self.fingerprint(node) != entry.fingerprint:
            logger.debug(f"Cache entry for {describe(locator)} failed validation")
            self.cache.invalidate(key)
            return None

        logger.debug(f"Cache hit for {describe(locator)} -> {entry.node_id}")
        return Handle(
            node_id=entry.node_id,
            locator=locator,
            fingerprint=entry.fingerprint,
            confidence=entry.confidence,
            low_confidence=entry.low_confidence,
            version=snapshot.version,
        )

    def is_valid(self, handle: Handle, snapshot: Snapshot) -> bool:
        """True if the handle's node still exists with the same fingerprint."""
        node = snapshot.get(handle.node_id)
        return node is not None and self.fingerprint(node) == handle.fingerprint

    def dereference(self, handle: Handle, snapshot: Snapshot) -> Dereference:
        """
        Get the handle's node in ``snapshot``, re-resolving if it went stale.

        Raises:
            HandleLostError: The handle was stale and re-resolution failed
        """
        node = snapshot.get(handle.node_id)
        if node is not None and self.fingerprint(node) == handle.fingerprint:
            handle.last_known_good = time.time()
            handle.version = snapshot.version
            return Dereference(node=node, handle=handle)

        reason = "node removed" if node is None else "fingerprint changed"
        logger.info(f"Handle {handle.node_id} is stale ({reason}); re-resolving {describe(handle.locator)}")

        try:
            fresh = self.resolve(handle.locator, snapshot)
        except ResolutionError as e:
            raise HandleLostError(
                f"Lost element for {describe(handle.locator)}: {e.message}",
                handle=handle,
                cause=e,
            ) from e

        return Dereference(node=snapshot.get(fresh.node_id), handle=fresh, refreshed=True)
