"""
Snapshot Provider Interface - Where snapshots and mutation signals come from.

The resolver consumes snapshots; it never builds or watches a DOM itself.
Providers may be network-bound (a remote browser), so get_snapshot() is a
coroutine. Mutation notification only advances a version counter: the
resolver reads ``snapshot.version`` and never subscribes to anything.
"""

from abc import ABC, abstractmethod
import logging
from typing import Callable, List, Optional

from resilient_locator.dom.snapshot import Snapshot

logger = logging.getLogger(__name__)

MutationCallback = Callable[[int], None]


class SnapshotProvider(ABC):
    """
    Abstract source of DOM snapshots.

    Implementations must hand out snapshots that are consistent for the
    duration of one resolver call (no torn reads) and must bump
    ``version`` whenever the underlying tree changes.
    """

    def __init__(self) -> None:
        self._callbacks: List[MutationCallback] = []
        self._version = 0

    @property
    def version(self) -> int:
        """Current snapshot version."""
        return self._version

    @abstractmethod
    async def get_snapshot(self) -> Snapshot:
        """Return the current snapshot."""
        pass

    def on_mutation(self, callback: MutationCallback) -> Callable[[], None]:
        """
        Register a callback invoked with the new version on every mutation.

        Returns:
            A function that unregisters the callback
        """
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def _bump_version(self) -> int:
        self._version += 1
        logger.debug(f"Snapshot version -> {self._version}")
        for callback in list(self._callbacks):
            try:
                callback(self._version)
            except Exception as e:
                # One broken listener must not stop the others being told
                logger.error(f"Mutation callback {callback!r} failed: {e}", exc_info=True)
        return self._version


class StaticSnapshotProvider(SnapshotProvider):
    """
    In-memory provider: serves whatever snapshot was last published.

    Usage:
        provider = StaticSnapshotProvider(Snapshot.from_tree(tree))
        provider.publish(provider.current.evolve("n3", own_text="Loaded"))
    """

    def __init__(self, snapshot: Optional[Snapshot] = None):
        super().__init__()
        self._snapshot = snapshot
        if snapshot is not None:
            self._version = snapshot.version

    @property
    def current(self) -> Snapshot:
        if self._snapshot is None:
            raise LookupError("No snapshot has been published yet")
        return self._snapshot

    def publish(self, snapshot: Snapshot) -> Snapshot:
        """
        Make ``snapshot`` current and notify mutation listeners.

        The published snapshot is re-stamped with the provider's next
        version, so versions are monotonic regardless of how the snapshot
        was produced.
        """
        version = self._version + 1
        if snapshot.version != version:
            snapshot = snapshot.with_version(version)
        self._snapshot = snapshot
        self._bump_version()
        return snapshot

    async def get_snapshot(self) -> Snapshot:
        return self.current
