"""
Locator Resolver - Public entry point.

Binds the synchronous resolution core to a snapshot provider. The only
suspension point in any method is fetching the snapshot; everything after
that is in-memory work with no awaits, so calls are safe from any asyncio
task and a single call never blocks on anything but the provider.

Example:
    >>> provider = PlaywrightSnapshotProvider(page)
    >>> resolver = LocatorResolver(provider)
    >>> handle = await resolver.resolve({"testid": "submit"})
    >>> node = await resolver.dereference(handle)
"""

import logging
from typing import Any, Optional, Union

from resilient_locator.config import Settings, get_settings
from resilient_locator.dom.provider import SnapshotProvider
from resilient_locator.dom.snapshot import Node, Snapshot
from resilient_locator.engine.composite import ResolutionResult
from resilient_locator.engine.policy import StabilityPolicy
from resilient_locator.engine.tracker import Dereference, Handle, HandleTracker
from resilient_locator.locator.describe import describe
from resilient_locator.locator.models import Locator
from resilient_locator.locator.parser import parse_locator

logger = logging.getLogger(__name__)

LocatorLike = Union[Locator, str, dict, list]


class LocatorResolver:
    """
    Resolve locators and dereference handles against a provider's snapshots.

    Args:
        provider: Where snapshots come from
        settings: Configuration (global settings if omitted)
        policy: Custom stability policy (built from settings if omitted)
        tracker: Pre-built tracker, e.g. to share one cache between resolvers
    """

    def __init__(
        self,
        provider: SnapshotProvider,
        settings: Optional[Settings] = None,
        policy: Optional[StabilityPolicy] = None,
        tracker: Optional[HandleTracker] = None,
    ):
        self.provider = provider
        self.settings = settings or get_settings()
        self.tracker = tracker or HandleTracker(self.settings, policy)

    async def snapshot(self) -> Snapshot:
        return await self.provider.get_snapshot()

    async def resolve(self, locator: LocatorLike) -> Handle:
        """
        Resolve a locator against the current snapshot.

        Raises:
            InvalidLocatorError: The locator description is malformed
            InvalidStrategyError: A relative anchor matched nothing
            AmbiguousMatchError: Several candidates tie for the top
            ElementNotFoundError: No trustworthy candidate
        """
        parsed = parse_locator(locator)
        snapshot = await self.snapshot()
        return self.tracker.resolve(parsed, snapshot)

    async def rank(self, locator: LocatorLike) -> ResolutionResult:
        """Ranked candidates and classification, without raising."""
        parsed = parse_locator(locator)
        snapshot = await self.snapshot()
        return self.tracker.rank(parsed, snapshot)

    async def refresh(self, handle: Handle) -> Dereference:
        """Dereference, also returning the (possibly new) handle."""
        snapshot = await self.snapshot()
        return self.tracker.dereference(handle, snapshot)

    async def dereference(self, handle: Handle) -> Node:
        """
        Current node for ``handle``.

        Raises:
            HandleLostError: The element is gone and the locator no longer
                resolves
        """
        result = await self.refresh(handle)
        if result.refreshed:
            logger.debug(f"Handle {handle.node_id} re-resolved to {result.handle.node_id}")
        return result.node

    def describe(self, locator: LocatorLike) -> str:
        return describe(parse_locator(locator))
