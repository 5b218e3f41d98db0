"""
Resilient Locator - Find the same DOM element again after the page changes.

Given a declarative, multi-strategy locator and a snapshot of a DOM-like
tree, the resolver deterministically ranks matching nodes, refuses to guess
between near-ties, and hands out Handles that survive framework re-renders
and regenerated class names.

Example:
    >>> from resilient_locator import LocatorResolver, StaticSnapshotProvider, Snapshot
    >>> provider = StaticSnapshotProvider(Snapshot.from_tree(tree))
    >>> resolver = LocatorResolver(provider)
    >>> handle = await resolver.resolve({"testid": "submit"})
    >>> node = await resolver.dereference(handle)
"""

__version__ = "0.1.0"

# Public API exports
from resilient_locator.config.settings import Settings
from resilient_locator.dom import Node, Snapshot, SnapshotProvider, StaticSnapshotProvider
from resilient_locator.engine import Handle, HandleTracker, ResolutionStatus, StabilityPolicy
from resilient_locator.locator import Locator, describe, parse_locator
from resilient_locator.resolver import LocatorResolver

__all__ = [
    "LocatorResolver",
    "HandleTracker",
    "Handle",
    "ResolutionStatus",
    "StabilityPolicy",
    "Locator",
    "parse_locator",
    "describe",
    "Node",
    "Snapshot",
    "SnapshotProvider",
    "StaticSnapshotProvider",
    "Settings",
    "__version__",
]
