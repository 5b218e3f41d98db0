"""
DOM Module - Snapshots of a DOM-like tree and where they come from.

The Playwright provider is not imported here so that the core works
without playwright installed; import it from
``resilient_locator.dom.playwright_provider`` directly.
"""

from resilient_locator.dom.snapshot import Node, Snapshot, join_text
from resilient_locator.dom.provider import SnapshotProvider, StaticSnapshotProvider

__all__ = [
    "Node",
    "Snapshot",
    "join_text",
    "SnapshotProvider",
    "StaticSnapshotProvider",
]
