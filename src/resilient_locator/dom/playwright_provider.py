"""
Playwright Snapshot Provider - Snapshots of a live page.

The extraction script tags every element it visits with a persistent
expando id (``__rlId``), so an element keeps the same node id across
snapshots for as long as the browser keeps the element object alive.
Re-rendered elements get new ids, which is exactly what handle
revalidation is built to cope with.
"""

import hashlib
import json
import logging
from typing import Any, Dict, Optional, TYPE_CHECKING

from resilient_locator.dom.provider import SnapshotProvider
from resilient_locator.dom.snapshot import Snapshot
from resilient_locator.exceptions import SnapshotError

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)


# Returns {root, nodes: [{id, tag, attributes, text, children}]}
EXTRACT_SNAPSHOT_JS = r'''(rootSelector) => {
    const SKIP = new Set(['script', 'style', 'noscript', 'template']);
    if (window.__rlNextId === undefined) window.__rlNextId = 0;

    function idOf(el) {
        if (el.__rlId === undefined) {
            el.__rlId = 'e' + (window.__rlNextId++);
        }
        return el.__rlId;
    }

    const root = rootSelector ? document.querySelector(rootSelector) : document.body;
    if (!root) return null;

    const nodes = [];
    const stack = [root];
    while (stack.length) {
        const el = stack.pop();
        const attributes = {};
        for (const attr of Array.from(el.attributes)) {
            attributes[attr.name] = attr.value;
        }
        const text = Array.from(el.childNodes)
            .filter(n => n.nodeType === Node.TEXT_NODE)
            .map(n => n.textContent.trim())
            .filter(t => t.length > 0)
            .join(' ');
        const children = Array.from(el.children)
            .filter(c => !SKIP.has(c.tagName.toLowerCase()));
        nodes.push({
            id: idOf(el),
            tag: el.tagName.toLowerCase(),
            attributes: attributes,
            text: text,
            children: children.map(idOf),
        });
        for (let i = children.length - 1; i >= 0; i--) stack.push(children[i]);
    }
    return {root: idOf(root), nodes: nodes};
}'''


class PlaywrightSnapshotProvider(SnapshotProvider):
    """
    Snapshot provider backed by a Playwright page.

    Every get_snapshot() call extracts the DOM; the version only advances
    (and mutation listeners only fire) when the extracted content differs
    from the previous extraction.

    Usage:
        provider = PlaywrightSnapshotProvider(page)
        snapshot = await provider.get_snapshot()
    """

    def __init__(self, page: "Page", root_selector: Optional[str] = None):
        super().__init__()
        self.page = page
        self.root_selector = root_selector
        self._digest: Optional[str] = None
        self._snapshot: Optional[Snapshot] = None

    async def get_snapshot(self) -> Snapshot:
        try:
            raw = await self.page.evaluate(EXTRACT_SNAPSHOT_JS, self.root_selector)
        except Exception as e:
            raise SnapshotError(f"Failed to extract DOM snapshot: {e}", {"url": self._url()}) from e

        if not raw:
            raise SnapshotError(
                "Snapshot root element not found",
                {"url": self._url(), "root_selector": self.root_selector},
            )

        digest = self._digest_of(raw)
        if digest == self._digest and self._snapshot is not None:
            return self._snapshot

        changed = self._digest is not None
        version = self._version + 1 if changed else self._version
        snapshot = Snapshot.from_dict({**raw, "version": version})
        self._digest = digest
        self._snapshot = snapshot
        if changed:
            self._bump_version()
        logger.debug(f"Extracted snapshot v{version}: {len(snapshot)} nodes from {self._url()}")
        return snapshot

    def _url(self) -> str:
        return getattr(self.page, "url", "")

    @staticmethod
    def _digest_of(raw: Dict[str, Any]) -> str:
        encoded = json.dumps(raw, sort_keys=True, separators=(",", ":")).encode()
        return hashlib.md5(encoded).hexdigest()
