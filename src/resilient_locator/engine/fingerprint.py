"""
Element Fingerprinting - Stable identity for nodes across re-renders.

A fingerprint hashes what defines an element and leaves out what a
framework regenerates:
- tag name
- attribute pairs, minus volatile attributes (inline styles, scoped-style
  markers, counter-suffixed ids)
- class names, minus bundler hashes (CSS-in-JS, CSS Modules, styled-jsx)
- normalized text content

So a handle survives a full class/id regeneration as long as the tag,
stable attributes and text stay the same, and goes stale as soon as any
of those genuinely change.
"""

import hashlib
import re
from typing import Optional

from resilient_locator.dom.snapshot import Node
from resilient_locator.engine.policy import StabilityPolicy, default_policy


FINGERPRINT_LENGTH = 16
TEXT_LIMIT = 100


def normalize_text(text: Optional[str]) -> str:
    """
    Normalize text content for fingerprinting.

    - Lowercase
    - Collapse whitespace
    - Remove leading/trailing whitespace
    - Truncate to reasonable length
    """
    if not text:
        return ""

    text = re.sub(r'\s+', ' ', text.strip().lower())
    return text[:TEXT_LIMIT]


def collapse_whitespace(text: Optional[str]) -> str:
    """Whitespace-normalize text without changing case (used for matching)."""
    if not text:
        return ""
    return re.sub(r'\s+', ' ', text).strip()


def fingerprint_signals(node: Node, policy: Optional[StabilityPolicy] = None) -> str:
    """The canonical signal string a fingerprint is hashed from."""
    policy = policy or default_policy()
    signals = [f"tag:{node.tag}"]

    for name, value in policy.stable_attributes(node.attributes):
        signals.append(f"attr:{name}={value}")

    text = normalize_text(node.text_content)
    if text:
        signals.append(f"text:{text}")

    return '|'.join(signals)


def generate_fingerprint(node: Node, policy: Optional[StabilityPolicy] = None) -> str:
    """
    Generate stable fingerprint for a node.

    Args:
        node: Snapshot node
        policy: Stability policy deciding which attributes are volatile

    Returns:
        16-character hex fingerprint
    """
    signal_string = fingerprint_signals(node, policy)
    return hashlib.md5(signal_string.encode()).hexdigest()[:FINGERPRINT_LENGTH]
