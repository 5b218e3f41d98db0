"""
Strategy Evaluator - One strategy against one snapshot.

Each strategy kind yields the nodes it matches, in document order, tagged
with a fixed per-kind weight reflecting how stable that kind of signal is
in real pages:

    attribute-equals (stable hook)      1.0   data-testid, role, aria-*
    attribute-equals (anything else)    0.6   class/id get regenerated
    attribute-contains (stable/other)   0.7 / 0.4
    text-equals                         0.8
    text-contains                       0.5
    css-like-path                       0.6
    tag-equals                          0.2   too broad alone
    relative                            anchor weight x 0.9 per hop

An empty result is not an error. The one exception is a relative strategy
whose anchor matches nothing: that raises InvalidStrategyError so the
caller can tell "anchor missing" from "target missing".
"""

import logging
from typing import Callable, Dict, List, NamedTuple, Optional

from resilient_locator.config.settings import ResolverSettings
from resilient_locator.dom.snapshot import Node, Snapshot
from resilient_locator.engine.fingerprint import collapse_whitespace
from resilient_locator.engine.policy import StabilityPolicy, default_policy
from resilient_locator.exceptions import InvalidStrategyError
from resilient_locator.locator.css_path import match_css_path
from resilient_locator.locator.describe import describe_strategy
from resilient_locator.locator.models import (
    AttributeContains,
    AttributeEquals,
    CssPath,
    Relation,
    Relative,
    Strategy,
    TagEquals,
    TextContains,
    TextEquals,
)

logger = logging.getLogger(__name__)


class WeightedNode(NamedTuple):
    """A node matched by one strategy, with that strategy's weight."""
    node: Node
    weight: float


def evaluate_strategy(
    strategy: Strategy,
    snapshot: Snapshot,
    settings: Optional[ResolverSettings] = None,
    policy: Optional[StabilityPolicy] = None,
) -> List[WeightedNode]:
    """
    Find every node satisfying ``strategy``.

    Args:
        strategy: The strategy to evaluate
        snapshot: Snapshot to search
        settings: Weights and hop decay (defaults if omitted)
        policy: Decides which attributes count as stable hooks

    Returns:
        (node, weight) pairs in document order; possibly empty

    Raises:
        InvalidStrategyError: A relative strategy's anchor matched nothing
    """
    settings = settings or ResolverSettings()
    policy = policy or default_policy()
    weights = settings.weights

    if isinstance(strategy, AttributeEquals):
        name = strategy.name.lower()
        weight = weights.stable_attribute if policy.is_stable_attribute(name) else weights.generic_attribute
        return _scan(snapshot, lambda n: n.attributes.get(name) == strategy.value, weight)

    if isinstance(strategy, AttributeContains):
        name = strategy.name.lower()
        if policy.is_stable_attribute(name):
            weight = weights.stable_attribute_contains
        else:
            weight = weights.generic_attribute_contains
        return _scan(
            snapshot,
            lambda n: name in n.attributes and strategy.substring in n.attributes[name],
            weight,
        )

    if isinstance(strategy, TagEquals):
        return _scan(snapshot, lambda n: n.tag == strategy.tag, weights.tag_equals)

    if isinstance(strategy, TextEquals):
        target = collapse_whitespace(strategy.text)
        return _scan_innermost(snapshot, lambda text: text == target, weights.text_equals)

    if isinstance(strategy, TextContains):
        target = collapse_whitespace(strategy.text)
        return _scan_innermost(snapshot, lambda text: target in text, weights.text_contains)

    if isinstance(strategy, CssPath):
        return _scan(snapshot, lambda n: match_css_path(strategy.segments, n, snapshot), weights.css_path)

    if isinstance(strategy, Relative):
        return _evaluate_relative(strategy, snapshot, settings, policy)

    raise TypeError(f"Unknown strategy type: {type(strategy).__name__}")


def _scan(snapshot: Snapshot, predicate: Callable[[Node], bool], weight: float) -> List[WeightedNode]:
    return [WeightedNode(node, weight) for node in snapshot.iter_nodes() if predicate(node)]


def _scan_innermost(
    snapshot: Snapshot,
    text_predicate: Callable[[str], bool],
    weight: float,
) -> List[WeightedNode]:
    """
    Text matches, keeping only the innermost node carrying the text.

    text_content includes descendants, so a wrapper around a matching
    element would match too; a node is skipped when one of its children
    already satisfies the predicate.
    """
    hits: Dict[str, bool] = {}
    for node in snapshot.iter_nodes():
        hits[node.id] = text_predicate(collapse_whitespace(node.text_content))

    return [
        WeightedNode(node, weight)
        for node in snapshot.iter_nodes()
        if hits[node.id] and not any(hits[c] for c in node.children)
    ]


def _evaluate_relative(
    strategy: Relative,
    snapshot: Snapshot,
    settings: ResolverSettings,
    policy: StabilityPolicy,
) -> List[WeightedNode]:
    anchors = evaluate_strategy(strategy.anchor, snapshot, settings, policy)
    if not anchors:
        anchor = describe_strategy(strategy.anchor)
        raise InvalidStrategyError(f"Anchor {anchor} matched no nodes", anchor=anchor)

    best: Dict[str, float] = {}
    for anchor_node, anchor_weight in anchors:
        for target, hops in _walk(snapshot, anchor_node, strategy.relation, strategy.steps):
            weight = anchor_weight * (settings.hop_decay ** hops)
            if weight > best.get(target.id, -1.0):
                best[target.id] = weight

    logger.debug(
        f"relative {strategy.relation.value}: {len(anchors)} anchor(s) -> {len(best)} target(s)"
    )
    ordered = sorted(best, key=snapshot.order_of)
    return [WeightedNode(snapshot.get(node_id), best[node_id]) for node_id in ordered]


def _walk(snapshot: Snapshot, node: Node, relation: Relation, steps: Optional[int]):
    """Yield (target, hops) pairs reached from ``node``."""
    if relation is Relation.PARENT:
        current: Optional[Node] = node
        for _ in range(steps):
            current = snapshot.parent_of(current)
            if current is None:
                return
        yield current, steps

    elif relation is Relation.CHILD:
        for descendant, depth in snapshot.descendants(node, max_depth=steps):
            if depth == steps:
                yield descendant, steps

    elif relation in (Relation.NEXT_SIBLING, Relation.PREVIOUS_SIBLING):
        offset = steps if relation is Relation.NEXT_SIBLING else -steps
        sibling = snapshot.sibling(node, offset)
        if sibling is not None:
            yield sibling, steps

    elif relation is Relation.ANCESTOR:
        yield from snapshot.ancestors(node, max_depth=steps)

    else:
        yield from snapshot.descendants(node, max_depth=steps)
