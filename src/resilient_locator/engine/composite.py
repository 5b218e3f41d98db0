"""
Composite Resolver - Combine strategies, rank candidates, classify.

Pure functions over immutable inputs: the same locator against the same
snapshot always yields the same ranking and the same classification.

Combination:
- all-of: a node must satisfy every strategy; its confidence is the
  self-weighted average of the strategy weights (sum w^2 / sum w), so a
  weak extra signal such as a tag check barely dilutes a strong one,
  where multiplying would crush it.
- any-of: a node may satisfy any strategy; its confidence is the best
  weight it received.

Classification (threshold and tie band come from ResolverSettings):
- UNIQUE: top candidate at/above threshold, nobody within the tie band
- AMBIGUOUS: top candidate at/above threshold with rivals within the band;
  never auto-picked, since acting on the wrong element is worse than stopping
- LOW_CONFIDENCE: exactly one candidate and it is below threshold; returned,
  flagged for the caller to log
- NOT_FOUND: anything else
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from resilient_locator.config.settings import ResolverSettings
from resilient_locator.dom.snapshot import Node, Snapshot
from resilient_locator.engine.evaluator import WeightedNode, evaluate_strategy
from resilient_locator.engine.policy import StabilityPolicy, default_policy
from resilient_locator.exceptions import AmbiguousMatchError, ElementNotFoundError
from resilient_locator.locator.describe import describe
from resilient_locator.locator.models import Combinator, Locator

logger = logging.getLogger(__name__)

# Float noise guard for threshold / tie-band comparisons
EPSILON = 1e-9
CONFIDENCE_DIGITS = 6


class ResolutionStatus(Enum):
    """How a resolution turned out."""
    UNIQUE = "unique"
    LOW_CONFIDENCE = "low_confidence"
    AMBIGUOUS = "ambiguous"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class MatchCandidate:
    """A node and the confidence it earned in one resolution."""
    node: Node
    confidence: float
    order: int  # document-order position, the final tie-break


@dataclass(frozen=True)
class ResolutionResult:
    """
    Ranked candidates plus the classification of the outcome.

    Attributes:
        locator: Locator that was resolved
        status: Classification
        candidates: All candidates, best first
        winner: The chosen candidate (UNIQUE / LOW_CONFIDENCE only)
        tied: The near-tied candidates (AMBIGUOUS only)
    """
    locator: Locator
    status: ResolutionStatus
    candidates: Tuple[MatchCandidate, ...] = ()
    winner: Optional[MatchCandidate] = None
    tied: Tuple[MatchCandidate, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return self.winner is not None

    @property
    def low_confidence(self) -> bool:
        return self.status is ResolutionStatus.LOW_CONFIDENCE

    def raise_for_status(self) -> MatchCandidate:
        """
        Return the winner, or raise the typed error for this outcome.

        Raises:
            AmbiguousMatchError: Near-tied top candidates
            ElementNotFoundError: Nothing trustworthy matched
        """
        if self.winner is not None:
            return self.winner

        description = describe(self.locator)
        if self.status is ResolutionStatus.AMBIGUOUS:
            raise AmbiguousMatchError(
                f"{len(self.tied)} elements match {description} equally well",
                locator=description,
                candidates=self.tied,
            )
        raise ElementNotFoundError(
            f"No element matches {description}",
            locator=description,
            candidates=self.candidates,
        )


def combine(
    matches: Sequence[List[WeightedNode]],
    combinator: Combinator,
    snapshot: Snapshot,
) -> List[MatchCandidate]:
    """
    Merge per-strategy matches into candidates, best first.

    Ties on confidence are broken by document order.
    """
    weights: Dict[str, List[float]] = {}
    nodes: Dict[str, Node] = {}
    for strategy_matches in matches:
        seen = set()
        for node, weight in strategy_matches:
            if node.id in seen:
                continue
            seen.add(node.id)
            weights.setdefault(node.id, []).append(weight)
            nodes[node.id] = node

    candidates = []
    for node_id, node_weights in weights.items():
        if combinator is Combinator.ALL_OF:
            if len(node_weights) < len(matches):
                continue
            confidence = _self_weighted_average(node_weights)
        else:
            confidence = max(node_weights)
        candidates.append(MatchCandidate(
            node=nodes[node_id],
            confidence=round(confidence, CONFIDENCE_DIGITS),
            order=snapshot.order_of(node_id),
        ))

    candidates.sort(key=lambda c: (-c.confidence, c.order))
    return candidates


def _self_weighted_average(weights: List[float]) -> float:
    total = sum(weights)
    if total <= 0:
        return 0.0
    return sum(w * w for w in weights) / total


def classify(
    locator: Locator,
    candidates: List[MatchCandidate],
    settings: ResolverSettings,
) -> ResolutionResult:
    """Turn ranked candidates into a ResolutionResult."""
    ranked = tuple(candidates)
    if not ranked:
        return ResolutionResult(locator, ResolutionStatus.NOT_FOUND)

    top = ranked[0]
    if top.confidence + EPSILON >= settings.min_confidence:
        tied = tuple(c for c in ranked if top.confidence - c.confidence <= settings.tie_band + EPSILON)
        if len(tied) > 1:
            return ResolutionResult(locator, ResolutionStatus.AMBIGUOUS, ranked, tied=tied)
        return ResolutionResult(locator, ResolutionStatus.UNIQUE, ranked, winner=top)

    if len(ranked) == 1:
        return ResolutionResult(locator, ResolutionStatus.LOW_CONFIDENCE, ranked, winner=top)
    return ResolutionResult(locator, ResolutionStatus.NOT_FOUND, ranked)


def rank_candidates(
    locator: Locator,
    snapshot: Snapshot,
    settings: Optional[ResolverSettings] = None,
    policy: Optional[StabilityPolicy] = None,
) -> ResolutionResult:
    """
    Resolve a locator against a snapshot without raising on bad outcomes.

    Raises:
        InvalidStrategyError: A relative strategy's anchor matched nothing
    """
    settings = settings or ResolverSettings()
    policy = policy or default_policy()

    matches = [evaluate_strategy(s, snapshot, settings, policy) for s in locator.strategies]
    candidates = combine(matches, locator.combinator, snapshot)
    result = classify(locator, candidates, settings)

    logger.debug(
        f"{describe(locator)} -> {result.status.value} "
        f"({len(candidates)} candidate(s), top={candidates[0].confidence if candidates else None})"
    )
    return result
