"""
Engine Module - Locator resolution core.

Pure, synchronous, in-memory:
- Stability policy and element fingerprints
- Per-strategy evaluation with fixed confidence weights
- Composite ranking and classification
- Handle lifecycle with a fingerprint-validated resolution cache
"""

from resilient_locator.engine.policy import StabilityPolicy, default_policy
from resilient_locator.engine.fingerprint import generate_fingerprint, normalize_text, collapse_whitespace
from resilient_locator.engine.evaluator import WeightedNode, evaluate_strategy
from resilient_locator.engine.composite import (
    MatchCandidate,
    ResolutionResult,
    ResolutionStatus,
    combine,
    classify,
    rank_candidates,
)
from resilient_locator.engine.cache import CacheEntry, CacheStats, ResolutionCache
from resilient_locator.engine.tracker import Dereference, Handle, HandleTracker

__all__ = [
    # Stability
    "StabilityPolicy",
    "default_policy",
    "generate_fingerprint",
    "normalize_text",
    "collapse_whitespace",
    # Evaluation
    "WeightedNode",
    "evaluate_strategy",
    # Ranking
    "MatchCandidate",
    "ResolutionResult",
    "ResolutionStatus",
    "combine",
    "classify",
    "rank_candidates",
    # Cache
    "CacheEntry",
    "CacheStats",
    "ResolutionCache",
    # Handles
    "Handle",
    "Dereference",
    "HandleTracker",
]
