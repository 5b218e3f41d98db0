"""
Resolution-related exceptions.

Every failure of the resolver is one of these typed errors. None of them
are retried internally; the caller decides whether to wait and try again,
refine the locator, or fail its workflow.
"""

from typing import TYPE_CHECKING, List, Optional, Sequence

from resilient_locator.exceptions.base import ResilientLocatorError

if TYPE_CHECKING:
    from resilient_locator.engine.composite import MatchCandidate
    from resilient_locator.engine.tracker import Handle


class ResolutionError(ResilientLocatorError):
    """Base exception for locator resolution failures."""
    pass


class InvalidStrategyError(ResolutionError):
    """
    A relative strategy's anchor resolved to zero nodes.
    
    Kept distinct from ElementNotFoundError so the caller can tell
    "anchor missing" from "target missing".
    """
    
    def __init__(self, message: str, anchor: str):
        super().__init__(message, {"anchor": anchor})
        self.anchor = anchor


class ElementNotFoundError(ResolutionError):
    """
    No candidate met the confidence threshold.
    
    Attributes:
        locator: Human-readable description of the locator
        candidates: Below-threshold candidates, for diagnostics
    """
    
    def __init__(
        self,
        message: str,
        locator: str,
        candidates: Optional[Sequence["MatchCandidate"]] = None,
    ):
        self.candidates: List["MatchCandidate"] = list(candidates or [])
        super().__init__(message, {"locator": locator, "candidates": len(self.candidates)})
        self.locator = locator


class AmbiguousMatchError(ResolutionError):
    """
    Several candidates scored within the tie band of the top score.
    
    The resolver never picks among near-ties; all tied candidates are
    carried so the caller can refine the locator or choose manually.
    """
    
    def __init__(self, message: str, locator: str, candidates: Sequence["MatchCandidate"]):
        self.candidates: List["MatchCandidate"] = list(candidates)
        super().__init__(message, {
            "locator": locator,
            "node_ids": [c.node.id for c in self.candidates],
        })
        self.locator = locator


class HandleLostError(ResolutionError):
    """
    A stale handle could not be re-resolved.
    
    Signals the target element is truly gone, not merely mutated.
    The fallback failure is available as ``cause`` (and ``__cause__``).
    """
    
    def __init__(self, message: str, handle: "Handle", cause: Optional[ResolutionError] = None):
        super().__init__(message, {
            "node_id": handle.node_id,
            "cause": type(cause).__name__ if cause else None,
        })
        self.handle = handle
        self.cause = cause
