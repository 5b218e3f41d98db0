"""
Tests for candidate combination, ranking and classification.
"""

import pytest

from resilient_locator.config import ResolverSettings
from resilient_locator.dom.snapshot import Node, Snapshot
from resilient_locator.engine.composite import (
    MatchCandidate,
    ResolutionStatus,
    classify,
    rank_candidates,
)
from resilient_locator.exceptions import AmbiguousMatchError, ElementNotFoundError, InvalidStrategyError
from resilient_locator.locator.models import (
    AttributeEquals,
    Locator,
    Relation,
    Relative,
    TagEquals,
    TextContains,
    TextEquals,
)


def _candidates(*confidences):
    return [
        MatchCandidate(node=Node(id=f"c{i}", tag="div"), confidence=c, order=i)
        for i, c in enumerate(confidences)
    ]


def _ranking(result):
    return [(c.node.id, c.confidence) for c in result.candidates]


class TestScenarios:
    """End-to-end ranking outcomes on small pages."""

    def test_unique_stable_attribute(self):
        """A single stable hook resolves uniquely at full confidence."""
        snapshot = Snapshot.from_tree({"tag": "body", "children": [
            {"tag": "button", "attributes": {"data-testid": "submit"}},
        ]})
        result = rank_candidates(Locator.all_of(AttributeEquals("data-testid", "submit")), snapshot)

        assert result.status is ResolutionStatus.UNIQUE
        assert result.winner.node.id == "n1"
        assert result.winner.confidence == 1.0
        assert result.raise_for_status() is result.winner

    def test_ambiguous_text(self):
        """Two equally good text matches are never auto-picked."""
        snapshot = Snapshot.from_tree({"tag": "body", "children": [
            {"tag": "div", "text": "Submit"},
            {"tag": "div", "text": "Submit"},
        ]})
        result = rank_candidates(Locator.all_of(TextEquals("Submit")), snapshot)

        assert result.status is ResolutionStatus.AMBIGUOUS
        assert result.winner is None
        assert [(c.node.id, c.confidence) for c in result.tied] == [("n1", 0.8), ("n2", 0.8)]

        with pytest.raises(AmbiguousMatchError) as exc_info:
            result.raise_for_status()
        assert len(exc_info.value.candidates) == 2
        assert exc_info.value.details["node_ids"] == ["n1", "n2"]

    def test_not_found(self, login_snapshot):
        """No matching node at all."""
        result = rank_candidates(Locator.all_of(TagEquals("table")), login_snapshot)

        assert result.status is ResolutionStatus.NOT_FOUND
        assert result.candidates == ()
        with pytest.raises(ElementNotFoundError):
            result.raise_for_status()

    def test_low_confidence_single_candidate(self, login_snapshot):
        """A lone weak candidate is returned but flagged."""
        result = rank_candidates(Locator.all_of(TagEquals("button")), login_snapshot)

        assert result.status is ResolutionStatus.LOW_CONFIDENCE
        assert result.low_confidence
        assert result.ok
        assert result.winner.node.id == "n8"

    def test_several_weak_candidates(self, login_snapshot):
        """Several below-threshold candidates are not found, with diagnostics."""
        result = rank_candidates(Locator.all_of(TagEquals("input")), login_snapshot)

        assert result.status is ResolutionStatus.NOT_FOUND
        with pytest.raises(ElementNotFoundError) as exc_info:
            result.raise_for_status()
        assert [c.node.id for c in exc_info.value.candidates] == ["n4", "n7"]

    def test_clear_winner_over_weak_rivals(self, login_snapshot):
        """Rivals outside the tie band do not cause ambiguity."""
        locator = Locator.any_of(AttributeEquals("data-testid", "submit"), TagEquals("input"))
        result = rank_candidates(locator, login_snapshot)

        assert result.status is ResolutionStatus.UNIQUE
        assert _ranking(result) == [("n8", 1.0), ("n4", 0.2), ("n7", 0.2)]


class TestCombinators:
    """Test all-of and any-of scoring."""

    def test_all_of_single_strategy(self, login_snapshot):
        """One strategy keeps its own weight."""
        result = rank_candidates(Locator.all_of(TextEquals("Sign in")), login_snapshot)
        assert _ranking(result) == [("n8", 0.8)]

    def test_all_of_self_weighted_average(self, login_snapshot):
        """A weak extra signal barely dilutes a strong one."""
        locator = Locator.all_of(AttributeEquals("data-testid", "submit"), TagEquals("button"))
        result = rank_candidates(locator, login_snapshot)
        assert _ranking(result) == [("n8", pytest.approx(0.866667))]
        assert result.status is ResolutionStatus.UNIQUE

    def test_all_of_requires_every_strategy(self, login_snapshot):
        """Nodes missing any strategy are dropped."""
        locator = Locator.all_of(TagEquals("input"), AttributeEquals("name", "email"))
        assert _ranking(rank_candidates(locator, login_snapshot)) == [("n4", pytest.approx(0.5))]

    def test_all_of_no_intersection(self, login_snapshot):
        """Disjoint strategies give nothing."""
        locator = Locator.all_of(TagEquals("input"), TextEquals("Sign in"))
        assert rank_candidates(locator, login_snapshot).status is ResolutionStatus.NOT_FOUND

    def test_any_of_takes_best(self, login_snapshot):
        """A node matched by several strategies keeps its best weight."""
        locator = Locator.any_of(TextEquals("Sign in"), TagEquals("button"))
        assert _ranking(rank_candidates(locator, login_snapshot)) == [("n8", 0.8)]

    def test_any_of_union(self, login_snapshot):
        """any-of returns the union, ties broken by document order."""
        locator = Locator.any_of(TagEquals("label"), TagEquals("input"))
        result = rank_candidates(locator, login_snapshot)
        assert [c.node.id for c in result.candidates] == ["n3", "n4", "n6", "n7"]

    def test_relative_with_stable_anchor(self, login_snapshot):
        """A relative strategy narrows an ambiguous tag."""
        locator = Locator.all_of(TagEquals("input"), Relative(TextEquals("Email"), Relation.NEXT_SIBLING))
        result = rank_candidates(locator, login_snapshot)
        assert result.status is ResolutionStatus.UNIQUE
        assert result.winner.node.id == "n4"

    def test_missing_anchor_propagates(self, login_snapshot):
        """InvalidStrategyError is not turned into a classification."""
        locator = Locator.all_of(Relative(TextEquals("Username"), Relation.NEXT_SIBLING))
        with pytest.raises(InvalidStrategyError):
            rank_candidates(locator, login_snapshot)

    def test_deterministic(self, login_snapshot):
        """Repeated ranking gives identical output."""
        locator = Locator.any_of(TagEquals("label"), TagEquals("input"), TextContains("Sign"))
        first = rank_candidates(locator, login_snapshot)
        second = rank_candidates(locator, login_snapshot)
        assert _ranking(first) == _ranking(second)
        assert first.status is second.status


class TestClassify:
    """Test threshold and tie-band classification."""

    def test_empty(self):
        result = classify(Locator.all_of(TagEquals("a")), [], ResolverSettings())
        assert result.status is ResolutionStatus.NOT_FOUND

    def test_threshold_is_inclusive(self):
        """A lone candidate exactly at the threshold is unique."""
        result = classify(Locator.all_of(TagEquals("a")), _candidates(0.3), ResolverSettings())
        assert result.status is ResolutionStatus.UNIQUE

    def test_tie_band_is_inclusive(self):
        """A rival exactly at the band edge makes the result ambiguous."""
        result = classify(Locator.all_of(TagEquals("a")), _candidates(0.8, 0.75), ResolverSettings())
        assert result.status is ResolutionStatus.AMBIGUOUS
        assert len(result.tied) == 2

    def test_outside_tie_band(self):
        """A rival just outside the band leaves the top unique."""
        result = classify(Locator.all_of(TagEquals("a")), _candidates(0.8, 0.74), ResolverSettings())
        assert result.status is ResolutionStatus.UNIQUE
        assert result.winner.node.id == "c0"

    def test_rival_below_threshold_still_ties(self):
        """A near-tied rival counts even if it is under the threshold."""
        result = classify(Locator.all_of(TagEquals("a")), _candidates(0.32, 0.28), ResolverSettings())
        assert result.status is ResolutionStatus.AMBIGUOUS

    def test_custom_settings(self, login_snapshot):
        """Threshold and band come from settings."""
        settings = ResolverSettings(min_confidence=0.1)
        result = rank_candidates(Locator.all_of(TagEquals("button")), login_snapshot, settings)
        assert result.status is ResolutionStatus.UNIQUE

        wide = ResolverSettings(tie_band=0.5)
        result = classify(Locator.all_of(TagEquals("a")), _candidates(0.9, 0.5), wide)
        assert result.status is ResolutionStatus.AMBIGUOUS
