"""
Tests for the handle lifecycle: resolve, validate, re-resolve.
"""

import logging

import pytest

from resilient_locator.config import CacheSettings, Settings
from resilient_locator.dom.snapshot import Snapshot
from resilient_locator.engine.cache import CacheEntry, ResolutionCache
from resilient_locator.engine.fingerprint import generate_fingerprint
from resilient_locator.engine.tracker import HandleTracker
from resilient_locator.exceptions import (
    AmbiguousMatchError,
    ElementNotFoundError,
    HandleLostError,
    InvalidStrategyError,
)
from resilient_locator.locator.models import (
    AttributeEquals,
    Locator,
    Relation,
    Relative,
    TagEquals,
    TextEquals,
)


SUBMIT = Locator.all_of(AttributeEquals("data-testid", "submit"))


@pytest.fixture
def status_snapshot():
    """A page with a single status span (n1)."""
    return Snapshot.from_tree({"tag": "body", "children": [
        {"tag": "span", "attributes": {"data-testid": "status"}, "text": "Loading..."},
    ]})


class TestResolve:
    """Test resolving locators into handles."""

    def test_resolve_creates_handle(self, tracker, login_snapshot):
        """A unique match becomes a Handle."""
        handle = tracker.resolve(SUBMIT, login_snapshot)

        assert handle.node_id == "n8"
        assert handle.locator is SUBMIT
        assert handle.confidence == 1.0
        assert handle.low_confidence is False
        assert handle.version == login_snapshot.version
        assert handle.fingerprint == generate_fingerprint(login_snapshot.get("n8"), tracker.policy)

    def test_resolve_ambiguous(self, tracker, login_snapshot):
        """Ambiguity raises, carrying every tied candidate."""
        with pytest.raises(AmbiguousMatchError) as exc_info:
            tracker.resolve(Locator.all_of(AttributeEquals("class", "row")), login_snapshot)
        assert [c.node.id for c in exc_info.value.candidates] == ["n2", "n5"]

    def test_resolve_not_found(self, tracker, login_snapshot):
        with pytest.raises(ElementNotFoundError):
            tracker.resolve(Locator.all_of(TagEquals("table")), login_snapshot)

    def test_low_confidence_is_logged(self, tracker, login_snapshot, caplog):
        """A below-threshold winner is returned, flagged and logged."""
        with caplog.at_level(logging.WARNING, logger="resilient_locator.engine.tracker"):
            handle = tracker.resolve(Locator.all_of(TagEquals("button")), login_snapshot)

        assert handle.node_id == "n8"
        assert handle.low_confidence is True
        assert "Low-confidence match" in caplog.text

    def test_ambiguous_when_only_volatile_class_differs(self, tracker):
        """Two buttons that differ only by a bundler hash are never auto-picked."""
        snapshot = Snapshot.from_tree({"tag": "body", "children": [
            {"tag": "button", "attributes": {"data-testid": "save", "class": "btn css-1a2b3c"}, "text": "Save"},
            {"tag": "button", "attributes": {"data-testid": "save", "class": "btn css-9z8y7x"}, "text": "Save"},
        ]})
        locator = Locator.any_of(AttributeEquals("data-testid", "save"), TextEquals("Save"))

        with pytest.raises(AmbiguousMatchError) as exc_info:
            tracker.resolve(locator, snapshot)
        assert [c.node.id for c in exc_info.value.candidates] == ["n1", "n2"]
        assert tracker.fingerprint(snapshot.get("n1")) == tracker.fingerprint(snapshot.get("n2"))

    def test_handles_are_independent(self, tracker, login_snapshot):
        """Each resolve hands out a fresh handle."""
        first = tracker.resolve(SUBMIT, login_snapshot)
        second = tracker.resolve(SUBMIT, login_snapshot)
        assert first is not second
        assert first.node_id == second.node_id

    def test_deterministic_across_trackers(self, settings, login_snapshot):
        """Same locator, same snapshot: same outcome."""
        first = HandleTracker(settings).resolve(SUBMIT, login_snapshot)
        second = HandleTracker(settings).resolve(SUBMIT, login_snapshot)
        assert (first.node_id, first.fingerprint, first.confidence) == (
            second.node_id, second.fingerprint, second.confidence,
        )


class TestCache:
    """Test the tracker's use of the resolution cache."""

    def test_second_resolve_hits_cache(self, tracker, login_snapshot):
        tracker.resolve(SUBMIT, login_snapshot)
        handle = tracker.resolve(SUBMIT, login_snapshot)
        assert handle.node_id == "n8"
        assert tracker.cache.stats.hits == 1

    def test_cache_hit_keeps_low_confidence_flag(self, tracker, login_snapshot):
        locator = Locator.all_of(TagEquals("button"))
        tracker.resolve(locator, login_snapshot)
        assert tracker.resolve(locator, login_snapshot).low_confidence is True

    def test_bad_cache_entry_is_discarded(self, tracker, login_snapshot):
        """A hit whose fingerprint no longer matches is not trusted."""
        tracker.cache.put(SUBMIT.key, CacheEntry(
            version=login_snapshot.version, node_id="n3", fingerprint="0" * 16, confidence=1.0,
            digest=login_snapshot.digest,
        ))
        handle = tracker.resolve(SUBMIT, login_snapshot)
        assert handle.node_id == "n8"
        assert tracker.cache.get(SUBMIT.key, login_snapshot.version).node_id == "n8"

    def test_new_version_recomputes(self, tracker, login_snapshot):
        """A new snapshot version never reuses an old entry."""
        tracker.resolve(SUBMIT, login_snapshot)
        changed = login_snapshot.evolve("n10", own_text="Support")
        tracker.resolve(SUBMIT, changed)
        assert tracker.cache.stats.expired == 1
        assert tracker.cache.get(SUBMIT.key, changed.version).version == changed.version

    def test_older_snapshot_does_not_overwrite(self, tracker, login_snapshot):
        """Resolving against an older snapshot leaves the newer entry alone."""
        newer = login_snapshot.evolve("n10", own_text="Support")
        tracker.resolve(SUBMIT, newer)
        handle = tracker.resolve(SUBMIT, login_snapshot)

        assert handle.version == login_snapshot.version
        assert tracker.cache.stats.rejected_writes == 1
        assert tracker.cache.get(SUBMIT.key, newer.version) is not None

    def test_same_version_different_tree_is_not_shared(self, tracker):
        """Snapshots built independently share a version, not cache entries."""
        def page(buttons):
            return Snapshot.from_tree({"tag": "body", "children": [
                {"tag": "button", "attributes": {"data-testid": "submit"}, "text": "Submit"}
                for _ in range(buttons)
            ]})

        one, two = page(1), page(2)
        assert one.version == two.version

        assert tracker.resolve(SUBMIT, one).node_id == "n1"
        with pytest.raises(AmbiguousMatchError):
            tracker.resolve(SUBMIT, two)
        assert tracker.cache.stats.conflicts == 1

    def test_sibling_branches_do_not_share_entries(self, tracker, login_snapshot):
        """Two mutations of one base both get base + 1 but keep separate results."""
        single = login_snapshot.evolve("n10", own_text="Support")
        doubled = login_snapshot.append("n1", {"tag": "button", "attributes": {"data-testid": "submit"}})
        assert single.version == doubled.version

        tracker.resolve(SUBMIT, single)
        with pytest.raises(AmbiguousMatchError):
            tracker.resolve(SUBMIT, doubled)

    def test_identical_rebuild_hits_cache(self, tracker, login_page):
        """A fresh snapshot of the same tree reuses the entry."""
        tracker.resolve(SUBMIT, Snapshot.from_tree(login_page))
        handle = tracker.resolve(SUBMIT, Snapshot.from_tree(login_page))
        assert handle.node_id == "n8"
        assert tracker.cache.stats.hits == 1

    def test_cache_disabled(self, login_snapshot):
        tracker = HandleTracker(Settings(cache=CacheSettings(enabled=False)))
        assert tracker.cache is None
        assert tracker.resolve(SUBMIT, login_snapshot).node_id == "n8"

    def test_shared_cache(self, settings, login_snapshot):
        """An injected cache is used as-is."""
        cache = ResolutionCache(max_entries=8)
        HandleTracker(settings, cache=cache).resolve(SUBMIT, login_snapshot)
        HandleTracker(settings, cache=cache).resolve(SUBMIT, login_snapshot)
        assert cache.stats.hits == 1


class TestDereference:
    """Test revalidating handles against later snapshots."""

    def test_fast_path_same_snapshot(self, tracker, login_snapshot):
        """An unchanged node is returned without re-resolving."""
        handle = tracker.resolve(SUBMIT, login_snapshot)
        result = tracker.dereference(handle, login_snapshot)

        assert result.node.id == "n8"
        assert result.handle is handle
        assert result.refreshed is False

    def test_fast_path_after_unrelated_change(self, tracker, login_snapshot):
        """Changes elsewhere keep the handle valid and advance its version."""
        handle = tracker.resolve(SUBMIT, login_snapshot)
        before = handle.last_known_good
        changed = login_snapshot.evolve("n10", own_text="Support")

        result = tracker.dereference(handle, changed)

        assert result.refreshed is False
        assert handle.version == changed.version
        assert handle.last_known_good >= before

    def test_survives_class_regeneration(self, tracker, login_snapshot):
        """A regenerated CSS-in-JS class does not invalidate the handle."""
        handle = tracker.resolve(SUBMIT, login_snapshot)
        node = login_snapshot.get("n8")
        changed = login_snapshot.evolve("n8", attributes={**node.attributes, "class": "btn btn-primary css-9zz9zz"})

        assert tracker.is_valid(handle, changed)
        assert tracker.dereference(handle, changed).refreshed is False

    def test_tag_change_goes_stale(self, tracker, login_snapshot):
        """A changed tag invalidates the fingerprint and forces re-resolution."""
        handle = tracker.resolve(SUBMIT, login_snapshot)
        changed = login_snapshot.evolve("n8", tag="a")

        assert not tracker.is_valid(handle, changed)
        result = tracker.dereference(handle, changed)

        assert result.refreshed is True
        assert result.node.tag == "a"
        assert result.handle.fingerprint != handle.fingerprint

    def test_stable_attribute_change_goes_stale(self, tracker, login_snapshot):
        """Adding a stable attribute such as role changes the fingerprint."""
        handle = tracker.resolve(SUBMIT, login_snapshot)
        node = login_snapshot.get("n8")
        changed = login_snapshot.evolve("n8", attributes={**node.attributes, "role": "link"})

        result = tracker.dereference(handle, changed)

        assert result.refreshed is True
        assert result.node.get("role") == "link"
        assert result.handle.fingerprint != handle.fingerprint

    def test_tag_change_loses_tag_locator(self, tracker, login_snapshot):
        """A locator pinned to the old tag cannot follow the element."""
        locator = Locator.all_of(TagEquals("button"), AttributeEquals("data-testid", "submit"))
        handle = tracker.resolve(locator, login_snapshot)

        with pytest.raises(HandleLostError):
            tracker.dereference(handle, login_snapshot.evolve("n8", tag="a"))

    def test_text_locator_lost_when_text_changes(self, tracker, status_snapshot):
        """A text-only locator cannot follow its element through a text change."""
        handle = tracker.resolve(Locator.all_of(TextEquals("Loading...")), status_snapshot)
        loaded = status_snapshot.evolve("n1", own_text="Loaded")

        with pytest.raises(HandleLostError) as exc_info:
            tracker.dereference(handle, loaded)

        error = exc_info.value
        assert error.handle is handle
        assert isinstance(error.cause, ElementNotFoundError)
        assert error.__cause__ is error.cause

    def test_stable_locator_refreshes_when_text_changes(self, tracker, status_snapshot):
        """A testid locator re-resolves to the same element with a new fingerprint."""
        handle = tracker.resolve(Locator.all_of(AttributeEquals("data-testid", "status")), status_snapshot)
        loaded = status_snapshot.evolve("n1", own_text="Loaded")

        assert not tracker.is_valid(handle, loaded)
        result = tracker.dereference(handle, loaded)

        assert result.refreshed is True
        assert result.node.own_text == "Loaded"
        assert result.handle.node_id == "n1"
        assert result.handle.fingerprint != handle.fingerprint
        assert result.handle.version == loaded.version

    def test_rerendered_element_gets_new_id(self, tracker, login_snapshot):
        """A removed and re-inserted element is found under its new id."""
        handle = tracker.resolve(SUBMIT, login_snapshot)
        button = login_snapshot.get("n8")
        rerendered = login_snapshot.remove("n8").append("n1", {
            "tag": "button",
            "attributes": dict(button.attributes),
            "text": "Sign in",
        })

        result = tracker.dereference(handle, rerendered)

        assert result.refreshed is True
        assert result.handle.node_id != "n8"
        assert result.node.get("data-testid") == "submit"
        assert result.handle.fingerprint == handle.fingerprint

    def test_lost_when_target_becomes_ambiguous(self, tracker, login_snapshot):
        """A stale handle whose locator is now ambiguous is lost."""
        handle = tracker.resolve(SUBMIT, login_snapshot)
        duplicated = login_snapshot.remove("n8")
        for _ in range(2):
            duplicated = duplicated.append("n1", {"tag": "button", "attributes": {"data-testid": "submit"}})

        with pytest.raises(HandleLostError) as exc_info:
            tracker.dereference(handle, duplicated)
        assert isinstance(exc_info.value.cause, AmbiguousMatchError)

    def test_lost_when_anchor_disappears(self, tracker, login_snapshot):
        """A missing anchor during fallback is reported as a lost handle."""
        locator = Locator.all_of(TagEquals("input"), Relative(TextEquals("Email"), Relation.NEXT_SIBLING))
        handle = tracker.resolve(locator, login_snapshot)
        without_form_rows = login_snapshot.remove("n2")

        with pytest.raises(HandleLostError) as exc_info:
            tracker.dereference(handle, without_form_rows)
        assert isinstance(exc_info.value.cause, InvalidStrategyError)
