"""
Integration tests for end-to-end workflows.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from resilient_locator import LocatorResolver, Snapshot, StaticSnapshotProvider
from resilient_locator.config import load_config
from resilient_locator.dom.playwright_provider import PlaywrightSnapshotProvider
from resilient_locator.exceptions import HandleLostError
from resilient_locator.utils.retry import RetryConfig, poll_until_resolved


SUBMIT = {"strategies": [{"testid": "submit"}, {"tag-equals": "button"}]}


def _rerender(tree):
    """Simulate a framework re-render: new banner, regenerated class hashes."""
    form = tree["children"][0]
    form["attributes"]["class"] = "form css-77qq11"
    form["children"][2]["attributes"]["class"] = "btn btn-primary css-f00b4r"
    tree["children"].insert(0, {"tag": "div", "attributes": {"role": "banner"}, "text": "Welcome back"})
    return tree


class TestReRenderWorkflow:
    """Handles surviving page re-renders."""

    @pytest.mark.asyncio
    async def test_handle_follows_full_rerender(self, login_page, settings):
        """All node ids shift and hashes change; the handle still finds the button."""
        provider = StaticSnapshotProvider(Snapshot.from_tree(login_page))
        resolver = LocatorResolver(provider, settings)
        handle = await resolver.resolve(SUBMIT)
        assert handle.node_id == "n8"

        provider.publish(Snapshot.from_tree(_rerender(login_page)))
        result = await resolver.refresh(handle)

        assert result.refreshed is True
        assert result.handle.node_id == "n9"
        assert result.node.get("data-testid") == "submit"
        assert result.handle.fingerprint == handle.fingerprint

        # The refreshed handle is now on the fast path
        again = await resolver.refresh(result.handle)
        assert again.refreshed is False

    @pytest.mark.asyncio
    async def test_mutation_listener_drives_revalidation(self, login_snapshot, settings):
        """A caller can revalidate its handles whenever the provider signals a change."""
        provider = StaticSnapshotProvider(login_snapshot)
        resolver = LocatorResolver(provider, settings)
        handle = await resolver.resolve({"text-equals": "Sign in"})

        versions = []
        provider.on_mutation(versions.append)
        provider.publish(provider.current.evolve("n10", own_text="Support"))
        assert (await resolver.dereference(handle)).id == "n8"

        provider.publish(provider.current.evolve("n8", own_text="Log in"))
        with pytest.raises(HandleLostError):
            await resolver.dereference(handle)

        assert versions == [1, 2]


class TestAsyncRenderWorkflow:
    """Waiting for elements that render later."""

    @pytest.mark.asyncio
    async def test_poll_until_element_renders(self, settings):
        provider = StaticSnapshotProvider(Snapshot.from_tree({"tag": "body", "children": [
            {"tag": "div", "attributes": {"class": "spinner"}},
        ]}))
        resolver = LocatorResolver(provider, settings)

        async def render_later():
            await asyncio.sleep(0.02)
            provider.publish(provider.current.append("n0", {
                "tag": "button", "attributes": {"data-testid": "submit"}, "text": "Submit",
            }))

        renderer = asyncio.create_task(render_later())
        handle = await poll_until_resolved(
            resolver, SUBMIT, RetryConfig(max_attempts=50, initial_delay_ms=5), timeout_seconds=2,
        )
        await renderer

        assert handle.version == provider.version
        assert (await resolver.dereference(handle)).text_content == "Submit"


class TestPlaywrightWorkflow:
    """Resolution against a (mocked) live page."""

    @pytest.fixture
    def mock_page(self):
        """Create a mock page whose DOM changes between extractions."""
        def extraction(label, button_id):
            return {
                "root": "e0",
                "nodes": [
                    {"id": "e0", "tag": "body", "attributes": {}, "text": "", "children": ["e1"]},
                    {"id": "e1", "tag": "form", "attributes": {"id": "checkout"}, "text": "",
                     "children": [button_id]},
                    {"id": button_id, "tag": "button",
                     "attributes": {"data-testid": "pay", "class": "btn css-1q2w3e"},
                     "text": label, "children": []},
                ],
            }

        page = MagicMock()
        page.url = "https://shop.example/checkout"
        page.evaluate = AsyncMock(side_effect=[
            extraction("Pay now", "e2"),
            extraction("Pay now", "e2"),
            extraction("Paying...", "e7"),
        ])
        return page

    @pytest.mark.asyncio
    async def test_resolve_and_follow(self, mock_page, settings):
        provider = PlaywrightSnapshotProvider(mock_page)
        resolver = LocatorResolver(provider, settings)

        handle = await resolver.resolve({"testid": "pay"})
        assert handle.node_id == "e2"

        assert (await resolver.refresh(handle)).refreshed is False

        result = await resolver.refresh(handle)
        assert result.refreshed is True
        assert result.handle.node_id == "e7"
        assert result.node.own_text == "Paying..."
        assert provider.version == 1


class TestConfiguredWorkflow:
    """Behaviour driven by a config file."""

    @pytest.mark.asyncio
    async def test_custom_stable_attribute(self, tmp_path, monkeypatch, login_snapshot):
        """Whitelisting 'name' makes it a full-confidence hook."""
        monkeypatch.chdir(tmp_path)
        (tmp_path / "resilient-locator.yaml").write_text(
            "stability:\n"
            "  stable_attributes: [data-testid, name]\n"
        )
        resolver = LocatorResolver(StaticSnapshotProvider(login_snapshot), load_config())

        handle = await resolver.resolve({"name": "email"})
        assert handle.confidence == 1.0
        assert handle.node_id == "n4"
