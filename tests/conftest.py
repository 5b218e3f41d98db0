"""
Pytest configuration and fixtures.
"""

import copy

import pytest

from resilient_locator.dom.snapshot import Snapshot


# Pre-order ids assigned by Snapshot.from_tree:
#   n0 body
#     n1 form#login
#       n2 div.row
#         n3 label "Email"
#         n4 input#email
#       n5 div.row
#         n6 label "Password"
#         n7 input[name=password]
#       n8 button[data-testid=submit] "Sign in"
#     n9 div.footer
#       n10 a "Help"
#       n11 a "Terms"
LOGIN_PAGE = {
    "tag": "body",
    "children": [
        {
            "tag": "form",
            "attributes": {"id": "login", "class": "form css-1x2y3z"},
            "children": [
                {
                    "tag": "div",
                    "attributes": {"class": "row"},
                    "children": [
                        {"tag": "label", "attributes": {"for": "email"}, "text": "Email"},
                        {"tag": "input", "attributes": {"id": "email", "name": "email", "type": "email"}},
                    ],
                },
                {
                    "tag": "div",
                    "attributes": {"class": "row"},
                    "children": [
                        {"tag": "label", "attributes": {"for": "password"}, "text": "Password"},
                        {"tag": "input", "attributes": {"name": "password", "type": "password"}},
                    ],
                },
                {
                    "tag": "button",
                    "attributes": {
                        "data-testid": "submit",
                        "type": "submit",
                        "class": "btn btn-primary css-abc123",
                    },
                    "text": "Sign in",
                },
            ],
        },
        {
            "tag": "div",
            "attributes": {"class": "footer"},
            "children": [
                {"tag": "a", "attributes": {"href": "/help"}, "text": "Help"},
                {"tag": "a", "attributes": {"href": "/terms"}, "text": "Terms"},
            ],
        },
    ],
}


@pytest.fixture(autouse=True)
def _reset_global_settings():
    """Keep the settings singleton from leaking between tests."""
    from resilient_locator.config import reset_settings

    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings():
    """Provide test settings."""
    from resilient_locator.config import Settings

    return Settings()


@pytest.fixture
def policy():
    """Provide the default stability policy."""
    from resilient_locator.engine.policy import StabilityPolicy

    return StabilityPolicy.from_settings()


@pytest.fixture
def login_page():
    """The login page as a nested tree, safe to modify."""
    return copy.deepcopy(LOGIN_PAGE)


@pytest.fixture
def login_snapshot():
    """A small login page (see LOGIN_PAGE for node ids)."""
    return Snapshot.from_tree(LOGIN_PAGE)


@pytest.fixture
def tracker(settings):
    """Provide a handle tracker with its own cache."""
    from resilient_locator.engine.tracker import HandleTracker

    return HandleTracker(settings)
