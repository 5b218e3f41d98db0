"""
Locator Module - Declarative element descriptors.
"""

from resilient_locator.locator.models import (
    AttributeContains,
    AttributeEquals,
    Combinator,
    CssPath,
    Locator,
    Relation,
    Relative,
    Strategy,
    StrategyKind,
    TagEquals,
    TextContains,
    TextEquals,
)
from resilient_locator.locator.css_path import PathCombinator, PathSegment, AttributeTest, parse_css_path
from resilient_locator.locator.parser import parse_locator, parse_strategy
from resilient_locator.locator.describe import describe, describe_strategy

__all__ = [
    # Strategies
    "AttributeEquals",
    "AttributeContains",
    "TagEquals",
    "TextEquals",
    "TextContains",
    "CssPath",
    "Relative",
    "Strategy",
    "StrategyKind",
    "Relation",
    # Locator
    "Locator",
    "Combinator",
    # Paths
    "PathSegment",
    "PathCombinator",
    "AttributeTest",
    "parse_css_path",
    # Parsing & description
    "parse_locator",
    "parse_strategy",
    "describe",
    "describe_strategy",
]
