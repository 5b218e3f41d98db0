"""
Human-readable locator descriptions, for logs and error messages.
"""

from typing import List

from resilient_locator.locator.models import (
    AttributeContains,
    AttributeEquals,
    Combinator,
    CssPath,
    Locator,
    Relation,
    Relative,
    Strategy,
    TagEquals,
    TextContains,
    TextEquals,
)


_RELATION_PHRASES = {
    Relation.PARENT: "parent",
    Relation.CHILD: "child",
    Relation.NEXT_SIBLING: "next sibling",
    Relation.PREVIOUS_SIBLING: "previous sibling",
    Relation.ANCESTOR: "ancestor",
    Relation.DESCENDANT: "descendant",
}


def describe_strategy(strategy: Strategy) -> str:
    """One strategy as a short phrase."""
    if isinstance(strategy, AttributeEquals):
        return f'[{strategy.name}="{strategy.value}"]'
    if isinstance(strategy, AttributeContains):
        return f'[{strategy.name}*="{strategy.substring}"]'
    if isinstance(strategy, TagEquals):
        return f"<{strategy.tag}>"
    if isinstance(strategy, TextEquals):
        return f'text "{strategy.text}"'
    if isinstance(strategy, TextContains):
        return f'text containing "{strategy.text}"'
    if isinstance(strategy, CssPath):
        return f"path `{strategy.path}`"
    if isinstance(strategy, Relative):
        return _describe_relative(strategy)
    raise TypeError(f"Unknown strategy type: {type(strategy).__name__}")


def _describe_relative(strategy: Relative) -> str:
    relation = _RELATION_PHRASES[strategy.relation]
    anchor = describe_strategy(strategy.anchor)

    if strategy.relation in (Relation.ANCESTOR, Relation.DESCENDANT):
        if strategy.steps is None:
            return f"any {relation} of {anchor}"
        return f"{relation} within {strategy.steps} level(s) of {anchor}"
    if strategy.steps == 1:
        return f"{relation} of {anchor}"
    return f"{relation} {strategy.steps} step(s) from {anchor}"


def describe(locator: Locator) -> str:
    """
    Explain a locator in plain words.

    Example:
        >>> describe(Locator.all_of(TagEquals("button"), TextEquals("Save")))
        'all of: <button>, text "Save"'
    """
    parts: List[str] = [describe_strategy(s) for s in locator.strategies]
    if len(parts) == 1:
        return parts[0]
    label = "all of" if locator.combinator is Combinator.ALL_OF else "any of"
    return f"{label}: {', '.join(parts)}"
