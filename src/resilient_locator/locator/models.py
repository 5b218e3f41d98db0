"""
Locator Models - Declarative, multi-strategy element descriptors.

A Locator is an immutable value: one or more Strategies plus a combinator.
Its ``key`` is a content hash over strategy kinds and parameters, so two
separately built but identical locators share cache entries.

Example:
    >>> locator = Locator.all_of(
    ...     AttributeEquals("data-testid", "submit"),
    ...     TagEquals("button"),
    ... )
    >>> locator.key
    '5f0c...'
"""

import hashlib
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from resilient_locator.exceptions import InvalidLocatorError
from resilient_locator.locator.css_path import PathSegment, format_css_path, parse_css_path


class StrategyKind(Enum):
    """Atomic matching rule kinds."""
    ATTRIBUTE_EQUALS = "attribute-equals"
    ATTRIBUTE_CONTAINS = "attribute-contains"
    TAG_EQUALS = "tag-equals"
    TEXT_EQUALS = "text-equals"
    TEXT_CONTAINS = "text-contains"
    CSS_PATH = "css-like-path"
    RELATIVE = "relative"


class Relation(Enum):
    """Structural relation walked by a relative strategy."""
    PARENT = "parent"
    CHILD = "child"
    NEXT_SIBLING = "next-sibling"
    PREVIOUS_SIBLING = "previous-sibling"
    ANCESTOR = "ancestor"
    DESCENDANT = "descendant"


class Combinator(Enum):
    """How a locator combines its strategies."""
    ALL_OF = "all-of"
    ANY_OF = "any-of"


@dataclass(frozen=True)
class AttributeEquals:
    name: str
    value: str
    kind = StrategyKind.ATTRIBUTE_EQUALS

    def to_dict(self) -> Dict[str, Any]:
        return {self.kind.value: {"name": self.name, "value": self.value}}


@dataclass(frozen=True)
class AttributeContains:
    name: str
    substring: str
    kind = StrategyKind.ATTRIBUTE_CONTAINS

    def to_dict(self) -> Dict[str, Any]:
        return {self.kind.value: {"name": self.name, "substring": self.substring}}


@dataclass(frozen=True)
class TagEquals:
    tag: str
    kind = StrategyKind.TAG_EQUALS

    def __post_init__(self) -> None:
        object.__setattr__(self, "tag", self.tag.lower())

    def to_dict(self) -> Dict[str, Any]:
        return {self.kind.value: self.tag}


@dataclass(frozen=True)
class TextEquals:
    text: str
    kind = StrategyKind.TEXT_EQUALS

    def __post_init__(self) -> None:
        if not self.text.strip():
            raise InvalidLocatorError("text-equals needs non-blank text")

    def to_dict(self) -> Dict[str, Any]:
        return {self.kind.value: self.text}


@dataclass(frozen=True)
class TextContains:
    text: str
    kind = StrategyKind.TEXT_CONTAINS

    def __post_init__(self) -> None:
        if not self.text.strip():
            raise InvalidLocatorError("text-contains needs non-blank text")

    def to_dict(self) -> Dict[str, Any]:
        return {self.kind.value: self.text}


@dataclass(frozen=True)
class CssPath:
    """Structural path; accepts a string and parses it."""
    segments: Tuple[PathSegment, ...]
    kind = StrategyKind.CSS_PATH

    def __post_init__(self) -> None:
        segments = self.segments
        if isinstance(segments, str):
            segments = parse_css_path(segments)
        segments = tuple(segments)
        if not segments:
            raise InvalidLocatorError("css-like-path needs at least one segment")
        object.__setattr__(self, "segments", segments)

    @property
    def path(self) -> str:
        return format_css_path(self.segments)

    def to_dict(self) -> Dict[str, Any]:
        return {self.kind.value: self.path}


@dataclass(frozen=True)
class Relative:
    """
    Nodes reached from an anchor by walking a relation.

    ``steps`` is the number of hops for parent/child/sibling relations
    and the maximum depth for ancestor/descendant (None = unbounded).
    """
    anchor: "Strategy"
    relation: Relation
    steps: Optional[int] = 1
    kind = StrategyKind.RELATIVE

    def __post_init__(self) -> None:
        relation = self.relation
        if not isinstance(relation, Relation):
            try:
                relation = Relation(relation)
            except ValueError as e:
                raise InvalidLocatorError(
                    f"Unknown relation: {relation!r}",
                    {"allowed": [r.value for r in Relation]},
                ) from e
            object.__setattr__(self, "relation", relation)

        if self.steps is None:
            if relation not in (Relation.ANCESTOR, Relation.DESCENDANT):
                raise InvalidLocatorError(f"{relation.value} needs an explicit number of steps")
        elif self.steps < 1:
            raise InvalidLocatorError("steps must be at least 1", {"steps": self.steps})

    def to_dict(self) -> Dict[str, Any]:
        return {self.kind.value: {
            "anchor": self.anchor.to_dict(),
            "relation": self.relation.value,
            "steps": self.steps,
        }}


Strategy = Union[AttributeEquals, AttributeContains, TagEquals, TextEquals, TextContains, CssPath, Relative]


@dataclass(frozen=True)
class Locator:
    """
    A declarative description of how to find one element.

    Attributes:
        strategies: At least one strategy
        combinator: all-of (intersection) or any-of (union)
    """
    strategies: Tuple[Strategy, ...]
    combinator: Combinator = Combinator.ALL_OF

    def __post_init__(self) -> None:
        object.__setattr__(self, "strategies", tuple(self.strategies))
        if not self.strategies:
            raise InvalidLocatorError("A locator must contain at least one strategy")
        if not isinstance(self.combinator, Combinator):
            try:
                object.__setattr__(self, "combinator", Combinator(self.combinator))
            except ValueError as e:
                raise InvalidLocatorError(f"Unknown combinator: {self.combinator!r}") from e

    @classmethod
    def all_of(cls, *strategies: Strategy) -> "Locator":
        return cls(strategies, Combinator.ALL_OF)

    @classmethod
    def any_of(cls, *strategies: Strategy) -> "Locator":
        return cls(strategies, Combinator.ANY_OF)

    @property
    def key(self) -> str:
        """Content hash over strategy kinds and parameters."""
        canonical = json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode()).hexdigest()[:32]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "combinator": self.combinator.value,
            "strategies": [s.to_dict() for s in self.strategies],
        }
