"""
CSS-like paths - a small, predictable subset of CSS selectors.

Supported per segment: ``tag``, ``*``, ``#id``, ``.class``, ``[attr]``,
``[attr=value]``, ``[attr*=value]`` (values optionally quoted). Segments
are joined by whitespace (descendant) or ``>`` (child). No pseudo-classes,
no sibling combinators, no selector lists.

Example:
    >>> parse_css_path('form#login > div.row button[type="submit"]')
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from resilient_locator.exceptions import InvalidLocatorError


class PathCombinator(Enum):
    """How a segment relates to the segment before it."""
    DESCENDANT = " "
    CHILD = ">"


@dataclass(frozen=True)
class AttributeTest:
    """One ``[name]``, ``[name=value]`` or ``[name*=value]`` test."""
    name: str
    operator: Optional[str] = None  # None (presence), "=", "*="
    value: Optional[str] = None

    def matches(self, attributes) -> bool:
        actual = attributes.get(self.name)
        if actual is None:
            return False
        if self.operator is None:
            return True
        if self.operator == "=":
            return actual == self.value
        return (self.value or "") in actual

    def __str__(self) -> str:
        if self.operator is None:
            return f"[{self.name}]"
        return f'[{self.name}{self.operator}"{self.value}"]'


@dataclass(frozen=True)
class PathSegment:
    """One compound selector within a path."""
    tag: Optional[str] = None
    element_id: Optional[str] = None
    classes: Tuple[str, ...] = ()
    attributes: Tuple[AttributeTest, ...] = ()
    combinator: PathCombinator = PathCombinator.DESCENDANT

    def matches(self, node) -> bool:
        if self.tag and self.tag != "*" and node.tag != self.tag:
            return False
        if self.element_id is not None and node.get("id") != self.element_id:
            return False
        if self.classes:
            present = set(node.class_list)
            if not all(c in present for c in self.classes):
                return False
        return all(test.matches(node.attributes) for test in self.attributes)

    def __str__(self) -> str:
        text = self.tag or ""
        if self.element_id is not None:
            text += f"#{self.element_id}"
        text += "".join(f".{c}" for c in self.classes)
        text += "".join(str(a) for a in self.attributes)
        return text or "*"


_TOKEN_RE = re.compile(
    r"""
    \s*(?P<child>>)\s*
    | (?P<space>\s+)
    | (?P<tag>\*|[a-zA-Z][a-zA-Z0-9-]*)
    | \#(?P<id>[^\s.#\[\]>]+)
    | \.(?P<cls>[^\s.#\[\]>]+)
    | \[\s*(?P<attr>[^\s=*\]]+)\s*
        (?:(?P<op>\*?=)\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|(?P<bare>[^\]\s]+))\s*)?
      \]
    """,
    re.VERBOSE,
)


def parse_css_path(path: str) -> Tuple[PathSegment, ...]:
    """
    Parse a CSS-like path string into segments.

    Raises:
        InvalidLocatorError: For empty paths or unsupported syntax
    """
    text = path.strip()
    if not text:
        raise InvalidLocatorError("CSS-like path is empty", {"path": path})

    segments: List[PathSegment] = []
    current: dict = {}
    pending = PathCombinator.DESCENDANT
    pos = 0

    def flush() -> None:
        nonlocal current
        if current:
            segments.append(PathSegment(
                tag=current.get("tag"),
                element_id=current.get("id"),
                classes=tuple(current.get("classes", ())),
                attributes=tuple(current.get("attributes", ())),
                combinator=current["combinator"],
            ))
        current = {}

    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if not match or match.end() == pos:
            raise InvalidLocatorError(
                f"Unsupported CSS-like path syntax at position {pos}: {text[pos:pos + 20]!r}",
                {"path": path},
            )
        pos = match.end()

        if match.group("child") is not None or match.group("space") is not None:
            if not current:
                if match.group("child") is not None and not segments:
                    raise InvalidLocatorError("CSS-like path cannot start with '>'", {"path": path})
                if match.group("child") is not None:
                    if pending is PathCombinator.CHILD:
                        raise InvalidLocatorError("Repeated '>' in CSS-like path", {"path": path})
                    pending = PathCombinator.CHILD
                continue
            flush()
            pending = PathCombinator.CHILD if match.group("child") is not None else PathCombinator.DESCENDANT
            continue

        if not current:
            current = {"combinator": pending}
            pending = PathCombinator.DESCENDANT

        if match.group("tag") is not None:
            if "tag" in current or len(current) > 1:
                raise InvalidLocatorError("Tag must come first in a segment", {"path": path})
            current["tag"] = match.group("tag").lower()
        elif match.group("id") is not None:
            current["id"] = match.group("id")
        elif match.group("cls") is not None:
            current.setdefault("classes", []).append(match.group("cls"))
        else:
            value = next(
                (v for v in (match.group("dq"), match.group("sq"), match.group("bare")) if v is not None),
                None,
            )
            current.setdefault("attributes", []).append(
                AttributeTest(name=match.group("attr"), operator=match.group("op"), value=value)
            )

    if not current:
        raise InvalidLocatorError("CSS-like path cannot end with a combinator", {"path": path})
    flush()
    return tuple(segments)


def format_css_path(segments: Tuple[PathSegment, ...]) -> str:
    """Render segments back into path syntax."""
    parts: List[str] = []
    for index, segment in enumerate(segments):
        if index and segment.combinator is PathCombinator.CHILD:
            parts.append(">")
        parts.append(str(segment))
    return " ".join(parts)


def match_css_path(segments: Tuple[PathSegment, ...], node, snapshot) -> bool:
    """
    Whether ``node`` is matched by the path, checking right-to-left.

    Descendant combinators backtrack over every ancestor, so
    ``div span`` finds a span under any div, not just the nearest one.
    """
    if not segments or not segments[-1].matches(node):
        return False
    return _match_upwards(segments, len(segments) - 1, node, snapshot)


def _match_upwards(segments, index: int, node, snapshot) -> bool:
    if index == 0:
        return True
    combinator = segments[index].combinator
    previous = segments[index - 1]
    parent = snapshot.parent_of(node)

    if combinator is PathCombinator.CHILD:
        return parent is not None and previous.matches(parent) and _match_upwards(
            segments, index - 1, parent, snapshot
        )

    while parent is not None:
        if previous.matches(parent) and _match_upwards(segments, index - 1, parent, snapshot):
            return True
        parent = snapshot.parent_of(parent)
    return False
