"""
Locator Parser - Build Locators from plain data (YAML / JSON / dicts).

Accepted forms::

    "form#login button[type=submit]"            # bare string: css-like-path

    {"text-equals": "Submit"}                   # single strategy

    {"combinator": "any-of",                    # full form
     "strategies": [
         {"testid": "submit"},                  # shorthand for data-testid
         {"attribute-equals": {"name": "role", "value": "button"}},
         {"relative": {"anchor": {"text-equals": "Email"},
                       "relation": "next-sibling", "steps": 1}},
     ]}

    [{"tag-equals": "button"}, {"text-contains": "Save"}]   # list: all-of
"""

from typing import Any, Dict, Mapping

from resilient_locator.exceptions import InvalidLocatorError
from resilient_locator.locator.models import (
    AttributeContains,
    AttributeEquals,
    Combinator,
    CssPath,
    Locator,
    Relative,
    Strategy,
    StrategyKind,
    TagEquals,
    TextContains,
    TextEquals,
)


# Shorthand keys -> attribute name for attribute-equals
ATTRIBUTE_SHORTHANDS: Dict[str, str] = {
    "testid": "data-testid",
    "role": "role",
    "name": "name",
}


def parse_locator(data: Any) -> Locator:
    """
    Build a Locator from plain data.

    Raises:
        InvalidLocatorError: If the data does not describe a valid locator
    """
    if isinstance(data, Locator):
        return data
    if isinstance(data, str):
        return Locator.all_of(CssPath(data))
    if isinstance(data, list):
        return Locator.all_of(*(parse_strategy(item) for item in data))
    if not isinstance(data, Mapping):
        raise InvalidLocatorError(
            f"Cannot build a locator from {type(data).__name__}",
            {"type": type(data).__name__},
        )

    if "strategies" in data:
        raw_strategies = data["strategies"]
        if not isinstance(raw_strategies, list):
            raise InvalidLocatorError("'strategies' must be a list")
        strategies = tuple(parse_strategy(item) for item in raw_strategies)
        return Locator(strategies, data.get("combinator", Combinator.ALL_OF.value))

    return Locator.all_of(parse_strategy(data))


def parse_strategy(data: Any) -> Strategy:
    """Build a single Strategy from a one-key mapping (or a path string)."""
    if isinstance(data, str):
        return CssPath(data)
    if not isinstance(data, Mapping) or len(data) != 1:
        raise InvalidLocatorError(
            "A strategy must be a mapping with exactly one key",
            {"strategy": data},
        )

    key, params = next(iter(data.items()))
    if key in ATTRIBUTE_SHORTHANDS:
        return AttributeEquals(ATTRIBUTE_SHORTHANDS[key], _text(key, params))

    try:
        kind = StrategyKind(key)
    except ValueError as e:
        raise InvalidLocatorError(
            f"Unknown strategy kind: {key!r}",
            {"allowed": [k.value for k in StrategyKind] + list(ATTRIBUTE_SHORTHANDS)},
        ) from e

    if kind is StrategyKind.ATTRIBUTE_EQUALS:
        name, value = _pair(key, params, "value")
        return AttributeEquals(name, value)
    if kind is StrategyKind.ATTRIBUTE_CONTAINS:
        name, substring = _pair(key, params, "substring")
        return AttributeContains(name, substring)
    if kind is StrategyKind.TAG_EQUALS:
        return TagEquals(_text(key, params))
    if kind is StrategyKind.TEXT_EQUALS:
        return TextEquals(_text(key, params))
    if kind is StrategyKind.TEXT_CONTAINS:
        return TextContains(_text(key, params))
    if kind is StrategyKind.CSS_PATH:
        if isinstance(params, list):
            params = " ".join(str(p) for p in params)
        return CssPath(_text(key, params))

    if not isinstance(params, Mapping) or "anchor" not in params or "relation" not in params:
        raise InvalidLocatorError("relative needs 'anchor' and 'relation'", {"strategy": data})
    steps = params.get("steps", 1)
    if steps is not None and not isinstance(steps, int):
        raise InvalidLocatorError("relative 'steps' must be an integer or null", {"steps": steps})
    return Relative(
        anchor=parse_strategy(params["anchor"]),
        relation=params["relation"],
        steps=steps,
    )


def _text(key: str, params: Any) -> str:
    if not isinstance(params, str):
        raise InvalidLocatorError(f"{key} expects a string", {"value": params})
    return params


def _pair(key: str, params: Any, second: str):
    if isinstance(params, Mapping):
        if "name" not in params or second not in params:
            raise InvalidLocatorError(f"{key} needs 'name' and '{second}'", {"value": dict(params)})
        return str(params["name"]), str(params[second])
    if isinstance(params, (list, tuple)) and len(params) == 2:
        return str(params[0]), str(params[1])
    raise InvalidLocatorError(f"{key} expects {{name, {second}}} or [name, {second}]", {"value": params})
