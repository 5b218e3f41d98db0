"""
Stability Policy - Which attributes can be trusted across renders.

Frameworks differ in what they regenerate: CSS-in-JS hashes class names,
React's useId produces ``:r1:`` ids, Vue stamps ``data-v-xxxx`` attributes.
Rather than hardcoding one convention, the policy is a set of injectable
predicates. The defaults come from StabilitySettings; callers can add
their own or replace them outright.

Usage:
    policy = StabilityPolicy.from_settings(settings.stability)
    policy = policy.extend(volatile_class=[lambda cls: cls.startswith("tw-")])
"""

import re
from dataclasses import dataclass, replace
from functools import lru_cache
from typing import Callable, Iterable, List, Mapping, Optional, Pattern, Tuple

from resilient_locator.config.settings import StabilitySettings
from resilient_locator.exceptions import ConfigurationError


NamePredicate = Callable[[str], bool]
AttributePredicate = Callable[[str, str], bool]


def _compile(patterns: Iterable[str], setting: str) -> List[Pattern[str]]:
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as e:
            raise ConfigurationError(
                f"Invalid regex in stability.{setting}: {pattern!r} ({e})",
                {"setting": setting, "pattern": pattern},
            ) from e
    return compiled


def _any_pattern(patterns: List[Pattern[str]]) -> NamePredicate:
    return lambda value: any(p.search(value) for p in patterns)


@dataclass(frozen=True)
class StabilityPolicy:
    """
    Predicate sets deciding attribute stability.

    Attributes:
        stable_attribute: name -> True if the attribute is a deliberate,
            stable hook (testing ids, role, aria-*)
        volatile_attribute: (name, value) -> True if the attribute is
            regenerated between renders and must not be fingerprinted
        volatile_class: class token -> True if it looks bundler-generated
        max_class_length: longer class tokens are treated as hashes
    """
    stable_attribute: Tuple[NamePredicate, ...] = ()
    volatile_attribute: Tuple[AttributePredicate, ...] = ()
    volatile_class: Tuple[NamePredicate, ...] = ()
    max_class_length: int = 50

    @classmethod
    def from_settings(cls, settings: Optional[StabilitySettings] = None) -> "StabilityPolicy":
        """Compile the configured names and patterns into predicates."""
        settings = settings or StabilitySettings()

        stable_names = {n.lower() for n in settings.stable_attributes}
        stable_prefixes = tuple(p.lower() for p in settings.stable_attribute_prefixes)
        volatile_names = {n.lower() for n in settings.volatile_attributes}
        volatile_name_match = _any_pattern(
            _compile(settings.volatile_attribute_patterns, "volatile_attribute_patterns")
        )
        volatile_id_match = _any_pattern(_compile(settings.volatile_id_patterns, "volatile_id_patterns"))
        volatile_class_match = _any_pattern(
            _compile(settings.volatile_class_patterns, "volatile_class_patterns")
        )

        return cls(
            stable_attribute=(
                lambda name: name.lower() in stable_names,
                lambda name: name.lower().startswith(stable_prefixes),
            ),
            volatile_attribute=(
                lambda name, value: name.lower() in volatile_names,
                lambda name, value: volatile_name_match(name),
                lambda name, value: name.lower() == "id" and volatile_id_match(value),
            ),
            volatile_class=(volatile_class_match,),
            max_class_length=settings.max_class_length,
        )

    def extend(
        self,
        stable_attribute: Iterable[NamePredicate] = (),
        volatile_attribute: Iterable[AttributePredicate] = (),
        volatile_class: Iterable[NamePredicate] = (),
    ) -> "StabilityPolicy":
        """Return a copy with extra predicates appended."""
        return replace(
            self,
            stable_attribute=self.stable_attribute + tuple(stable_attribute),
            volatile_attribute=self.volatile_attribute + tuple(volatile_attribute),
            volatile_class=self.volatile_class + tuple(volatile_class),
        )

    def is_stable_attribute(self, name: str) -> bool:
        return any(predicate(name) for predicate in self.stable_attribute)

    def is_volatile_attribute(self, name: str, value: str) -> bool:
        # A whitelisted hook is never volatile, whatever its value looks like
        if self.is_stable_attribute(name):
            return False
        return any(predicate(name, value) for predicate in self.volatile_attribute)

    def is_volatile_class(self, token: str) -> bool:
        if len(token) > self.max_class_length:
            return True
        return any(predicate(token) for predicate in self.volatile_class)

    def stable_classes(self, class_string: str) -> List[str]:
        """Sorted class tokens that survive volatility filtering."""
        if not class_string:
            return []
        return sorted({c for c in class_string.split() if not self.is_volatile_class(c)})

    def stable_attributes(self, attributes: Mapping[str, str]) -> List[Tuple[str, str]]:
        """
        Attribute pairs fit for fingerprinting, sorted by name.

        Volatile attributes are dropped; ``class`` keeps only stable tokens
        and disappears entirely when none remain.
        """
        pairs: List[Tuple[str, str]] = []
        for name, value in attributes.items():
            lowered = name.lower()
            if lowered == "class":
                classes = self.stable_classes(value)
                if classes:
                    pairs.append((lowered, " ".join(classes)))
                continue
            if self.is_volatile_attribute(lowered, value):
                continue
            pairs.append((lowered, value))
        pairs.sort()
        return pairs


@lru_cache(maxsize=1)
def default_policy() -> StabilityPolicy:
    """Policy built from default StabilitySettings."""
    return StabilityPolicy.from_settings(StabilitySettings())
