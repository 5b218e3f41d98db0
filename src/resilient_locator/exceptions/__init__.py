"""
Exceptions module - Custom exception hierarchy.

This module defines all custom exceptions used throughout Resilient Locator,
providing clear error types for different failure scenarios.
"""

from resilient_locator.exceptions.base import (
    ResilientLocatorError,
    ConfigurationError,
    SnapshotError,
    InvalidLocatorError,
)
from resilient_locator.exceptions.resolution import (
    ResolutionError,
    InvalidStrategyError,
    ElementNotFoundError,
    AmbiguousMatchError,
    HandleLostError,
)

__all__ = [
    # Base exceptions
    "ResilientLocatorError",
    "ConfigurationError",
    "SnapshotError",
    "InvalidLocatorError",
    # Resolution exceptions
    "ResolutionError",
    "InvalidStrategyError",
    "ElementNotFoundError",
    "AmbiguousMatchError",
    "HandleLostError",
]
