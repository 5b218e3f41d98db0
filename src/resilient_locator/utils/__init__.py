"""
Utilities module - Common utility functions.
"""

from resilient_locator.utils.logging import setup_logging, setup_logging_from_settings, get_logger
from resilient_locator.utils.retry import retry, retry_async, poll_until_resolved, RetryConfig

__all__ = [
    "setup_logging",
    "setup_logging_from_settings",
    "get_logger",
    "retry",
    "retry_async",
    "poll_until_resolved",
    "RetryConfig",
]
