"""
Caller-side polling for locators that are not resolvable yet.

The resolver never retries. When a page is still rendering, "resolve every
500ms until it is unique" is a caller policy, and this module provides it.
"""

import asyncio
import functools
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple, Type, TypeVar, TYPE_CHECKING
import logging

from resilient_locator.exceptions import AmbiguousMatchError, ElementNotFoundError

if TYPE_CHECKING:
    from resilient_locator.engine.tracker import Handle
    from resilient_locator.resolver import LocatorLike, LocatorResolver

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Outcomes that may change as the page settles
TRANSIENT_ERRORS: Tuple[Type[Exception], ...] = (ElementNotFoundError, AmbiguousMatchError)


@dataclass
class RetryConfig:
    """
    Configuration for retry behavior.
    
    Attributes:
        max_attempts: Maximum number of attempts
        initial_delay_ms: Delay before the first retry
        max_delay_ms: Maximum delay between retries
        backoff_multiplier: Delay multiplier per retry (1.0 = fixed interval)
        retry_on: Exception types to retry on
        on_retry: Callback function called on each retry
    """
    max_attempts: int = 10
    initial_delay_ms: int = 500
    max_delay_ms: int = 5000
    backoff_multiplier: float = 1.0
    retry_on: Tuple[Type[Exception], ...] = TRANSIENT_ERRORS
    on_retry: Optional[Callable[[int, Exception], None]] = None


def retry(
    max_attempts: int = 10,
    initial_delay_ms: int = 500,
    max_delay_ms: int = 5000,
    backoff_multiplier: float = 1.0,
    retry_on: Tuple[Type[Exception], ...] = TRANSIENT_ERRORS,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator for retrying async functions.
    
    Example:
        >>> @retry(max_attempts=5, retry_on=(ElementNotFoundError,))
        ... async def click_submit():
        ...     ...
    """
    config = RetryConfig(
        max_attempts=max_attempts,
        initial_delay_ms=initial_delay_ms,
        max_delay_ms=max_delay_ms,
        backoff_multiplier=backoff_multiplier,
        retry_on=retry_on,
    )
    
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await retry_async(func, config, *args, **kwargs)
        return wrapper
    
    return decorator


async def retry_async(
    func: Callable[..., T],
    config: RetryConfig,
    *args: Any,
    **kwargs: Any,
) -> T:
    """
    Execute an async function with retry logic.
    
    Raises:
        The last exception if all attempts fail
    """
    last_exception: Optional[Exception] = None
    delay_ms = config.initial_delay_ms
    
    for attempt in range(config.max_attempts):
        try:
            return await func(*args, **kwargs)
        except config.retry_on as e:
            last_exception = e
            
            if attempt == config.max_attempts - 1:
                break
            
            logger.debug(
                f"Attempt {attempt + 1}/{config.max_attempts} failed: {e}. "
                f"Retrying in {delay_ms}ms..."
            )
            
            if config.on_retry:
                config.on_retry(attempt + 1, e)
            
            await asyncio.sleep(delay_ms / 1000)
            delay_ms = min(delay_ms * config.backoff_multiplier, config.max_delay_ms)
    
    raise last_exception  # type: ignore


async def poll_until_resolved(
    resolver: "LocatorResolver",
    locator: "LocatorLike",
    config: Optional[RetryConfig] = None,
    timeout_seconds: Optional[float] = None,
) -> "Handle":
    """
    Resolve ``locator`` repeatedly until it yields a handle.
    
    Each attempt fetches a fresh snapshot. Not-found and ambiguous outcomes
    are retried; anything else (e.g. an invalid locator) propagates at once.
    
    Raises:
        The last resolution error once attempts run out
        asyncio.TimeoutError if ``timeout_seconds`` elapses first
    """
    config = config or RetryConfig()
    attempt = retry_async(resolver.resolve, config, locator)
    if timeout_seconds is None:
        return await attempt
    return await with_timeout(attempt, timeout_seconds, f"Locator did not resolve within {timeout_seconds}s")


async def with_timeout(
    coro: Any,
    timeout_seconds: float,
    error_message: str = "Operation timed out",
) -> Any:
    """
    Execute a coroutine with a timeout.
    
    Raises:
        asyncio.TimeoutError if timeout is exceeded
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout_seconds)
    except asyncio.TimeoutError:
        raise asyncio.TimeoutError(error_message)
