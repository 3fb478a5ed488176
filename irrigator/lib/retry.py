"""Retry utilities with exponential backoff."""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from logging import Logger


def backoff_delay(initial_backoff_sec: float, attempt: int) -> float:
    """Delay before retry number ``attempt`` (0-based), doubling each time."""
    return initial_backoff_sec * (2**attempt)


async def with_retry(
    fn: Callable[[], object] | Callable[[], Awaitable[object]],
    *,
    name: str,
    logger: Logger,
    max_retries: int = 3,
    initial_backoff_sec: float = 2.0,
    retryable_exceptions: tuple[type[Exception], ...] = (OSError,),
    run_in_thread: bool = False,
) -> bool:
    """Execute a function, retrying transient failures with backoff.

    Args:
        fn: The function to execute. Can be sync or async.
        name: Name for logging purposes.
        logger: Logger instance to use.
        max_retries: Maximum number of attempts.
        initial_backoff_sec: Delay after the first failure (doubles each retry).
        retryable_exceptions: Exception types that trigger a retry.
        run_in_thread: If True, run a blocking sync fn in a worker thread.

    Returns:
        True if the function succeeded, False otherwise.
    """
    last_error: Exception | None = None

    for attempt in range(max_retries):
        try:
            if run_in_thread:
                await asyncio.to_thread(fn)
            elif inspect.iscoroutinefunction(fn):
                await fn()
            else:
                fn()
            return True
        except retryable_exceptions as e:
            last_error = e
            if attempt + 1 == max_retries:
                break
            delay = backoff_delay(initial_backoff_sec, attempt)
            logger.warning(
                "%s attempt %d/%d failed: %s. Retrying in %.1fs...",
                name,
                attempt + 1,
                max_retries,
                e,
                delay,
            )
            await asyncio.sleep(delay)
        except Exception as e:
            logger.error("%s failed (non-retryable): %s", name, e)
            return False

    logger.error(
        "%s failed after %d attempts. Last error: %s",
        name,
        max_retries,
        last_error,
    )
    return False
