"""Bounded polling helper for waiting on asynchronously rendered content."""

import asyncio
import inspect
import logging
import time
from typing import Awaitable, Callable, Union

logger = logging.getLogger(__name__)

Check = Callable[[], Union[bool, Awaitable[bool]]]


async def poll_until(check: Check, interval: float, timeout: float, label: str = 'condition') -> bool:
    """
    Call `check` every `interval` seconds until it is truthy or `timeout` expires.

    Expiry is not an error: the caller gets False and carries on with
    whatever state the page is in. Exceptions raised by `check` count as a
    falsy read.

    Args:
        check: Sync or async callable returning a bool
        interval: Seconds between reads
        timeout: Seconds before giving up
        label: Name used in log messages

    Returns:
        True if the condition was met, False on timeout
    """
    deadline = time.monotonic() + timeout
    while True:
        try:
            result = check()
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.debug(f"Poll for {label} raised {e!r}, treating as not ready")
            result = False

        if result:
            return True

        if time.monotonic() >= deadline:
            logger.debug(f"Timed out after {timeout:.1f}s waiting for {label}")
            return False

        await asyncio.sleep(interval)
