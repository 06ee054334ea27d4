"""Running coroutines from sync entry points."""

import asyncio
from collections.abc import Coroutine
from typing import Any, TypeVar

from pulse_sync.domain.errors import DeadlineExceeded

T = TypeVar("T")


def _event_loop() -> asyncio.AbstractEventLoop:
    try:
        loop = asyncio.get_event_loop()
        if not loop.is_closed():
            return loop
    except RuntimeError:
        pass
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    return loop


def run_async(coro: Coroutine[Any, Any, T], timeout: float | None = None) -> T:
    """Run a coroutine to completion from sync code (CLI commands).

    The loop is left open so that httpx connection pools bound to it
    survive between sequential calls.

    Args:
        coro: The coroutine to execute.
        timeout: Overall limit in seconds, or None to wait indefinitely.

    Returns:
        The result of the coroutine.

    Raises:
        DeadlineExceeded: ``timeout`` elapsed before the coroutine finished.
    """
    loop = _event_loop()
    if timeout is None:
        return loop.run_until_complete(coro)
    try:
        return loop.run_until_complete(asyncio.wait_for(coro, timeout))
    except TimeoutError as e:
        raise DeadlineExceeded(f"did not finish within {timeout}s") from e
