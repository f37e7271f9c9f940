import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

T = TypeVar("T")

DEFAULT_DELAY_S = 0.1


async def with_rate_limit(
    operation: Callable[[], Awaitable[T]],
    delay_s: float = DEFAULT_DELAY_S,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Wait a fixed delay, then run `operation`.

    This is a per-call floor on request spacing, not a token bucket: nothing is
    shared between calls, so concurrent callers are not coordinated.
    """
    if delay_s > 0:
        await sleep(delay_s)
    return await operation()
