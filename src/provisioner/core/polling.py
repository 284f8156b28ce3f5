"""Poll-until-ready combinator for bounded waits on external systems."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from src.provisioner.core.exceptions import PollTimeoutError
from src.provisioner.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


async def poll_until(
    check: Callable[[], Awaitable[T | None]],
    *,
    interval: float,
    timeout: float | None = None,
    max_attempts: int | None = None,
    description: str = "condition",
    on_attempt: Callable[[int], None] | None = None,
) -> T:
    """Call ``check`` every ``interval`` seconds until it returns a truthy value.

    Exceptions raised by ``check`` propagate immediately; terminal outcomes
    (a failed job, for instance) are reported that way.

    Args:
        check: Async probe. A truthy return ends the wait and is returned.
        interval: Seconds to sleep between attempts.
        timeout: Overall deadline in seconds, including time spent in ``check``.
        max_attempts: Maximum number of probes.
        description: What is being waited for (used in logs and errors).
        on_attempt: Called with the attempt number before each probe
            (activities use it to heartbeat).

    Returns:
        The first truthy value produced by ``check``.

    Raises:
        PollTimeoutError: If the deadline or attempt budget is exhausted.
        ValueError: If neither ``timeout`` nor ``max_attempts`` is given.
    """
    if timeout is None and max_attempts is None:
        raise ValueError("poll_until needs a timeout or max_attempts bound")

    async def _loop() -> T:
        attempt = 0
        while True:
            attempt += 1
            if on_attempt is not None:
                on_attempt(attempt)
            result = await check()
            if result:
                logger.debug("Poll satisfied", target=description, attempt=attempt)
                return result
            if max_attempts is not None and attempt >= max_attempts:
                raise PollTimeoutError(
                    f"Timed out waiting for {description} after {attempt} attempts"
                )
            await asyncio.sleep(interval)

    if timeout is None:
        return await _loop()

    try:
        async with asyncio.timeout(timeout):
            return await _loop()
    except TimeoutError as e:
        raise PollTimeoutError(f"Timed out waiting for {description} after {timeout}s") from e
