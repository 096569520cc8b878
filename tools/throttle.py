"""Randomised politeness delay between sequential competitor fetches."""

import asyncio
import random
from typing import Awaitable, Callable, Optional

import structlog

from app.config import THROTTLE_MAX_DELAY, THROTTLE_MIN_DELAY

logger = structlog.get_logger(__name__)


class RandomDelayThrottle:
    """Sleep for a uniformly random interval in ``[min_delay, max_delay]`` seconds.

    ``sleep`` and ``rng`` are injectable so tests can record delays instead
    of waiting.
    """

    def __init__(
        self,
        min_delay: float = THROTTLE_MIN_DELAY,
        max_delay: float = THROTTLE_MAX_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ) -> None:
        if min_delay < 0 or max_delay < min_delay:
            raise ValueError(f"invalid throttle bounds: {min_delay}..{max_delay}")
        self.min_delay = min_delay
        self.max_delay = max_delay
        self._sleep = sleep
        self._rng = rng or random.Random()

    def next_delay(self) -> float:
        return self._rng.uniform(self.min_delay, self.max_delay)

    async def wait(self) -> float:
        delay = self.next_delay()
        logger.debug("throttle.wait", delay=round(delay, 3))
        await self._sleep(delay)
        return delay
