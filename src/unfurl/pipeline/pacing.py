"""In-process pacing of outbound requests."""

import asyncio
import time
from typing import Callable


class RequestPacer:
    """Enforce a minimum delay between consecutive outbound requests.

    State lives in the instance, so pacing applies per process and per
    pacer; nothing is shared across processes.
    """

    def __init__(self, min_interval_sec: float = 0.0, clock: Callable[[], float] = time.monotonic):
        self.min_interval_sec = min_interval_sec
        self._clock = clock
        self._lock = asyncio.Lock()
        self._last_request: float = 0.0

    async def wait(self) -> None:
        """Sleep until the next request slot is free."""
        if self.min_interval_sec <= 0:
            return

        async with self._lock:
            if self._last_request:
                delay = self.min_interval_sec - (self._clock() - self._last_request)
                if delay > 0:
                    await asyncio.sleep(delay)
            self._last_request = self._clock()
