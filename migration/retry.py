"""
Fixed-delay retry and pacing policy for sequential API calls.

The sleep function is injectable so tests can run without real timers.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, Sequence

from config import RATE_LIMIT_BACKOFF, RATE_LIMIT_RETRIES


@dataclass
class BackoffPolicy:
    retries: int = RATE_LIMIT_RETRIES
    delays: Sequence[float] = (RATE_LIMIT_BACKOFF,)
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def should_retry(self, attempt: int) -> bool:
        """attempt counts retries already made for the current item."""
        if self.retries <= 0:
            return False
        return attempt < self.retries

    def delay_for(self, attempt: int) -> float:
        """Delay before retry number attempt+1; the last delay repeats."""
        if not self.delays:
            return 0
        index = min(max(0, attempt), len(self.delays) - 1)
        return self.delays[index]

    def wait(self, attempt: int):
        delay = self.delay_for(attempt)
        if delay > 0:
            self.sleep(delay)

    def pause(self, seconds: float):
        """Fixed pacing delay between items."""
        if seconds and seconds > 0:
            self.sleep(seconds)
