"""
Minimum-interval rate gates, one per call category.

The Block Engine rate limits aggressively per method, so every network
attempt first waits on the gate of its category. A gate remembers when
it last let a call through; the next caller sleeps for whatever is left
of the minimum interval. There are no timers: the idle/cooling-down
state is evaluated against the recorded timestamp when asked.

Example:
    ```python
    from bundler.rate_gate import RateGate

    gate = RateGate(min_interval_ms=1200)
    gate.wait()  # returns immediately
    gate.wait()  # sleeps ~1.2s
    ```
"""

import logging
import threading
import time
from enum import Enum
from typing import Callable

from .models import CallCategory


logger = logging.getLogger(__name__)


class GateState(Enum):
    IDLE = "idle"
    COOLING_DOWN = "cooling_down"


class RateGate:
    """
    Blocks callers so that permitted calls are at least `min_interval_ms` apart.

    The lock is held while sleeping, so concurrent callers in the same
    category queue up one interval apart instead of sharing a window.

    Attributes:
        min_interval_ms: Minimum gap between permitted calls. Zero disables
            the gate.
        last_permitted_at: Clock reading of the last permitted call, or None.
    """

    def __init__(
        self,
        min_interval_ms: int = 0,
        name: str = "",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if min_interval_ms < 0:
            raise ValueError(f"min_interval_ms must be >= 0, got {min_interval_ms}")
        self.min_interval_ms = min_interval_ms
        self.name = name
        self.last_permitted_at: float | None = None
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()

    @property
    def min_interval(self) -> float:
        """Minimum interval in seconds."""
        return self.min_interval_ms / 1000

    def remaining(self) -> float:
        """Seconds until the gate permits the next call (0 when idle)."""
        if self.last_permitted_at is None or self.min_interval_ms == 0:
            return 0.0
        return max(0.0, self.last_permitted_at + self.min_interval - self._clock())

    @property
    def state(self) -> GateState:
        return GateState.COOLING_DOWN if self.remaining() > 0 else GateState.IDLE

    def wait(self) -> float:
        """
        Block until the gate permits a call, then record the permit.

        Returns:
            Seconds spent sleeping.
        """
        with self._lock:
            delay = self.remaining()
            if delay > 0:
                logger.debug(f"Rate gate {self.name or '-'}: waiting {delay * 1000:.0f}ms")
                self._sleep(delay)
            self.last_permitted_at = self._clock()
            return delay


class RateGates:
    """
    The set of gates used by one client, keyed by `CallCategory`.

    Example:
        ```python
        gates = RateGates({CallCategory.TIP_ACCOUNTS: 1200})
        gates.wait(CallCategory.TIP_ACCOUNTS)
        ```
    """

    def __init__(
        self,
        intervals_ms: dict[CallCategory, int],
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._gates = {
            category: RateGate(
                intervals_ms.get(category, 0), name=category.value, clock=clock, sleep=sleep
            )
            for category in CallCategory
        }

    def __getitem__(self, category: CallCategory) -> RateGate:
        return self._gates[category]

    def wait(self, category: CallCategory) -> float:
        return self._gates[category].wait()
