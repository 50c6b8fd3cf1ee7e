"""
Retry delay schedule for transient failures.

Delays grow exponentially from a base, each one strictly longer than
the one before. A `Retry-After` hint from the server is honoured as a
floor for the next delay.
"""

import math
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime


class ExponentialBackoff:
    """
    Exponential backoff for one endpoint.

    Create one per endpoint attempt sequence; it tracks the previous
    delay so the next one is always longer.

    Example:
        ```python
        backoff = ExponentialBackoff(base=1.0, max_attempts=3)
        backoff.next_delay()                 # 1.0
        backoff.next_delay(retry_after=5.0)  # 5.0
        backoff.exhausted(attempt=3)         # True
        ```
    """

    def __init__(self, base: float = 1.0, max_attempts: int = 3):
        if base <= 0:
            raise ValueError(f"backoff base must be > 0, got {base}")
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self.base = base
        self.max_attempts = max_attempts
        self.retries = 0
        self.last_delay = 0.0

    def exhausted(self, attempt: int) -> bool:
        """True once `attempt` attempts have been made and no retry is left."""
        return attempt >= self.max_attempts

    def next_delay(self, retry_after: float | None = None) -> float:
        """
        Delay in seconds before the next retry.

        Args:
            retry_after: Server suggested wait in seconds, used as a floor.
        """
        delay = self.base * 2**self.retries
        if retry_after is not None and retry_after > delay:
            delay = retry_after
        if delay <= self.last_delay:
            delay = self.last_delay * 2
        self.retries += 1
        self.last_delay = delay
        return delay


def parse_retry_after(value: str | None, now: datetime | None = None) -> float | None:
    """
    Parse a `Retry-After` header into seconds.

    Accepts delta-seconds ("2", "1.5") and HTTP dates. Returns None for
    missing or unparseable values; dates in the past give 0.
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        pass
    else:
        return max(0.0, seconds) if math.isfinite(seconds) else None

    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when is None:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return max(0.0, (when - now).total_seconds())
