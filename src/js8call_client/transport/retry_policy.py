"""Reconnection delay policies.

The connection manager asks its policy how long to wait before each reconnect
attempt. JS8Call's default behavior is a fixed five second delay with no cap;
tests substitute ZeroDelayPolicy to avoid real timers.
"""

from __future__ import annotations

import random
from typing import Protocol

from js8call_client.const import DEFAULT_RECONNECT_DELAY


class ReconnectPolicy(Protocol):
    """Decides the delay before a reconnection attempt."""

    def next_delay(self, attempt: int) -> float:
        """Return delay in seconds before attempt (0-indexed since the last connection loss)."""
        ...


class FixedDelayPolicy:
    """Same delay before every attempt, retrying forever."""

    def __init__(self, delay_seconds: float = DEFAULT_RECONNECT_DELAY):
        self.delay_seconds = delay_seconds

    def next_delay(self, attempt: int) -> float:
        return self.delay_seconds

    def __repr__(self) -> str:
        return f"FixedDelayPolicy(delay={self.delay_seconds}s)"


class ZeroDelayPolicy(FixedDelayPolicy):
    """Reconnect on the next loop iteration."""

    def __init__(self) -> None:
        super().__init__(0.0)


class BackoffPolicy:
    """Exponential backoff retry policy with jitter.

    Provides retry delay calculation using exponential backoff with random
    jitter so many clients restarting together do not reconnect in lockstep.
    """

    def __init__(
        self,
        base_delay_seconds: float = 1.0,
        max_delay_seconds: float = 60.0,
        jitter_factor: float = 0.1,
    ):
        """Initialize retry policy.

        Args:
            base_delay_seconds: Delay before the first attempt (default: 1s)
            max_delay_seconds: Maximum delay cap (default: 60s)
            jitter_factor: Jitter as fraction of delay (default: 0.1 = 10%)
        """
        self.base_delay_seconds = base_delay_seconds
        self.max_delay_seconds = max_delay_seconds
        self.jitter_factor = jitter_factor

    def next_delay(self, attempt: int) -> float:
        """Calculate delay for reconnect attempt.

        Formula: min(base_delay * (2 ** attempt), max_delay) + jitter
        Jitter: random value between 0 and delay * jitter_factor

        Args:
            attempt: Attempt number (0-indexed)

        Returns:
            Delay in seconds
        """
        # Exponent capped so large attempt counts never overflow the float
        delay = self.base_delay_seconds * (2 ** min(attempt, 32))
        delay = min(delay, self.max_delay_seconds)

        jitter = random.uniform(0, delay * self.jitter_factor)
        return delay + jitter

    def __repr__(self) -> str:
        return (
            f"BackoffPolicy(base_delay={self.base_delay_seconds}s, "
            f"max_delay={self.max_delay_seconds}s, "
            f"jitter_factor={self.jitter_factor})"
        )
