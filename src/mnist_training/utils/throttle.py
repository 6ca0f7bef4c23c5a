"""Rate limiting for periodic side effects."""

from __future__ import annotations

import time
from collections.abc import Callable

from loguru import logger


class Throttle:
    """Run ``action`` at most once per ``interval`` seconds.

    The first :meth:`maybe_call` always runs the action. Later calls run it
    only when at least ``interval`` seconds have passed since the last run;
    otherwise they are dropped, not queued.

    Args:
        action: Zero-argument callable to rate-limit.
        interval: Minimum seconds between two executions.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        action: Callable[[], object],
        interval: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if interval < 0:
            msg = f"interval must be non-negative, got {interval}"
            raise ValueError(msg)
        self.action = action
        self.interval = interval
        self._clock = clock
        self._last_call: float | None = None

    @property
    def last_call(self) -> float | None:
        """Clock reading of the last permitted execution, if any."""
        return self._last_call

    def maybe_call(self) -> bool:
        """Execute the action if the interval has elapsed.

        Returns:
            ``True`` when the action ran, ``False`` when the call was skipped.
        """
        now = self._clock()
        if self._last_call is not None and now - self._last_call < self.interval:
            return False
        self._last_call = now
        logger.trace(f"Throttle firing at t={now:.3f}")
        self.action()
        return True
