"""
Retry policy for blocking recovery loops.

A :class:`RetryPolicy` repeats an async attempt until it succeeds, the
attempt budget runs out, or an optional stop event is set, waiting a fixed
interval between attempts. The broker reconnect uses the unbounded form.

CHANGELOG:
- 2026-10-16: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Fixed-interval retry.

    Attributes:
        interval_s: Seconds to wait after a failed attempt.
        max_attempts: Attempt budget; ``None`` means retry forever.
    """

    interval_s: float
    max_attempts: int | None = None

    def __post_init__(self) -> None:
        if self.interval_s < 0:
            raise ValueError("interval_s must be >= 0")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1 or None")

    async def run(
        self,
        attempt: Callable[[], Awaitable[bool]],
        *,
        stop_event: asyncio.Event | None = None,
    ) -> bool:
        """Call *attempt* until it returns ``True``.

        Args:
            attempt: Async callable returning ``True`` on success.
            stop_event: When set, waiting is cut short and ``False`` is
                returned.

        Returns:
            ``True`` if an attempt succeeded, ``False`` when the budget ran
            out or the stop event was set.
        """
        attempts = 0
        while True:
            attempts += 1
            if await attempt():
                return True
            if self.max_attempts is not None and attempts >= self.max_attempts:
                logger.warning("Giving up after %d attempts", attempts)
                return False
            if stop_event is None:
                await asyncio.sleep(self.interval_s)
                continue
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval_s)
            if stop_event.is_set():
                return False
