"""
Clock Adapter: UTC epoch seconds from an offset-reporting time source.

Time sources in this setup (NTP client libraries configured with a timezone
offset, RTC chips set to local time) report *local* wall time expressed as
epoch seconds. All scheduling is done in UTC epoch seconds, so the adapter
subtracts the configured offset once, on the way in. Local calendar fields
are only derived at the edges (inverter clock, PVOutput date/time).

CHANGELOG:
- 2026-10-16: Initial creation

TODO:
- None
"""

from __future__ import annotations

import time
from datetime import UTC, datetime
from typing import Protocol, runtime_checkable


@runtime_checkable
class ClockSource(Protocol):
    """External wall-clock source.

    ``epoch_time()`` returns epoch seconds with the source's offset already
    applied (the way NTP client libraries report it).
    """

    def epoch_time(self) -> float: ...


class LocalWallClockSource:
    """System clock reported as local wall time in epoch seconds.

    Args:
        offset_s: Timezone offset the source applies, in seconds.
    """

    def __init__(self, offset_s: int = 0) -> None:
        self._offset_s = offset_s

    def epoch_time(self) -> float:
        return time.time() + self._offset_s


class ClockAdapter:
    """Corrected, non-decreasing UTC epoch seconds.

    Args:
        source: The underlying :class:`ClockSource`.
        offset_s: Offset the source applies; subtracted from every reading.

    Usage::

        clock = ClockAdapter(LocalWallClockSource(3600), offset_s=3600)
        now = clock.now()                 # UTC epoch seconds
        fields = clock.local_fields(now)  # local calendar fields
    """

    def __init__(self, source: ClockSource, offset_s: int = 0) -> None:
        self._source = source
        self._offset_s = offset_s
        self._last = 0

    @property
    def offset_s(self) -> int:
        return self._offset_s

    def now(self) -> int:
        """Return UTC epoch seconds, never lower than a previous call."""
        corrected = int(self._source.epoch_time()) - self._offset_s
        if corrected > self._last:
            self._last = corrected
        return self._last

    def to_local(self, epoch: int) -> int:
        """Convert UTC epoch seconds to local-time epoch seconds."""
        return epoch + self._offset_s

    def from_local(self, local_epoch: int) -> int:
        """Convert local-time epoch seconds back to UTC epoch seconds."""
        return local_epoch - self._offset_s

    def local_fields(self, epoch: int) -> datetime:
        """Return a naive datetime holding the local calendar fields of *epoch*."""
        return datetime.fromtimestamp(self.to_local(epoch), tz=UTC).replace(tzinfo=None)
