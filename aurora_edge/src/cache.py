"""
Status Cache: sole owner of the latest snapshot and daily-energy reading.

Single writer (the collector, plus the scheduler recording deliveries),
any number of readers. Snapshots are immutable pydantic models replaced by
reference, so a reader always sees one complete snapshot.

CHANGELOG:
- 2026-10-16: Initial creation

TODO:
- None
"""

from __future__ import annotations

from aurora_edge.src.models import DailyEnergyReading, StatusSnapshot, to_status_document


class StatusCache:
    """Holds the latest :class:`StatusSnapshot` and confirmed daily energy."""

    def __init__(self) -> None:
        self._snapshot = StatusSnapshot()
        self._daily_energy: DailyEnergyReading | None = None
        self._last_published = 0

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def update(self, snapshot: StatusSnapshot) -> None:
        """Replace the cached snapshot."""
        self._snapshot = snapshot

    def get(self) -> StatusSnapshot:
        """Return the current snapshot (immutable)."""
        return self._snapshot

    def serialize(self) -> str:
        """Return the current snapshot as a status document."""
        return to_status_document(self._snapshot)

    # ------------------------------------------------------------------
    # Daily energy / PVOutput bookkeeping
    # ------------------------------------------------------------------

    @property
    def daily_energy(self) -> DailyEnergyReading | None:
        """Last confirmed daily-energy reading, or ``None`` before the first read."""
        return self._daily_energy

    def record_daily_energy(self, reading: DailyEnergyReading) -> None:
        self._daily_energy = reading

    @property
    def last_read(self) -> int:
        """Epoch of the last successful daily-energy read (0 if none)."""
        return self._daily_energy.read_ts if self._daily_energy is not None else 0

    @property
    def last_published(self) -> int:
        """Epoch of the last confirmed PVOutput delivery (0 if none)."""
        return self._last_published

    def record_published(self, epoch: int) -> None:
        self._last_published = epoch
