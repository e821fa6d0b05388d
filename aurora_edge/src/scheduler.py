"""
Scheduler: two wall-clock-aligned triggers and the pending PVOutput report.

Runs on every iteration of the daemon's idle loop via :meth:`Scheduler.tick`:

1. **Energy trigger** (slow cadence): abandon any pending report that never
   got through, push the time to the inverter, read today's energy, and on
   success set the new pending report. A failed read leaves nothing pending.
2. **Stats trigger** (fast cadence): read the full status snapshot and send
   it to the MQTT broker.
3. **Pending report**: while set and the network is up, one PVOutput
   attempt per tick; a failed attempt backs off briefly before returning.

Trigger rules:
- First fire lands on the next period boundary: ``now // P * P + P``.
- After a fire, ``next_fire += P`` whatever the task outcome, so a slow or
  failing task neither drifts nor speeds up the schedule. If the loop is
  late by more than one period the trigger fires on the next check, once.
- When both triggers are due in the same tick the energy task runs first.

No exception leaves :meth:`Scheduler.tick`.

CHANGELOG:
- 2026-10-16: Initial creation
- 2026-10-17: Abandon the pending report on every energy fire, not only after a successful read

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aurora_edge.src.bus import BusPublisher
    from aurora_edge.src.cache import StatusCache
    from aurora_edge.src.clock import ClockAdapter
    from aurora_edge.src.collector import TelemetryCollector
    from aurora_edge.src.health import StatusFileWriter
    from aurora_edge.src.models import DailyEnergyReading
    from aurora_edge.src.network import NetworkProbe
    from aurora_edge.src.reporter import PVOutputReporter
    from aurora_edge.src.spool import ReportSpool

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Schedule state
# ---------------------------------------------------------------------------


def first_fire(now: int, period_s: int) -> int:
    """Return the first period boundary strictly after *now*."""
    return (now // period_s) * period_s + period_s


class Trigger:
    """One fixed-period, wall-clock-aligned trigger.

    Args:
        name: Name used in log lines.
        period_s: Period in seconds (> 0).
        now: Current epoch seconds, used for alignment.
    """

    def __init__(self, name: str, period_s: int, now: int) -> None:
        if period_s <= 0:
            raise ValueError(f"{name} period must be > 0 (got {period_s})")
        self.name = name
        self.period_s = period_s
        self.next_fire = first_fire(now, period_s)

    def is_due(self, now: int) -> bool:
        return now >= self.next_fire

    def advance(self) -> int:
        """Move to the next period boundary and return it."""
        self.next_fire += self.period_s
        return self.next_fire


class PendingPublish:
    """Pending report flag with a generation token.

    Each :meth:`set` bumps the generation. :meth:`clear` only succeeds for a
    token at least as new as the current generation, so a delivery started
    for an older reading can never clear a flag set by a newer one.
    """

    def __init__(self) -> None:
        self._generation = 0
        self._reading: DailyEnergyReading | None = None
        self.abandoned = 0

    @property
    def is_set(self) -> bool:
        return self._reading is not None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def reading(self) -> DailyEnergyReading | None:
        return self._reading

    def set(self, reading: DailyEnergyReading) -> int:
        """Mark *reading* as pending and return its generation token."""
        self.abandon()
        self._generation += 1
        self._reading = reading
        return self._generation

    def abandon(self) -> bool:
        """Drop an undelivered reading without marking it sent.

        Returns:
            ``True`` if a reading was pending and has been dropped.
        """
        if self._reading is None:
            return False
        self.abandoned += 1
        logger.warning(
            "Abandoning undelivered report (%d Wh read at %d)",
            self._reading.energy_wh,
            self._reading.read_ts,
        )
        self._reading = None
        return True

    def restore(self, generation: int, reading: DailyEnergyReading) -> None:
        """Reinstate a persisted pending reading after a restart."""
        self._generation = max(self._generation, generation)
        self._reading = reading

    def clear(self, token: int) -> bool:
        """Clear the flag if *token* is not older than the current generation."""
        if self._reading is None or token < self._generation:
            return False
        self._reading = None
        return True


# ---------------------------------------------------------------------------
# Scheduler
# ---------------------------------------------------------------------------


class Scheduler:
    """Drives the energy, stats, and report tasks from one clock.

    Args:
        clock: Clock adapter; all schedule arithmetic uses ``clock.now()``.
        collector: Telemetry collector.
        cache: Status cache.
        bus: MQTT publisher for snapshots and diagnostic lines.
        reporter: PVOutput reporter.
        network: Connectivity probe gating PVOutput attempts.
        stats_period_s: Fast cadence in seconds.
        energy_period_s: Slow cadence in seconds.
        report_retry_delay_s: Back-off after a failed report attempt.
        status_writer: Optional status file writer.
        spool: Optional persistent store for the pending report.
    """

    def __init__(
        self,
        *,
        clock: ClockAdapter,
        collector: TelemetryCollector,
        cache: StatusCache,
        bus: BusPublisher,
        reporter: PVOutputReporter,
        network: NetworkProbe,
        stats_period_s: int,
        energy_period_s: int,
        report_retry_delay_s: float = 1.0,
        status_writer: StatusFileWriter | None = None,
        spool: ReportSpool | None = None,
    ) -> None:
        self._clock = clock
        self._collector = collector
        self._cache = cache
        self._bus = bus
        self._reporter = reporter
        self._network = network
        self._report_retry_delay_s = report_retry_delay_s
        self._status_writer = status_writer
        self._spool = spool

        now = clock.now()
        self.energy_trigger = Trigger("energy", energy_period_s, now)
        self.stats_trigger = Trigger("stats", stats_period_s, now)
        self.pending = PendingPublish()
        logger.info(
            "Scheduler aligned at %d: first energy update at %d, first stats update at %d",
            now,
            self.energy_trigger.next_fire,
            self.stats_trigger.next_fire,
        )

    async def restore(self) -> None:
        """Reload the pending report and last delivery time from the spool."""
        if self._spool is None:
            return
        self._cache.record_published(await self._spool.load_last_sent())
        restored = await self._spool.load_pending()
        if restored is None:
            return
        generation, reading = restored
        self.pending.restore(generation, reading)
        self._cache.record_daily_energy(reading)
        logger.info(
            "Restored pending report: %d Wh read at %d", reading.energy_wh, reading.read_ts
        )

    async def tick(self) -> None:
        """Run every due task once. Never raises."""
        now = self._clock.now()

        if self.energy_trigger.is_due(now):
            try:
                await self._run_energy_cycle()
            except Exception:
                logger.error("Energy cycle error", exc_info=True)
            finally:
                next_fire = self.energy_trigger.advance()
                logger.info("Cumulative Energy updated. Next update scheduled at %d", next_fire)

        if self.stats_trigger.is_due(now):
            try:
                await self._run_stats_cycle()
            except Exception:
                logger.error("Stats cycle error", exc_info=True)
            finally:
                self.stats_trigger.advance()

        if self.pending.is_set:
            try:
                await self._run_report_cycle()
            except Exception:
                logger.error("Report cycle error", exc_info=True)

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    async def _run_energy_cycle(self) -> None:
        # A report from the previous period is stale whatever this read returns.
        if self.pending.abandon() and self._spool is not None:
            await self._spool.clear_pending()

        await self._collector.set_device_time()
        reading = await self._collector.read_daily_energy()
        if reading is None:
            return

        token = self.pending.set(reading)
        if self._spool is not None:
            await self._spool.save_pending(token, reading)
        await self._bus.publish_log(
            f"updated Today's energy: {reading.read_ts} "
            f"({self._clock.to_local(reading.read_ts)}) = {reading.energy_wh}"
        )

    async def _run_stats_cycle(self) -> None:
        snapshot = await self._collector.read_full_status()
        if snapshot is None:
            return

        document = self._cache.serialize()
        if self._status_writer is not None:
            self._status_writer.write(document)
        await self._bus.publish_status(document, snapshot.p_in)

    async def _run_report_cycle(self) -> None:
        token = self.pending.generation
        reading = self.pending.reading
        if reading is None:
            return

        if not await self._network.is_connected():
            await asyncio.sleep(self._report_retry_delay_s)
            return

        if not await self._reporter.send(reading):
            await asyncio.sleep(self._report_retry_delay_s)
            return

        sent_at = self._clock.now()
        self._cache.record_published(sent_at)
        if self._spool is not None:
            await self._spool.save_last_sent(sent_at)
        if self.pending.clear(token) and self._spool is not None:
            await self._spool.clear_pending()
