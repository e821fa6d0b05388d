"""
Unit tests for the Scheduler, its triggers, and the pending report flag.

Tests verify:
- Triggers align to period boundaries and advance by exactly one period.
- A late loop fires each trigger at most once per check.
- Energy runs before stats when both are due; task errors stay contained.
- The pending report survives failed deliveries and clears on success.
- The next energy fire abandons an undelivered report, even if its read fails.
- Pending state is restored from the spool.

CHANGELOG:
- 2026-10-16: Initial creation
- 2026-10-17: Cover abandonment when the next energy read fails

TODO:
- None
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from aurora_edge.src.cache import StatusCache
from aurora_edge.src.clock import ClockAdapter
from aurora_edge.src.models import DailyEnergyReading, StatusSnapshot
from aurora_edge.src.scheduler import PendingPublish, Scheduler, Trigger, first_fire


def _reading(wh: int = 4200, ts: int = 1200) -> DailyEnergyReading:
    return DailyEnergyReading(energy_wh=wh, read_ts=ts)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def cache() -> StatusCache:
    return StatusCache()


@pytest.fixture()
def collector() -> MagicMock:
    collector = MagicMock()
    collector.set_device_time = AsyncMock(return_value=True)
    collector.read_daily_energy = AsyncMock(return_value=_reading())
    collector.read_full_status = AsyncMock(return_value=StatusSnapshot(p_in=1500.0))
    return collector


@pytest.fixture()
def bus() -> MagicMock:
    bus = MagicMock()
    bus.publish_status = AsyncMock(return_value=True)
    bus.publish_log = AsyncMock(return_value=True)
    return bus


@pytest.fixture()
def reporter() -> MagicMock:
    reporter = MagicMock()
    reporter.send = AsyncMock(return_value=True)
    return reporter


@pytest.fixture()
def network() -> MagicMock:
    network = MagicMock()
    network.is_connected = AsyncMock(return_value=True)
    return network


@pytest.fixture()
def make_scheduler(
    clock: ClockAdapter,
    collector: MagicMock,
    cache: StatusCache,
    bus: MagicMock,
    reporter: MagicMock,
    network: MagicMock,
):
    def _make(**overrides: object) -> Scheduler:
        kwargs: dict[str, object] = {
            "clock": clock,
            "collector": collector,
            "cache": cache,
            "bus": bus,
            "reporter": reporter,
            "network": network,
            "stats_period_s": 30,
            "energy_period_s": 300,
            "report_retry_delay_s": 0,
        }
        kwargs.update(overrides)
        return Scheduler(**kwargs)  # type: ignore[arg-type]

    return _make


# ---------------------------------------------------------------------------
# Trigger
# ---------------------------------------------------------------------------


class TestTrigger:
    """Alignment and advancement."""

    @pytest.mark.parametrize(
        ("now", "period", "expected"),
        [(1000, 30, 1020), (1000, 300, 1200), (1020, 30, 1050), (0, 60, 60)],
    )
    def test_first_fire(self, now: int, period: int, expected: int) -> None:
        assert first_fire(now, period) == expected

    def test_advance_is_exactly_one_period(self) -> None:
        trigger = Trigger("stats", 30, 1000)

        assert trigger.advance() == 1050
        assert trigger.advance() == 1080

    def test_is_due(self) -> None:
        trigger = Trigger("stats", 30, 1000)

        assert not trigger.is_due(1019)
        assert trigger.is_due(1020)

    def test_non_positive_period_rejected(self) -> None:
        with pytest.raises(ValueError, match="period"):
            Trigger("stats", 0, 1000)


# ---------------------------------------------------------------------------
# PendingPublish
# ---------------------------------------------------------------------------


class TestPendingPublish:
    """Generation-token semantics."""

    def test_set_and_clear(self) -> None:
        pending = PendingPublish()
        token = pending.set(_reading())

        assert pending.is_set
        assert pending.clear(token) is True
        assert not pending.is_set

    def test_stale_token_cannot_clear_newer_reading(self) -> None:
        pending = PendingPublish()
        old = pending.set(_reading(ts=1200))
        pending.set(_reading(ts=1500))

        assert pending.clear(old) is False
        assert pending.is_set
        assert pending.reading == _reading(ts=1500)

    def test_supersede_counts_abandoned(self) -> None:
        pending = PendingPublish()
        pending.set(_reading(ts=1200))
        pending.set(_reading(ts=1500))

        assert pending.abandoned == 1

    def test_abandon_drops_and_counts(self) -> None:
        pending = PendingPublish()
        assert pending.abandon() is False

        token = pending.set(_reading())

        assert pending.abandon() is True
        assert pending.abandoned == 1
        assert not pending.is_set
        assert pending.clear(token) is False

    def test_clear_when_unset(self) -> None:
        assert PendingPublish().clear(0) is False

    def test_restore_keeps_generation_monotonic(self) -> None:
        pending = PendingPublish()
        pending.restore(7, _reading())

        assert pending.generation == 7
        assert pending.set(_reading(ts=1500)) == 8


# ---------------------------------------------------------------------------
# Scheduler.tick
# ---------------------------------------------------------------------------


class TestSchedulerAlignment:
    """Trigger cadence driven through tick()."""

    def test_initial_alignment(self, make_scheduler) -> None:
        scheduler = make_scheduler()

        assert scheduler.stats_trigger.next_fire == 1020
        assert scheduler.energy_trigger.next_fire == 1200

    @pytest.mark.asyncio
    async def test_nothing_runs_before_first_boundary(
        self, make_scheduler, clock_source, collector: MagicMock
    ) -> None:
        scheduler = make_scheduler()
        clock_source.t = 1019

        await scheduler.tick()

        collector.read_full_status.assert_not_awaited()
        collector.read_daily_energy.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stats_fires_once_per_period(
        self, make_scheduler, clock_source, collector: MagicMock
    ) -> None:
        scheduler = make_scheduler()

        clock_source.t = 1020
        await scheduler.tick()
        await scheduler.tick()
        clock_source.t = 1049
        await scheduler.tick()

        assert collector.read_full_status.await_count == 1
        assert scheduler.stats_trigger.next_fire == 1050

    @pytest.mark.asyncio
    async def test_late_loop_fires_once_per_check(
        self, make_scheduler, clock_source, collector: MagicMock
    ) -> None:
        scheduler = make_scheduler()
        clock_source.t = 1100

        await scheduler.tick()

        assert collector.read_full_status.await_count == 1
        assert scheduler.stats_trigger.next_fire == 1050

    @pytest.mark.asyncio
    async def test_slow_task_does_not_shift_schedule(
        self, make_scheduler, clock_source, collector: MagicMock
    ) -> None:
        scheduler = make_scheduler()

        async def _slow_read() -> StatusSnapshot:
            clock_source.t += 25
            return StatusSnapshot()

        collector.read_full_status.side_effect = _slow_read
        clock_source.t = 1020
        await scheduler.tick()

        assert scheduler.stats_trigger.next_fire == 1050

    @pytest.mark.asyncio
    async def test_energy_runs_before_stats(
        self, make_scheduler, clock_source, collector: MagicMock
    ) -> None:
        order: list[str] = []
        collector.read_daily_energy.side_effect = lambda: order.append("energy") or _reading()
        collector.read_full_status.side_effect = lambda: order.append("stats") or StatusSnapshot()
        scheduler = make_scheduler()
        clock_source.t = 1200
        await scheduler.tick()

        assert order == ["energy", "stats"]

    @pytest.mark.asyncio
    async def test_task_exception_does_not_escape(
        self, make_scheduler, clock_source, collector: MagicMock, bus: MagicMock
    ) -> None:
        collector.read_full_status.side_effect = RuntimeError("boom")
        scheduler = make_scheduler()
        clock_source.t = 1020

        await scheduler.tick()

        assert scheduler.stats_trigger.next_fire == 1050
        bus.publish_status.assert_not_awaited()


class TestStatsCycle:
    """Snapshot publication."""

    @pytest.mark.asyncio
    async def test_publishes_serialized_cache(
        self, make_scheduler, clock_source, cache: StatusCache, bus: MagicMock
    ) -> None:
        status_writer = MagicMock()
        scheduler = make_scheduler(status_writer=status_writer)
        clock_source.t = 1020

        await scheduler.tick()

        bus.publish_status.assert_awaited_once_with(cache.serialize(), 1500.0)
        status_writer.write.assert_called_once_with(cache.serialize())

    @pytest.mark.asyncio
    async def test_offline_skips_publish(
        self, make_scheduler, clock_source, collector: MagicMock, bus: MagicMock
    ) -> None:
        collector.read_full_status.return_value = None
        scheduler = make_scheduler()
        clock_source.t = 1020

        await scheduler.tick()

        bus.publish_status.assert_not_awaited()


class TestReportDelivery:
    """Pending report lifecycle through tick()."""

    @pytest.mark.asyncio
    async def test_energy_read_sets_pending_and_logs(
        self, make_scheduler, clock_source, collector: MagicMock, reporter: MagicMock, bus: MagicMock
    ) -> None:
        reporter.send.return_value = False
        scheduler = make_scheduler()
        clock_source.t = 1200

        await scheduler.tick()

        collector.set_device_time.assert_awaited_once()
        assert scheduler.pending.is_set
        bus.publish_log.assert_awaited_once()
        assert "updated Today's energy" in bus.publish_log.await_args.args[0]

    @pytest.mark.asyncio
    async def test_failed_energy_read_does_not_set_pending(
        self, make_scheduler, clock_source, collector: MagicMock, reporter: MagicMock
    ) -> None:
        collector.read_daily_energy.return_value = None
        scheduler = make_scheduler()
        clock_source.t = 1200

        await scheduler.tick()

        assert not scheduler.pending.is_set
        reporter.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_three_rejections_then_success(
        self,
        make_scheduler,
        clock_source,
        cache: StatusCache,
        reporter: MagicMock,
    ) -> None:
        """Flag stays set through three rejections and clears on the fourth attempt."""
        reporter.send.side_effect = [False, False, False, True]
        scheduler = make_scheduler()

        clock_source.t = 1200
        await scheduler.tick()  # energy read + attempt 1
        assert scheduler.pending.is_set

        for t in (1201, 1202):  # attempts 2 and 3
            clock_source.t = t
            await scheduler.tick()
            assert scheduler.pending.is_set
            assert cache.last_published == 0

        clock_source.t = 1203
        await scheduler.tick()  # attempt 4

        assert reporter.send.await_count == 4
        assert not scheduler.pending.is_set
        assert cache.last_published == 1203

    @pytest.mark.asyncio
    async def test_network_down_keeps_pending(
        self, make_scheduler, clock_source, network: MagicMock, reporter: MagicMock
    ) -> None:
        network.is_connected.return_value = False
        scheduler = make_scheduler()
        clock_source.t = 1200

        await scheduler.tick()

        assert scheduler.pending.is_set
        reporter.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_newer_read_supersedes_stale_pending(
        self, make_scheduler, clock_source, collector: MagicMock, reporter: MagicMock
    ) -> None:
        reporter.send.return_value = False
        scheduler = make_scheduler()

        clock_source.t = 1200
        await scheduler.tick()
        collector.read_daily_energy.return_value = _reading(wh=5100, ts=1500)
        clock_source.t = 1500
        await scheduler.tick()

        assert scheduler.pending.abandoned == 1
        assert scheduler.pending.reading == _reading(wh=5100, ts=1500)
        assert reporter.send.await_args.args[0] == _reading(wh=5100, ts=1500)

    @pytest.mark.asyncio
    async def test_failed_next_read_abandons_stale_pending(
        self, make_scheduler, clock_source, collector: MagicMock, reporter: MagicMock
    ) -> None:
        """An offline inverter at the next energy fire stops retries of the old reading."""
        reporter.send.return_value = False
        scheduler = make_scheduler()

        clock_source.t = 1200
        await scheduler.tick()
        assert scheduler.pending.is_set

        collector.read_daily_energy.return_value = None
        clock_source.t = 1500
        await scheduler.tick()
        sends_after_abandon = reporter.send.await_count

        for t in (1501, 1800, 2100):
            clock_source.t = t
            await scheduler.tick()

        assert not scheduler.pending.is_set
        assert scheduler.pending.abandoned == 1
        assert reporter.send.await_count == sends_after_abandon

    @pytest.mark.asyncio
    async def test_abandon_clears_spool(
        self, make_scheduler, clock_source, collector: MagicMock, reporter: MagicMock
    ) -> None:
        spool = MagicMock()
        spool.save_pending = AsyncMock()
        spool.save_last_sent = AsyncMock()
        spool.clear_pending = AsyncMock()
        reporter.send.return_value = False
        scheduler = make_scheduler(spool=spool)

        clock_source.t = 1200
        await scheduler.tick()
        spool.clear_pending.assert_not_awaited()

        collector.read_daily_energy.return_value = None
        clock_source.t = 1500
        await scheduler.tick()

        spool.clear_pending.assert_awaited_once()
        spool.save_pending.assert_awaited_once_with(1, _reading())

    @pytest.mark.asyncio
    async def test_success_persists_to_spool(
        self, make_scheduler, clock_source
    ) -> None:
        spool = MagicMock()
        spool.save_pending = AsyncMock()
        spool.save_last_sent = AsyncMock()
        spool.clear_pending = AsyncMock()
        scheduler = make_scheduler(spool=spool)
        clock_source.t = 1200

        await scheduler.tick()

        spool.save_pending.assert_awaited_once_with(1, _reading())
        spool.save_last_sent.assert_awaited_once_with(1200)
        spool.clear_pending.assert_awaited_once()


class TestRestore:
    """Startup restore from the spool."""

    @pytest.mark.asyncio
    async def test_restores_pending_and_last_sent(
        self, make_scheduler, cache: StatusCache
    ) -> None:
        spool = MagicMock()
        spool.load_last_sent = AsyncMock(return_value=900)
        spool.load_pending = AsyncMock(return_value=(3, _reading(ts=950)))
        scheduler = make_scheduler(spool=spool)

        await scheduler.restore()

        assert scheduler.pending.is_set
        assert scheduler.pending.generation == 3
        assert cache.last_published == 900
        assert cache.last_read == 950

    @pytest.mark.asyncio
    async def test_nothing_pending(self, make_scheduler, cache: StatusCache) -> None:
        spool = MagicMock()
        spool.load_last_sent = AsyncMock(return_value=0)
        spool.load_pending = AsyncMock(return_value=None)
        scheduler = make_scheduler(spool=spool)

        await scheduler.restore()

        assert not scheduler.pending.is_set

    @pytest.mark.asyncio
    async def test_without_spool_is_noop(self, make_scheduler) -> None:
        scheduler = make_scheduler()

        await scheduler.restore()

        assert not scheduler.pending.is_set
