"""
Edge daemon main loop for the Aurora-to-PVOutput telemetry pipeline.

Builds the components from :class:`~aurora_edge.src.config.EdgeSettings`
and runs one cooperative loop: every ``tick_interval_s`` the scheduler
checks its two aligned triggers and the pending PVOutput report. Every
blocking call (inverter reads, broker reconnect, PVOutput POST) completes
before the next scheduling decision.

Graceful shutdown on SIGTERM/SIGINT sets a shared asyncio.Event. The
in-flight tick finishes, then the bus announces ``Offline`` and the
inverter connection and spool are closed.

Structured JSON logging is used for all events.

CHANGELOG:
- 2026-10-16: Replace poll/upload loops with the single scheduler loop

TODO:
- None
"""

from __future__ import annotations

import asyncio
import contextlib
import hashlib
import json
import logging
import signal
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aurora_edge.src.config import EdgeSettings
    from aurora_edge.src.scheduler import Scheduler

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


def configure_logging(level: int = logging.INFO) -> None:
    """Configure structured JSON logging for the edge daemon.

    Sets up the root logger with a JSON-formatted handler writing to stderr.
    """

    class _JsonFormatter(logging.Formatter):
        """Minimal JSON log formatter."""

        def format(self, record: logging.LogRecord) -> str:
            log_entry = {
                "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
            }
            if record.exc_info and record.exc_info[1] is not None:
                log_entry["exception"] = self.formatException(record.exc_info)
            return json.dumps(log_entry)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def _masked_token(value: str | None) -> str:
    """Return a short non-reversible token fingerprint for diagnostics."""
    if not value:
        return "empty"
    digest = hashlib.sha256(value.encode("utf-8")).hexdigest()[:10]
    return f"len={len(value)} sha256={digest}"


# ---------------------------------------------------------------------------
# Startup config logging
# ---------------------------------------------------------------------------


def log_config_summary(settings: EdgeSettings) -> None:
    """Log a config summary at startup, masking secrets.

    The MQTT password and PVOutput API key are only logged as fingerprints.

    Args:
        settings: An EdgeSettings instance (or any object with the same attrs).
    """
    logger.info(
        "Edge daemon starting with config: "
        "inverter_host=%s, inverter_port=%s, inverter_slave_id=%s, "
        "mqtt_host=%s, mqtt_port=%s, mqtt_user=%s, mqtt_topic=%s, "
        "pvoutput_url=%s, pvoutput_system_id=%s, "
        "stats_period_s=%s, pvoutput_period_s=%s, clock_offset_s=%s, "
        "status_path=%s, spool_path=%s, "
        "mqtt_password_masked=%s, pvoutput_api_key_masked=%s",
        settings.inverter_host,
        settings.inverter_port,
        settings.inverter_slave_id,
        settings.mqtt_host,
        settings.mqtt_port,
        settings.mqtt_user,
        settings.mqtt_topic,
        settings.pvoutput_url,
        settings.pvoutput_system_id,
        settings.stats_period_s,
        settings.pvoutput_period_s,
        settings.clock_offset_s,
        settings.status_path,
        settings.spool_path,
        _masked_token(settings.mqtt_password),
        _masked_token(settings.pvoutput_api_key),
    )


# ---------------------------------------------------------------------------
# Loop runner
# ---------------------------------------------------------------------------


async def run_loop(
    *,
    scheduler: Scheduler,
    tick_interval_s: float,
    shutdown_event: asyncio.Event,
) -> None:
    """Tick the scheduler until shutdown_event is set.

    Args:
        scheduler: The scheduler to drive.
        tick_interval_s: Idle wait between ticks.
        shutdown_event: Event to signal graceful shutdown.
    """
    logger.info("Scheduler loop started (tick=%ss)", tick_interval_s)
    while not shutdown_event.is_set():
        await scheduler.tick()
        # Idle wait, cut short by shutdown
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(shutdown_event.wait(), timeout=tick_interval_s)
    logger.info("Scheduler loop stopped")


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


async def async_main() -> None:
    """Async entrypoint: load config, build components, run the loop.

    Sets up SIGTERM/SIGINT handlers to trigger graceful shutdown.
    """
    configure_logging()

    from aurora_edge.src.bus import BusPublisher
    from aurora_edge.src.cache import StatusCache
    from aurora_edge.src.clock import ClockAdapter, LocalWallClockSource
    from aurora_edge.src.collector import TelemetryCollector
    from aurora_edge.src.config import EdgeSettings
    from aurora_edge.src.device import ModbusDeviceLink
    from aurora_edge.src.health import StatusFileWriter
    from aurora_edge.src.network import NetworkProbe
    from aurora_edge.src.reporter import PVOutputReporter
    from aurora_edge.src.retry import RetryPolicy
    from aurora_edge.src.config import EdgeSettings
    from aurora_edge.src.scheduler import Scheduler
    from aurora_edge.src.spool import ReportSpool

    settings = EdgeSettings()
    log_config_summary(settings)

    shutdown_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: _handle_signal(shutdown_event),
        )

    clock = ClockAdapter(
        LocalWallClockSource(settings.clock_offset_s),
        offset_s=settings.clock_offset_s,
    )
    cache = StatusCache()
    link = ModbusDeviceLink(
        host=settings.inverter_host,
        port=settings.inverter_port,
        slave_id=settings.inverter_slave_id,
    )
    bus = BusPublisher(
        host=settings.mqtt_host,
        port=settings.mqtt_port,
        username=settings.mqtt_user,
        password=settings.mqtt_password,
        topic_root=settings.mqtt_topic,
        reconnect_policy=RetryPolicy(interval_s=settings.mqtt_reconnect_interval_s),
        stop_event=shutdown_event,
    )
    reporter = PVOutputReporter(
        api_key=settings.pvoutput_api_key,
        system_id=settings.pvoutput_system_id,
        clock=clock,
        url=settings.pvoutput_url,
        bus=bus,
    )
    logger.info("Clock time: %d", clock.now())

    try:
        async with ReportSpool(settings.spool_path) as spool:
            await bus.ensure_connected()
            scheduler = Scheduler(
                clock=clock,
                collector=TelemetryCollector(link=link, cache=cache, clock=clock),
                cache=cache,
                bus=bus,
                reporter=reporter,
                network=NetworkProbe(settings.network_probe_host),
                stats_period_s=settings.stats_period_s,
                energy_period_s=settings.pvoutput_period_s,
                report_retry_delay_s=settings.report_retry_delay_s,
                status_writer=StatusFileWriter(settings.status_path),
                spool=spool,
            )
            await scheduler.restore()
            await run_loop(
                scheduler=scheduler,
                tick_interval_s=settings.tick_interval_s,
                shutdown_event=shutdown_event,
            )
    finally:
        await bus.close()
        await link.close()
        logger.info("Shutdown complete")


def _handle_signal(shutdown_event: asyncio.Event) -> None:
    """Handle SIGTERM/SIGINT by setting the shutdown event.

    Args:
        shutdown_event: The event to set for graceful shutdown.
    """
    logger.info("Received shutdown signal, initiating graceful shutdown")
    shutdown_event.set()


def main() -> None:
    """Synchronous entrypoint for the edge daemon."""
    asyncio.run(async_main())


if __name__ == "__main__":
    main()
