"""
Telemetry Collector: turns Device Link reads into cache updates.

Operations:
- read_daily_energy(): one counter read; on success records the reading in
  the cache and returns it.
- read_full_status(): reachability check, then every metric read
  independently; failed measures become unavailable, failed energy
  counters read as 0.
- set_device_time(): best-effort push of the corrected local time to the
  inverter clock.

None of these raise on device failure. Failures are logged and reported
through the return value only.

CHANGELOG:
- 2026-10-16: Initial creation
- 2026-10-17: Document the zero fallback for failed energy counter reads

TODO:
- None
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from aurora_edge.src.errors import DeviceError, DeviceOfflineError
from aurora_edge.src.models import DailyEnergyReading, StatusSnapshot
from aurora_edge.src.registers import (
    CLOCK,
    DAILY_ENERGY,
    GLOBAL_STATE,
    MEASURES,
    TOTAL_ENERGY,
)

if TYPE_CHECKING:
    from aurora_edge.src.cache import StatusCache
    from aurora_edge.src.clock import ClockAdapter
    from aurora_edge.src.device import DeviceLink
    from aurora_edge.src.registers import RegisterDef

logger = logging.getLogger(__name__)


class TelemetryCollector:
    """Reads the inverter and writes the results into the status cache.

    Args:
        link: Device Link to the inverter.
        cache: Status cache to update.
        clock: Clock adapter for timestamps and local time.
    """

    def __init__(self, *, link: DeviceLink, cache: StatusCache, clock: ClockAdapter) -> None:
        self._link = link
        self._cache = cache
        self._clock = clock

    async def read_daily_energy(self) -> DailyEnergyReading | None:
        """Read today's cumulated energy.

        Returns:
            The new reading on success (also stored in the cache), or
            ``None`` if the read failed. The cache is untouched on failure.
        """
        now = self._clock.now()
        try:
            value = await self._link.read(DAILY_ENERGY)
        except DeviceError as exc:
            logger.warning("Inverter error: %s", exc)
            return None

        reading = DailyEnergyReading(energy_wh=int(value), read_ts=now)
        self._cache.record_daily_energy(reading)
        logger.info(
            "Updated today's energy: %d (local %d) = %d Wh",
            now,
            self._clock.to_local(now),
            reading.energy_wh,
        )
        return reading

    async def read_full_status(self) -> StatusSnapshot | None:
        """Read every metric and replace the cached snapshot.

        A failed float measure becomes unavailable (``"NaN"`` in the
        document). A failed energy counter (``energy_today``,
        ``energy_total``) is reported as ``0`` instead: the document's
        integer fields have no unavailable token, so a zero counter in a
        snapshot can mean either no production or a failed read. The
        warning log line tells the two apart.

        Returns:
            The new snapshot, or ``None`` when the inverter is offline (the
            previous snapshot is kept).
        """
        now = self._clock.now()
        try:
            await self._check_online()
        except DeviceOfflineError as exc:
            logger.warning("Can not update inverter stats - inverter offline (%s)", exc.detail)
            return None

        energy_today = await self._read_energy(DAILY_ENERGY)
        energy_total = await self._read_energy(TOTAL_ENERGY)
        measures = {reg.name: await self._read_measure(reg) for reg in MEASURES}

        p_in_1 = measures["p_in_1"]
        p_in_2 = measures["p_in_2"]
        p_in = p_in_1 + p_in_2 if p_in_1 is not None and p_in_2 is not None else None

        snapshot = StatusSnapshot(
            last_update=now,
            energy_today=energy_today,
            energy_total=energy_total,
            last_pvoutput_read=self._cache.last_read,
            last_pvoutput_sent=self._cache.last_published,
            p_in=p_in,
            **measures,
        )
        self._cache.update(snapshot)
        logger.info("Status updated: %s", self._cache.serialize())
        return snapshot

    async def set_device_time(self) -> bool:
        """Push the corrected local time to the inverter clock.

        Returns:
            ``True`` if the write succeeded, ``False`` otherwise.
        """
        try:
            device_local = int(await self._link.read(CLOCK))
        except DeviceError as exc:
            logger.warning("Inverter error: %s", exc)
            device_local = 0

        new_local = self._clock.to_local(self._clock.now())
        logger.info("Setting inverter time: was %d setting to: %d", device_local, new_local)
        try:
            await self._link.write(CLOCK, new_local)
        except DeviceError as exc:
            logger.warning("Inverter error: %s", exc)
            return False
        return True

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _check_online(self) -> None:
        try:
            await self._link.read(GLOBAL_STATE)
        except DeviceError as exc:
            raise DeviceOfflineError("state check", str(exc)) from exc

    async def _read_energy(self, reg: RegisterDef) -> int:
        # Energy counters have no unavailable marker in the status document.
        try:
            return int(await self._link.read(reg))
        except DeviceError as exc:
            logger.warning("Inverter error: %s", exc)
            return 0

    async def _read_measure(self, reg: RegisterDef) -> float | None:
        try:
            return await self._link.read(reg)
        except DeviceError as exc:
            logger.warning("Inverter error: %s", exc)
            return None
