"""
Remote report delivery: posts today's energy to PVOutput.

Builds the ``addstatus`` form body from the last confirmed daily-energy
reading, converted to local calendar fields, and POSTs it once with the
PVOutput API key and system id headers. There is no retry loop here; the
scheduler decides when to try again.

Failure classification: a transport error (no response) and any status
other than 200 are both a plain ``False``.

Operations:
- build_payload(reading): Form fields ``d``, ``t``, ``v1``, ``c1``.
- send(reading): One POST attempt.

CHANGELOG:
- 2026-10-16: Replace the spool batch uploader with the PVOutput addstatus reporter

TODO:
- None
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from aurora_edge.src.bus import BusPublisher
    from aurora_edge.src.clock import ClockAdapter
    from aurora_edge.src.models import DailyEnergyReading

logger = logging.getLogger(__name__)

DEFAULT_PVOUTPUT_URL = "https://pvoutput.org/service/r2/addstatus.jsp"
SUCCESS_STATUS = 200
_TIMEOUT_S = 30.0


class PVOutputReporter:
    """Single-shot PVOutput ``addstatus`` client.

    The URL must use HTTPS; ``http://`` URLs are rejected at construction
    time. TLS certificate verification is always enabled.

    Args:
        api_key: PVOutput API key (``X-Pvoutput-Apikey``).
        system_id: PVOutput system id (``X-Pvoutput-SystemId``).
        clock: Clock adapter used for the local date/time fields.
        url: ``addstatus`` endpoint.
        bus: Optional bus publisher; each outcome is mirrored to its LOG topic.

    Raises:
        ValueError: If *url* does not start with ``https://``.

    Usage::

        reporter = PVOutputReporter(api_key="key", system_id="123", clock=clock)
        ok = await reporter.send(cache.daily_energy)
    """

    def __init__(
        self,
        *,
        api_key: str,
        system_id: str,
        clock: ClockAdapter,
        url: str = DEFAULT_PVOUTPUT_URL,
        bus: BusPublisher | None = None,
    ) -> None:
        if not url.lower().startswith("https://"):
            raise ValueError(f"PVOutput URL must use HTTPS (got: '{url}').")
        self._url = url
        self._api_key = api_key
        self._system_id = system_id
        self._clock = clock
        self._bus = bus

    def build_payload(self, reading: DailyEnergyReading) -> dict[str, str]:
        """Return the form fields for *reading*, in PVOutput order."""
        local = self._clock.local_fields(reading.read_ts)
        return {
            "d": f"{local.year:04d}{local.month:02d}{local.day:02d}",
            "t": f"{local.hour:02d}:{local.minute:02d}",
            "v1": str(reading.energy_wh),
            "c1": "0",
        }

    async def send(self, reading: DailyEnergyReading) -> bool:
        """POST *reading* to PVOutput once.

        Returns:
            ``True`` only for an HTTP 200 response.
        """
        payload = self.build_payload(reading)
        logger.info(
            "Sending to PV Output: %d = %d", self._clock.to_local(reading.read_ts), reading.energy_wh
        )
        headers = {
            "X-Pvoutput-Apikey": self._api_key,
            "X-Pvoutput-SystemId": self._system_id,
        }
        try:
            async with httpx.AsyncClient(verify=True, timeout=_TIMEOUT_S) as client:
                response = await client.post(self._url, data=payload, headers=headers)
        except httpx.TransportError as exc:
            logger.warning("PV Output update error: %s", exc)
            await self._mirror(f"PV Output update ({payload}) error {exc}")
            return False

        logger.info("PV Output update returned %d: %s", response.status_code, response.text)
        await self._mirror(f"PV Output update ({payload}) returned {response.status_code}")
        return response.status_code == SUCCESS_STATUS

    async def _mirror(self, message: str) -> None:
        if self._bus is not None:
            await self._bus.publish_log(message)
