"""
Network connectivity probe.

Gates PVOutput delivery: a TCP connect to the probe host must succeed
within a short timeout. This is a cheap pre-check only; the report attempt
itself still handles transport errors.

CHANGELOG:
- 2026-10-16: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging

logger = logging.getLogger(__name__)

PROBE_TIMEOUT_S: float = 5.0


class NetworkProbe:
    """TCP reachability check against a fixed host.

    Args:
        host: Host to connect to (normally the PVOutput host).
        port: TCP port (default 443).
        timeout_s: Connect timeout in seconds.
    """

    def __init__(self, host: str, port: int = 443, timeout_s: float = PROBE_TIMEOUT_S) -> None:
        self._host = host
        self._port = port
        self._timeout_s = timeout_s

    async def is_connected(self) -> bool:
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(self._host, self._port),
                timeout=self._timeout_s,
            )
        except (OSError, TimeoutError) as exc:
            logger.warning("Network unavailable (%s:%d): %s", self._host, self._port, exc)
            return False
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            logger.debug("Probe socket close error", exc_info=True)
        return True
