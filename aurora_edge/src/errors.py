"""
Error taxonomy for the edge daemon.

Only device-side failures are modelled as exceptions of our own. Transport
failures surface as the library exceptions (``aiomqtt.MqttError``,
``httpx.TransportError``) and are absorbed by the component that sees them.

CHANGELOG:
- 2026-10-16: Initial creation

TODO:
- None
"""

from __future__ import annotations


class DeviceError(Exception):
    """A single read or write against the inverter failed.

    Args:
        action: Short name of the failed operation (e.g. ``"read grid_voltage"``).
        detail: Transport or protocol detail for the log line.
    """

    def __init__(self, action: str, detail: str = "") -> None:
        self.action = action
        self.detail = detail
        msg = f"{action} failed"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class DeviceOfflineError(DeviceError):
    """The inverter did not answer the reachability check before a batch read."""
