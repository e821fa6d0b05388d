"""
Device Link: single-register access to the Aurora inverter.

Defines the :class:`DeviceLink` protocol the collector depends on and the
:class:`ModbusDeviceLink` adapter that talks to the Modbus TCP gateway in
front of the inverter. Every call is one blocking request that either
returns a decoded value or raises :class:`~aurora_edge.src.errors.DeviceError`.

The Modbus client is kept open between calls and dropped after any
transport failure, so the next call reconnects. There is no backoff here:
the scheduler cadence already spaces the reads out.

CHANGELOG:
- 2026-10-16: Replace the batched group poller with per-register reads and clock writes

TODO:
- None
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from pymodbus.client import AsyncModbusTcpClient
from pymodbus.exceptions import ModbusException

from aurora_edge.src.decoder import decode, encode_u32
from aurora_edge.src.errors import DeviceError
from aurora_edge.src.registers import HOLDING

if TYPE_CHECKING:
    from aurora_edge.src.registers import RegisterDef

logger = logging.getLogger(__name__)

MODBUS_TIMEOUT_S: float = 10.0
"""Timeout per Modbus TCP request in seconds."""


class DeviceLink(Protocol):
    """Read/write access to the inverter, one register per call."""

    async def read(self, reg: RegisterDef) -> float:
        """Read and decode one register. Raises DeviceError on failure."""
        ...

    async def write(self, reg: RegisterDef, value: int) -> None:
        """Write one U32 register. Raises DeviceError on failure."""
        ...

    async def close(self) -> None:
        """Release the underlying transport."""
        ...


class ModbusDeviceLink:
    """Modbus TCP implementation of :class:`DeviceLink`.

    Args:
        host: Gateway IP address or hostname.
        port: Modbus TCP port (default 502).
        slave_id: Modbus unit ID of the inverter behind the gateway.
    """

    def __init__(self, *, host: str, port: int = 502, slave_id: int = 2) -> None:
        self._host = host
        self._port = port
        self._slave_id = slave_id
        self._client: AsyncModbusTcpClient | None = None

    async def read(self, reg: RegisterDef) -> float:
        """Read one register and return its scaled value.

        Raises:
            DeviceError: Connection failure, Modbus error response, or a
                decoded value outside the register's valid range.
        """
        action = f"read {reg.name}"
        client = await self._connected_client(action)
        try:
            if reg.table == HOLDING:
                response = await client.read_holding_registers(
                    reg.address, count=reg.word_count, device_id=self._slave_id
                )
            else:
                response = await client.read_input_registers(
                    reg.address, count=reg.word_count, device_id=self._slave_id
                )
        except (ModbusException, OSError, TimeoutError) as exc:
            self._drop_client()
            raise DeviceError(action, str(exc)) from exc

        if response.isError():
            raise DeviceError(action, f"Modbus error response {response}")

        try:
            return decode(reg, response.registers)
        except ValueError as exc:
            raise DeviceError(action, str(exc)) from exc

    async def write(self, reg: RegisterDef, value: int) -> None:
        """Write an unsigned 32-bit value to a holding register.

        Raises:
            DeviceError: Connection failure or Modbus error response.
        """
        action = f"write {reg.name}"
        if reg.table != HOLDING or reg.reg_type != "U32":
            raise DeviceError(action, "only U32 holding registers are writable")
        try:
            words = encode_u32(value)
        except ValueError as exc:
            raise DeviceError(action, str(exc)) from exc

        client = await self._connected_client(action)
        try:
            response = await client.write_registers(
                reg.address, words, device_id=self._slave_id
            )
        except (ModbusException, OSError, TimeoutError) as exc:
            self._drop_client()
            raise DeviceError(action, str(exc)) from exc

        if response.isError():
            raise DeviceError(action, f"Modbus error response {response}")

    async def close(self) -> None:
        """Close the Modbus connection if open."""
        self._drop_client()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _connected_client(self, action: str) -> AsyncModbusTcpClient:
        if self._client is None:
            self._client = AsyncModbusTcpClient(
                self._host,
                port=self._port,
                timeout=MODBUS_TIMEOUT_S,
            )
        if self._client.connected:
            return self._client

        try:
            ok = await self._client.connect()
        except (ModbusException, OSError, TimeoutError) as exc:
            self._drop_client()
            raise DeviceError(action, f"connect to {self._host}:{self._port}: {exc}") from exc
        if not ok:
            self._drop_client()
            raise DeviceError(action, f"connect to {self._host}:{self._port} returned False")
        logger.info("Connected to inverter gateway %s:%d", self._host, self._port)
        return self._client

    def _drop_client(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
