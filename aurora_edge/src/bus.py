"""
Bus delivery: best-effort MQTT publishing of the status snapshot.

The broker connection is opened lazily on the first status send and
re-opened the same way after it breaks. Opening runs under a
:class:`~aurora_edge.src.retry.RetryPolicy` (unbounded, fixed interval by
default), which is the one intentionally blocking recovery path of the
daemon. Individual publishes are fire-and-forget: failures are logged, the
connection is dropped, nothing is retried synchronously.

Topics (``tele/<root>/...``):
- ``LWT``: liveness, ``Online`` retained on every (re)connect, ``Offline``
  retained as the broker-held last will.
- ``STAT``: status document.
- ``POWER``: instantaneous input power, only when available.
- ``LOG``: free-text diagnostic lines, only sent while connected.

CHANGELOG:
- 2026-10-16: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import uuid
from typing import Any

import aiomqtt

from aurora_edge.src.models import format_float
from aurora_edge.src.retry import RetryPolicy

logger = logging.getLogger(__name__)

MSG_ONLINE = "Online"
MSG_OFFLINE = "Offline"

_CLIENT_ID_MAX_LEN = 64


def build_topics(root: str) -> dict[str, str]:
    """Build all MQTT topic strings for a topic root."""
    return {
        "lwt": f"tele/{root}/LWT",
        "stat": f"tele/{root}/STAT",
        "power": f"tele/{root}/POWER",
        "log": f"tele/{root}/LOG",
    }


def default_client_id(root: str) -> str:
    """``<root>-<host MAC hex>``, unique per device on the broker."""
    mac = f"{uuid.getnode():012x}"
    return f"{root}-{mac}"[:_CLIENT_ID_MAX_LEN]


class BusPublisher:
    """Fire-and-forget MQTT publisher with lazy reconnect.

    Args:
        host: Broker hostname.
        port: Broker port.
        username: Broker username; empty for anonymous.
        password: Broker password.
        topic_root: Device identifier used in every topic.
        reconnect_policy: Policy for the blocking connect loop.
        client_id: MQTT client identifier; defaults to
            :func:`default_client_id`.
        stop_event: Cuts the connect loop short on shutdown.
    """

    def __init__(
        self,
        *,
        host: str,
        port: int = 1883,
        username: str = "",
        password: str = "",
        topic_root: str,
        reconnect_policy: RetryPolicy | None = None,
        client_id: str | None = None,
        stop_event: asyncio.Event | None = None,
    ) -> None:
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._topics = build_topics(topic_root)
        self._client_id = client_id or default_client_id(topic_root)
        self._reconnect_policy = reconnect_policy or RetryPolicy(interval_s=60.0)
        self._stop_event = stop_event
        self._client: Any = None
        self._stack: contextlib.AsyncExitStack | None = None

    @property
    def topics(self) -> dict[str, str]:
        return dict(self._topics)

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------

    async def connect(self) -> bool:
        """Make one connection attempt and announce liveness.

        Returns:
            ``True`` when connected and ``Online`` was published.
        """
        logger.info(
            "Connecting for MQTT: %s:%d as %s", self._host, self._port, self._client_id
        )
        client = aiomqtt.Client(
            self._host,
            port=self._port,
            username=self._username or None,
            password=self._password or None,
            identifier=self._client_id,
            will=aiomqtt.Will(self._topics["lwt"], MSG_OFFLINE, qos=1, retain=True),
        )
        stack = contextlib.AsyncExitStack()
        try:
            self._client = await stack.enter_async_context(client)
        except aiomqtt.MqttError as exc:
            logger.warning("MQTT connection failed: %s", exc)
            return False
        self._stack = stack

        if not await self._send(self._topics["lwt"], MSG_ONLINE, qos=1, retain=True):
            return False
        logger.info("MQTT connected")
        return True

    async def ensure_connected(self) -> bool:
        """Connect if needed, retrying per the reconnect policy."""
        if self.is_connected:
            return True
        return await self._reconnect_policy.run(self.connect, stop_event=self._stop_event)

    async def close(self) -> None:
        """Announce ``Offline`` and disconnect cleanly."""
        if not self.is_connected:
            return
        await self._send(self._topics["lwt"], MSG_OFFLINE, qos=1, retain=True)
        await self._disconnect()

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    async def publish_status(self, document: str, power: float | None) -> bool:
        """Send the power value and the status document.

        Connects first if the connection is absent.

        Returns:
            ``True`` if the status document was handed to the broker.
        """
        if not await self.ensure_connected():
            return False
        if power is not None:
            await self._send(self._topics["power"], format_float(power))
        return await self._send(self._topics["stat"], document)

    async def publish_log(self, message: str) -> None:
        """Send a diagnostic line, only if already connected."""
        if self.is_connected:
            await self._send(self._topics["log"], message)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _send(self, topic: str, payload: str, *, qos: int = 0, retain: bool = False) -> bool:
        if self._client is None:
            return False
        logger.debug("MQTT: Publishing '%s': '%s'", topic, payload)
        try:
            await self._client.publish(topic, payload, qos=qos, retain=retain)
        except aiomqtt.MqttError as exc:
            logger.warning("MQTT publish to %s failed: %s", topic, exc)
            await self._disconnect()
            return False
        return True

    async def _disconnect(self) -> None:
        stack, self._stack = self._stack, None
        self._client = None
        if stack is not None:
            with contextlib.suppress(aiomqtt.MqttError):
                await stack.aclose()
