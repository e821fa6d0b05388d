"""
Shared test fixtures for edge daemon tests.

Provides environment variable fixtures for EdgeSettings configuration tests
and a deterministic clock. All edge env vars are cleaned before each test
to ensure isolation.

CHANGELOG:
- 2026-10-16: Switch env vars to inverter/MQTT/PVOutput settings, add fake clock

TODO:
- None
"""

from __future__ import annotations

import pytest

from aurora_edge.src.clock import ClockAdapter

# All EdgeSettings environment variable names, used for cleanup.
_ALL_EDGE_ENV_VARS = (
    "INVERTER_HOST",
    "INVERTER_PORT",
    "INVERTER_SLAVE_ID",
    "MQTT_HOST",
    "MQTT_PORT",
    "MQTT_USER",
    "MQTT_PASSWORD",
    "MQTT_TOPIC",
    "MQTT_RECONNECT_INTERVAL_S",
    "PVOUTPUT_URL",
    "PVOUTPUT_API_KEY",
    "PVOUTPUT_SYSTEM_ID",
    "STATS_PERIOD_S",
    "PVOUTPUT_PERIOD_S",
    "CLOCK_OFFSET_S",
    "TICK_INTERVAL_S",
    "REPORT_RETRY_DELAY_S",
    "NETWORK_PROBE_HOST",
    "STATUS_PATH",
    "SPOOL_PATH",
)


class FakeClockSource:
    """Settable clock source; ``epoch_time`` returns ``t`` plus the offset."""

    def __init__(self, t: int = 1000, offset_s: int = 0) -> None:
        self.t = t
        self.offset_s = offset_s

    def epoch_time(self) -> float:
        return float(self.t + self.offset_s)


@pytest.fixture(autouse=True)
def _clean_edge_env(monkeypatch: pytest.MonkeyPatch, tmp_path: str) -> None:
    """Remove all edge env vars and isolate from .env files before each test."""
    for var in _ALL_EDGE_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def clock_source() -> FakeClockSource:
    return FakeClockSource(t=1000)


@pytest.fixture()
def clock(clock_source: FakeClockSource) -> ClockAdapter:
    return ClockAdapter(clock_source)


@pytest.fixture()
def env_vars_full(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set all required and optional environment variables for EdgeSettings."""
    env = {
        "INVERTER_HOST": "192.168.1.50",
        "INVERTER_PORT": "5020",
        "INVERTER_SLAVE_ID": "3",
        "MQTT_HOST": "broker.lan",
        "MQTT_PORT": "1884",
        "MQTT_USER": "edge",
        "MQTT_PASSWORD": "mqtt-secret",
        "MQTT_TOPIC": "roof",
        "MQTT_RECONNECT_INTERVAL_S": "15",
        "PVOUTPUT_URL": "https://pvoutput.example.com/service/r2/addstatus.jsp",
        "PVOUTPUT_API_KEY": "api-key-123",
        "PVOUTPUT_SYSTEM_ID": "4242",
        "STATS_PERIOD_S": "60",
        "PVOUTPUT_PERIOD_S": "600",
        "CLOCK_OFFSET_S": "3600",
        "TICK_INTERVAL_S": "0.25",
        "REPORT_RETRY_DELAY_S": "2",
        "NETWORK_PROBE_HOST": "example.com",
        "STATUS_PATH": "/tmp/status.json",
        "SPOOL_PATH": "/tmp/pending.db",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


@pytest.fixture()
def env_vars_required_only(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set only the required environment variables (no optional ones)."""
    env = {
        "INVERTER_HOST": "10.0.0.7",
        "MQTT_HOST": "10.0.0.2",
        "PVOUTPUT_API_KEY": "key-xyz",
        "PVOUTPUT_SYSTEM_ID": "99",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env
