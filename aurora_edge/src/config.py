"""
Edge daemon configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
All configuration values come from environment variables or .env files;
no hardcoded hosts or credentials.

CHANGELOG:
- 2026-10-16: Inverter, MQTT and PVOutput settings with cadence validation

TODO:
- None
"""

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

from aurora_edge.src.reporter import DEFAULT_PVOUTPUT_URL


class EdgeSettings(BaseSettings):
    """Edge daemon configuration for the Aurora-to-PVOutput pipeline.

    Attributes:
        inverter_host: Modbus TCP gateway IP address / hostname.
        inverter_port: Modbus TCP port (default 502).
        inverter_slave_id: Modbus unit ID of the inverter (Aurora default 2).
        mqtt_host: MQTT broker hostname.
        mqtt_port: MQTT broker port.
        mqtt_user: Broker username; empty for anonymous.
        mqtt_password: Broker password.
        mqtt_topic: Device identifier used as topic root and client-id prefix.
        mqtt_reconnect_interval_s: Wait between broker connection attempts.
        pvoutput_url: PVOutput addstatus endpoint (must be HTTPS).
        pvoutput_api_key: PVOutput API key.
        pvoutput_system_id: PVOutput system id.
        stats_period_s: Fast cadence: status snapshot + MQTT (min 5).
        pvoutput_period_s: Slow cadence: daily energy + PVOutput.
        clock_offset_s: Offset the clock source applies to epoch time.
        tick_interval_s: Idle wait between scheduler ticks.
        report_retry_delay_s: Back-off after a failed PVOutput attempt.
        network_probe_host: Host probed before each PVOutput attempt.
        status_path: Status document file path.
        spool_path: SQLite file holding the pending report.
    """

    inverter_host: str
    inverter_port: int = 502
    inverter_slave_id: int = 2
    mqtt_host: str
    mqtt_port: int = 1883
    mqtt_user: str = ""
    mqtt_password: str = ""
    mqtt_topic: str = "aurora"
    mqtt_reconnect_interval_s: float = 60.0
    pvoutput_url: str = DEFAULT_PVOUTPUT_URL
    pvoutput_api_key: str
    pvoutput_system_id: str
    stats_period_s: int = 30
    pvoutput_period_s: int = 300
    clock_offset_s: int = 0
    tick_interval_s: float = 0.5
    report_retry_delay_s: float = 1.0
    network_probe_host: str = "pvoutput.org"
    status_path: str = "/data/status.json"
    spool_path: str = "/data/pending.db"

    @field_validator("pvoutput_url")
    @classmethod
    def pvoutput_url_must_be_https(cls, v: str) -> str:
        """Reject non-HTTPS PVOutput URLs; the API key travels in a header."""
        if not v.lower().startswith("https://"):
            raise ValueError(f"PVOUTPUT_URL must use HTTPS (got: '{v[:20]}...').")
        return v

    @field_validator("stats_period_s")
    @classmethod
    def stats_period_must_respect_gateway(cls, v: int) -> int:
        """Minimum 5-second period to avoid overloading the gateway."""
        if v < 5:
            raise ValueError("STATS_PERIOD_S must be >= 5")
        return v

    @field_validator("inverter_port", "mqtt_port")
    @classmethod
    def port_must_be_valid(cls, v: int) -> int:
        """Validate TCP port is in valid range."""
        if v < 1 or v > 65535:
            raise ValueError("port must be between 1 and 65535")
        return v

    @field_validator("inverter_slave_id")
    @classmethod
    def inverter_slave_id_must_be_valid(cls, v: int) -> int:
        """Validate Modbus slave ID is in valid range (1-247)."""
        if v < 1 or v > 247:
            raise ValueError("INVERTER_SLAVE_ID must be between 1 and 247")
        return v

    @field_validator("mqtt_reconnect_interval_s", "tick_interval_s")
    @classmethod
    def interval_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("interval must be > 0")
        return v

    @field_validator("report_retry_delay_s")
    @classmethod
    def retry_delay_must_be_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("REPORT_RETRY_DELAY_S must be >= 0")
        return v

    @field_validator("mqtt_topic")
    @classmethod
    def mqtt_topic_must_be_single_level(cls, v: str) -> str:
        """The topic root is one level; wildcards and separators are rejected."""
        if not v or any(ch in v for ch in "/+#"):
            raise ValueError("MQTT_TOPIC must be a non-empty single topic level")
        return v

    @model_validator(mode="after")
    def _pvoutput_period_not_shorter_than_stats(self) -> "EdgeSettings":
        if self.pvoutput_period_s < self.stats_period_s:
            raise ValueError("PVOUTPUT_PERIOD_S must be >= STATS_PERIOD_S")
        return self

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}
