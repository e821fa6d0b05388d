"""
Pydantic models for inverter telemetry and the status document codec.

Defines the immutable :class:`StatusSnapshot` (one internally consistent set
of telemetry values), the :class:`DailyEnergyReading` awaiting PVOutput
delivery, and the flat status document format produced for MQTT and the
status file.

Status document rules:
- Integer fields are emitted as JSON integers.
- Float fields are rounded to two decimals on construction and emitted as
  strings with two fractional digits.
- Unavailable values (``None``) are emitted as the literal string ``"NaN"``.
- Key order is fixed.

CHANGELOG:
- 2026-10-16: StatusSnapshot, DailyEnergyReading and the status document codec
- 2026-10-17: Round float fields to two decimals so snapshots survive a document round trip

TODO:
- None
"""

from __future__ import annotations

import json
import math

from pydantic import BaseModel, ConfigDict, field_validator

UNAVAILABLE = "NaN"
"""Status document token for a metric that could not be read."""

INT_FIELDS: tuple[str, ...] = (
    "last_update",
    "energy_today",
    "energy_total",
    "last_pvoutput_read",
    "last_pvoutput_sent",
)

FLOAT_FIELDS: tuple[str, ...] = (
    "p_in",
    "p_in_1",
    "p_in_2",
    "grid_voltage",
    "grid_frequency",
    "temp_inverter",
    "temp_booster",
)


class StatusSnapshot(BaseModel):
    """Latest inverter status, replaced as a whole on every stats cycle.

    Attributes:
        last_update: Epoch seconds when the snapshot was taken.
        energy_today: Energy produced today in Wh.
        energy_total: Lifetime energy in Wh.
        last_pvoutput_read: Epoch of the last successful daily-energy read.
        last_pvoutput_sent: Epoch of the last confirmed PVOutput delivery.
        p_in: Sum of both input powers in W, only when both were read.
        p_in_1: Input 1 power in W.
        p_in_2: Input 2 power in W.
        grid_voltage: Grid voltage in V.
        grid_frequency: Grid frequency in Hz.
        temp_inverter: Inverter temperature in C.
        temp_booster: Booster temperature in C.
    """

    model_config = ConfigDict(frozen=True)

    last_update: int = 0
    energy_today: int = 0
    energy_total: int = 0
    last_pvoutput_read: int = 0
    last_pvoutput_sent: int = 0
    p_in: float | None = None
    p_in_1: float | None = None
    p_in_2: float | None = None
    grid_voltage: float | None = None
    grid_frequency: float | None = None
    temp_inverter: float | None = None
    temp_booster: float | None = None

    @field_validator(*FLOAT_FIELDS, mode="before")
    @classmethod
    def _normalize_float(cls, v: object) -> object:
        """Fold NaN into ``None`` and round to the document's two decimals.

        Scaled register values carry binary noise (``230.10000000000002``);
        rounding here keeps the snapshot equal to its parsed document.
        """
        if isinstance(v, float) and math.isnan(v):
            return None
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return round(float(v), 2)
        return v


class DailyEnergyReading(BaseModel):
    """A confirmed daily-energy counter read.

    Attributes:
        energy_wh: Today's cumulated energy in Wh.
        read_ts: Epoch seconds (UTC) when the counter was read.
    """

    model_config = ConfigDict(frozen=True)

    energy_wh: int
    read_ts: int


# ---------------------------------------------------------------------------
# Status document codec
# ---------------------------------------------------------------------------


def format_float(value: float | None) -> str:
    """Format a float with two decimals, or the ``NaN`` token when unavailable."""
    if value is None:
        return UNAVAILABLE
    return f"{value:.2f}"


def to_status_document(snapshot: StatusSnapshot) -> str:
    """Serialize *snapshot* into the flat status document."""
    doc: dict[str, int | str] = {}
    for name in INT_FIELDS:
        doc[name] = getattr(snapshot, name)
    for name in FLOAT_FIELDS:
        doc[name] = format_float(getattr(snapshot, name))
    return json.dumps(doc)


def parse_status_document(text: str) -> StatusSnapshot:
    """Parse a status document back into a :class:`StatusSnapshot`.

    Raises:
        ValueError: Malformed JSON or a missing/invalid field.
    """
    try:
        doc = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"status document is not valid JSON: {exc}") from exc

    values: dict[str, int | float | None] = {}
    for name in INT_FIELDS:
        if name not in doc:
            raise ValueError(f"status document missing '{name}'")
        values[name] = int(doc[name])
    for name in FLOAT_FIELDS:
        if name not in doc:
            raise ValueError(f"status document missing '{name}'")
        raw = doc[name]
        values[name] = None if raw == UNAVAILABLE else float(raw)
    return StatusSnapshot(**values)
