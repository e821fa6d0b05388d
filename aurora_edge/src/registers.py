"""
Aurora inverter register map exposed by the Modbus TCP gateway.

Aurora inverters speak their own RS-485 protocol; the gateway in front of
them maps each Aurora "DSP" measure and cumulated-energy counter onto a
fixed Modbus register so that every metric can be read with one request.
Metrics are read one by one (never as a batch) so that a single failing
measure cannot take the others down with it.

Measures live in the input register table (function code 0x04); the
inverter clock lives in the holding register table (function codes
0x03/0x10) because it is writable.

CHANGELOG:
- 2026-10-16: Per-metric Aurora register map

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Data definitions
# ---------------------------------------------------------------------------

INPUT = "input"
HOLDING = "holding"


@dataclass(frozen=True, slots=True)
class RegisterDef:
    """Definition of a single Modbus register.

    Attributes:
        address: Modbus register start address.
        name: Unique identifier used as dict key and in log lines.
        reg_type: Data type -- one of ``"U16"``, ``"U32"``, ``"S16"``,
            ``"S32"``.
        unit: Engineering unit string (e.g. ``"W"``, ``"Wh"``, ``"V"``).
        scale: Multiplicative scaling factor applied to the raw integer.
        valid_range: Optional ``(min, max)`` tuple for the *scaled* value.
            Values outside the range are treated as a failed read.
        table: ``"input"`` or ``"holding"``.
        description: Free-text description of the register.
        word_count: Number of 16-bit words. Derived from *reg_type*.
    """

    address: int
    name: str
    reg_type: str
    unit: str
    scale: float = 1.0
    valid_range: tuple[float, float] | None = None
    table: str = INPUT
    description: str = ""
    word_count: int = field(default=0, repr=False)

    def __post_init__(self) -> None:  # noqa: D105
        if self.word_count == 0:
            wc = _DEFAULT_WORD_COUNTS.get(self.reg_type)
            if wc is None:
                msg = f"Register '{self.name}': unsupported type '{self.reg_type}'"
                raise ValueError(msg)
            # frozen=True requires object.__setattr__
            object.__setattr__(self, "word_count", wc)


_DEFAULT_WORD_COUNTS: dict[str, int] = {
    "U16": 1,
    "S16": 1,
    "U32": 2,
    "S32": 2,
}


# ---------------------------------------------------------------------------
# State / reachability
# ---------------------------------------------------------------------------

GLOBAL_STATE = RegisterDef(
    address=1000,
    name="global_state",
    reg_type="U16",
    unit="",
    valid_range=(0, 255),
    description="Aurora global state code; a successful read means the inverter answers",
)

# ---------------------------------------------------------------------------
# Cumulated energy counters
# ---------------------------------------------------------------------------

DAILY_ENERGY = RegisterDef(
    address=1002,
    name="energy_today",
    reg_type="U32",
    unit="Wh",
    valid_range=(0, 1_000_000),
    description="Energy produced since local midnight",
)

TOTAL_ENERGY = RegisterDef(
    address=1004,
    name="energy_total",
    reg_type="U32",
    unit="Wh",
    description="Lifetime energy produced",
)

# ---------------------------------------------------------------------------
# DSP measures
# ---------------------------------------------------------------------------

POWER_IN_1 = RegisterDef(
    address=1010,
    name="p_in_1",
    reg_type="U32",
    unit="W",
    scale=0.1,
    valid_range=(0, 20_000),
    description="Input 1 DC power",
)

POWER_IN_2 = RegisterDef(
    address=1012,
    name="p_in_2",
    reg_type="U32",
    unit="W",
    scale=0.1,
    valid_range=(0, 20_000),
    description="Input 2 DC power",
)

GRID_VOLTAGE = RegisterDef(
    address=1020,
    name="grid_voltage",
    reg_type="U16",
    unit="V",
    scale=0.1,
    valid_range=(0, 400),
    description="Grid voltage",
)

GRID_FREQUENCY = RegisterDef(
    address=1021,
    name="grid_frequency",
    reg_type="U16",
    unit="Hz",
    scale=0.01,
    valid_range=(0, 70),
    description="Grid frequency",
)

TEMP_INVERTER = RegisterDef(
    address=1022,
    name="temp_inverter",
    reg_type="S16",
    unit="C",
    scale=0.1,
    valid_range=(-40, 120),
    description="Inverter heatsink temperature",
)

TEMP_BOOSTER = RegisterDef(
    address=1023,
    name="temp_booster",
    reg_type="S16",
    unit="C",
    scale=0.1,
    valid_range=(-40, 120),
    description="Booster temperature",
)

# ---------------------------------------------------------------------------
# Clock (writable)
# ---------------------------------------------------------------------------

CLOCK = RegisterDef(
    address=2000,
    name="clock",
    reg_type="U32",
    unit="s",
    table=HOLDING,
    description="Inverter clock as local-time epoch seconds",
)

# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------

MEASURES: tuple[RegisterDef, ...] = (
    POWER_IN_1,
    POWER_IN_2,
    GRID_VOLTAGE,
    GRID_FREQUENCY,
    TEMP_INVERTER,
    TEMP_BOOSTER,
)
"""DSP measures read as floats by the collector, in read order."""

ALL_REGISTERS: dict[str, RegisterDef] = {
    reg.name: reg
    for reg in (GLOBAL_STATE, DAILY_ENERGY, TOTAL_ENERGY, *MEASURES, CLOCK)
}
"""Flat name -> RegisterDef lookup."""
