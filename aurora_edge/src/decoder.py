"""
Pure word decoding for Aurora gateway registers.

Converts the raw 16-bit word list returned by a Modbus read into a scaled
engineering value (U16/U32/S16/S32, high word first), and encodes U32
values for register writes. No I/O, no clock.

CHANGELOG:
- 2026-10-16: Reduce the sample normalizer to single-register decode/encode

TODO:
- None
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aurora_edge.src.registers import RegisterDef


# ---------------------------------------------------------------------------
# Type conversion helpers
# ---------------------------------------------------------------------------


def _convert_u16(raw: int) -> int:
    """Interpret a raw value as unsigned 16-bit (no conversion needed)."""
    return raw & 0xFFFF


def _convert_s16(raw: int) -> int:
    """Interpret a raw 16-bit value as signed (two's complement)."""
    val = raw & 0xFFFF
    if val >= 0x8000:
        val -= 0x10000
    return val


def _convert_u32(hi: int, lo: int) -> int:
    """Assemble two U16 registers (high word first) into unsigned 32-bit."""
    return ((hi & 0xFFFF) << 16) | (lo & 0xFFFF)


def _convert_s32(hi: int, lo: int) -> int:
    """Assemble two U16 registers (high word first) into signed 32-bit."""
    val = _convert_u32(hi, lo)
    if val >= 0x80000000:
        val -= 0x100000000
    return val


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def decode(reg_def: RegisterDef, words: list[int]) -> float:
    """Decode and scale the words of one register.

    Args:
        reg_def: The register definition.
        words: Raw 16-bit words as returned by the Modbus read.

    Returns:
        The scaled value.

    Raises:
        ValueError: Wrong word count, or the scaled value falls outside the
            register's ``valid_range``.
    """
    if len(words) < reg_def.word_count:
        raise ValueError(
            f"register '{reg_def.name}': expected {reg_def.word_count} words "
            f"for {reg_def.reg_type}, got {len(words)}"
        )

    reg_type = reg_def.reg_type
    if reg_type == "U32":
        raw_int = _convert_u32(words[0], words[1])
    elif reg_type == "S32":
        raw_int = _convert_s32(words[0], words[1])
    elif reg_type == "U16":
        raw_int = _convert_u16(words[0])
    else:
        raw_int = _convert_s16(words[0])

    scaled = raw_int * reg_def.scale

    if reg_def.valid_range is not None:
        lo, hi = reg_def.valid_range
        if not (lo <= scaled <= hi):
            raise ValueError(
                f"register '{reg_def.name}': scaled value {scaled:.4g} "
                f"(raw words={words}) outside valid range ({lo}, {hi})"
            )

    return scaled


def encode_u32(value: int) -> list[int]:
    """Split an unsigned 32-bit integer into two words, high word first.

    Raises:
        ValueError: If *value* does not fit in 32 bits.
    """
    if not 0 <= value <= 0xFFFFFFFF:
        raise ValueError(f"value {value} does not fit in U32")
    return [(value >> 16) & 0xFFFF, value & 0xFFFF]
