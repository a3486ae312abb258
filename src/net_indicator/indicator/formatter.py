from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

BITS_PER_BYTE = 8
KILO = 1000


class RateUnit(str, Enum):
    KBIT = "Kbit"
    MBIT = "Mbit"

    @property
    def initial(self) -> str:
        return self.value[0]


class DigitWidth(str, Enum):
    NARROW = "narrow"
    WIDE = "wide"


@dataclass(frozen=True)
class FormattedRate:
    value: int
    unit: RateUnit
    width: DigitWidth

    def label(self) -> str:
        return f"{self.value} {self.unit.value}/s"

    def glyph_line(self) -> str:
        # narrow values get a space so "9 K" and "99 K" keep the unit in place
        pad = " " if self.width is DigitWidth.NARROW else ""
        return f"{self.value}{pad}{self.unit.initial}"


def format_rate(bytes_per_sec: int) -> FormattedRate:
    """
    Kilobits are rounded up so any traffic shows as at least 1 Kbit/s;
    megabits are rounded half-up from the kilobit figure.
    """
    bits = max(int(bytes_per_sec), 0) * BITS_PER_BYTE
    kbits = (bits + KILO - 1) // KILO
    if kbits >= KILO:
        value = (kbits + KILO // 2) // KILO
        unit = RateUnit.MBIT
    else:
        value = kbits
        unit = RateUnit.KBIT
    width = DigitWidth.NARROW if value < 100 else DigitWidth.WIDE
    return FormattedRate(value=value, unit=unit, width=width)
