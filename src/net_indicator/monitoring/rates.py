from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AggregateRate:
    tx_bytes_per_sec: int = 0
    rx_bytes_per_sec: int = 0

    def __add__(self, other: AggregateRate) -> AggregateRate:
        return AggregateRate(
            tx_bytes_per_sec=self.tx_bytes_per_sec + other.tx_bytes_per_sec,
            rx_bytes_per_sec=self.rx_bytes_per_sec + other.rx_bytes_per_sec,
        )


ZERO_RATE = AggregateRate()


def sample_rate(*, prev_bytes: int, cur_bytes: int, prev_ms: int, cur_ms: int) -> int:
    """
    Bytes per second between two counter readings, truncated to an int.

    Returns 0 when there is no baseline (prev_ms == 0), when the clock did not
    advance, or when the counter did not strictly increase (reset/overflow).
    """
    if prev_ms <= 0 or cur_ms <= prev_ms or cur_bytes <= prev_bytes:
        return 0
    return int((cur_bytes - prev_bytes) / ((cur_ms - prev_ms) / 1000.0))
