from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

import psutil

from net_indicator.core.exceptions import CounterReadError


@dataclass(frozen=True)
class InterfaceCounters:
    tx_bytes: int
    rx_bytes: int


class CounterSource(ABC):
    @abstractmethod
    def read_all(self) -> dict[str, InterfaceCounters]:
        """One snapshot of every interface. Raise CounterReadError when the host read fails."""

    def read(self, interface: str) -> InterfaceCounters:
        c = self.read_all().get(interface)
        if c is None:
            raise CounterReadError(f"no counters for interface {interface!r}")
        return c


class PsutilCounterSource(CounterSource):
    def read_all(self) -> dict[str, InterfaceCounters]:
        try:
            stats = psutil.net_io_counters(pernic=True)
        except Exception as exc:
            raise CounterReadError(f"net_io_counters failed: {exc}") from exc
        return {
            name: InterfaceCounters(tx_bytes=int(c.bytes_sent), rx_bytes=int(c.bytes_recv))
            for name, c in (stats or {}).items()
        }
