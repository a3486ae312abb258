from __future__ import annotations

from typing import Callable, Hashable

from net_indicator.core.utils import monotonic_ms
from net_indicator.monitoring.rates import ZERO_RATE, AggregateRate
from net_indicator.monitoring.slots import InterfaceSlotTable


class ThroughputTracker:
    def __init__(self, table: InterfaceSlotTable, *, clock: Callable[[], int] = monotonic_ms) -> None:
        self.table = table
        self._clock = clock
        self.current: AggregateRate = ZERO_RATE

    def network_changed(self, identity: Hashable, interface: str | None) -> None:
        self.table.set(identity, interface)

    def network_lost(self, identity: Hashable) -> None:
        self.table.set(identity, None)

    def reset(self) -> None:
        self.table.clear()
        self.current = ZERO_RATE

    def update(self) -> AggregateRate:
        self.current = self.table.sample(self._clock())
        return self.current
