from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Hashable

from net_indicator.core.config import DEFAULT_SLOT_CAPACITY
from net_indicator.core.exceptions import CounterReadError
from net_indicator.monitoring.counters import CounterSource
from net_indicator.monitoring.rates import AggregateRate, sample_rate


@dataclass
class InterfaceSlot:
    identity: Hashable | None = None
    name: str | None = None
    last_sample_ms: int = 0
    last_tx_bytes: int = 0
    last_rx_bytes: int = 0

    @property
    def occupied(self) -> bool:
        return self.identity is not None and bool(self.name)

    def reset_counters(self) -> None:
        self.last_sample_ms = 0
        self.last_tx_bytes = 0
        self.last_rx_bytes = 0

    def free(self) -> None:
        self.identity = None
        self.name = None
        self.reset_counters()


class InterfaceSlotTable:
    """
    Fixed-capacity registry of tracked interfaces keyed by network identity.

    Slots are reused first-fit so a slot freed early in the array is picked
    before a later one. Nothing is allocated after construction.
    """

    def __init__(self, counters: CounterSource, *, capacity: int = DEFAULT_SLOT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._counters = counters
        self._slots = [InterfaceSlot() for _ in range(capacity)]
        self._log = logging.getLogger("net_indicator.slots")

    @property
    def capacity(self) -> int:
        return len(self._slots)

    @property
    def slots(self) -> tuple[InterfaceSlot, ...]:
        return tuple(self._slots)

    def occupied(self) -> list[tuple[int, Hashable, str]]:
        return [(i, s.identity, s.name) for i, s in enumerate(self._slots) if s.occupied]  # type: ignore[misc]

    def clear(self) -> None:
        for s in self._slots:
            s.free()

    def index_of(self, identity: Hashable) -> int | None:
        for i, s in enumerate(self._slots):
            if s.occupied and s.identity == identity:
                return i
        return None

    def set(self, identity: Hashable, name: str | None) -> int | None:
        """
        Track `identity` on interface `name`, or stop tracking it when `name`
        is empty. Returns the slot index used, or None.
        """
        match: int | None = None
        first_free: int | None = None
        for i, s in enumerate(self._slots):
            if s.occupied:
                if match is None and s.identity == identity:
                    match = i
            elif first_free is None:
                first_free = i

        if not name:
            if match is not None:
                self._slots[match].free()
                self._log.debug("slot freed", extra={"slot": match, "identity": str(identity)})
            return None

        idx = match if match is not None else first_free
        if idx is None:
            self._log.warning(
                "slot table full, dropping network",
                extra={"identity": str(identity), "interface": name, "capacity": self.capacity},
            )
            return None

        slot = self._slots[idx]
        slot.identity = identity
        if slot.name != name:
            # a new kernel interface has unrelated counters
            slot.name = name
            slot.reset_counters()
            self._log.debug("slot assigned", extra={"slot": idx, "identity": str(identity), "interface": name})
        return idx

    def sample(self, now_ms: int) -> AggregateRate:
        """
        Read all counters once and sum the per-slot rates. Slots whose
        interface is missing from the snapshot are freed. When the snapshot
        itself fails every slot keeps its baseline and the tick reports zero.
        """
        if not any(s.occupied for s in self._slots):
            return AggregateRate()
        try:
            snapshot = self._counters.read_all()
        except CounterReadError as exc:
            self._log.warning("counter snapshot failed", extra={"error": str(exc)})
            return AggregateRate()

        tx_total = 0
        rx_total = 0
        for i, slot in enumerate(self._slots):
            if not slot.occupied:
                continue
            c = snapshot.get(slot.name)  # type: ignore[arg-type]
            if c is None:
                self._log.info("interface has no counters, freeing slot", extra={"slot": i, "interface": slot.name})
                slot.free()
                continue

            tx = rx = 0
            if slot.last_sample_ms > 0:
                if now_ms <= slot.last_sample_ms or c.tx_bytes < slot.last_tx_bytes or c.rx_bytes < slot.last_rx_bytes:
                    self._log.debug("non-monotonic sample", extra={"slot": i, "interface": slot.name})
                elif c.tx_bytes > slot.last_tx_bytes and c.rx_bytes > slot.last_rx_bytes:
                    # both counters must advance, otherwise the tick reports zero
                    tx = sample_rate(
                        prev_bytes=slot.last_tx_bytes, cur_bytes=c.tx_bytes, prev_ms=slot.last_sample_ms, cur_ms=now_ms
                    )
                    rx = sample_rate(
                        prev_bytes=slot.last_rx_bytes, cur_bytes=c.rx_bytes, prev_ms=slot.last_sample_ms, cur_ms=now_ms
                    )

            slot.last_sample_ms = now_ms
            slot.last_tx_bytes = c.tx_bytes
            slot.last_rx_bytes = c.rx_bytes
            tx_total += tx
            rx_total += rx

        return AggregateRate(tx_bytes_per_sec=tx_total, rx_bytes_per_sec=rx_total)
