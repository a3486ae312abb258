from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from net_indicator.monitoring.rates import ZERO_RATE, AggregateRate


class ControllerState(str, Enum):
    STOPPED = "stopped"
    ACTIVE = "active"
    PAUSED = "paused"


@dataclass(frozen=True)
class InterfaceView:
    slot: int
    handle: str
    interface: str


@dataclass(frozen=True)
class ControllerSnapshot:
    state: ControllerState = ControllerState.STOPPED
    tracking: bool = False
    rate: AggregateRate = ZERO_RATE
    ticks: int = 0
    interfaces: list[InterfaceView] = field(default_factory=list)
    last_error: str | None = None
