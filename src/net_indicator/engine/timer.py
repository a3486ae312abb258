from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Callable


class TimerHandle(ABC):
    @abstractmethod
    def cancel(self) -> None:
        ...


class Scheduler(ABC):
    @abstractmethod
    def call_later(self, delay_seconds: float, fn: Callable[[], None]) -> TimerHandle:
        ...


class _ThreadTimerHandle(TimerHandle):
    def __init__(self, timer: threading.Timer) -> None:
        self._timer = timer

    def cancel(self) -> None:
        self._timer.cancel()


class ThreadScheduler(Scheduler):
    def __init__(self, *, name: str = "indicator-tick") -> None:
        self._name = name

    def call_later(self, delay_seconds: float, fn: Callable[[], None]) -> TimerHandle:
        t = threading.Timer(max(float(delay_seconds), 0.0), fn)
        t.name = self._name
        t.daemon = True
        t.start()
        return _ThreadTimerHandle(t)
