from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

import psutil

from net_indicator.engine.controller import IndicatorController


class RunDecision(str, Enum):
    RUN = "run"
    PAUSE = "pause"
    STOP = "stop"


@dataclass(frozen=True)
class RunSignal:
    screen_on: bool = True
    power_save: bool = False

    @property
    def should_run(self) -> bool:
        return self.screen_on and not self.power_save


def decide(screen_on: bool, power_save: bool) -> RunDecision:
    """
    Power save hides the indicator and stops tracking; a dark screen only
    suspends sampling so the last reading stays in place.
    """
    if power_save:
        return RunDecision.STOP
    if not screen_on:
        return RunDecision.PAUSE
    return RunDecision.RUN


class RunStateMonitor:
    """
    Combines the host signal with manual overrides and drives the controller
    only when the resulting decision changes.
    """

    def __init__(self, controller: IndicatorController) -> None:
        self.controller = controller
        self._log = logging.getLogger("net_indicator.run_state")
        self._lock = threading.Lock()
        self._host = RunSignal()
        self._screen_off_override = False
        self._power_save_override = False
        self._last: RunDecision | None = None

    @property
    def last_decision(self) -> RunDecision | None:
        return self._last

    @property
    def effective(self) -> RunSignal:
        return RunSignal(
            screen_on=self._host.screen_on and not self._screen_off_override,
            power_save=self._host.power_save or self._power_save_override,
        )

    def update_host(self, signal: RunSignal) -> RunDecision:
        with self._lock:
            self._host = signal
            return self._apply()

    def set_screen_off(self, off: bool) -> RunDecision:
        with self._lock:
            self._screen_off_override = bool(off)
            return self._apply()

    def set_power_save(self, on: bool) -> RunDecision:
        with self._lock:
            self._power_save_override = bool(on)
            return self._apply()

    def _apply(self) -> RunDecision:
        sig = self.effective
        decision = decide(sig.screen_on, sig.power_save)
        if decision is self._last:
            return decision
        self._log.info(
            "run state changed",
            extra={"decision": decision.value, "screen_on": sig.screen_on, "power_save": sig.power_save},
        )
        try:
            if decision is RunDecision.RUN:
                self.controller.start()
            elif decision is RunDecision.PAUSE:
                self.controller.pause()
            else:
                self.controller.stop()
        except Exception:
            # keep the previous decision so the next signal retries
            self._log.error("run state transition failed", extra={"decision": decision.value})
            raise
        self._last = decision
        return decision


class RunStateSource(ABC):
    @abstractmethod
    def read(self) -> RunSignal:
        ...


class BatteryRunStateSource(RunStateSource):
    """
    Desktop stand-in for the phone's power-save mode: running on battery at
    or below `power_save_percent` counts as power save. The screen is
    always considered on.
    """

    def __init__(self, *, power_save_percent: int | None = 20) -> None:
        self.power_save_percent = power_save_percent
        self._log = logging.getLogger("net_indicator.run_state")

    def read(self) -> RunSignal:
        if self.power_save_percent is None:
            return RunSignal()
        try:
            battery = psutil.sensors_battery()
        except Exception as exc:
            self._log.debug("sensors_battery failed", extra={"error": str(exc)})
            return RunSignal()
        if battery is None or battery.power_plugged or battery.power_plugged is None:
            return RunSignal()
        return RunSignal(power_save=float(battery.percent) <= float(self.power_save_percent))


class RunStateWatcher:
    def __init__(self, source: RunStateSource, monitor: RunStateMonitor, *, poll_seconds: float = 5.0) -> None:
        self.source = source
        self.monitor = monitor
        self.poll_seconds = float(poll_seconds)
        self._log = logging.getLogger("net_indicator.run_state")
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop = threading.Event()
        self._poll_logged()
        self._thread = threading.Thread(target=self._run, args=(self._stop,), name="run-state", daemon=True)
        self._thread.start()

    def request_stop(self) -> None:
        self._stop.set()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)

    def poll(self) -> RunDecision:
        return self.monitor.update_host(self.source.read())

    def _poll_logged(self) -> None:
        try:
            self.poll()
        except Exception:
            self._log.exception("run state poll failed")

    def _run(self, stop: threading.Event) -> None:
        while not stop.wait(self.poll_seconds):
            self._poll_logged()
