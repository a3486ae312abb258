from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Hashable

from net_indicator.core.config import MIN_INTERVAL_SECONDS
from net_indicator.core.exceptions import DisplaySinkError, InvalidConfigurationError
from net_indicator.engine.state import ControllerSnapshot, ControllerState, InterfaceView
from net_indicator.engine.timer import Scheduler, ThreadScheduler, TimerHandle
from net_indicator.indicator.renderer import IndicatorRenderer
from net_indicator.monitoring.network import NetworkChangeSource
from net_indicator.monitoring.tracker import ThroughputTracker


class IndicatorController:
    """
    STOPPED -> ACTIVE -> PAUSED state machine around the sampling timer.

    Every public operation, timer firing and network event runs under one
    re-entrant lock, so a tick never interleaves with stop().
    """

    def __init__(
        self,
        *,
        tracker: ThroughputTracker,
        renderer: IndicatorRenderer,
        network: NetworkChangeSource,
        scheduler: Scheduler | None = None,
        interval_seconds: float = 2.0,
    ) -> None:
        if interval_seconds < MIN_INTERVAL_SECONDS:
            raise InvalidConfigurationError(
                f"interval must be >= {MIN_INTERVAL_SECONDS:g}s, got {interval_seconds!r}"
            )
        self.tracker = tracker
        self.renderer = renderer
        self.network = network
        self.interval_seconds = float(interval_seconds)
        self._scheduler = scheduler or ThreadScheduler()

        self._log = logging.getLogger("net_indicator.controller")
        self._lock = threading.RLock()
        self._state = ControllerState.STOPPED
        self._tracking = False
        self._registration = 0
        self._timer: TimerHandle | None = None
        self._timer_gen = 0
        self._ticks = 0
        self._errors: deque[str] = deque(maxlen=10)

    @property
    def state(self) -> ControllerState:
        with self._lock:
            return self._state

    @property
    def tracking(self) -> bool:
        with self._lock:
            return self._tracking

    def start(self) -> None:
        with self._lock:
            if not self._tracking:
                self._start_tracking()
            self._arm()
            if self._state is not ControllerState.ACTIVE:
                self._log.info("indicator active", extra={"interval_seconds": self.interval_seconds})
            self._state = ControllerState.ACTIVE

    def pause(self) -> None:
        with self._lock:
            self._disarm()
            if self._state is not ControllerState.PAUSED:
                self._log.info("indicator paused")
            self._state = ControllerState.PAUSED

    def stop(self) -> None:
        with self._lock:
            self._disarm()
            if self._tracking:
                self._tracking = False
                self._registration += 1
                try:
                    self.network.unregister()
                except Exception as exc:
                    self._record_error(f"network unregister failed: {exc}")
            try:
                self.renderer.hide()
            except DisplaySinkError as exc:
                self._record_error(f"indicator hide failed: {exc}")
            if self._state is not ControllerState.STOPPED:
                self._log.info("indicator stopped")
            self._state = ControllerState.STOPPED

    def snapshot(self) -> ControllerSnapshot:
        with self._lock:
            return ControllerSnapshot(
                state=self._state,
                tracking=self._tracking,
                rate=self.tracker.current,
                ticks=self._ticks,
                interfaces=[
                    InterfaceView(slot=i, handle=str(identity), interface=name)
                    for i, identity, name in self.tracker.table.occupied()
                ],
                last_error=self._errors[0] if self._errors else None,
            )

    # ----------------- internals -----------------

    def _start_tracking(self) -> None:
        self.tracker.reset()
        self._registration += 1
        reg = self._registration
        # replayed networks arrive synchronously during register()
        self._tracking = True
        try:
            self.network.register(
                lambda identity, name: self._on_network_changed(reg, identity, name),
                lambda identity: self._on_network_lost(reg, identity),
            )
        except Exception as exc:
            self._tracking = False
            self._registration += 1
            self._record_error(f"network register failed: {exc}")
            raise
        try:
            self.renderer.reset()
        except Exception as exc:
            self._record_error(f"indicator reset failed: {exc}")

    def _on_network_changed(self, reg: int, identity: Hashable, name: str | None) -> None:
        with self._lock:
            if reg != self._registration or not self._tracking:
                return
            self.tracker.network_changed(identity, name)

    def _on_network_lost(self, reg: int, identity: Hashable) -> None:
        with self._lock:
            if reg != self._registration or not self._tracking:
                return
            self.tracker.network_lost(identity)

    def _arm(self) -> None:
        self._disarm()
        gen = self._timer_gen
        self._timer = self._scheduler.call_later(self.interval_seconds, lambda: self._on_timer(gen))

    def _disarm(self) -> None:
        self._timer_gen += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self, gen: int) -> None:
        with self._lock:
            if gen != self._timer_gen or self._state is not ControllerState.ACTIVE:
                return
            self._timer = None
            try:
                rate = self.tracker.update()
                self.renderer.update(rate)
                self._ticks += 1
            except DisplaySinkError as exc:
                self._record_error(f"display sink failed: {exc}")
            except Exception as exc:
                self._record_error(f"tick failed: {exc}", exc_info=True)
            finally:
                self._arm()

    def _record_error(self, msg: str, *, exc_info: bool = False) -> None:
        self._errors.appendleft(msg)
        self._log.error(msg, exc_info=exc_info)
