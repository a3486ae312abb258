from __future__ import annotations

from typing import Callable

import pytest

from net_indicator.core.exceptions import DisplaySinkError, InvalidConfigurationError
from net_indicator.engine.controller import IndicatorController
from net_indicator.engine.run_state import RunDecision, RunSignal, RunStateMonitor
from net_indicator.engine.state import ControllerState
from net_indicator.engine.timer import Scheduler, TimerHandle
from net_indicator.indicator.glyph import Glyph
from net_indicator.indicator.renderer import IndicatorRenderer
from net_indicator.indicator.sinks import DisplaySink
from net_indicator.monitoring.counters import CounterSource, InterfaceCounters
from net_indicator.monitoring.network import NetworkChangeSource, NetworkIdentity
from net_indicator.monitoring.rates import AggregateRate
from net_indicator.monitoring.slots import InterfaceSlotTable
from net_indicator.monitoring.tracker import ThroughputTracker


class FakeHandle(TimerHandle):
    def __init__(self, delay: float, fn: Callable[[], None]) -> None:
        self.delay = delay
        self.fn = fn
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler(Scheduler):
    def __init__(self) -> None:
        self.handles: list[FakeHandle] = []

    def call_later(self, delay_seconds: float, fn: Callable[[], None]) -> TimerHandle:
        h = FakeHandle(delay_seconds, fn)
        self.handles.append(h)
        return h

    def pending(self) -> list[FakeHandle]:
        return [h for h in self.handles if not h.cancelled]

    def fire(self) -> None:
        # a timer thread only runs a callback that has not been cancelled
        live = self.pending()
        assert len(live) == 1
        live[0].cancelled = True
        live[0].fn()


class FakeCounters(CounterSource):
    def __init__(self) -> None:
        self.values: dict[str, tuple[int, int]] = {}

    def read_all(self) -> dict[str, InterfaceCounters]:
        return {name: InterfaceCounters(tx_bytes=tx, rx_bytes=rx) for name, (tx, rx) in self.values.items()}


class FakeNetworkSource(NetworkChangeSource):
    def __init__(self, networks: dict[NetworkIdentity, str] | None = None) -> None:
        self.networks = dict(networks or {})
        self.registrations = 0
        self.unregistrations = 0
        self.on_changed = None
        self.on_lost = None

    def register(self, on_changed, on_lost) -> None:
        self.registrations += 1
        self.on_changed = on_changed
        self.on_lost = on_lost
        for identity, name in self.networks.items():
            on_changed(identity, name)

    def unregister(self) -> None:
        self.unregistrations += 1


class RecordingSink(DisplaySink):
    def __init__(self) -> None:
        self.shows: list[str] = []
        self.dismissals = 0
        self.fail = False

    def show(self, title: str, glyph: Glyph, *, ongoing: bool = True) -> None:
        if self.fail:
            raise RuntimeError("sink unavailable")
        self.shows.append(title)

    def dismiss(self) -> None:
        if self.fail:
            raise RuntimeError("sink unavailable")
        self.dismissals += 1


def _make(interval: float = 2.0):
    counters = FakeCounters()
    counters.values = {"eth0": (0, 0)}
    now = [1_000]
    tracker = ThroughputTracker(InterfaceSlotTable(counters, capacity=4), clock=lambda: now[0])
    sink = RecordingSink()
    network = FakeNetworkSource({NetworkIdentity(1): "eth0"})
    scheduler = FakeScheduler()
    controller = IndicatorController(
        tracker=tracker,
        renderer=IndicatorRenderer(sink),
        network=network,
        scheduler=scheduler,
        interval_seconds=interval,
    )
    return controller, counters, now, sink, network, scheduler


def test_interval_below_one_second_rejected() -> None:
    with pytest.raises(InvalidConfigurationError):
        _make(interval=0.5)


def test_start_registers_and_shows_zero() -> None:
    controller, _counters, _now, sink, network, scheduler = _make()
    controller.start()

    assert controller.state is ControllerState.ACTIVE
    assert network.registrations == 1
    assert controller.tracker.table.index_of(NetworkIdentity(1)) == 0
    assert sink.shows == ["Network • T: 0 Kbit/s • R: 0 Kbit/s"]
    assert [h.delay for h in scheduler.pending()] == [2.0]


def test_start_while_active_rearms_without_zero_flash() -> None:
    controller, counters, now, sink, network, scheduler = _make()
    controller.start()
    scheduler.fire()
    counters.values["eth0"] = (250_000, 250_000)
    now[0] = 3_000
    scheduler.fire()
    shows = len(sink.shows)

    controller.start()
    assert network.registrations == 1
    assert len(sink.shows) == shows
    assert len(scheduler.pending()) == 1


def test_tick_samples_and_renders() -> None:
    controller, counters, now, sink, _network, scheduler = _make()
    controller.start()
    scheduler.fire()
    counters.values["eth0"] = (250_000, 500_000)
    now[0] = 2_000
    scheduler.fire()

    assert controller.tracker.current == AggregateRate(250_000, 500_000)
    assert sink.shows[-1] == "Network • T: 2 Mbit/s • R: 4 Mbit/s"
    assert controller.snapshot().ticks == 2
    assert len(scheduler.pending()) == 1


def test_pause_stop_scenario() -> None:
    controller, _counters, _now, sink, network, scheduler = _make()
    controller.start()
    scheduler.fire()
    assert len(sink.shows) == 2

    controller.pause()
    assert controller.state is ControllerState.PAUSED
    assert scheduler.pending() == []
    # registration and displayed content are untouched
    assert network.unregistrations == 0
    assert sink.dismissals == 0

    controller.start()
    assert controller.state is ControllerState.ACTIVE
    assert network.registrations == 1
    scheduler.fire()
    shows = len(sink.shows)

    controller.stop()
    assert controller.state is ControllerState.STOPPED
    assert scheduler.pending() == []
    assert network.unregistrations == 1
    assert sink.dismissals == 1
    assert len(sink.shows) == shows

    controller.stop()
    assert sink.dismissals == 1


def test_stale_timer_after_pause_is_noop() -> None:
    controller, _counters, _now, sink, _network, scheduler = _make()
    controller.start()
    stale = scheduler.pending()[0]
    controller.pause()
    stale.fn()
    assert len(sink.shows) == 1
    assert controller.snapshot().ticks == 0


def test_stale_timer_after_restart_is_noop() -> None:
    controller, _counters, _now, _sink, _network, scheduler = _make()
    controller.start()
    stale = scheduler.pending()[0]
    controller.start()
    stale.fn()
    assert controller.snapshot().ticks == 0
    assert len(scheduler.pending()) == 1


def test_events_from_old_registration_are_ignored() -> None:
    controller, _counters, _now, _sink, network, _scheduler = _make()
    controller.start()
    old_changed = network.on_changed
    controller.stop()
    controller.start()
    assert network.registrations == 2

    old_changed(NetworkIdentity(99), "wlan0")
    assert controller.tracker.table.index_of(NetworkIdentity(99)) is None

    network.on_changed(NetworkIdentity(100), "wlan0")
    assert controller.tracker.table.index_of(NetworkIdentity(100)) is not None
    network.on_lost(NetworkIdentity(100))
    assert controller.tracker.table.index_of(NetworkIdentity(100)) is None


def test_restart_after_stop_clears_stale_slots() -> None:
    controller, _counters, _now, _sink, network, _scheduler = _make()
    controller.start()
    network.on_changed(NetworkIdentity(7), "wlan0")
    controller.stop()
    network.networks = {NetworkIdentity(8): "eth0"}
    controller.start()
    names = [name for _i, _identity, name in controller.tracker.table.occupied()]
    assert names == ["eth0"]


def test_failing_sink_does_not_kill_loop() -> None:
    controller, _counters, _now, sink, _network, scheduler = _make()
    controller.start()
    sink.fail = True
    scheduler.fire()
    assert controller.state is ControllerState.ACTIVE
    assert len(scheduler.pending()) == 1
    assert controller.snapshot().last_error is not None

    sink.fail = False
    scheduler.fire()
    assert controller.snapshot().ticks == 1


def test_sink_failures_surface_as_display_sink_error() -> None:
    controller, _counters, _now, sink, _network, scheduler = _make()
    controller.start()
    sink.fail = True
    with pytest.raises(DisplaySinkError):
        controller.renderer.update(AggregateRate(1, 1))

    scheduler.fire()
    assert controller.snapshot().last_error.startswith("display sink failed")

    controller.stop()
    assert controller.state is ControllerState.STOPPED
    assert controller.snapshot().last_error.startswith("indicator hide failed")
    # the indicator is still up, so the next stop retries the dismiss
    sink.fail = False
    controller.stop()
    assert sink.dismissals == 1


class FlakyNetworkSource(FakeNetworkSource):
    def __init__(self, networks: dict[NetworkIdentity, str] | None = None, *, failures: int = 1) -> None:
        super().__init__(networks)
        self.failures = failures
        self.attempts = 0

    def register(self, on_changed, on_lost) -> None:
        self.attempts += 1
        if self.failures > 0:
            self.failures -= 1
            raise RuntimeError("connectivity service unavailable")
        super().register(on_changed, on_lost)


def test_run_state_retries_after_failed_register() -> None:
    controller, _counters, _now, sink, _network, scheduler = _make()
    network = FlakyNetworkSource({NetworkIdentity(1): "eth0"})
    controller.network = network
    monitor = RunStateMonitor(controller)

    with pytest.raises(RuntimeError):
        monitor.update_host(RunSignal())
    assert controller.state is ControllerState.STOPPED
    assert not controller.tracking
    assert monitor.last_decision is None
    assert scheduler.pending() == []
    assert controller.snapshot().last_error.startswith("network register failed")

    assert monitor.update_host(RunSignal()) is RunDecision.RUN
    assert network.attempts == 2
    assert controller.state is ControllerState.ACTIVE
    assert monitor.last_decision is RunDecision.RUN
    assert controller.tracker.table.index_of(NetworkIdentity(1)) == 0
    assert sink.shows == ["Network • T: 0 Kbit/s • R: 0 Kbit/s"]
