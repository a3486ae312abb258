from __future__ import annotations

import logging

from textual.app import App, ComposeResult
from textual.widgets import Footer, Header, Static

from net_indicator.core.config import AppConfig
from net_indicator.engine.controller import IndicatorController
from net_indicator.engine.run_state import RunSignal, RunStateMonitor, RunStateWatcher
from net_indicator.engine.state import ControllerSnapshot
from net_indicator.indicator.sinks import SinkView, SnapshotSink


def glyph_box(view: SinkView) -> str:
    if not view.visible:
        return "(hidden)"
    top, bottom = view.lines
    width = max(len(top), len(bottom), 4)
    border = "+" + "-" * (width + 2) + "+"
    return "\n".join([border, f"| {top:>{width}} |", f"| {bottom:>{width}} |", border])


def status_line(snap: ControllerSnapshot, monitor: RunStateMonitor) -> str:
    sig = monitor.effective
    parts = [
        f"State: {snap.state.value.upper()}",
        f"Screen: {'on' if sig.screen_on else 'off'}",
        f"Power save: {'on' if sig.power_save else 'off'}",
        f"Networks: {', '.join(i.interface for i in snap.interfaces) or 'none'}",
    ]
    if snap.last_error:
        parts.append(f"Error: {snap.last_error}")
    return "  ".join(parts)


class IndicatorApp(App):
    CSS = """
    Screen { padding: 1; }
    #glyph { width: auto; height: 4; }
    #title { height: 1; margin-top: 1; }
    #status { height: auto; margin-top: 1; }
    """

    BINDINGS = [
        ("p", "toggle_screen", "Screen off/on"),
        ("b", "toggle_power_save", "Power save"),
        ("q", "quit_app", "Quit"),
    ]

    def __init__(
        self,
        *,
        controller: IndicatorController,
        monitor: RunStateMonitor,
        watcher: RunStateWatcher | None,
        sink: SnapshotSink,
        config: AppConfig,
    ) -> None:
        super().__init__()
        self.controller = controller
        self.monitor = monitor
        self.watcher = watcher
        self.sink = sink
        self.config = config
        self._screen_off = False
        self._power_save = False

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield Static("", id="glyph")
        yield Static("", id="title")
        yield Static("", id="status")
        yield Footer()

    def on_mount(self) -> None:
        self.title = "Net Indicator"
        if self.watcher is not None:
            self.watcher.start()
        else:
            try:
                self.monitor.update_host(RunSignal())
            except Exception:
                logging.getLogger("net_indicator.ui").exception("indicator start failed")
        refresh_hz = float(self.config.ui.refresh_hz or 2)
        self.set_interval(1.0 / max(refresh_hz, 0.5), self._tick_refresh)
        self._tick_refresh()

    def _tick_refresh(self) -> None:
        view = self.sink.view()
        self.query_one("#glyph", Static).update(glyph_box(view))
        self.query_one("#title", Static).update(view.title or "Network indicator hidden")
        self.query_one("#status", Static).update(status_line(self.controller.snapshot(), self.monitor))

    def action_toggle_screen(self) -> None:
        self._screen_off = not self._screen_off
        self._apply_override(self.monitor.set_screen_off, self._screen_off)
        self._tick_refresh()

    def action_toggle_power_save(self) -> None:
        self._power_save = not self._power_save
        self._apply_override(self.monitor.set_power_save, self._power_save)
        self._tick_refresh()

    def _apply_override(self, setter, on: bool) -> None:
        try:
            setter(on)
        except Exception:
            logging.getLogger("net_indicator.ui").exception("run state override failed")

    def action_quit_app(self) -> None:
        if self.watcher is not None:
            self.watcher.request_stop()
        self.controller.stop()
        self.exit()
