from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
import threading
from dataclasses import dataclass
from typing import Any

from net_indicator.core.config import AppConfig, load_config
from net_indicator.core.exceptions import ConfigError
from net_indicator.core.utils import env_flag, platform_summary, setup_logging
from net_indicator.engine.controller import IndicatorController
from net_indicator.engine.run_state import (
    BatteryRunStateSource,
    RunSignal,
    RunStateMonitor,
    RunStateWatcher,
)
from net_indicator.indicator.glyph import GlyphRenderer
from net_indicator.indicator.renderer import IndicatorRenderer
from net_indicator.indicator.sinks import DisplaySink, LogSink, SnapshotSink
from net_indicator.monitoring.counters import PsutilCounterSource
from net_indicator.monitoring.network import PsutilNetworkSource
from net_indicator.monitoring.slots import InterfaceSlotTable
from net_indicator.monitoring.tracker import ThroughputTracker


@dataclass
class Indicator:
    controller: IndicatorController
    monitor: RunStateMonitor
    watcher: RunStateWatcher | None
    tracker: ThroughputTracker
    network: PsutilNetworkSource


def build_indicator(config: AppConfig, sink: DisplaySink) -> Indicator:
    table = InterfaceSlotTable(PsutilCounterSource(), capacity=int(config.sampling.slot_capacity))
    tracker = ThroughputTracker(table)
    renderer = IndicatorRenderer(
        sink,
        GlyphRenderer(size=int(config.glyph.size), font_path=config.glyph.font_path),
    )
    network = PsutilNetworkSource(config.interfaces)
    controller = IndicatorController(
        tracker=tracker,
        renderer=renderer,
        network=network,
        interval_seconds=float(config.sampling.interval_seconds),
    )
    monitor = RunStateMonitor(controller)
    watcher = None
    if config.run_state.enabled:
        watcher = RunStateWatcher(
            BatteryRunStateSource(power_save_percent=config.run_state.power_save_battery_percent),
            monitor,
            poll_seconds=float(config.run_state.poll_seconds),
        )
    return Indicator(controller=controller, monitor=monitor, watcher=watcher, tracker=tracker, network=network)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="net-indicator")
    p.add_argument(
        "--config",
        type=str,
        default=os.getenv("NET_INDICATOR_CONFIG") or None,
        help="Path to config.yaml",
    )
    p.add_argument("--interval", type=float, default=None, help="Sampling interval in seconds (>= 1)")
    p.add_argument("--no-ui", action="store_true", help="Run headless and log the indicator")
    p.add_argument("--log-level", type=str, default=None)
    return p.parse_args(argv)


def _cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if args.interval is not None:
        overrides["sampling"] = {"interval_seconds": args.interval}
    if args.log_level:
        overrides["logging"] = {"level": args.log_level}
    return overrides


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv if argv is not None else sys.argv[1:])
    try:
        config = load_config(args.config, overrides=_cli_overrides(args))
    except ConfigError as exc:
        print(f"net-indicator: {exc}", file=sys.stderr)
        return 2

    headless = args.no_ui or env_flag("NET_INDICATOR_HEADLESS") or not config.ui.enabled
    setup_logging(config.logging.dir, level=config.logging.level, console=headless and config.logging.console)
    log = logging.getLogger("net_indicator")
    log.info("starting", extra={"platform": dict(platform_summary()), "headless": headless})

    if not headless:
        from net_indicator.ui.app import IndicatorApp

        sink = SnapshotSink()
        ind = build_indicator(config, sink)
        IndicatorApp(
            controller=ind.controller,
            monitor=ind.monitor,
            watcher=ind.watcher,
            sink=sink,
            config=config,
        ).run()
        if ind.watcher is not None:
            ind.watcher.request_stop()
        ind.controller.stop()
        log.info("stopped")
        return 0

    ind = build_indicator(config, LogSink())
    done = threading.Event()

    def _handle_sig(signum: int, _frame: object) -> None:
        if done.is_set():
            return
        log.warning("shutdown requested", extra={"signal": signum})
        done.set()

    signal.signal(signal.SIGINT, _handle_sig)
    signal.signal(signal.SIGTERM, _handle_sig)

    if ind.watcher is not None:
        ind.watcher.start()
    else:
        try:
            ind.monitor.update_host(RunSignal())
        except Exception:
            log.exception("indicator start failed")
    while not done.wait(1.0):
        pass

    if ind.watcher is not None:
        ind.watcher.request_stop()
        ind.watcher.join(timeout=2.0)
    ind.controller.stop()
    log.info("stopped")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
