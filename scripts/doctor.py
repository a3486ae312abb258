from __future__ import annotations

import argparse
import sys
import time

import psutil

from net_indicator.core.config import load_config
from net_indicator.core.exceptions import ConfigError
from net_indicator.core.utils import monotonic_ms
from net_indicator.indicator.formatter import format_rate
from net_indicator.monitoring.counters import PsutilCounterSource
from net_indicator.monitoring.network import PsutilNetworkSource, is_tracked_interface
from net_indicator.monitoring.slots import InterfaceSlotTable
from net_indicator.monitoring.tracker import ThroughputTracker


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="doctor")
    p.add_argument("--config", type=str, default=None)
    p.add_argument("--seconds", type=float, default=2.0, help="Sample window")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv if argv is not None else sys.argv[1:])
    try:
        cfg = load_config(args.config)
    except ConfigError as exc:
        print(f"[FAIL] Config: {exc}")
        return 2
    print(f"[OK] Config loaded: interval={cfg.sampling.interval_seconds:g}s capacity={cfg.sampling.slot_capacity}")

    stats = psutil.net_if_stats()
    print(f"[OK] Interfaces: {len(stats)}")
    for name, st in sorted(stats.items()):
        tracked = "tracked" if st.isup and is_tracked_interface(name, cfg.interfaces) else "ignored"
        print(f"  - {name}: {'up' if st.isup else 'down'} ({tracked})")

    table = InterfaceSlotTable(PsutilCounterSource(), capacity=int(cfg.sampling.slot_capacity))
    tracker = ThroughputTracker(table, clock=monotonic_ms)
    source = PsutilNetworkSource(cfg.interfaces)
    source.register(tracker.network_changed, tracker.network_lost)
    try:
        if not table.occupied():
            print("[WARN] No tracked networks are up")
            return 1
        tracker.update()
        time.sleep(max(args.seconds, 1.0))
        rate = tracker.update()
    finally:
        source.unregister()

    tx = format_rate(rate.tx_bytes_per_sec)
    rx = format_rate(rate.rx_bytes_per_sec)
    print(f"[OK] Sampled {len(table.occupied())} network(s): T {tx.label()}  R {rx.label()}")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
