from __future__ import annotations

import logging

import pytest

from net_indicator.core.exceptions import DisplaySinkError
from net_indicator.indicator.glyph import Glyph, GlyphRenderer
from net_indicator.indicator.renderer import NEVER_SET, IndicatorRenderer
from net_indicator.indicator.sinks import DisplaySink, LogSink, SnapshotSink
from net_indicator.monitoring.rates import AggregateRate


class RecordingSink(DisplaySink):
    def __init__(self) -> None:
        self.shows: list[tuple[str, Glyph, bool]] = []
        self.dismissals = 0

    def show(self, title: str, glyph: Glyph, *, ongoing: bool = True) -> None:
        self.shows.append((title, glyph, ongoing))

    def dismiss(self) -> None:
        self.dismissals += 1


def test_title_and_glyph_content() -> None:
    sink = RecordingSink()
    r = IndicatorRenderer(sink)
    r.update(AggregateRate(tx_bytes_per_sec=125, rx_bytes_per_sec=125_000))

    title, glyph, ongoing = sink.shows[-1]
    assert title == "Network • T: 1 Kbit/s • R: 1 Mbit/s"
    assert glyph.lines == ("1 K", "1 M")
    assert ongoing is True
    assert r.visible


def test_upload_on_top_download_below() -> None:
    sink = RecordingSink()
    r = IndicatorRenderer(sink)
    r.update(AggregateRate(tx_bytes_per_sec=12_500_000, rx_bytes_per_sec=0))
    assert sink.shows[-1][1].top == "100M"
    assert sink.shows[-1][1].bottom == "0 K"


def test_identical_update_recomputes_once_but_pushes_twice() -> None:
    sink = RecordingSink()
    r = IndicatorRenderer(sink)
    agg = AggregateRate(tx_bytes_per_sec=4_000, rx_bytes_per_sec=9_000)
    r.update(agg)
    r.update(AggregateRate(tx_bytes_per_sec=4_000, rx_bytes_per_sec=9_000))

    assert r.recomputations == 1
    assert len(sink.shows) == 2
    assert sink.shows[0][1] is sink.shows[1][1]
    assert sink.shows[0][0] == sink.shows[1][0]


def test_changed_update_recomputes() -> None:
    sink = RecordingSink()
    r = IndicatorRenderer(sink)
    r.update(AggregateRate(1, 1))
    # same display text, different raw rate still recomputes
    r.update(AggregateRate(2, 2))
    assert r.recomputations == 2
    assert r.state.last_tx_bytes == 2


def test_hide_is_idempotent() -> None:
    sink = RecordingSink()
    r = IndicatorRenderer(sink)
    r.hide()
    assert sink.dismissals == 0

    r.update(AggregateRate(0, 0))
    r.hide()
    r.hide()
    assert sink.dismissals == 1
    assert not r.visible


def test_sink_errors_are_wrapped() -> None:
    class BrokenSink(RecordingSink):
        def show(self, title: str, glyph: Glyph, *, ongoing: bool = True) -> None:
            raise OSError("display gone")

        def dismiss(self) -> None:
            raise OSError("display gone")

    r = IndicatorRenderer(BrokenSink())
    with pytest.raises(DisplaySinkError) as info:
        r.update(AggregateRate(0, 0))
    assert isinstance(info.value.__cause__, OSError)
    assert not r.visible

    r.state.visible = True
    with pytest.raises(DisplaySinkError):
        r.hide()
    assert r.visible


def test_reset_forces_zero_content() -> None:
    sink = RecordingSink()
    r = IndicatorRenderer(sink)
    r.update(AggregateRate(0, 0))
    r.reset()
    assert r.recomputations == 2
    assert sink.shows[-1][0] == "Network • T: 0 Kbit/s • R: 0 Kbit/s"
    assert r.state.last_tx_bytes != NEVER_SET


def test_glyph_raster_is_fixed_square() -> None:
    glyph = GlyphRenderer(size=32).render("12 K", "345M")
    assert glyph.image is not None
    assert glyph.image.size == (32, 32)
    assert glyph.image.mode == "RGBA"
    assert glyph.image.getbbox() is not None


def test_snapshot_sink_tracks_latest() -> None:
    sink = SnapshotSink()
    r = IndicatorRenderer(sink)
    r.update(AggregateRate(125, 0))
    r.update(AggregateRate(125, 0))
    view = sink.view()
    assert view.visible
    assert view.lines == ("1 K", "0 K")
    assert view.pushes == 2
    assert sink.glyph() is not None

    r.hide()
    assert not sink.view().visible
    assert sink.glyph() is None


def test_log_sink_logs_title_changes_only(caplog) -> None:
    sink = LogSink(throttle_seconds=3600)
    r = IndicatorRenderer(sink)
    with caplog.at_level(logging.INFO, logger="net_indicator.sink"):
        r.update(AggregateRate(125, 0))
        r.update(AggregateRate(125, 0))
        r.update(AggregateRate(250, 0))
    titles = [rec.getMessage() for rec in caplog.records if rec.levelno == logging.INFO]
    assert titles == [
        "Network • T: 1 Kbit/s • R: 0 Kbit/s",
        "Network • T: 2 Kbit/s • R: 0 Kbit/s",
    ]
