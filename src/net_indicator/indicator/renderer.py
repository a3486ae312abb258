from __future__ import annotations

import logging
from dataclasses import dataclass

from net_indicator.core.exceptions import DisplaySinkError
from net_indicator.indicator.formatter import FormattedRate, format_rate
from net_indicator.indicator.glyph import Glyph, GlyphRenderer
from net_indicator.indicator.sinks import DisplaySink
from net_indicator.monitoring.rates import ZERO_RATE, AggregateRate

NEVER_SET = -1


@dataclass
class DisplayState:
    visible: bool = False
    last_tx_bytes: int = NEVER_SET
    last_rx_bytes: int = NEVER_SET
    title: str = ""
    glyph: Glyph | None = None


def build_title(tx: FormattedRate, rx: FormattedRate) -> str:
    return f"Network • T: {tx.label()} • R: {rx.label()}"


class IndicatorRenderer:
    """
    Pushes the rate pair to a display sink.

    Content is only rebuilt when the aggregate changes, but every update()
    re-pushes so "ongoing" sinks stay alive.
    """

    def __init__(self, sink: DisplaySink, glyphs: GlyphRenderer | None = None) -> None:
        self.sink = sink
        self._glyphs = glyphs or GlyphRenderer()
        self.state = DisplayState()
        self.recomputations = 0
        self._log = logging.getLogger("net_indicator.renderer")

    @property
    def visible(self) -> bool:
        return self.state.visible

    def hide(self) -> None:
        if self.state.visible:
            try:
                self.sink.dismiss()
            except Exception as exc:
                raise DisplaySinkError(f"dismiss failed: {exc}") from exc
            self._log.debug("indicator dismissed")
        self.state.visible = False

    def reset(self) -> None:
        self.state.last_tx_bytes = NEVER_SET
        self.state.last_rx_bytes = NEVER_SET
        self.update(ZERO_RATE)

    def update(self, aggregate: AggregateRate) -> None:
        st = self.state
        if (
            st.glyph is None
            or aggregate.tx_bytes_per_sec != st.last_tx_bytes
            or aggregate.rx_bytes_per_sec != st.last_rx_bytes
        ):
            tx = format_rate(aggregate.tx_bytes_per_sec)
            rx = format_rate(aggregate.rx_bytes_per_sec)
            st.title = build_title(tx, rx)
            st.glyph = self._glyphs.render(tx.glyph_line(), rx.glyph_line())
            st.last_tx_bytes = aggregate.tx_bytes_per_sec
            st.last_rx_bytes = aggregate.rx_bytes_per_sec
            self.recomputations += 1

        try:
            self.sink.show(st.title, st.glyph, ongoing=True)
        except Exception as exc:
            raise DisplaySinkError(f"show failed: {exc}") from exc
        st.visible = True
