from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass

from net_indicator.indicator.glyph import Glyph
from net_indicator.indicator.throttle import Throttle


class DisplaySink(ABC):
    @abstractmethod
    def show(self, title: str, glyph: Glyph, *, ongoing: bool = True) -> None:
        ...

    @abstractmethod
    def dismiss(self) -> None:
        ...


@dataclass(frozen=True)
class SinkView:
    visible: bool
    title: str
    lines: tuple[str, str]
    ongoing: bool
    pushes: int


class SnapshotSink(DisplaySink):
    """Keeps the latest pushed content for a reader on another thread."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._view = SinkView(visible=False, title="", lines=("", ""), ongoing=False, pushes=0)
        self._glyph: Glyph | None = None

    def show(self, title: str, glyph: Glyph, *, ongoing: bool = True) -> None:
        with self._lock:
            self._glyph = glyph
            self._view = SinkView(
                visible=True,
                title=title,
                lines=glyph.lines,
                ongoing=ongoing,
                pushes=self._view.pushes + 1,
            )

    def dismiss(self) -> None:
        with self._lock:
            self._glyph = None
            self._view = SinkView(visible=False, title="", lines=("", ""), ongoing=False, pushes=self._view.pushes)

    def view(self) -> SinkView:
        with self._lock:
            return self._view

    def glyph(self) -> Glyph | None:
        with self._lock:
            return self._glyph


class LogSink(DisplaySink):
    def __init__(self, *, throttle_seconds: float = 60.0) -> None:
        self._log = logging.getLogger("net_indicator.sink")
        self._throttle = Throttle(throttle_seconds=float(throttle_seconds))
        self._last_title: str | None = None

    def show(self, title: str, glyph: Glyph, *, ongoing: bool = True) -> None:
        if title != self._last_title:
            self._last_title = title
            self._throttle.reset("refresh")
            self._log.info(title, extra={"glyph": list(glyph.lines)})
            return
        if self._throttle.allow("refresh"):
            self._log.debug("indicator refreshed", extra={"title": title})

    def dismiss(self) -> None:
        self._last_title = None
        self._log.info("indicator hidden")
