from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from PIL import Image, ImageDraw, ImageFont

_FONT_CANDIDATES = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSansCondensed-Bold.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/System/Library/Fonts/Supplemental/Arial Narrow.ttf",
    "/System/Library/Fonts/Helvetica.ttc",
    "C:\\Windows\\Fonts\\arialn.ttf",
    "C:\\Windows\\Fonts\\arial.ttf",
)


@dataclass(frozen=True)
class Glyph:
    """Two text lines (upload on top, download below) and their raster."""

    top: str
    bottom: str
    size: int
    image: Image.Image | None = field(default=None, compare=False, repr=False)

    @property
    def lines(self) -> tuple[str, str]:
        return (self.top, self.bottom)


def load_font(size: int, font_path: str | None = None) -> ImageFont.ImageFont | ImageFont.FreeTypeFont:
    candidates = ([font_path] if font_path else []) + list(_FONT_CANDIDATES)
    for path in candidates:
        if os.path.exists(path):
            try:
                return ImageFont.truetype(path, size)
            except OSError:
                logging.getLogger("net_indicator.glyph").debug("font load failed", extra={"path": path})
    return ImageFont.load_default()


class GlyphRenderer:
    def __init__(self, *, size: int = 48, font_path: str | None = None) -> None:
        self.size = int(size)
        self._font = load_font(self.size // 2, font_path)

    def render(self, top: str, bottom: str) -> Glyph:
        img = Image.new("RGBA", (self.size, self.size), (0, 0, 0, 0))
        draw = ImageDraw.Draw(img)
        half = self.size / 2
        # each line is centred in its half of the square
        for i, text in enumerate((top, bottom)):
            x0, y0, x1, y1 = draw.textbbox((0, 0), text, font=self._font)
            x = (self.size - (x1 - x0)) / 2 - x0
            y = half * i + (half - (y1 - y0)) / 2 - y0
            draw.text((x, y), text, font=self._font, fill=(255, 255, 255, 255))
        return Glyph(top=top, bottom=bottom, size=self.size, image=img)
