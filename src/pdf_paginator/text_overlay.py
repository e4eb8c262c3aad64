"""Render single-line text onto a transparent layer the size of the page canvas."""

from __future__ import annotations

from io import BytesIO
from typing import Optional, Tuple

from PIL import Image, ImageColor, ImageDraw, ImageFont

# Stroke added per pixel of font size when a bold weight is requested on a
# regular face.
BOLD_STROKE_RATIO = 1 / 32

BOLD_WEIGHTS = {"bold", "bolder", "600", "700", "800", "900"}


def load_font(font_data: bytes, font_size: int) -> ImageFont.FreeTypeFont:
    """Load a TrueType/OpenType face from raw bytes; system fonts are never consulted."""
    return ImageFont.truetype(BytesIO(font_data), size=font_size)


def _stroke_width(font_size: int, font_weight: str) -> int:
    if str(font_weight).lower() not in BOLD_WEIGHTS:
        return 0
    return max(1, round(font_size * BOLD_STROKE_RATIO))


def _parse_color(color: str) -> Tuple[int, int, int, int]:
    return ImageColor.getcolor(color, "RGBA")


def render_text_layer(
    text: str,
    x: int,
    y: int,
    font_size: int,
    color: str,
    font_data: bytes,
    width: int,
    height: int,
    font_weight: str = "normal",
    font_family: Optional[str] = None,
) -> Image.Image:
    """
    Draw ``text`` left-anchored on its baseline at ``(x, y)``.

    The returned layer is exactly ``width x height`` so it can be composited
    at the canvas origin. Text running past the canvas is clipped.
    ``font_family`` only names the typographic role; the glyphs always come
    from ``font_data``.

    Raises:
        OSError: If ``font_data`` is not a readable font
        ValueError: If ``color`` cannot be parsed
    """
    layer = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    if not text:
        return layer

    font = load_font(font_data, font_size)
    fill = _parse_color(color)
    draw = ImageDraw.Draw(layer)
    stroke = _stroke_width(font_size, font_weight)
    draw.text(
        (x, y),
        text,
        font=font,
        fill=fill,
        anchor="ls",
        stroke_width=stroke,
        stroke_fill=fill,
    )
    return layer
