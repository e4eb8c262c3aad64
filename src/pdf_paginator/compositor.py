"""
Page compositing.

A non-cover page is built on an opaque white canvas the size of the
header/footer template, bottom to top:

1. the source page, pushed down by ``content_offset`` pixels and downscaled
   to fit the area below that offset if it is too large;
2. the template, whose transparent middle lets the source show through while
   its opaque bands cover the top and bottom of the page;
3. the document title;
4. the page label (``Pág. 03``).

Page 1 is the cover and is only re-encoded as PNG.
"""

from __future__ import annotations

import logging
from io import BytesIO
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from .errors import MissingAsset, PageProcessingError
from .models import TextStyle, Typography
from .naming import format_page_label
from .text_overlay import render_text_layer

logger = logging.getLogger(__name__)

CONTENT_OFFSET = 34
COVER_PAGE = 1

# Positions are in pixels for the 2400x3392 template.
DEFAULT_TYPOGRAPHY = Typography(
    title=TextStyle(
        x=636,
        y=80,
        font_size=32,
        font_weight="bold",
        color="#000000",
        font_family="Roboto",
    ),
    page_number=TextStyle(
        x=2120,
        y=3325,
        font_size=28,
        color="#F5C842",
        font_family="SourceSansPro",
    ),
)

WHITE = (255, 255, 255, 255)


def _encode_png(image: Image.Image) -> bytes:
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def fit_inside(size: Tuple[int, int], max_width: int, max_height: int) -> Tuple[int, int]:
    """
    Largest size with the same aspect ratio that fits in ``max_width x max_height``.

    Sizes that already fit are returned unchanged; images are never upscaled.
    """
    width, height = size
    if width <= max_width and height <= max_height:
        return width, height
    scale = min(max_width / width, max_height / height)
    return (
        max(1, min(max_width, round(width * scale))),
        max(1, min(max_height, round(height * scale))),
    )


def _draw_text(canvas: Image.Image, text: str, style: TextStyle, font_data: bytes) -> Image.Image:
    layer = render_text_layer(
        text,
        style.x,
        style.y,
        style.font_size,
        style.color,
        font_data,
        canvas.width,
        canvas.height,
        font_weight=style.font_weight,
        font_family=style.font_family,
    )
    return Image.alpha_composite(canvas, layer)


def _process_cover(source_bytes: bytes) -> bytes:
    with Image.open(BytesIO(source_bytes)) as source:
        source.load()
        return _encode_png(source)


def _process_standard(
    source_bytes: bytes,
    template_bytes: bytes,
    title: str,
    ordinal: int,
    title_font: bytes,
    page_number_font: bytes,
    typography: Typography,
    content_offset: int,
) -> bytes:
    with Image.open(BytesIO(template_bytes)) as template_file:
        template = template_file.convert("RGBA")
    final_width, final_height = template.size
    available_height = final_height - content_offset
    if available_height <= 0:
        raise ValueError(f"Template height {final_height} leaves no room below offset {content_offset}")

    with Image.open(BytesIO(source_bytes)) as source_file:
        source = source_file.convert("RGBA")

    target = fit_inside(source.size, final_width, available_height)
    if target != source.size:
        logger.debug(f"Page {ordinal}: resizing {source.size} -> {target}")
        source = source.resize(target, Image.Resampling.LANCZOS)

    canvas = Image.new("RGBA", (final_width, final_height), WHITE)
    canvas.alpha_composite(source, (0, content_offset))
    canvas.alpha_composite(template, (0, 0))
    canvas = _draw_text(canvas, title, typography.title, title_font)
    canvas = _draw_text(canvas, format_page_label(ordinal), typography.page_number, page_number_font)

    return _encode_png(canvas.convert("RGB"))


def process_page(
    source_bytes: bytes,
    template_bytes: Optional[bytes],
    title: str,
    ordinal: int,
    title_font: bytes,
    page_number_font: bytes,
    typography: Optional[Typography] = None,
    content_offset: int = CONTENT_OFFSET,
) -> bytes:
    """
    Composite one page and return it as PNG bytes.

    Args:
        source_bytes: Encoded source page image
        template_bytes: Encoded header/footer template (unused for the cover)
        title: Document title drawn in the header
        ordinal: Page number; 1 selects the cover pass-through
        title_font: Raw font data for the title
        page_number_font: Raw font data for the page label
        typography: Text positions and styles (defaults to DEFAULT_TYPOGRAPHY)
        content_offset: Pixels the source is pushed down to clear the header

    Returns:
        PNG bytes. Identical inputs always produce identical bytes.

    Raises:
        MissingAsset: If a non-cover page is processed without a template
        PageProcessingError: If any image cannot be decoded or composited
    """
    try:
        if ordinal == COVER_PAGE:
            return _process_cover(source_bytes)

        if not template_bytes:
            raise MissingAsset("<template>", role="template")

        return _process_standard(
            source_bytes,
            template_bytes,
            title,
            ordinal,
            title_font,
            page_number_font,
            typography or DEFAULT_TYPOGRAPHY,
            content_offset,
        )
    except MissingAsset:
        raise
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        logger.error(f"Error processing page {ordinal}: {exc}")
        raise PageProcessingError(ordinal, str(exc)) from exc
