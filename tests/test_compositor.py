"""Tests for page compositing."""

from io import BytesIO

import pytest
from PIL import Image

from conftest import BAND_HEIGHT, FOOTER_COLOR, HEADER_COLOR, TEMPLATE_SIZE
from pdf_paginator.compositor import CONTENT_OFFSET, DEFAULT_TYPOGRAPHY, fit_inside, process_page
from pdf_paginator.errors import MissingAsset, PageProcessingError

RED = (200, 30, 30)
GREEN = (30, 160, 60)
WHITE = (255, 255, 255)


def _close(pixel, color, tolerance=2) -> bool:
    return all(abs(a - b) <= tolerance for a, b in zip(pixel, color))


def _open(data: bytes) -> Image.Image:
    image = Image.open(BytesIO(data))
    image.load()
    return image


def _composite(source, template_bytes, font_bytes, typography, title="SAMPLE", ordinal=2):
    return process_page(source, template_bytes, title, ordinal, font_bytes, font_bytes, typography=typography)


class TestFitInside:
    def test_keeps_sizes_that_fit(self):
        assert fit_inside((100, 50), 240, 306) == (100, 50)
        assert fit_inside((240, 306), 240, 306) == (240, 306)

    def test_downscales_preserving_aspect_ratio(self):
        assert fit_inside((480, 680), 240, 306) == (216, 306)
        assert fit_inside((1000, 100), 240, 306) == (240, 24)

    def test_never_upscales(self):
        assert fit_inside((10, 10), 2400, 3358) == (10, 10)


class TestCoverPage:
    def test_cover_is_identity(self, make_png, template_bytes, font_bytes):
        image = Image.new("RGB", (80, 120), RED)
        image.paste(GREEN, (10, 10, 40, 60))
        buffer = BytesIO()
        image.save(buffer, format="PNG")

        output = _open(process_page(buffer.getvalue(), template_bytes, "SAMPLE", 1, font_bytes, font_bytes))

        assert output.size == (80, 120)
        assert output.convert("RGB").tobytes() == image.tobytes()

    def test_cover_needs_no_template(self, make_png, font_bytes):
        output = _open(process_page(make_png(30, 40), None, "SAMPLE", 1, font_bytes, font_bytes))
        assert output.size == (30, 40)

    def test_cover_is_reencoded_as_png(self, font_bytes):
        buffer = BytesIO()
        Image.new("RGB", (20, 20), GREEN).save(buffer, format="BMP")
        output = _open(process_page(buffer.getvalue(), None, "SAMPLE", 1, font_bytes, font_bytes))
        assert output.format == "PNG"


class TestStandardPage:
    @pytest.mark.parametrize("size", [(50, 50), (240, 306), (480, 680), (3000, 4000), (1000, 100)])
    def test_output_has_template_dimensions(self, size, make_png, template_bytes, font_bytes, typography):
        output = _open(_composite(make_png(*size), template_bytes, font_bytes, typography))
        assert output.size == TEMPLATE_SIZE
        assert output.mode == "RGB"

    def test_small_source_is_placed_below_offset_without_scaling(self, make_png, template_bytes, font_bytes, typography):
        output = _open(_composite(make_png(50, 50, RED), template_bytes, font_bytes, typography))

        assert output.getpixel((0, CONTENT_OFFSET)) == RED
        assert output.getpixel((49, CONTENT_OFFSET + 49)) == RED
        assert output.getpixel((50, CONTENT_OFFSET)) == WHITE
        assert output.getpixel((10, CONTENT_OFFSET + 50)) == WHITE
        # Gap between the header band and the content offset stays white
        assert output.getpixel((10, CONTENT_OFFSET - 1)) == WHITE

    def test_large_source_is_fitted_top_left(self, make_png, template_bytes, font_bytes, typography):
        output = _open(_composite(make_png(480, 680, GREEN), template_bytes, font_bytes, typography))

        # 480x680 fits into 240x306 as 216x306
        assert _close(output.getpixel((200, 200)), GREEN)
        assert output.getpixel((230, 200)) == WHITE

    def test_template_bands_cover_the_source(self, make_png, template_bytes, font_bytes, typography):
        output = _open(_composite(make_png(240, 306, GREEN), template_bytes, font_bytes, typography))

        width, height = TEMPLATE_SIZE
        assert output.getpixel((5, 5)) == HEADER_COLOR[:3]
        assert output.getpixel((5, height - 5)) == FOOTER_COLOR[:3]
        assert output.getpixel((5, height - BAND_HEIGHT - 1)) == GREEN

    def test_title_is_drawn_in_header(self, make_png, template_bytes, font_bytes, typography):
        source = make_png(100, 100)
        with_title = _open(_composite(source, template_bytes, font_bytes, typography, title="SAMPLE"))
        without_title = _open(_composite(source, template_bytes, font_bytes, typography, title=""))

        header = (0, 0, TEMPLATE_SIZE[0], BAND_HEIGHT)
        assert with_title.crop(header).tobytes() != without_title.crop(header).tobytes()

    def test_page_label_changes_with_ordinal(self, make_png, template_bytes, font_bytes, typography):
        source = make_png(100, 100)
        page_two = _open(_composite(source, template_bytes, font_bytes, typography, ordinal=2))
        page_three = _open(_composite(source, template_bytes, font_bytes, typography, ordinal=3))

        footer = (0, TEMPLATE_SIZE[1] - BAND_HEIGHT, TEMPLATE_SIZE[0], TEMPLATE_SIZE[1])
        assert page_two.crop(footer).tobytes() != page_three.crop(footer).tobytes()

    def test_transparent_source_shows_white_canvas(self, make_png, template_bytes, font_bytes, typography):
        source = make_png(60, 60, (0, 0, 0, 0), mode="RGBA")
        output = _open(_composite(source, template_bytes, font_bytes, typography))
        assert output.getpixel((20, CONTENT_OFFSET + 20)) == WHITE

    def test_is_deterministic(self, make_png, template_bytes, font_bytes, typography):
        source = make_png(500, 700, GREEN)
        first = _composite(source, template_bytes, font_bytes, typography)
        second = _composite(source, template_bytes, font_bytes, typography)
        assert first == second

    def test_default_typography_is_used_when_omitted(self, make_png, template_bytes, font_bytes):
        output = _open(process_page(make_png(50, 50), template_bytes, "SAMPLE", 2, font_bytes, font_bytes))
        assert output.size == TEMPLATE_SIZE
        assert DEFAULT_TYPOGRAPHY.title.font_weight == "bold"

    def test_custom_content_offset(self, make_png, template_bytes, font_bytes, typography):
        output = _open(
            process_page(
                make_png(50, 50, RED), template_bytes, "", 2, font_bytes, font_bytes,
                typography=typography, content_offset=60,
            )
        )
        assert output.getpixel((10, 59)) == WHITE
        assert output.getpixel((10, 60)) == RED


class TestFailures:
    def test_undecodable_source_reports_ordinal(self, template_bytes, font_bytes, typography):
        with pytest.raises(PageProcessingError) as excinfo:
            _composite(b"not an image", template_bytes, font_bytes, typography, ordinal=5)
        assert excinfo.value.ordinal == 5

    def test_undecodable_cover_reports_ordinal(self, font_bytes):
        with pytest.raises(PageProcessingError) as excinfo:
            process_page(b"garbage", None, "SAMPLE", 1, font_bytes, font_bytes)
        assert excinfo.value.ordinal == 1

    def test_undecodable_template(self, make_png, font_bytes, typography):
        with pytest.raises(PageProcessingError):
            _composite(make_png(10, 10), b"garbage", font_bytes, typography)

    def test_missing_template(self, make_png, font_bytes, typography):
        with pytest.raises(MissingAsset):
            _composite(make_png(10, 10), None, font_bytes, typography)

    def test_invalid_font(self, make_png, template_bytes, typography):
        with pytest.raises(PageProcessingError):
            process_page(make_png(10, 10), template_bytes, "SAMPLE", 2, b"nope", b"nope", typography=typography)
