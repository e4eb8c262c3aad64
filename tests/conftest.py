"""
Pytest configuration and fixtures for the PDF paginator tests.
"""

import os
import shutil
import tempfile
from io import BytesIO
from pathlib import Path

import pytest
import reportlab
from fastapi.testclient import TestClient
from PIL import Image

FONT_PATH = Path(reportlab.__file__).resolve().parent / "fonts" / "Vera.ttf"

TEMPLATE_SIZE = (240, 340)
HEADER_COLOR = (20, 40, 160, 255)
FOOTER_COLOR = (245, 200, 66, 255)
BAND_HEIGHT = 30


def build_template(size=TEMPLATE_SIZE) -> bytes:
    """Template with opaque header/footer bands and a transparent middle."""
    width, height = size
    image = Image.new("RGBA", size, (0, 0, 0, 0))
    image.paste(HEADER_COLOR, (0, 0, width, BAND_HEIGHT))
    image.paste(FOOTER_COLOR, (0, height - BAND_HEIGHT, width, height))
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def build_png(width: int, height: int, color=(200, 30, 30), mode: str = "RGB") -> bytes:
    image = Image.new(mode, (width, height), color)
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


# Set test environment variables before importing the app
_ASSETS_DIR = Path(tempfile.mkdtemp(prefix="paginator_test_assets_"))
(_ASSETS_DIR / "fonts").mkdir()
(_ASSETS_DIR / "Header and Footer Template.png").write_bytes(build_template())
shutil.copyfile(FONT_PATH, _ASSETS_DIR / "fonts" / "Roboto-Regular.ttf")
shutil.copyfile(FONT_PATH, _ASSETS_DIR / "fonts" / "SourceSansPro-Regular.ttf")

os.environ["PAGINATOR_API_KEY"] = "test-api-key-12345"
os.environ["PAGINATOR_ASSETS_DIR"] = str(_ASSETS_DIR)
os.environ["PAGINATOR_OUTPUT_DIR"] = tempfile.mkdtemp(prefix="paginator_test_output_")

from pdf_paginator.assets import PageAssets  # noqa: E402
from pdf_paginator.configuration import load_settings  # noqa: E402
from pdf_paginator.main import app  # noqa: E402
from pdf_paginator.models import TextStyle, Typography  # noqa: E402

# Text positions that land inside the small test template
TEST_TYPOGRAPHY = Typography(
    title=TextStyle(x=60, y=22, font_size=14, font_weight="bold", color="#FFFFFF", font_family="Roboto"),
    page_number=TextStyle(x=180, y=330, font_size=12, color="#000000", font_family="SourceSansPro"),
)


@pytest.fixture(scope="session", autouse=True)
def test_dirs():
    """Expose and clean up the asset and output directories."""
    yield {
        "assets": str(_ASSETS_DIR),
        "output": os.environ["PAGINATOR_OUTPUT_DIR"],
    }

    shutil.rmtree(_ASSETS_DIR, ignore_errors=True)
    shutil.rmtree(os.environ["PAGINATOR_OUTPUT_DIR"], ignore_errors=True)


@pytest.fixture
def font_bytes() -> bytes:
    return FONT_PATH.read_bytes()


@pytest.fixture
def template_bytes() -> bytes:
    return build_template()


@pytest.fixture
def make_png():
    """Factory for solid-colour PNG page images."""
    return build_png


@pytest.fixture
def page_assets(template_bytes, font_bytes) -> PageAssets:
    return PageAssets(template=template_bytes, title_font=font_bytes, page_number_font=font_bytes)


@pytest.fixture
def typography() -> Typography:
    return TEST_TYPOGRAPHY


@pytest.fixture
def settings():
    """Default settings with the test typography applied."""
    return load_settings({"layout": {"typography": TEST_TYPOGRAPHY.model_dump()}})


@pytest.fixture
def client():
    """Create a test client for the FastAPI app."""
    return TestClient(app)


@pytest.fixture
def api_key():
    return "test-api-key-12345"


@pytest.fixture
def auth_headers(api_key):
    return {"X-API-Key": api_key}
