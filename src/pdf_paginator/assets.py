"""Loading of the template and font blobs the compositor consumes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from .errors import MissingAsset
from .models import AssetPaths

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PageAssets:
    """
    Raw asset bytes shared by every page of a job.

    Attributes:
        template: Encoded header/footer template image
        title_font: Font data for the document title
        page_number_font: Font data for the page label
    """

    template: bytes
    title_font: bytes
    page_number_font: bytes


def _read_asset(path: Path, role: str) -> bytes:
    if not path.is_file():
        raise MissingAsset(str(path), role=role)
    return path.read_bytes()


def load_assets(template_path: Path, title_font_path: Path, page_number_font_path: Path) -> PageAssets:
    """
    Read the template and both fonts from disk.

    Raises:
        MissingAsset: Naming the first file that does not exist
    """
    assets = PageAssets(
        template=_read_asset(Path(template_path), "template"),
        title_font=_read_asset(Path(title_font_path), "title font"),
        page_number_font=_read_asset(Path(page_number_font_path), "page number font"),
    )
    logger.info(f"Loaded assets: template={template_path}")
    return assets


def load_assets_from_settings(paths: AssetPaths) -> PageAssets:
    """Resolve configured asset paths relative to ``paths.root`` and load them."""
    root = Path(paths.root)
    return load_assets(
        root / paths.template,
        root / paths.title_font,
        root / paths.page_number_font,
    )
