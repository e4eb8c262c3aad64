"""Command line entry points: local batch pagination and the agent server."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import uvicorn

from .assets import load_assets_from_settings
from .configuration import load_settings, parse_dotlist
from .errors import InvalidRequest, PaginatorError
from .pipeline import paginate_pages
from .sequencer import order_pages, scan_pages

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)


def paginate_directory(title: str, root: Path, output: Optional[Path] = None, overrides: Optional[dict] = None) -> Path:
    """
    Scan ``root`` for page images and write the paginated PDF.

    Assets are resolved from configuration (``assets.root`` defaults to the
    current directory). The document goes to ``output`` or to
    ``<root>/<output.filename>``.

    Raises:
        PaginatorError: On a blank title, no pages, missing assets or any page failure
    """
    settings = load_settings(overrides)
    if not title or not title.strip():
        raise InvalidRequest("Please provide a document title")

    assets = load_assets_from_settings(settings.assets)

    root = Path(root)
    if not root.is_dir():
        raise InvalidRequest(f"Directory not found: {root}")

    logger.info(f"Scanning for page files in {root}")
    pages = order_pages(scan_pages(root), allow_duplicates=settings.jobs.allow_duplicate_ordinals)
    if not pages:
        raise InvalidRequest("No numbered page files found (format: {number}_*.png)")

    logger.info(f"Found {len(pages)} page(s):")
    for page in pages:
        logger.info(f"  - Page {page.ordinal}: {page.origin_label}")

    destination = output or (root / settings.output.filename)
    result = paginate_pages(pages, title, assets, settings, destination=destination)
    return result.path


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="pdf-paginator",
        description="Composite numbered page images onto the header/footer template and build one PDF.",
    )
    parser.add_argument("title", help="Document title drawn in the header of every page but the cover")
    parser.add_argument("--root", "-r", type=Path, default=Path("."), help="Directory to scan for {number}_*.png pages (default: current directory)")
    parser.add_argument("--output", "-o", type=Path, default=None, help="Output PDF path (default: <root>/final_document.pdf)")
    parser.add_argument("--set", dest="overrides", action="append", default=[], metavar="KEY=VALUE", help="Configuration override, e.g. layout.content_offset=40 (repeatable)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)
    logger.info("=== PDF Paginator ===")

    try:
        path = paginate_directory(args.title, args.root, args.output, parse_dotlist(args.overrides))
    except PaginatorError as exc:
        logger.error(f"Error: {exc}")
        return 1

    logger.info(f"Done! All pages processed successfully: {path}")
    return 0


def serve(argv: Optional[List[str]] = None) -> int:
    """Run the HTTP/WebSocket agent with uvicorn."""
    parser = argparse.ArgumentParser(prog="pdf-paginator-agent", description="Run the PDF paginator job service.")
    parser.add_argument("--host", default=None, help="Bind address (default from config)")
    parser.add_argument("--port", type=int, default=None, help="Port (default from config or $PORT)")
    args = parser.parse_args(argv)

    _configure_logging()
    # Importing the app creates the job manager and API key
    from .main import app, key_manager, settings

    host = args.host or settings.server.host
    port = args.port or settings.server.port
    logger.info("PDF Paginator Agent - Remote Control Server")
    logger.info(f"HTTP: http://{host}:{port}  WebSocket: ws://{host}:{port}/ws")
    if key_manager.generated:
        logger.info(f"API Key: {key_manager.api_key}")
    uvicorn.run(app, host=host, port=port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
