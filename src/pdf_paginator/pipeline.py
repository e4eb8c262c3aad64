"""
Stateless end-to-end pipeline: named page images + title -> one PDF.

Both the local batch command and the job service call ``paginate``; neither
the pipeline nor the modules below it keep any state between calls.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from .assembler import generate_document
from .assets import PageAssets
from .compositor import COVER_PAGE
from .errors import InvalidRequest, MissingAsset
from .models import PaginatorSettings
from .sequencer import PageDescriptor, ProgressObserver, build_page_descriptors, order_pages, sequence_pages

logger = logging.getLogger(__name__)


@dataclass
class DocumentResult:
    path: Optional[Path]
    page_count: int
    pdf_bytes: Optional[bytes] = None


def prepare_pages(files: Iterable[Tuple[str, bytes]], allow_duplicates: bool = False) -> List[PageDescriptor]:
    """
    Validate every filename and return the pages in document order.

    Raises:
        InvalidRequest: If there are no files
        InvalidPageName: If any filename is invalid
        DuplicatePageOrdinal: If two files share a page number and duplicates are not allowed
    """
    descriptors = build_page_descriptors(files)
    if not descriptors:
        raise InvalidRequest("At least one file is required")
    return order_pages(descriptors, allow_duplicates=allow_duplicates)


def paginate_pages(
    pages: List[PageDescriptor],
    title: str,
    assets: PageAssets,
    settings: PaginatorSettings,
    destination: Optional[Path] = None,
    observer: Optional[ProgressObserver] = None,
    cancel_event: Optional[threading.Event] = None,
    return_bytes: bool = False,
) -> DocumentResult:
    """Composite already ordered pages and assemble them into a PDF."""
    if not title or not title.strip():
        raise InvalidRequest("Document title is required")
    if not assets.template and any(page.ordinal != COVER_PAGE for page in pages):
        raise MissingAsset("<template>", role="template")

    buffers = sequence_pages(
        pages,
        assets,
        title,
        typography=settings.layout.typography,
        content_offset=settings.layout.content_offset,
        observer=observer,
        cancel_event=cancel_event,
    )
    logger.info(f"Generating PDF with {len(buffers)} page(s)")
    pdf_bytes = generate_document(buffers, destination=destination, return_bytes=return_bytes)
    return DocumentResult(path=destination, page_count=len(buffers), pdf_bytes=pdf_bytes)


def paginate(
    files: Iterable[Tuple[str, bytes]],
    title: str,
    assets: PageAssets,
    settings: PaginatorSettings,
    destination: Optional[Path] = None,
    observer: Optional[ProgressObserver] = None,
    cancel_event: Optional[threading.Event] = None,
    return_bytes: bool = False,
) -> DocumentResult:
    """
    Run the whole pipeline for one document.

    Args:
        files: ``(filename, image bytes)`` pairs in any order
        title: Document title drawn on every non-cover page
        assets: Template and font data
        settings: Layout and job settings
        destination: Where to write the PDF (bytes are returned when omitted)
        observer: Progress callback, invoked once per page in order
        cancel_event: Cooperative cancellation flag checked between pages
        return_bytes: Also keep the PDF bytes in the result

    Returns:
        DocumentResult describing the written document

    Raises:
        PaginatorError: Any pipeline failure; nothing is written in that case
    """
    if not title or not title.strip():
        raise InvalidRequest("Document title is required")
    pages = prepare_pages(files, allow_duplicates=settings.jobs.allow_duplicate_ordinals)
    return paginate_pages(
        pages,
        title,
        assets,
        settings,
        destination=destination,
        observer=observer,
        cancel_event=cancel_event,
        return_bytes=return_bytes,
    )
