"""
Page discovery, validation, ordering and sequential compositing.

Pages of one job are always processed one at a time in ascending page order
so that progress notifications and failures can be attributed to a page.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple

from .assets import PageAssets
from .compositor import CONTENT_OFFSET, process_page
from .errors import DuplicatePageOrdinal, JobCancelled
from .models import PageProgress, Typography
from .naming import is_page_name, parse_page_ordinal

logger = logging.getLogger(__name__)

ProgressObserver = Callable[[PageProgress], None]


@dataclass(frozen=True)
class PageDescriptor:
    """
    One source page of a job.

    Attributes:
        ordinal: Page number parsed from the filename
        source_image: Encoded source image
        origin_label: Where the page came from (filename or relative path)
    """

    ordinal: int
    source_image: bytes
    origin_label: str


def build_page_descriptors(files: Iterable[Tuple[str, bytes]]) -> List[PageDescriptor]:
    """
    Turn ``(filename, bytes)`` pairs into descriptors, in input order.

    Every name is validated before the first descriptor is returned, so an
    invalid name fails the job before any page is processed.

    Raises:
        InvalidPageName: For the first filename that does not match
    """
    return [
        PageDescriptor(ordinal=parse_page_ordinal(name), source_image=data, origin_label=name)
        for name, data in files
    ]


def order_pages(descriptors: Iterable[PageDescriptor], allow_duplicates: bool = False) -> List[PageDescriptor]:
    """
    Sort descriptors by ascending page number.

    The sort is stable: with ``allow_duplicates`` pages sharing a number keep
    their input order; without it a repeated number is an error.

    Raises:
        DuplicatePageOrdinal: If two pages share a number and duplicates are not allowed
    """
    ordered = sorted(descriptors, key=lambda d: d.ordinal)
    if not allow_duplicates:
        for previous, current in zip(ordered, ordered[1:]):
            if previous.ordinal == current.ordinal:
                raise DuplicatePageOrdinal(current.ordinal, previous.origin_label, current.origin_label)
    return ordered


def scan_pages(root: Path) -> List[PageDescriptor]:
    """
    Collect page images from ``root`` and its immediate subdirectories.

    Files that do not follow the page naming convention are ignored. Entries
    are visited in name order and the result is stably sorted by page number.
    """
    root = Path(root)
    found: List[PageDescriptor] = []

    def _collect(directory: Path, recurse: bool) -> None:
        for entry in sorted(directory.iterdir(), key=lambda p: p.name):
            if entry.is_dir():
                # only one level deep
                if recurse:
                    _collect(entry, recurse=False)
            elif entry.is_file() and is_page_name(entry.name):
                found.append(
                    PageDescriptor(
                        ordinal=parse_page_ordinal(entry.name),
                        source_image=entry.read_bytes(),
                        origin_label=entry.relative_to(root).as_posix(),
                    )
                )

    _collect(root, recurse=True)
    return sorted(found, key=lambda d: d.ordinal)


def sequence_pages(
    descriptors: List[PageDescriptor],
    assets: PageAssets,
    title: str,
    typography: Optional[Typography] = None,
    content_offset: int = CONTENT_OFFSET,
    observer: Optional[ProgressObserver] = None,
    cancel_event: Optional[threading.Event] = None,
) -> List[bytes]:
    """
    Composite already ordered pages one after another.

    Args:
        descriptors: Pages in the order they should appear
        assets: Template and fonts shared by all pages
        title: Document title drawn on every non-cover page
        typography: Text styles passed through to the compositor
        content_offset: Vertical offset of the page content
        observer: Called once per page, in order, after it is composited
        cancel_event: Checked before each page

    Returns:
        Composited PNG buffers in the same order as ``descriptors``

    Raises:
        PageProcessingError: From the first page that fails; later pages are not attempted
        JobCancelled: If ``cancel_event`` is set between pages
    """
    total = len(descriptors)
    buffers: List[bytes] = []

    for index, descriptor in enumerate(descriptors, start=1):
        if cancel_event is not None and cancel_event.is_set():
            raise JobCancelled(f"Job cancelled before page {descriptor.ordinal}")

        logger.info(f"Processing page {descriptor.ordinal} ({index}/{total}): {descriptor.origin_label}")
        buffers.append(
            process_page(
                descriptor.source_image,
                assets.template,
                title,
                descriptor.ordinal,
                assets.title_font,
                assets.page_number_font,
                typography=typography,
                content_offset=content_offset,
            )
        )

        if observer is not None:
            observer(PageProgress(current=index, total=total, page=descriptor.ordinal))

    return buffers
