"""
PDF assembly from composited page images.

Each image becomes one PDF page whose size in points is its size in pixels
times 0.75 (96 DPI source pixels to 72 DPI PDF points), with the image
drawn edge to edge. Transparent pixels keep their alpha as a soft mask so
the white page shows through.
"""

from __future__ import annotations

import logging
import os
import tempfile
from io import BytesIO
from pathlib import Path
from typing import Optional, Sequence, Tuple

from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from .errors import DocumentWriteError

logger = logging.getLogger(__name__)

PIXELS_TO_POINTS = 0.75


def page_size_in_points(width: int, height: int) -> Tuple[float, float]:
    return width * PIXELS_TO_POINTS, height * PIXELS_TO_POINTS


def render_pdf(
    page_buffers: Sequence[bytes],
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> bytes:
    """
    Build the PDF in memory.

    Args:
        page_buffers: Encoded page images in document order
        width: Pixel width applied to every page (only with ``height``)
        height: Pixel height applied to every page (only with ``width``)

    Returns:
        PDF bytes; invariant mode keeps them free of timestamps

    Raises:
        DocumentWriteError: If there are no pages or an image cannot be embedded
    """
    if not page_buffers:
        raise DocumentWriteError("Cannot generate a document without pages")

    output = BytesIO()
    pdf = canvas.Canvas(output, invariant=1, pageCompression=1)
    for index, buffer in enumerate(page_buffers, start=1):
        try:
            image = ImageReader(BytesIO(buffer))
            if width and height:
                page_width, page_height = page_size_in_points(width, height)
            else:
                page_width, page_height = page_size_in_points(*image.getSize())
            pdf.setPageSize((page_width, page_height))
            pdf.drawImage(image, 0, 0, width=page_width, height=page_height, mask="auto")
            pdf.showPage()
        except Exception as exc:  # noqa: BLE001
            raise DocumentWriteError(f"Failed to add page {index} to the document: {exc}") from exc

    try:
        pdf.save()
    except Exception as exc:  # noqa: BLE001
        raise DocumentWriteError(f"Failed to finalise the document: {exc}") from exc
    return output.getvalue()


def write_atomically(data: bytes, destination: Path) -> Path:
    """
    Write ``data`` to ``destination`` through a temporary sibling file.

    The destination only ever holds a complete document; the temporary file
    is removed if anything goes wrong.

    Raises:
        DocumentWriteError: On any filesystem error
    """
    destination = Path(destination)
    tmp_name: Optional[str] = None
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{destination.name}.", suffix=".tmp", dir=destination.parent)
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        os.replace(tmp_name, destination)
        tmp_name = None
    except OSError as exc:
        raise DocumentWriteError(f"Failed to write document to {destination}: {exc}") from exc
    finally:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
    return destination


def generate_document(
    page_buffers: Sequence[bytes],
    width: Optional[int] = None,
    height: Optional[int] = None,
    destination: Optional[Path] = None,
    return_bytes: bool = False,
) -> Optional[bytes]:
    """
    Assemble ``page_buffers`` into one PDF, one page per buffer, in order.

    Page sizes are taken from each image unless ``width`` and ``height`` are
    both given, in which case every page uses that pixel size.

    Args:
        page_buffers: Encoded page images in document order
        width: Optional uniform page width in pixels
        height: Optional uniform page height in pixels
        destination: File to write; when omitted the bytes are returned
        return_bytes: Also return the bytes after writing ``destination``

    Returns:
        The PDF bytes when requested or when there is no destination, else None

    Raises:
        DocumentWriteError: If assembly or writing fails
    """
    pdf_bytes = render_pdf(page_buffers, width, height)

    if destination is not None:
        write_atomically(pdf_bytes, Path(destination))
        logger.info(f"PDF generated successfully: {destination} ({len(page_buffers)} page(s))")

    if return_bytes or destination is None:
        return pdf_bytes
    return None
