"""
Page filename conventions.

Pages are named ``{number}_{anything}.png`` (extension case-insensitive,
ASCII digits only). The whole name must match; the leading digit run is the
page number used for ordering and for the printed page label.
"""

from __future__ import annotations

import re

from .errors import InvalidPageName

PAGE_NAME_PATTERN = re.compile(r"^([0-9]+)_.*\.png\Z", re.IGNORECASE)

PAGE_LABEL_PREFIX = "Pág. "


def is_page_name(filename: str) -> bool:
    return PAGE_NAME_PATTERN.match(filename) is not None


def parse_page_ordinal(filename: str) -> int:
    """
    Extract the page number from a page filename.

    Args:
        filename: Name of the page image exactly as submitted

    Returns:
        The integer value of the leading digit run

    Raises:
        InvalidPageName: If the name does not match ``{number}_*.png``

    Example:
        >>> parse_page_ordinal("03_intro.PNG")
        3
    """
    match = PAGE_NAME_PATTERN.match(filename)
    if not match:
        raise InvalidPageName(filename)
    return int(match.group(1))


def format_page_label(ordinal: int) -> str:
    """Printed page number: ``Pág. `` followed by the ordinal padded to two digits."""
    return f"{PAGE_LABEL_PREFIX}{ordinal:02d}"
