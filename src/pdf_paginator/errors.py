"""
Error taxonomy for the pagination pipeline.

Every error raised by the core derives from PaginatorError so the job manager
and the CLI can report any pipeline failure uniformly. None of them are
retried: they are terminal for the job that raised them.
"""

from __future__ import annotations

from typing import Optional


class PaginatorError(Exception):
    """Base class for all pipeline failures."""


class InvalidRequest(PaginatorError):
    """Raised when a job request is malformed (blank title, no files, bad payload)."""


class InvalidPageName(PaginatorError):
    """
    Raised when a filename does not follow the ``{number}_*.png`` convention.

    Attributes:
        filename: The offending filename as supplied by the caller
    """

    def __init__(self, filename: str) -> None:
        self.filename = filename
        super().__init__(f"Invalid filename format: {filename}. Expected: {{number}}_*.png")


class DuplicatePageOrdinal(PaginatorError):
    """Raised when two files resolve to the same page number."""

    def __init__(self, ordinal: int, first: str, second: str) -> None:
        self.ordinal = ordinal
        super().__init__(f"Duplicate page number {ordinal}: {first} and {second}")


class MissingAsset(PaginatorError):
    """Raised when the template or a font file cannot be found."""

    def __init__(self, path: str, role: str = "asset") -> None:
        self.path = path
        self.role = role
        super().__init__(f"{role.capitalize()} file not found: {path}")


class PageProcessingError(PaginatorError):
    """
    Raised when a single page cannot be decoded, resized or composited.

    Attributes:
        ordinal: Page number of the page that failed
    """

    def __init__(self, ordinal: int, message: Optional[str] = None) -> None:
        self.ordinal = ordinal
        detail = f": {message}" if message else ""
        super().__init__(f"Error processing page {ordinal}{detail}")


class DocumentWriteError(PaginatorError):
    """Raised when the PDF cannot be assembled or written to its destination."""


class JobCancelled(PaginatorError):
    """Raised between pages when a job's cancellation flag has been set."""
