"""
Utility functions for file system operations and payload decoding.

This module provides helper functions for:
- Sanitizing user-provided strings for safe filesystem usage
- Ensuring directory creation with proper error handling
- Decoding base64 page payloads sent by remote clients
"""

from __future__ import annotations

import base64
import binascii
import re
from pathlib import Path

from .errors import InvalidRequest

# Pattern to match characters that are not safe for filesystem paths
# Allows: alphanumeric characters, dots, underscores, and hyphens
SANITIZE_PATTERN = re.compile(r"[^a-zA-Z0-9._-]+")


def sanitize_label(label: str, fallback: str) -> str:
    """
    Generate a filesystem-safe label from user input.

    Args:
        label: The original label string to sanitize
        fallback: Default value to return if sanitization results in an empty string

    Returns:
        A lowercase, filesystem-safe label or the fallback value

    Example:
        >>> sanitize_label("Língua Portuguesa!", "job")
        'l-ngua-portuguesa'
        >>> sanitize_label("@#$", "default-doc")
        'default-doc'
    """
    # Replace non-safe characters with hyphens and normalize whitespace
    cleaned = SANITIZE_PATTERN.sub("-", label.strip())
    # Remove leading/trailing separators and convert to lowercase
    cleaned = cleaned.strip("-_.").lower()
    return cleaned or fallback


def ensure_directory(path: Path) -> Path:
    """
    Create a directory if it doesn't exist, including parent directories.

    Args:
        path: The directory path to create

    Returns:
        The same path object for chaining

    Raises:
        OSError: If directory creation fails due to permissions or other I/O errors
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def decode_base64_payload(data: str, name: str = "file") -> bytes:
    """
    Decode a base64 string, accepting an optional ``data:...;base64,`` prefix.

    Args:
        data: Base64 text, possibly a full data URL
        name: Filename used in the error message

    Returns:
        The decoded bytes

    Raises:
        InvalidRequest: If the payload is empty or not valid base64
    """
    _, _, encoded = data.rpartition(",")
    try:
        decoded = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidRequest(f"File {name} is not valid base64 data") from exc
    if not decoded:
        raise InvalidRequest(f"File {name} is empty")
    return decoded
