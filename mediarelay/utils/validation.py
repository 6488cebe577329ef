"""
Validation utilities for MediaRelay.
Contains common validation functions used across the application.
"""

import re
from typing import Optional

_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.\-]*$")
_DIRECTIVE_VALUE_PATTERN = re.compile(r"^[A-Za-z0-9_.:\-]+$")
_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9_.\-]")


def is_valid_identifier(identifier: Optional[str]) -> bool:
    """Validate a media identifier to prevent path traversal or URL injection."""
    if not identifier or not identifier.strip():
        return False

    # Disallow traversal and path-like prefixes
    if ".." in identifier or "/" in identifier or "\\" in identifier:
        return False

    return bool(_IDENTIFIER_PATTERN.fullmatch(identifier))


def is_safe_directive_value(value: Optional[str]) -> bool:
    """Return True if the value can be embedded in a transform URL segment."""
    if not value:
        return False
    return bool(_DIRECTIVE_VALUE_PATTERN.fullmatch(value))


def sanitize_filename(filename: str) -> str:
    """Sanitize filename to prevent security issues."""
    # Remove path separators and other dangerous characters
    dangerous_chars = ["/", "\\", ":", "*", "?", '"', "<", ">", "|"]
    sanitized = filename

    for char in dangerous_chars:
        sanitized = sanitized.replace(char, "_")

    return sanitized


def to_storage_name(filename: str) -> str:
    """Reduce an uploaded filename to characters that are valid in an identifier."""
    name = _UNSAFE_NAME_CHARS.sub("_", sanitize_filename(filename or "").strip())
    while ".." in name:
        name = name.replace("..", ".")
    return name.strip("._") or "file"
