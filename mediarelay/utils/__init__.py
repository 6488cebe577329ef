"""
Utils package for MediaRelay.
Contains utility functions and helpers.
"""

from .validation import (
    is_valid_identifier,
    is_safe_directive_value,
    sanitize_filename,
    to_storage_name,
)

__all__ = [
    'is_valid_identifier',
    'is_safe_directive_value',
    'sanitize_filename',
    'to_storage_name',
]
