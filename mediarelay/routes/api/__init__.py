"""
API routes package for MediaRelay.
"""

from . import media, uploads

__all__ = ["media", "uploads"]
