"""
Routes package for MediaRelay.
This package contains all the route modules for the application.
"""

from . import cdn, media, web
from .api import media as api_media, uploads as api_uploads

__all__ = ["cdn", "media", "web", "api_media", "api_uploads"]
