"""
Routers package for API endpoints.

This package contains all API route handlers organized by functionality.
"""

from .admin import router as admin_router
from .download import router as download_router
from .formats import router as formats_router
from .redirect import router as redirect_router
from .search import router as search_router
from .usage import router as usage_router

__all__ = [
    "admin_router",
    "download_router",
    "formats_router",
    "redirect_router",
    "search_router",
    "usage_router",
]
