# src/core/access/__init__.py
"""
Учёт посещений страниц Mini App.
"""

from src.core.access.models import PageAccess, TrackAccessRequest
from src.core.access.repository import AccessRepository
from src.core.access.service import AccessService

__all__ = [
    "PageAccess",
    "TrackAccessRequest",
    "AccessRepository",
    "AccessService",
]
