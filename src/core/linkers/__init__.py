# src/core/linkers/__init__.py
"""
Лента ссылок (Linkers): посты, продвижения, ранжирование.
"""

from src.core.linkers.links import extract_links
from src.core.linkers.models import Linker
from src.core.linkers.ranking import popularity_score, rank_popular
from src.core.linkers.repository import LinkerRepository
from src.core.linkers.service import LinkerService

__all__ = [
    "extract_links",
    "Linker",
    "popularity_score",
    "rank_popular",
    "LinkerRepository",
    "LinkerService",
]
