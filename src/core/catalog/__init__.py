# src/core/catalog/__init__.py
"""
Склад карточек покемонов.
"""

from src.core.catalog.models import Pokemon
from src.core.catalog.repository import PokemonRepository
from src.core.catalog.service import CatalogService

__all__ = [
    "Pokemon",
    "PokemonRepository",
    "CatalogService",
]
