# src/core/catalog/service.py
"""
Сервис склада: чтение каталога для Mini App.
"""

from __future__ import annotations

from src.common.errors import NotFoundError
from src.common.validation import parse_uuid
from src.core.catalog.models import Pokemon
from src.core.catalog.repository import PokemonRepository
from src.infra.database import DatabaseManager


class CatalogService:
    """Чтение карточек. Остатки меняет только расчёт покупок."""

    def __init__(self, db: DatabaseManager) -> None:
        self._repo = PokemonRepository(db)

    async def list_pokemons(self) -> list[Pokemon]:
        return await self._repo.list_all()

    async def get_pokemon(self, pokemon_id: str) -> Pokemon:
        """
        Карточка по UUID.

        Raises:
            InvalidInputError: некорректный UUID
            NotFoundError: карточки нет
        """
        pokemon = await self._repo.get_by_id(parse_uuid(pokemon_id, "pokemon_id"))
        if pokemon is None:
            raise NotFoundError("Pokemon not found", details={"pokemon_id": pokemon_id})
        return pokemon
