# src/core/catalog/repository.py
"""
Репозиторий склада карточек.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from asyncpg import Connection, Record

from src.core.catalog.models import Pokemon
from src.infra.database import DatabaseManager

_COLUMNS = """
    id, pokemon_id, name, image, types, height, weight, rarity,
    total_units, available_units, price_per_unit, created_at, updated_at
"""


def row_to_pokemon(row: Record) -> Pokemon:
    """Преобразует строку таблицы pokemons в модель."""
    return Pokemon(
        id=str(row["id"]),
        pokemon_id=row["pokemon_id"],
        name=row["name"],
        image=row["image"],
        types=list(row["types"] or []),
        height=row["height"],
        weight=row["weight"],
        rarity=row["rarity"],
        total_units=row["total_units"],
        available_units=row["available_units"],
        price_per_unit=row["price_per_unit"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class PokemonRepository:
    """Репозиторий карточек."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def list_all(self) -> list[Pokemon]:
        """Все карточки в порядке Pokedex."""
        rows = await self._db.fetch(f"SELECT {_COLUMNS} FROM pokemons ORDER BY pokemon_id")
        return [row_to_pokemon(row) for row in rows]

    async def get_by_id(self, pokemon_id: UUID) -> Optional[Pokemon]:
        row = await self._db.fetchrow(
            f"SELECT {_COLUMNS} FROM pokemons WHERE id = $1",
            pokemon_id,
        )
        return row_to_pokemon(row) if row else None

    async def decrement_available(
        self,
        conn: Connection,
        pokemon_id: UUID,
        units: int,
    ) -> Optional[int]:
        """
        Списывает units единиц внутри транзакции расчёта.

        Условие available_units >= units проверяется в том же UPDATE,
        поэтому параллельные списания сериализуются блокировкой строки.

        Returns:
            Новый остаток или None, если единиц не хватает (или карточки нет)
        """
        return await conn.fetchval(
            """
            UPDATE pokemons
            SET available_units = available_units - $2,
                updated_at = NOW()
            WHERE id = $1 AND available_units >= $2
            RETURNING available_units
            """,
            pokemon_id,
            units,
        )
