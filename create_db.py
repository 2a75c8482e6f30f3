# create_db.py
"""
Создаёт базу данных из конфига, применяет схему и наполняет каталог
стартовыми карточками, если он пуст.
"""

import asyncio

import asyncpg

from src.config import settings
from src.infra.database import close_db, get_db, init_db

ARTWORK_URL = "https://raw.githubusercontent.com/PokeAPI/sprites/master/sprites/pokemon/other/official-artwork/{}.png"

# (pokemon_id, name, types, height, weight, rarity, total_units, available_units, price_per_unit)
SAMPLE_POKEMONS = [
    (1, "Bulbasaur", ["grass", "poison"], 7, 69, "common", 100, 75, 5),
    (4, "Charmander", ["fire"], 6, 85, "common", 100, 80, 5),
    (25, "Pikachu", ["electric"], 4, 60, "rare", 50, 30, 15),
    (150, "Mewtwo", ["psychic"], 20, 1220, "legendary", 10, 5, 50),
]


async def create_database() -> None:
    """Создаёт базу DB_NAME через служебную базу postgres."""
    db_name = settings.database.DB_NAME
    sys_conn = await asyncpg.connect(
        user=settings.database.DB_USER,
        password=settings.database.DB_PASSWORD,
        host=settings.database.DB_HOST,
        port=settings.database.DB_PORT,
        database="postgres",
    )
    try:
        exists = await sys_conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", db_name)
        if exists:
            print(f"Database {db_name} already exists.")
        else:
            print(f"Creating database {db_name}...")
            await sys_conn.execute(f'CREATE DATABASE "{db_name}"')
            print("Database created.")
    finally:
        await sys_conn.close()


async def seed_catalog() -> None:
    """Стартовые карточки. Непустой каталог не трогается."""
    db = get_db()
    count = await db.fetchval("SELECT COUNT(*) FROM pokemons")
    if count:
        print(f"Catalog already has {count} cards, skipping seed.")
        return

    for pokemon_id, name, types, height, weight, rarity, total, available, price in SAMPLE_POKEMONS:
        await db.execute(
            """
            INSERT INTO pokemons (
                pokemon_id, name, image, types, height, weight, rarity,
                total_units, available_units, price_per_unit
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
            ON CONFLICT (pokemon_id) DO NOTHING
            """,
            pokemon_id, name, ARTWORK_URL.format(pokemon_id), types, height, weight,
            rarity, total, available, price,
        )
    print(f"Seeded {len(SAMPLE_POKEMONS)} cards.")


async def main() -> None:
    await create_database()
    await init_db()
    try:
        await seed_catalog()
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())
