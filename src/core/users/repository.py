# src/core/users/repository.py
"""
Репозиторий пользователей.

Все записи идут через INSERT ... ON CONFLICT (telegram_id): пользователь
создаётся при первом обращении, агрегаты получают нули только при вставке.
"""

from __future__ import annotations

from typing import Optional

from asyncpg import Connection, Record

from src.common.constants import UserRole
from src.core.users.models import OwnedCard, User
from src.infra.database import DatabaseManager

_COLUMNS = """
    telegram_id, username, first_name, last_name, purchased_cards,
    total_purchases, total_spent, posts_count, promotions_made,
    role, is_banned, last_active, created_at, updated_at
"""


def row_to_user(row: Record) -> User:
    """Преобразует строку таблицы users в модель."""
    return User(
        telegram_id=row["telegram_id"],
        username=row["username"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        purchased_cards=[OwnedCard(**card) for card in row["purchased_cards"] or []],
        total_purchases=row["total_purchases"],
        total_spent=row["total_spent"],
        posts_count=row["posts_count"],
        promotions_made=row["promotions_made"],
        role=UserRole(row["role"]),
        is_banned=row["is_banned"],
        last_active=row["last_active"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class UserRepository:
    """Репозиторий пользователей."""

    def __init__(self, db: DatabaseManager) -> None:
        """
        Args:
            db: Менеджер базы данных (Dependency Injection)
        """
        self._db = db

    async def get_by_telegram_id(self, telegram_id: int) -> Optional[User]:
        row = await self._db.fetchrow(
            f"SELECT {_COLUMNS} FROM users WHERE telegram_id = $1",
            telegram_id,
        )
        return row_to_user(row) if row else None

    async def upsert_profile(
        self,
        telegram_id: int,
        username: Optional[str],
        first_name: Optional[str],
        last_name: Optional[str],
    ) -> tuple[User, bool]:
        """
        Создаёт пользователя или обновляет только поля профиля.

        Returns:
            (пользователь, True если запись была создана)
        """
        row = await self._db.fetchrow(
            f"""
            INSERT INTO users (telegram_id, username, first_name, last_name, last_active)
            VALUES ($1, $2, $3, $4, NOW())
            ON CONFLICT (telegram_id) DO UPDATE SET
                username = EXCLUDED.username,
                first_name = EXCLUDED.first_name,
                last_name = EXCLUDED.last_name,
                last_active = NOW(),
                updated_at = NOW()
            RETURNING {_COLUMNS}, (xmax = 0) AS inserted
            """,
            telegram_id,
            username,
            first_name,
            last_name,
        )
        return row_to_user(row), bool(row["inserted"])

    async def apply_purchase(
        self,
        conn: Connection,
        telegram_id: int,
        username: Optional[str],
        card: OwnedCard,
        total_price: int,
    ) -> None:
        """
        Зачисляет покупку внутри транзакции расчёта: добавляет карточку в коллекцию
        и увеличивает total_purchases на 1, total_spent на total_price.
        """
        await conn.execute(
            """
            INSERT INTO users (
                telegram_id, username, purchased_cards,
                total_purchases, total_spent, last_active
            )
            VALUES ($1, $2, $3, 1, $4, NOW())
            ON CONFLICT (telegram_id) DO UPDATE SET
                username = COALESCE(EXCLUDED.username, users.username),
                purchased_cards = users.purchased_cards || EXCLUDED.purchased_cards,
                total_purchases = users.total_purchases + 1,
                total_spent = users.total_spent + EXCLUDED.total_spent,
                last_active = NOW(),
                updated_at = NOW()
            """,
            telegram_id,
            username,
            [card.model_dump(mode="json")],
            total_price,
        )

    async def increment_posts(self, telegram_id: int, username: Optional[str]) -> None:
        """Автор опубликовал пост."""
        await self._db.execute(
            """
            INSERT INTO users (telegram_id, username, posts_count, last_active)
            VALUES ($1, $2, 1, NOW())
            ON CONFLICT (telegram_id) DO UPDATE SET
                username = COALESCE(NULLIF(EXCLUDED.username, ''), users.username),
                posts_count = users.posts_count + 1,
                last_active = NOW(),
                updated_at = NOW()
            """,
            telegram_id,
            username,
        )

    async def increment_promotions(self, telegram_id: int) -> None:
        """Пользователь продвинул чужой или свой пост."""
        await self._db.execute(
            """
            INSERT INTO users (telegram_id, promotions_made, last_active)
            VALUES ($1, 1, NOW())
            ON CONFLICT (telegram_id) DO UPDATE SET
                promotions_made = users.promotions_made + 1,
                last_active = NOW(),
                updated_at = NOW()
            """,
            telegram_id,
        )

    async def list_top_by_spent(self, limit: int) -> list[User]:
        rows = await self._db.fetch(
            f"""
            SELECT {_COLUMNS} FROM users
            ORDER BY total_spent DESC, telegram_id
            LIMIT $1
            """,
            limit,
        )
        return [row_to_user(row) for row in rows]
