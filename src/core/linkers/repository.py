# src/core/linkers/repository.py
"""
Репозиторий постов ленты.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from asyncpg import Record

from src.common.constants import LinkerType
from src.core.linkers.models import Linker
from src.infra.database import DatabaseManager

_COLUMNS = """
    id, user_id, username, content, type, tags, links,
    promotions, promoted_by, created_at, updated_at
"""


def row_to_linker(row: Record) -> Linker:
    """Преобразует строку таблицы linkers в модель."""
    return Linker(
        id=str(row["id"]),
        user_id=row["user_id"],
        username=row["username"],
        content=row["content"],
        type=LinkerType(row["type"]),
        tags=list(row["tags"] or []),
        links=list(row["links"] or []),
        promotions=row["promotions"],
        promoted_by=list(row["promoted_by"] or []),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class LinkerRepository:
    """Репозиторий постов."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def get_by_id(self, linker_id: UUID) -> Optional[Linker]:
        row = await self._db.fetchrow(
            f"SELECT {_COLUMNS} FROM linkers WHERE id = $1",
            linker_id,
        )
        return row_to_linker(row) if row else None

    async def find_by_link(self, url: str) -> Optional[Linker]:
        """Самый ранний пост, среди ссылок которого есть url."""
        row = await self._db.fetchrow(
            f"""
            SELECT {_COLUMNS} FROM linkers
            WHERE $1 = ANY(links)
            ORDER BY created_at
            LIMIT 1
            """,
            url,
        )
        return row_to_linker(row) if row else None

    async def create(
        self,
        user_id: int,
        username: str,
        content: str,
        linker_type: LinkerType,
        tags: list[str],
        links: list[str],
    ) -> Linker:
        """Новый пост с нулём продвижений и пустым promoted_by."""
        row = await self._db.fetchrow(
            f"""
            INSERT INTO linkers (user_id, username, content, type, tags, links)
            VALUES ($1, $2, $3, $4, $5, $6)
            RETURNING {_COLUMNS}
            """,
            user_id,
            username,
            content,
            linker_type.value,
            tags,
            links,
        )
        return row_to_linker(row)

    async def promote_once(self, linker_id: UUID, user_id: int) -> Optional[Linker]:
        """
        Засчитывает продвижение одним условным UPDATE.

        Проверка "пользователя ещё нет в promoted_by" и добавление выполняются
        под блокировкой строки, поэтому параллельные дубли не увеличат счётчик дважды.

        Returns:
            Обновлённый пост или None (поста нет, либо пользователь уже продвигал)
        """
        row = await self._db.fetchrow(
            f"""
            UPDATE linkers
            SET promotions = promotions + 1,
                promoted_by = array_append(promoted_by, $2),
                updated_at = NOW()
            WHERE id = $1 AND NOT ($2 = ANY(promoted_by))
            RETURNING {_COLUMNS}
            """,
            linker_id,
            user_id,
        )
        return row_to_linker(row) if row else None

    async def update_content(
        self,
        linker_id: UUID,
        content: str,
        linker_type: LinkerType,
        tags: list[str],
        links: list[str],
    ) -> Optional[Linker]:
        row = await self._db.fetchrow(
            f"""
            UPDATE linkers
            SET content = $2, type = $3, tags = $4, links = $5, updated_at = NOW()
            WHERE id = $1
            RETURNING {_COLUMNS}
            """,
            linker_id,
            content,
            linker_type.value,
            tags,
            links,
        )
        return row_to_linker(row) if row else None

    async def delete(self, linker_id: UUID) -> bool:
        status = await self._db.execute("DELETE FROM linkers WHERE id = $1", linker_id)
        return status.endswith(" 1")

    async def list_recent(self, limit: int) -> list[Linker]:
        rows = await self._db.fetch(
            f"SELECT {_COLUMNS} FROM linkers ORDER BY created_at DESC LIMIT $1",
            limit,
        )
        return [row_to_linker(row) for row in rows]

    async def list_all(self) -> list[Linker]:
        """Вся коллекция, новые первыми (ранжирование popular)."""
        rows = await self._db.fetch(f"SELECT {_COLUMNS} FROM linkers ORDER BY created_at DESC")
        return [row_to_linker(row) for row in rows]

    async def list_by_tag(self, tag: str, limit: int) -> list[Linker]:
        rows = await self._db.fetch(
            f"""
            SELECT {_COLUMNS} FROM linkers
            WHERE $1 = ANY(tags)
            ORDER BY created_at DESC
            LIMIT $2
            """,
            tag,
            limit,
        )
        return [row_to_linker(row) for row in rows]
