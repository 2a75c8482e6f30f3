# src/core/access/repository.py
"""
Репозиторий посещений.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from asyncpg import Record

from src.core.access.models import DailyStat, PageAccess
from src.infra.database import DatabaseManager

_COLUMNS = """
    id, user_id, username, first_name, last_name, page_url,
    user_agent, ip_address, created_at
"""


def row_to_access(row: Record) -> PageAccess:
    return PageAccess(**dict(row))


class AccessRepository:
    """Журнал посещений, только вставка и агрегаты."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def insert(
        self,
        user_id: int,
        username: Optional[str],
        first_name: Optional[str],
        last_name: Optional[str],
        page_url: str,
        user_agent: Optional[str],
        ip_address: Optional[str],
    ) -> PageAccess:
        row = await self._db.fetchrow(
            f"""
            INSERT INTO page_accesses (
                user_id, username, first_name, last_name,
                page_url, user_agent, ip_address
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7)
            RETURNING {_COLUMNS}
            """,
            user_id,
            username,
            first_name,
            last_name,
            page_url,
            user_agent,
            ip_address,
        )
        return row_to_access(row)

    async def recent_exists(self, user_id: int, page_url: str, window_seconds: int) -> bool:
        """Было ли посещение этой страницы пользователем за последние window_seconds."""
        return bool(
            await self._db.fetchval(
                """
                SELECT EXISTS (
                    SELECT 1 FROM page_accesses
                    WHERE user_id = $1 AND page_url = $2
                      AND created_at >= NOW() - make_interval(secs => $3)
                )
                """,
                user_id,
                page_url,
                float(window_seconds),
            )
        )

    async def totals(self) -> Record:
        """Всего посещений, уникальных пользователей и посещений за сутки."""
        return await self._db.fetchrow(
            """
            SELECT
                COUNT(*) AS total,
                COUNT(DISTINCT user_id) AS unique_users,
                COUNT(*) FILTER (WHERE created_at >= NOW() - INTERVAL '24 hours') AS last_24h
            FROM page_accesses
            """
        )

    async def daily(self, since: datetime) -> list[DailyStat]:
        rows = await self._db.fetch(
            """
            SELECT
                (created_at AT TIME ZONE 'UTC')::date AS day,
                COUNT(*) AS count,
                COUNT(DISTINCT user_id) AS unique_users
            FROM page_accesses
            WHERE created_at >= $1
            GROUP BY day
            ORDER BY day DESC
            """,
            since,
        )
        return [
            DailyStat(date=row["day"], count=row["count"], unique_users=row["unique_users"])
            for row in rows
        ]

    async def history(self, user_id: int, limit: int) -> list[PageAccess]:
        rows = await self._db.fetch(
            f"""
            SELECT {_COLUMNS} FROM page_accesses
            WHERE user_id = $1
            ORDER BY created_at DESC
            LIMIT $2
            """,
            user_id,
            limit,
        )
        return [row_to_access(row) for row in rows]
