# src/core/payments/repository.py
"""
Журнал покупок.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from asyncpg import Connection, Record

from src.common.constants import PaymentStatus
from src.core.payments.models import Purchase
from src.infra.database import DatabaseManager

_COLUMNS = """
    id, user_id, username, pokemon_id, pokemon_name, units, total_price,
    status, telegram_payment_id, invoice_payload, created_at, updated_at, completed_at
"""


def row_to_purchase(row: Record) -> Purchase:
    return Purchase(
        id=str(row["id"]),
        user_id=row["user_id"],
        username=row["username"],
        pokemon_id=str(row["pokemon_id"]),
        pokemon_name=row["pokemon_name"],
        units=row["units"],
        total_price=row["total_price"],
        status=PaymentStatus(row["status"]),
        telegram_payment_id=row["telegram_payment_id"],
        invoice_payload=row["invoice_payload"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        completed_at=row["completed_at"],
    )


class PurchaseRepository:
    """Репозиторий покупок. Переходы статуса выполняются только условными UPDATE."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def create_pending(
        self,
        user_id: int,
        pokemon_id: UUID,
        pokemon_name: str,
        units: int,
        total_price: int,
        invoice_payload: str,
    ) -> Purchase:
        """Записывает покупку в статусе pending под уникальным payload."""
        row = await self._db.fetchrow(
            f"""
            INSERT INTO purchases (
                user_id, pokemon_id, pokemon_name, units, total_price,
                status, invoice_payload
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7)
            RETURNING {_COLUMNS}
            """,
            user_id,
            pokemon_id,
            pokemon_name,
            units,
            total_price,
            PaymentStatus.PENDING.value,
            invoice_payload,
        )
        return row_to_purchase(row)

    async def get_by_payload(self, invoice_payload: str) -> Optional[Purchase]:
        row = await self._db.fetchrow(
            f"SELECT {_COLUMNS} FROM purchases WHERE invoice_payload = $1",
            invoice_payload,
        )
        return row_to_purchase(row) if row else None

    async def list_completed_by_user(self, user_id: int) -> list[Purchase]:
        rows = await self._db.fetch(
            f"""
            SELECT {_COLUMNS} FROM purchases
            WHERE user_id = $1 AND status = $2
            ORDER BY completed_at DESC
            """,
            user_id,
            PaymentStatus.COMPLETED.value,
        )
        return [row_to_purchase(row) for row in rows]

    async def claim_pending(
        self,
        conn: Connection,
        invoice_payload: str,
        username: Optional[str],
        telegram_payment_id: str,
    ) -> Optional[Purchase]:
        """
        Переводит pending -> completed внутри транзакции расчёта.

        Условие status = 'pending' в WHERE делает переход compare-and-swap:
        второй конкурент после коммита первого не найдёт строку.

        Returns:
            Завершённая покупка или None, если pending-записи с таким payload нет
        """
        row = await conn.fetchrow(
            f"""
            UPDATE purchases
            SET status = $2,
                username = COALESCE($3, username),
                telegram_payment_id = $4,
                completed_at = NOW(),
                updated_at = NOW()
            WHERE invoice_payload = $1 AND status = $5
            RETURNING {_COLUMNS}
            """,
            invoice_payload,
            PaymentStatus.COMPLETED.value,
            username,
            telegram_payment_id,
            PaymentStatus.PENDING.value,
        )
        return row_to_purchase(row) if row else None

    async def record_unsettled_charge(
        self,
        invoice_payload: str,
        telegram_payment_id: str,
        username: Optional[str],
    ) -> bool:
        """
        Сохраняет ID платежа на покупке, которая осталась pending после
        проваленного расчёта: такие записи разбираются оператором вручную.
        """
        status = await self._db.execute(
            """
            UPDATE purchases
            SET telegram_payment_id = $2,
                username = COALESCE($3, username),
                updated_at = NOW()
            WHERE invoice_payload = $1 AND status = $4
            """,
            invoice_payload,
            telegram_payment_id,
            username,
            PaymentStatus.PENDING.value,
        )
        return status.endswith(" 1")
