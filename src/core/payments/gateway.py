# src/core/payments/gateway.py
"""
Порт к Telegram: через него расчёт выставляет счета и уведомляет пользователей.
Реализация на aiogram живёт в src/bot/gateway.py.
"""

from __future__ import annotations

from typing import Protocol

from src.core.payments.models import InvoiceLineItem


class BotGateway(Protocol):
    """Операции Telegram Bot API, нужные расчёту покупок."""

    async def deliver_invoice(
        self,
        user_id: int,
        title: str,
        description: str,
        payload: str,
        line_items: list[InvoiceLineItem],
    ) -> str:
        """Показывает пользователю счёт и возвращает ссылку на него."""
        ...

    async def notify_payment_outcome(self, user_id: int, succeeded: bool) -> None:
        """Сообщает пользователю итог оплаты. Ошибки доставки только логируются."""
        ...

    async def alert_operators(self, text: str) -> None:
        """Сигнал операторам о покупке, требующей ручной сверки."""
        ...
