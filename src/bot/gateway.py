# src/bot/gateway.py
"""
Реализация BotGateway на aiogram: счета в Telegram Stars и служебные сообщения.
"""

from __future__ import annotations

from typing import Optional

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError
from aiogram.types import LabeledPrice

from src.common.errors import SettlementError
from src.common.logger import log_error, log_warning
from src.config.loader import TelegramLogTarget
from src.core.payments.models import InvoiceLineItem

PAYMENT_SUCCESS_TEXT = "✅ Payment successful! Your Pokemon cards have been added to your collection."
PAYMENT_FAILURE_TEXT = "❌ Sorry, there was an error processing your payment. Please contact support."


class TelegramBotGateway:
    """Порт расчёта покупок к Telegram Bot API."""

    def __init__(
        self,
        bot: Bot,
        payments_chat: Optional[TelegramLogTarget] = None,
        currency: str = "XTR",
    ) -> None:
        """
        Args:
            bot: Экземпляр бота
            payments_chat: Чат операторов для алертов по оплатам
            currency: Валюта счетов (XTR для Stars)
        """
        self._bot = bot
        self._payments_chat = payments_chat
        self._currency = currency

    async def deliver_invoice(
        self,
        user_id: int,
        title: str,
        description: str,
        payload: str,
        line_items: list[InvoiceLineItem],
    ) -> str:
        """
        Отправляет счёт в чат пользователя и возвращает ссылку на такой же счёт.

        Для Stars provider_token пустой.

        Raises:
            SettlementError: Telegram отклонил счёт
        """
        prices = [LabeledPrice(label=item.label, amount=item.amount) for item in line_items]
        try:
            await self._bot.send_invoice(
                chat_id=user_id,
                title=title,
                description=description,
                payload=payload,
                provider_token="",
                currency=self._currency,
                prices=prices,
            )
            return await self._bot.create_invoice_link(
                title=title,
                description=description,
                payload=payload,
                provider_token="",
                currency=self._currency,
                prices=prices,
            )
        except TelegramAPIError as e:
            await log_error(
                f"Telegram не принял счёт для {user_id}: {e}",
                extra={"invoice_payload": payload},
            )
            raise SettlementError(
                "Failed to create invoice",
                details={"user_id": user_id, "reason": str(e)},
            ) from e

    async def notify_payment_outcome(self, user_id: int, succeeded: bool) -> None:
        text = PAYMENT_SUCCESS_TEXT if succeeded else PAYMENT_FAILURE_TEXT
        try:
            await self._bot.send_message(chat_id=user_id, text=text)
        except TelegramAPIError as e:
            await log_warning(f"Не удалось уведомить {user_id} об оплате: {e}")

    async def alert_operators(self, text: str) -> None:
        target = self._payments_chat
        if target is None or not target.permission:
            return
        try:
            await self._bot.send_message(
                chat_id=target.chat_id,
                text=text,
                message_thread_id=target.message_thread_id,
                parse_mode=None,
            )
        except TelegramAPIError as e:
            await log_error(f"Не удалось отправить алерт операторам: {e}")
