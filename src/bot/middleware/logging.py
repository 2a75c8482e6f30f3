# src/bot/middleware/logging.py
"""
Middleware для логирования событий.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware
from aiogram.types import Message, PreCheckoutQuery, TelegramObject

from src.common.logger import log_info, log_error
from src.common.constants import TypeMsg


def describe_event(event: TelegramObject) -> tuple[int | None, str]:
    """(user_id, краткое описание) для строки лога."""
    if isinstance(event, Message):
        user_id = event.from_user.id if event.from_user else None
        if event.successful_payment is not None:
            return user_id, f"[payment {event.successful_payment.total_amount} XTR]"
        return user_id, event.text[:50] if event.text else "[no text]"
    if isinstance(event, PreCheckoutQuery):
        return event.from_user.id, f"[pre-checkout {event.total_amount} XTR]"
    return None, ""


class LoggingMiddleware(BaseMiddleware):
    """
    Middleware логирования.
    Логирует все входящие события и ошибки хендлеров.
    """

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        user_id, event_data = describe_event(event)
        event_type = type(event).__name__

        await log_info(
            f"[{event_type}] user={user_id} data={event_data}",
            type_msg=TypeMsg.DEBUG,
        )

        try:
            return await handler(event, data)
        except Exception as e:
            await log_error(
                f"Ошибка в хендлере: {e}",
                extra={"user_id": user_id, "event_type": event_type},
                exc_info=True,
            )
            raise
