# src/bot/middleware/__init__.py
"""
Middleware для Telegram бота.
"""

from aiogram import Dispatcher

from src.bot.middleware.logging import LoggingMiddleware


def register_middleware(dp: Dispatcher) -> None:
    """
    Регистрирует все middleware в диспетчере.

    Args:
        dp: Диспетчер
    """
    dp.message.middleware(LoggingMiddleware())
    dp.pre_checkout_query.middleware(LoggingMiddleware())


__all__ = [
    "register_middleware",
    "LoggingMiddleware",
]
