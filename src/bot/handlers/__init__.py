# src/bot/handlers/__init__.py
"""
Хендлеры Telegram бота.
"""

from aiogram import Dispatcher

from src.bot.handlers.commands import router as commands_router
from src.bot.handlers.payments import router as payments_router


def register_routers(dp: Dispatcher) -> None:
    """
    Регистрирует все роутеры в диспетчере.

    Args:
        dp: Диспетчер
    """
    # Платежи первыми: successful_payment приходит обычным сообщением
    dp.include_router(payments_router)
    dp.include_router(commands_router)


__all__ = [
    "register_routers",
    "commands_router",
    "payments_router",
]
