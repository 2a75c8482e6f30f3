# src/bot/__init__.py
"""
Транспортный слой - Telegram Bot.
Команды, оплата в Stars и шлюз BotGateway на aiogram 3.x.
"""

from src.bot.app import create_bot, create_dispatcher
from src.bot.gateway import TelegramBotGateway

__all__ = [
    "create_bot",
    "create_dispatcher",
    "TelegramBotGateway",
]
