# src/bot/app.py
"""
Инициализация Telegram бота.
Создание Bot и Dispatcher, меню команд, настройка webhook/polling.
"""

from __future__ import annotations

import redis.asyncio as redis
from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.fsm.storage.base import DefaultKeyBuilder
from aiogram.fsm.storage.redis import RedisStorage
from aiogram.types import BotCommand

from src.common.constants import TypeMsg
from src.common.logger import get_logger, log_info

logger = get_logger("bot")

BOT_COMMANDS = [
    BotCommand(command="start", description="Welcome message"),
    BotCommand(command="collection", description="Your Pokemon cards"),
    BotCommand(command="stats", description="Your statistics"),
    BotCommand(command="leaderboard", description="Top collectors"),
    BotCommand(command="help", description="All commands"),
]


def create_bot(token: str | None = None) -> Bot:
    """
    Создаёт экземпляр бота с HTML-разметкой по умолчанию.

    Args:
        token: Токен бота (если None, берётся из конфига)
    """
    if token is None:
        from src.config import settings
        token = settings.telegram.BOT_TOKEN

    if not token:
        raise ValueError("BOT_TOKEN не задан")

    return Bot(
        token=token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )


def create_dispatcher(redis_url: str | None = None, namespace: str | None = None) -> Dispatcher:
    """
    Создаёт диспетчер с Redis storage, роутерами и middleware.

    Args:
        redis_url: URL Redis (если None, берётся из конфига)
        namespace: Префикс ключей FSM
    """
    if redis_url is None:
        from src.config import settings
        redis_url = settings.redis.url
        namespace = settings.redis.REDIS_NAMESPACE

    storage = RedisStorage(
        redis.from_url(redis_url),
        key_builder=DefaultKeyBuilder(prefix=f"{namespace or 'poke'}:fsm"),
    )
    dp = Dispatcher(storage=storage)

    from src.bot.handlers import register_routers
    register_routers(dp)

    from src.bot.middleware import register_middleware
    register_middleware(dp)

    return dp


async def set_commands(bot: Bot) -> None:
    """Публикует меню команд бота."""
    await bot.set_my_commands(BOT_COMMANDS)


async def setup_webhook(bot: Bot, webhook_url: str, secret: str | None = None) -> None:
    """
    Настраивает webhook. Оплаты и pre-checkout приходят тем же апдейтом.

    Args:
        bot: Экземпляр бота
        webhook_url: URL webhook
        secret: Секретный токен для заголовка X-Telegram-Bot-Api-Secret-Token
    """
    await log_info(f"Настройка webhook: {webhook_url}", type_msg=TypeMsg.INFO)

    await bot.set_webhook(
        url=webhook_url,
        secret_token=secret or None,
        allowed_updates=["message", "pre_checkout_query"],
        drop_pending_updates=False,
    )


async def remove_webhook(bot: Bot) -> None:
    """Удаляет webhook перед переходом на polling."""
    await bot.delete_webhook(drop_pending_updates=False)
    await log_info("Webhook удалён", type_msg=TypeMsg.INFO)
