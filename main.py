#!/usr/bin/env python3
# main.py
"""
Главная точка входа Poke Mini App.
Запускает Telegram Bot, REST API или оба компонента в одном процессе.
"""

from __future__ import annotations

import asyncio
import signal
import sys

from aiogram import Bot

from src.config import settings
from src.common.logger import setup_logging, log_info, log_error, log_warning
from src.common.constants import TypeMsg
from src.infra.database import init_db, close_db
from src.infra.redis_client import init_redis, close_redis

VALID_MODES = ("all", "bot", "api")

# Глобальный флаг для graceful shutdown
_shutdown_event: asyncio.Event | None = None
_running_tasks: list[asyncio.Task] = []


def setup_signal_handlers() -> None:
    """Настраивает обработчики сигналов для graceful shutdown."""
    global _shutdown_event
    _shutdown_event = asyncio.Event()

    def signal_handler(sig: int) -> None:
        if _shutdown_event and not _shutdown_event.is_set():
            print(f"\nПолучен сигнал остановки (sig={sig}), завершаем работу...")
            _shutdown_event.set()
            for task in _running_tasks:
                if not task.done():
                    task.cancel()

    try:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))
    except NotImplementedError:
        # Windows не поддерживает add_signal_handler
        signal.signal(signal.SIGINT, lambda s, f: signal_handler(s))
        signal.signal(signal.SIGTERM, lambda s, f: signal_handler(s))


async def init_infrastructure() -> None:
    """Подключает PostgreSQL (со схемой) и Redis."""
    await log_info("Инициализация инфраструктуры...", type_msg=TypeMsg.INFO)

    await init_db()
    await log_info("PostgreSQL подключён", type_msg=TypeMsg.DEBUG)

    await init_redis()
    await log_info("Redis подключён", type_msg=TypeMsg.DEBUG)

    await log_info("Инфраструктура инициализирована", type_msg=TypeMsg.INFO)


async def close_infrastructure() -> None:
    """Закрывает все подключения."""
    await log_info("Закрытие подключений...", type_msg=TypeMsg.INFO)

    await close_redis()
    await close_db()

    await log_info("Подключения закрыты", type_msg=TypeMsg.INFO)


async def _wait_for_shutdown() -> None:
    if _shutdown_event:
        await _shutdown_event.wait()
    else:
        await asyncio.Event().wait()


async def run_webhook_server(bot: Bot, dp) -> None:
    """Принимает апдейты Telegram через aiohttp до сигнала остановки."""
    from aiohttp import web
    from aiogram.types import Update

    from src.bot.app import setup_webhook

    secret = settings.telegram.WEBHOOK_SECRET
    await setup_webhook(bot=bot, webhook_url=settings.telegram.WEBHOOK_URL_MAIN, secret=secret)

    async def handle_webhook(request: web.Request) -> web.Response:
        if secret and request.headers.get("X-Telegram-Bot-Api-Secret-Token") != secret:
            return web.Response(status=403)
        update = Update.model_validate(await request.json(), context={"bot": bot})
        await dp.feed_update(bot, update)
        return web.Response()

    app = web.Application()
    app.router.add_post(f"{settings.telegram.WEBHOOK_PATH}/{settings.telegram.BOT_TOKEN}", handle_webhook)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(
        runner,
        host=settings.telegram.WEBAPP_HOST,
        port=settings.telegram.WEBAPP_PORT,
    )
    await site.start()
    await log_info(
        f"Bot запущен в режиме webhook на {settings.telegram.WEBAPP_HOST}:{settings.telegram.WEBAPP_PORT}",
        type_msg=TypeMsg.INFO,
    )

    try:
        await _wait_for_shutdown()
    finally:
        await log_info("Bot (webhook): остановка сервера...", type_msg=TypeMsg.DEBUG)
        await runner.cleanup()


async def run_bot(bot: Bot) -> None:
    """Запускает Telegram Bot: webhook, если он включён и настраивается, иначе polling."""
    from aiogram.exceptions import TelegramAPIError

    from src.bot.app import create_dispatcher, remove_webhook, set_commands

    await log_info("Запуск Telegram Bot...", type_msg=TypeMsg.INFO)
    dp = create_dispatcher()

    try:
        await set_commands(bot)
    except TelegramAPIError as e:
        await log_warning(f"Не удалось опубликовать меню команд: {e}")

    use_webhook = settings.telegram.USE_WEBHOOK
    webhook_url = settings.telegram.WEBHOOK_URL_MAIN

    try:
        if use_webhook and webhook_url:
            try:
                await run_webhook_server(bot, dp)
                return
            except (TelegramAPIError, OSError) as e:
                await log_error(f"Не удалось настроить webhook: {e}")
                await log_info("Переключение на режим polling...", type_msg=TypeMsg.INFO)

        try:
            await remove_webhook(bot)
        except TelegramAPIError as e:
            await log_warning(f"Не удалось удалить webhook: {e}")

        await log_info("Bot запущен в режиме polling", type_msg=TypeMsg.INFO)
        await dp.start_polling(bot, handle_signals=False)
    except asyncio.CancelledError:
        await log_info("Bot: получен сигнал остановки", type_msg=TypeMsg.DEBUG)
        raise
    finally:
        await dp.storage.close()
        await log_info("Bot остановлен", type_msg=TypeMsg.INFO)


async def run_api() -> None:
    """Запускает REST API на uvicorn в текущем event loop."""
    import uvicorn

    from src.services.api.app import create_app

    await log_info(
        f"Запуск REST API на {settings.api.API_HOST}:{settings.api.API_PORT}...",
        type_msg=TypeMsg.INFO,
    )

    config = uvicorn.Config(
        create_app(manage_infrastructure=False),
        host=settings.api.API_HOST,
        port=settings.api.API_PORT,
        log_level="debug" if settings.system.DEBUG else "info",
    )
    server = uvicorn.Server(config)
    try:
        await server.serve()
    except asyncio.CancelledError:
        await log_info("REST API: graceful shutdown", type_msg=TypeMsg.DEBUG)
        server.should_exit = True
        raise


async def main(mode: str | None = None) -> None:
    """
    Главная функция запуска.

    Args:
        mode: Режим запуска (all, bot, api). Если None, берётся COMPONENT_MODE.
    """
    global _running_tasks

    setup_logging()
    setup_signal_handlers()

    mode = mode or settings.system.COMPONENT_MODE
    if mode not in VALID_MODES:
        await log_error(f"Неизвестный режим: {mode}")
        return

    await log_info(
        f"Poke Mini App v{settings.system.VERSION} - запуск в режиме '{mode}'",
        type_msg=TypeMsg.INFO,
    )

    from src.bot.app import create_bot
    from src.bot.dependencies import init_gateway

    bot: Bot | None = None
    try:
        await init_infrastructure()

        # Счета выставляет API, а оплаты принимает бот: шлюз нужен в любом режиме
        bot = create_bot()
        init_gateway(bot)

        if mode == "bot":
            _running_tasks = [asyncio.create_task(run_bot(bot))]
        elif mode == "api":
            _running_tasks = [asyncio.create_task(run_api())]
        else:
            _running_tasks = [
                asyncio.create_task(run_bot(bot)),
                asyncio.create_task(run_api()),
            ]

        results = await asyncio.gather(*_running_tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                await log_error(f"Компонент завершился с ошибкой: {result}")

    except asyncio.CancelledError:
        await log_info("Задача отменена, выполняется graceful shutdown", type_msg=TypeMsg.INFO)
    finally:
        if _running_tasks:
            for task in _running_tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*_running_tasks, return_exceptions=True)
            _running_tasks.clear()

        if bot is not None:
            await bot.session.close()

        await log_info("Завершение работы, закрытие подключений...", type_msg=TypeMsg.INFO)
        await close_infrastructure()
        await log_info("Приложение остановлено", type_msg=TypeMsg.INFO)


def print_usage() -> None:
    print("""
Использование: python main.py [режим]

Режимы:
    all    - Telegram Bot + REST API в одном процессе
    bot    - только Telegram Bot (команды и приём оплат)
    api    - только REST API для Mini App

Без аргумента режим берётся из COMPONENT_MODE (по умолчанию all).
    """)


if __name__ == "__main__":
    mode = None

    if len(sys.argv) > 1:
        arg = sys.argv[1].lower()
        if arg in ("--help", "-h"):
            print_usage()
            sys.exit(0)
        elif arg in VALID_MODES:
            mode = arg
        else:
            print(f"Ошибка: неизвестный режим '{arg}'")
            print_usage()
            sys.exit(1)

    try:
        asyncio.run(main(mode))
    except KeyboardInterrupt:
        pass
