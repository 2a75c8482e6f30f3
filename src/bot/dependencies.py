# src/bot/dependencies.py
"""
Dependency Injection для Telegram бота.
Сервисы создаются лениво и живут всё время работы процесса.
"""

from __future__ import annotations

from typing import Optional

from aiogram import Bot

from src.bot.gateway import TelegramBotGateway
from src.core.payments.service import PaymentService
from src.core.users.service import UserService
from src.infra.database import get_db
from src.infra.redis_client import get_redis


# Кэшированные экземпляры сервисов
_user_service: Optional[UserService] = None
_payment_service: Optional[PaymentService] = None
_gateway: Optional[TelegramBotGateway] = None


def get_user_service() -> UserService:
    global _user_service
    if _user_service is None:
        from src.config import settings

        _user_service = UserService(
            db=get_db(),
            redis=get_redis(),
            profile_ttl=settings.redis_ttl.PROFILE_TTL,
        )
    return _user_service


def init_gateway(bot: Bot) -> TelegramBotGateway:
    """
    Привязывает шлюз к экземпляру бота. Вызывается при старте процесса,
    до обработки первого апдейта.
    """
    global _gateway, _payment_service
    from src.config import settings

    _gateway = TelegramBotGateway(
        bot=bot,
        payments_chat=settings.logging.LOG_TELEGRAM_PAYMENTS_CHAT_ID,
        currency=settings.payments.CURRENCY,
    )
    _payment_service = None
    return _gateway


def get_gateway() -> TelegramBotGateway:
    if _gateway is None:
        raise RuntimeError("Шлюз бота не инициализирован. Вызовите init_gateway() сначала.")
    return _gateway


def get_payment_service() -> PaymentService:
    """
    Возвращает сервис покупок.

    Returns:
        PaymentService
    """
    global _payment_service
    if _payment_service is None:
        from src.config import settings

        _payment_service = PaymentService(
            db=get_db(),
            gateway=get_gateway(),
            user_service=get_user_service(),
            max_units_per_purchase=settings.payments.MAX_UNITS_PER_PURCHASE,
            retry_attempts=settings.payments.SETTLEMENT_RETRY_ATTEMPTS,
            retry_delay=settings.payments.SETTLEMENT_RETRY_DELAY,
        )
    return _payment_service


def reset_services() -> None:
    """Сбрасывает кэшированные сервисы (для тестов)."""
    global _user_service, _payment_service, _gateway

    _user_service = None
    _payment_service = None
    _gateway = None
