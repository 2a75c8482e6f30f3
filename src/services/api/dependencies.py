# src/services/api/dependencies.py
"""
Dependency Injection для REST API Mini App.
Сервисы ядра собираются поверх общих синглтонов БД и Redis.
"""

from __future__ import annotations

from typing import Optional

from src.bot.dependencies import get_payment_service, get_user_service
from src.core.access.service import AccessService
from src.core.catalog.service import CatalogService
from src.core.linkers.service import LinkerService
from src.infra.database import DatabaseManager, get_db
from src.infra.redis_client import RedisClient, get_redis


_catalog_service: Optional[CatalogService] = None
_linker_service: Optional[LinkerService] = None
_access_service: Optional[AccessService] = None


def get_database() -> DatabaseManager:
    return get_db()


def get_redis_client() -> RedisClient:
    return get_redis()


def get_catalog_service() -> CatalogService:
    global _catalog_service
    if _catalog_service is None:
        _catalog_service = CatalogService(get_db())
    return _catalog_service


def get_linker_service() -> LinkerService:
    global _linker_service
    if _linker_service is None:
        from src.config import settings

        _linker_service = LinkerService(
            db=get_db(),
            user_service=get_user_service(),
            max_content_length=settings.linkers.MAX_CONTENT_LENGTH,
            max_tags=settings.linkers.MAX_TAGS,
            feed_limit=settings.linkers.FEED_LIMIT,
        )
    return _linker_service


def get_access_service() -> AccessService:
    global _access_service
    if _access_service is None:
        from src.config import settings

        _access_service = AccessService(
            db=get_db(),
            redis=get_redis(),
            user_service=get_user_service(),
            dedup_ttl=settings.redis_ttl.ACCESS_DEDUP_TTL,
        )
    return _access_service


def reset_services() -> None:
    """Сбрасывает кэшированные сервисы (для тестов)."""
    global _catalog_service, _linker_service, _access_service

    _catalog_service = None
    _linker_service = None
    _access_service = None


__all__ = [
    "get_database",
    "get_redis_client",
    "get_catalog_service",
    "get_linker_service",
    "get_access_service",
    "get_payment_service",
    "get_user_service",
    "reset_services",
]
