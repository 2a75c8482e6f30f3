# src/core/users/service.py
"""
Сервис пользователей.
Профиль, коллекция, статистика и таблица лидеров с кэшированием профиля в Redis.
"""

from __future__ import annotations

from typing import Optional

from redis.exceptions import RedisError

from src.common.constants import TypeMsg
from src.common.errors import NotFoundError
from src.common.logger import log_info, log_warning
from src.core.users.models import LeaderboardEntry, OwnedCard, User, UserStats
from src.core.users.repository import UserRepository
from src.infra.database import DatabaseManager
from src.infra.redis_client import RedisClient


class UserService:
    """
    Сервис пользователей.
    Cache-Aside для профиля: чтение через Redis, любая запись инвалидирует ключ.
    """

    def __init__(
        self,
        db: DatabaseManager,
        redis: RedisClient,
        profile_ttl: int = 300,
    ) -> None:
        """
        Args:
            db: Менеджер базы данных
            redis: Клиент Redis
            profile_ttl: TTL кэша профиля (секунды)
        """
        self._repo = UserRepository(db)
        self._redis = redis
        self._profile_ttl = profile_ttl

    @property
    def repository(self) -> UserRepository:
        return self._repo

    def _cache_key(self, telegram_id: int) -> str:
        return f"user:{telegram_id}"

    async def invalidate_cache(self, telegram_id: int) -> None:
        """Сбрасывает кэш профиля. Недоступность Redis не ломает запись в БД."""
        try:
            await self._redis.delete(self._cache_key(telegram_id))
        except RedisError as e:
            await log_warning(f"Не удалось сбросить кэш пользователя {telegram_id}: {e}")

    # =========================================================================
    # ПРОФИЛЬ
    # =========================================================================

    async def create_or_update_user(
        self,
        telegram_id: int,
        username: Optional[str],
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> User:
        """
        Создаёт пользователя с нулевыми агрегатами или обновляет поля профиля.
        Агрегаты покупок и ленты существующего пользователя не трогаются.
        """
        user, created = await self._repo.upsert_profile(
            telegram_id, username, first_name, last_name
        )
        await self.invalidate_cache(telegram_id)

        if created:
            await log_info(
                f"Новый пользователь: {telegram_id} ({user.display_name})",
                type_msg=TypeMsg.INFO,
            )
        return user

    async def get_user(self, telegram_id: int) -> Optional[User]:
        """Профиль по Telegram ID (Cache-Aside)."""
        cache_key = self._cache_key(telegram_id)

        try:
            cached = await self._redis.get_model(cache_key, User)
        except RedisError as e:
            await log_warning(f"Redis недоступен при чтении профиля {telegram_id}: {e}")
            cached = None
        if cached is not None:
            return cached

        user = await self._repo.get_by_telegram_id(telegram_id)
        if user is not None:
            try:
                await self._redis.set_model(cache_key, user, ttl=self._profile_ttl)
            except RedisError as e:
                await log_warning(f"Не удалось закэшировать профиль {telegram_id}: {e}")
        return user

    async def require_user(self, telegram_id: int) -> User:
        user = await self.get_user(telegram_id)
        if user is None:
            raise NotFoundError("User not found", details={"telegram_id": telegram_id})
        return user

    # =========================================================================
    # СЧЁТЧИКИ ЛЕНТЫ
    # =========================================================================

    async def record_post(self, telegram_id: int, username: Optional[str]) -> None:
        await self._repo.increment_posts(telegram_id, username)
        await self.invalidate_cache(telegram_id)

    async def record_promotion(self, telegram_id: int) -> None:
        await self._repo.increment_promotions(telegram_id)
        await self.invalidate_cache(telegram_id)

    # =========================================================================
    # КОЛЛЕКЦИЯ И СТАТИСТИКА
    # =========================================================================

    async def get_collection(self, telegram_id: int) -> list[OwnedCard]:
        """Коллекция карточек. Для неизвестного пользователя пустой список."""
        user = await self.get_user(telegram_id)
        return user.purchased_cards if user else []

    async def get_stats(self, telegram_id: int) -> UserStats:
        """
        Сводка по коллекции.

        Raises:
            NotFoundError: пользователь не найден
        """
        user = await self.require_user(telegram_id)
        return UserStats(
            telegram_id=user.telegram_id,
            username=user.username,
            total_cards=user.total_cards,
            unique_pokemon=len({card.pokemon_name for card in user.purchased_cards}),
            total_purchases=user.total_purchases,
            total_spent=user.total_spent,
            member_since=user.created_at,
            last_purchase=max(
                (card.purchased_at for card in user.purchased_cards),
                default=None,
            ),
        )

    async def get_top_collectors(self, limit: int = 10) -> list[User]:
        return await self._repo.list_top_by_spent(limit)

    async def get_leaderboard(self, limit: int = 10) -> list[LeaderboardEntry]:
        """Таблица лидеров по сумме потраченных Stars, ранги с 1."""
        users = await self._repo.list_top_by_spent(limit)
        return [
            LeaderboardEntry(
                rank=position,
                telegram_id=user.telegram_id,
                username=user.username,
                total_cards=user.total_cards,
                total_purchases=user.total_purchases,
                total_spent=user.total_spent,
            )
            for position, user in enumerate(users, start=1)
        ]
