# src/core/access/service.py
"""
Учёт посещений страниц Mini App.

Повторное посещение той же страницы в окне дедупликации не пишется.
Обновление профиля после записи посещения необязательное: его сбой
логируется и не ломает запрос.
"""

from __future__ import annotations

import hashlib
from datetime import datetime, time, timedelta, timezone
from typing import Optional

from redis.exceptions import RedisError

from src.common.errors import AppError, InvalidInputError
from src.common.logger import log_debug, log_warning
from src.common.validation import require_positive_user_id
from src.core.access.models import (
    AccessHistoryResponse,
    AccessStats,
    DailyStatsResponse,
    TrackAccessRequest,
    TrackAccessResult,
)
from src.core.access.repository import AccessRepository
from src.core.users.service import UserService
from src.infra.database import DatabaseManager
from src.infra.redis_client import RedisClient

MAX_DAILY_PERIOD = 365
MAX_HISTORY_LIMIT = 100


class AccessService:
    """Сервис посещений."""

    def __init__(
        self,
        db: DatabaseManager,
        redis: RedisClient,
        user_service: UserService,
        dedup_ttl: int = 300,
    ) -> None:
        """
        Args:
            db: Менеджер базы данных
            redis: Клиент Redis (окно дедупликации)
            user_service: Сервис пользователей
            dedup_ttl: Окно дедупликации (секунды)
        """
        self._repo = AccessRepository(db)
        self._redis = redis
        self._users = user_service
        self._dedup_ttl = dedup_ttl

    def _dedup_key(self, user_id: int, page_url: str) -> str:
        digest = hashlib.sha1(page_url.encode("utf-8")).hexdigest()
        return f"access:{user_id}:{digest}"

    async def _seen_recently(self, user_id: int, page_url: str) -> bool:
        """SET NX в Redis; без Redis проверка по журналу в БД."""
        try:
            created = await self._redis.set_if_absent(
                self._dedup_key(user_id, page_url), "1", self._dedup_ttl
            )
            return not created
        except RedisError as e:
            await log_warning(f"Redis недоступен для дедупликации посещений: {e}")
            return await self._repo.recent_exists(user_id, page_url, self._dedup_ttl)

    async def _release_dedup(self, user_id: int, page_url: str) -> None:
        """Снимает метку окна, если посещение так и не записалось."""
        try:
            await self._redis.delete(self._dedup_key(user_id, page_url))
        except RedisError as e:
            await log_warning(f"Метка посещения {user_id} не снята: {e}")

    async def track(
        self,
        request: TrackAccessRequest,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> TrackAccessResult:
        """Записывает посещение и освежает профиль пользователя."""
        if await self._seen_recently(request.user_id, request.page_url):
            return TrackAccessResult(tracked=False, message="Access already tracked recently")

        try:
            await self._repo.insert(
                user_id=request.user_id,
                username=request.username,
                first_name=request.first_name,
                last_name=request.last_name,
                page_url=request.page_url,
                user_agent=user_agent,
                ip_address=ip_address,
            )
        except AppError:
            await self._release_dedup(request.user_id, request.page_url)
            raise

        await log_debug(f"Посещение {request.page_url} пользователем {request.user_id}")

        try:
            await self._users.create_or_update_user(
                request.user_id,
                request.username,
                request.first_name,
                request.last_name,
            )
        except AppError as e:
            await log_warning(f"Профиль {request.user_id} не обновлён после посещения: {e}")
            return TrackAccessResult(
                tracked=True,
                message="Access tracked, but user profile update failed",
            )

        return TrackAccessResult(tracked=True, message="User access tracked successfully")

    async def stats(self) -> AccessStats:
        row = await self._repo.totals()
        return AccessStats(
            total_accesses=row["total"],
            unique_users=row["unique_users"],
            last_24_hours=row["last_24h"],
            timestamp=datetime.now(timezone.utc),
        )

    async def daily(self, days: int = 30) -> DailyStatsResponse:
        """
        Посещения по дням (UTC) за последние days дней, новые первыми.

        Raises:
            InvalidInputError: days вне 1..365
        """
        if days < 1 or days > MAX_DAILY_PERIOD:
            raise InvalidInputError(
                f"Days parameter must be between 1 and {MAX_DAILY_PERIOD}",
                details={"days": days},
            )

        now = datetime.now(timezone.utc)
        start = datetime.combine((now - timedelta(days=days)).date(), time.min, tzinfo=timezone.utc)
        stats = await self._repo.daily(start)
        return DailyStatsResponse(
            daily_stats=stats,
            period=days,
            start_date=start.date(),
            end_date=now.date(),
        )

    async def history(self, user_id: int, limit: int = 50) -> AccessHistoryResponse:
        require_positive_user_id(user_id)
        if limit < 1 or limit > MAX_HISTORY_LIMIT:
            raise InvalidInputError(
                f"Limit must be between 1 and {MAX_HISTORY_LIMIT}",
                details={"limit": limit},
            )

        accesses = await self._repo.history(user_id, limit)
        return AccessHistoryResponse(
            user_id=user_id,
            accesses=accesses,
            count=len(accesses),
            limit=limit,
        )
