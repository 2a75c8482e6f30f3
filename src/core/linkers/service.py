# src/core/linkers/service.py
"""
Сервис ленты ссылок.

Публикация с проверкой дублей ссылок, разовое продвижение поста,
правка и удаление только автором, лента по свежести или популярности.
"""

from __future__ import annotations

from typing import Optional

from src.common.constants import FeedSort, LinkerType, TypeMsg
from src.common.errors import (
    AppError,
    DuplicateLinkError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
)
from src.common.logger import log_info, log_warning
from src.common.validation import parse_uuid, require_positive_user_id
from src.core.linkers.links import extract_links
from src.core.linkers.models import DuplicateCheckResponse, Linker
from src.core.linkers.ranking import rank_popular
from src.core.linkers.repository import LinkerRepository
from src.core.users.service import UserService
from src.infra.database import DatabaseManager


class LinkerService:
    """
    Сервис постов.

    Единственный писатель promotions и promoted_by.
    """

    def __init__(
        self,
        db: DatabaseManager,
        user_service: UserService,
        *,
        max_content_length: int = 250,
        max_tags: int = 10,
        feed_limit: int = 100,
    ) -> None:
        """
        Args:
            db: Менеджер базы данных
            user_service: Сервис пользователей (счётчики постов и продвижений)
            max_content_length: Максимальная длина текста поста
            max_tags: Максимальное число тегов
            feed_limit: Сколько постов отдавать в ленте
        """
        self._repo = LinkerRepository(db)
        self._users = user_service
        self._max_content_length = max_content_length
        self._max_tags = max_tags
        self._feed_limit = feed_limit

    # =========================================================================
    # ВАЛИДАЦИЯ
    # =========================================================================

    def _clean_content(self, content: str) -> str:
        trimmed = (content or "").strip()
        if not trimmed:
            raise InvalidInputError("Content is required. Tags alone cannot be posted.")
        if len(trimmed) > self._max_content_length:
            raise InvalidInputError(
                f"Content must be {self._max_content_length} characters or less",
                details={"length": len(trimmed)},
            )
        return trimmed

    def _clean_tags(self, tags: Optional[list[str]]) -> list[str]:
        cleaned: list[str] = []
        for tag in tags or []:
            tag = tag.strip()
            if tag and tag not in cleaned:
                cleaned.append(tag)
        if len(cleaned) > self._max_tags:
            raise InvalidInputError(
                f"No more than {self._max_tags} tags allowed",
                details={"tags": len(cleaned)},
            )
        return cleaned

    # =========================================================================
    # ПУБЛИКАЦИЯ
    # =========================================================================

    async def create_post(
        self,
        user_id: int,
        username: str,
        content: str,
        tags: Optional[list[str]] = None,
    ) -> Linker:
        """
        Публикует пост.

        Raises:
            InvalidInputError: некорректный автор, пустой или слишком длинный текст
            DuplicateLinkError: любая ссылка из текста уже есть в другом посте
        """
        require_positive_user_id(user_id)
        text = self._clean_content(content)
        clean_tags = self._clean_tags(tags)
        links = extract_links(text)

        for url in links:
            existing = await self._repo.find_by_link(url)
            if existing is not None:
                raise DuplicateLinkError(url, existing.id)

        linker = await self._repo.create(
            user_id=user_id,
            username=username or "",
            content=text,
            linker_type=LinkerType.URL if links else LinkerType.TEXT,
            tags=clean_tags,
            links=links,
        )
        try:
            await self._users.record_post(user_id, username or None)
        except AppError as e:
            await log_warning(f"Счётчик постов {user_id} не обновлён: {e}")

        await log_info(
            f"Новый пост {linker.id} от {user_id}, ссылок: {len(links)}",
            type_msg=TypeMsg.INFO,
        )
        return linker

    async def check_duplicate(self, url: str) -> DuplicateCheckResponse:
        """Проверка ссылки до публикации."""
        url = (url or "").strip()
        if not url:
            raise InvalidInputError("URL parameter is required")

        existing = await self._repo.find_by_link(url)
        if existing is None:
            return DuplicateCheckResponse(exists=False, message="Link is available")
        return DuplicateCheckResponse(
            exists=True,
            linker=existing,
            message="This link has already been posted",
        )

    # =========================================================================
    # ПРОДВИЖЕНИЕ
    # =========================================================================

    async def promote_post(self, linker_id: str, user_id: int) -> Linker:
        """
        Разовое продвижение. Повторный вызов того же пользователя
        возвращает пост без изменений.

        Raises:
            NotFoundError: поста нет
        """
        require_positive_user_id(user_id)
        post_id = parse_uuid(linker_id, "linker_id")

        promoted = await self._repo.promote_once(post_id, user_id)
        if promoted is None:
            current = await self._repo.get_by_id(post_id)
            if current is None:
                raise NotFoundError("Linker not found", details={"linker_id": linker_id})
            return current

        try:
            await self._users.record_promotion(user_id)
        except AppError as e:
            await log_warning(f"Счётчик продвижений {user_id} не обновлён: {e}")
        await log_info(
            f"Пост {promoted.id} продвинут пользователем {user_id} ({promoted.promotions})",
            type_msg=TypeMsg.DEBUG,
        )
        return promoted

    # =========================================================================
    # ПРАВКА И УДАЛЕНИЕ
    # =========================================================================

    async def _get_owned(self, linker_id: str, user_id: int, forbidden_message: str) -> Linker:
        require_positive_user_id(user_id)
        linker = await self._repo.get_by_id(parse_uuid(linker_id, "linker_id"))
        if linker is None:
            raise NotFoundError("Linker not found", details={"linker_id": linker_id})
        if linker.user_id != user_id:
            raise ForbiddenError(forbidden_message, details={"linker_id": linker_id})
        return linker

    async def update_post(
        self,
        linker_id: str,
        user_id: int,
        content: str,
        tags: Optional[list[str]] = None,
    ) -> Linker:
        """
        Правка текста и тегов автором. Ссылки извлекаются заново,
        повторной проверки дублей против других постов нет.
        """
        linker = await self._get_owned(linker_id, user_id, "You can only edit your own posts")
        text = self._clean_content(content)
        links = extract_links(text)

        updated = await self._repo.update_content(
            parse_uuid(linker.id, "linker_id"),
            content=text,
            linker_type=LinkerType.URL if links else LinkerType.TEXT,
            tags=self._clean_tags(tags),
            links=links,
        )
        if updated is None:
            raise NotFoundError("Linker not found", details={"linker_id": linker_id})
        return updated

    async def delete_post(self, linker_id: str, user_id: int) -> None:
        linker = await self._get_owned(linker_id, user_id, "You can only delete your own posts")
        deleted = await self._repo.delete(parse_uuid(linker.id, "linker_id"))
        if not deleted:
            raise NotFoundError("Linker not found", details={"linker_id": linker_id})
        await log_info(f"Пост {linker.id} удалён автором {user_id}", type_msg=TypeMsg.INFO)

    # =========================================================================
    # ЛЕНТА
    # =========================================================================

    async def list_posts(self, sort: FeedSort = FeedSort.RECENT) -> list[Linker]:
        """
        Лента из FEED_LIMIT постов.

        recent: самые новые. popular: ранжируется вся коллекция,
        чтобы старый пост с большим числом продвижений не выпал из ленты.
        """
        if sort == FeedSort.POPULAR:
            return rank_popular(await self._repo.list_all())[: self._feed_limit]
        return await self._repo.list_recent(self._feed_limit)

    async def list_by_tag(self, tag: str) -> list[Linker]:
        tag = (tag or "").strip()
        if not tag:
            raise InvalidInputError("Tag is required")
        return await self._repo.list_by_tag(tag, self._feed_limit)
