# src/core/linkers/models.py
"""
Модели ленты ссылок (Linkers).
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from src.common.constants import LinkerType
from src.shared.models.common import CamelModel


class Linker(CamelModel):
    """Пост ленты. promotions всегда равно len(promoted_by)."""

    id: str
    user_id: int
    username: str = ""
    content: str
    type: LinkerType = LinkerType.TEXT
    tags: list[str] = Field(default_factory=list)
    links: list[str] = Field(default_factory=list)
    promotions: int = Field(0, ge=0)
    promoted_by: list[int] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    def is_promoted_by(self, user_id: int) -> bool:
        return user_id in self.promoted_by


class CreateLinkerRequest(CamelModel):
    """Новый пост из Mini App."""

    user_id: int = Field(..., gt=0)
    username: str = ""
    content: str
    tags: list[str] = Field(default_factory=list)


class UpdateLinkerRequest(CamelModel):
    """Правка поста автором."""

    content: str
    tags: Optional[list[str]] = None


class DuplicateCheckResponse(CamelModel):
    """Ответ на проверку ссылки перед публикацией."""

    exists: bool
    linker: Optional[Linker] = None
    message: str
