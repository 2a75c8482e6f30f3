# src/core/users/models.py
"""
Модели данных пользователей.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from src.common.constants import UserRole
from src.shared.models.common import CamelModel


class OwnedCard(CamelModel):
    """Запись о купленных карточках в коллекции пользователя."""

    pokemon_id: str
    pokemon_name: str
    units: int = Field(..., ge=1)
    purchased_at: datetime


class User(CamelModel):
    """Пользователь Mini App."""

    telegram_id: int = Field(..., description="Telegram ID пользователя")
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    purchased_cards: list[OwnedCard] = Field(default_factory=list)
    total_purchases: int = Field(0, ge=0)
    total_spent: int = Field(0, ge=0, description="Всего потрачено Stars")

    posts_count: int = Field(0, ge=0)
    promotions_made: int = Field(0, ge=0)

    role: UserRole = UserRole.USER
    is_banned: bool = False

    last_active: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def total_cards(self) -> int:
        return sum(card.units for card in self.purchased_cards)

    @property
    def display_name(self) -> str:
        """@username, иначе имя, иначе ID."""
        if self.username:
            return f"@{self.username}"
        if self.first_name:
            return self.first_name
        return str(self.telegram_id)


class UserStats(CamelModel):
    """Сводка по коллекции пользователя."""

    telegram_id: int
    username: Optional[str] = None
    total_cards: int
    unique_pokemon: int
    total_purchases: int
    total_spent: int
    member_since: Optional[datetime] = None
    last_purchase: Optional[datetime] = None


class LeaderboardEntry(CamelModel):
    """Строка таблицы лидеров."""

    rank: int
    telegram_id: int
    username: Optional[str] = None
    total_cards: int
    total_purchases: int
    total_spent: int
