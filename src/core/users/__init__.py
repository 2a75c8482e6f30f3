# src/core/users/__init__.py
"""
Домен пользователей: профиль, коллекция карточек, агрегаты покупок и ленты.
"""

from src.core.users.models import LeaderboardEntry, OwnedCard, User, UserStats
from src.core.users.repository import UserRepository
from src.core.users.service import UserService

__all__ = [
    "LeaderboardEntry",
    "OwnedCard",
    "User",
    "UserStats",
    "UserRepository",
    "UserService",
]
