# src/common/constants.py
"""
Общие константы и перечисления.
"""

from enum import Enum


class TypeMsg(str, Enum):
    """Типы сообщений для логирования."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class UserRole(str, Enum):
    """Роли пользователей."""
    USER = "user"
    ADMIN = "admin"


class PaymentStatus(str, Enum):
    """Статусы покупки."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class LinkerType(str, Enum):
    """Тип поста в ленте."""
    URL = "url"
    TEXT = "text"


class FeedSort(str, Enum):
    """Сортировка ленты."""
    RECENT = "recent"
    POPULAR = "popular"
