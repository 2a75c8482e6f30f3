# src/common/validation.py
"""
Валидация идентификаторов из запросов.
"""

from __future__ import annotations

from uuid import UUID

from src.common.errors import InvalidInputError


def parse_uuid(value: str, field: str = "id") -> UUID:
    """
    Разбирает UUID из строки запроса.

    Raises:
        InvalidInputError: строка не является UUID
    """
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise InvalidInputError(f"Invalid {field}", details={field: value}) from None


def require_positive_user_id(user_id: int, field: str = "user_id") -> int:
    """Telegram ID всегда положительный."""
    if user_id <= 0:
        raise InvalidInputError(f"Invalid {field}", details={field: user_id})
    return user_id
