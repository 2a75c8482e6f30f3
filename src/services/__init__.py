# src/services/__init__.py
"""
Внешние поверхности приложения.

Сервисы:
- api: REST API для Mini App (FastAPI)

Бот живёт в src/bot, доменная логика в src/core.
"""

__all__: list[str] = []
