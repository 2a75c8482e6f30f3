# src/services/api/__init__.py
"""
REST API для Telegram Mini App.
"""

from src.services.api.app import create_app

__all__ = ["create_app"]
