# src/infra/__init__.py
"""
Инфраструктурный слой: PostgreSQL и Redis.
"""

from src.infra.database import DatabaseManager, get_db
from src.infra.redis_client import RedisClient, get_redis

__all__ = [
    "DatabaseManager",
    "get_db",
    "RedisClient",
    "get_redis",
]
