# src/shared/models/__init__.py
"""
Общие Pydantic-модели API.
"""

from src.shared.models.common import CamelModel, ErrorResponse, HealthStatus

__all__ = [
    "CamelModel",
    "ErrorResponse",
    "HealthStatus",
]
