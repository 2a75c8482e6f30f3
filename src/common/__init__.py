# src/common/__init__.py
"""
Общие утилиты: константы, исключения и логгер.
"""

from src.common.constants import TypeMsg
from src.common.errors import AppError
from src.common.logger import (
    get_logger,
    log_critical,
    log_debug,
    log_error,
    log_info,
    log_warning,
)

__all__ = [
    "AppError",
    "TypeMsg",
    "get_logger",
    "log_critical",
    "log_debug",
    "log_error",
    "log_info",
    "log_warning",
]
