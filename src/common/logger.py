# src/common/logger.py
"""
Модуль структурированного логирования.
JSON или цветной текстовый вывод, ротация файлов, отдельный error.log.
"""

from __future__ import annotations

import inspect
import json
import logging
import os
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from src.common.constants import TypeMsg


DEFAULT_LOGGER = "poke_mini_app"

# Файловые хендлеры общие для всех логгеров процесса
_FILE_HANDLER: logging.Handler | None = None
_ERROR_HANDLER: logging.Handler | None = None

_LOGGING_INITIALIZED: bool = False


# =============================================================================
# ФОРМАТТЕРЫ
# =============================================================================

class JsonFormatter(logging.Formatter):
    """Форматтер для JSON логов."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            log_data["extra"] = extra_data

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class ColoredFormatter(logging.Formatter):
    """Цветной форматтер для консоли."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"
    GRAY = "\033[90m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.GRAY)
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

        caller = ""
        extra_data = getattr(record, "extra_data", None) or {}
        if extra_data.get("caller_function"):
            caller = (
                f" {self.GRAY}[{extra_data.get('caller_module')}."
                f"{extra_data['caller_function']}():{extra_data.get('caller_line')}]{self.RESET}"
            )

        message = f"{timestamp} {color}[{record.levelname}]{self.RESET}{caller} {record.getMessage()}"

        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)

        return message


def _make_formatter(log_format: str) -> logging.Formatter:
    return JsonFormatter() if log_format == "json" else ColoredFormatter()


# =============================================================================
# ЛОГГЕР
# =============================================================================

_loggers: dict[str, logging.Logger] = {}


def _load_logging_options() -> dict[str, Any]:
    """Читает настройки логирования, не падая при проблемах с конфигом."""
    options: dict[str, Any] = {
        "level": "INFO",
        "format": "colored",
        "to_file": False,
        "file_path": "logs/app.log",
        "max_bytes": 10485760,
        "backup_count": 5,
    }
    try:
        from src.config import settings
        cfg = settings.logging
    except Exception:
        return options

    # В тестах settings может быть MagicMock
    if isinstance(cfg.LOG_LEVEL, str):
        options["level"] = cfg.LOG_LEVEL
    if isinstance(cfg.LOG_FORMAT, str):
        options["format"] = cfg.LOG_FORMAT
    if isinstance(cfg.LOG_TO_FILE, bool):
        options["to_file"] = cfg.LOG_TO_FILE
    if isinstance(cfg.LOG_FILE_PATH, str):
        options["file_path"] = cfg.LOG_FILE_PATH
    if isinstance(cfg.LOG_MAX_BYTES, int):
        options["max_bytes"] = cfg.LOG_MAX_BYTES
    if isinstance(cfg.LOG_BACKUP_COUNT, int):
        options["backup_count"] = cfg.LOG_BACKUP_COUNT
    return options


def _file_handlers(options: dict[str, Any]) -> list[logging.Handler]:
    """Создаёт (один раз на процесс) файловый хендлер и хендлер ошибок."""
    global _FILE_HANDLER, _ERROR_HANDLER

    if _FILE_HANDLER is None:
        log_path = Path(options["file_path"])
        log_path.parent.mkdir(parents=True, exist_ok=True)

        # SERVICE_NAME разводит логи процессов bot/api по разным файлам
        service_name = os.getenv("SERVICE_NAME")
        if service_name:
            log_path = log_path.with_name(f"{log_path.stem}_{service_name}{log_path.suffix}")

        _FILE_HANDLER = RotatingFileHandler(
            log_path,
            maxBytes=options["max_bytes"],
            backupCount=options["backup_count"],
            encoding="utf-8",
        )
        _FILE_HANDLER.setFormatter(_make_formatter(options["format"]))

        _ERROR_HANDLER = RotatingFileHandler(
            log_path.with_name("error.log"),
            maxBytes=options["max_bytes"],
            backupCount=options["backup_count"],
            encoding="utf-8",
        )
        _ERROR_HANDLER.setLevel(logging.ERROR)
        _ERROR_HANDLER.setFormatter(_make_formatter(options["format"]))

    return [_FILE_HANDLER, _ERROR_HANDLER]


def get_logger(name: str = DEFAULT_LOGGER) -> logging.Logger:
    """
    Возвращает настроенный логгер.
    Кэширует логгеры, чтобы не дублировать хендлеры.

    Args:
        name: Имя логгера

    Returns:
        Настроенный логгер
    """
    if name in _loggers:
        return _loggers[name]

    options = _load_logging_options()

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, options["level"].upper(), logging.INFO))

    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(_make_formatter(options["format"]))
        logger.addHandler(console_handler)

        if options["to_file"]:
            for handler in _file_handlers(options):
                logger.addHandler(handler)

    logger.propagate = False

    _loggers[name] = logger
    return logger


def setup_logging() -> None:
    """
    Инициализирует систему логирования при старте процесса.
    Повторные вызовы ничего не делают.
    """
    global _LOGGING_INITIALIZED
    if _LOGGING_INITIALIZED:
        return
    _LOGGING_INITIALIZED = True

    get_logger(DEFAULT_LOGGER)

    logging.getLogger("aiogram").setLevel(logging.INFO)
    logging.getLogger("asyncpg").setLevel(logging.WARNING)
    logging.getLogger("redis").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


# =============================================================================
# ВСПОМОГАТЕЛЬНЫЕ ФУНКЦИИ ЛОГИРОВАНИЯ
# =============================================================================

def _get_caller_info(depth: int = 2) -> dict[str, Any]:
    """
    Информация о коде, вызвавшем функцию логирования.

    Args:
        depth: Сколько кадров стека пропустить (сама функция + хелпер логирования)
    """
    frame = inspect.currentframe()
    try:
        for _ in range(depth):
            if frame is None:
                return {}
            frame = frame.f_back
        if frame is None:
            return {}

        module = inspect.getmodule(frame)
        return {
            "caller_function": frame.f_code.co_name,
            "caller_module": module.__name__ if module else "unknown",
            "caller_line": frame.f_lineno,
        }
    finally:
        del frame


def _emit(
    level: int,
    message: str,
    logger_name: str,
    extra: dict[str, Any] | None,
    exc_info: bool,
) -> None:
    logger = get_logger(logger_name)
    # _emit <- log_* <- вызывающий код
    caller_info = _get_caller_info(depth=3)
    logger.log(
        level,
        message,
        extra={"extra_data": {**caller_info, **(extra or {})}},
        exc_info=exc_info,
    )


_LEVELS = {
    TypeMsg.DEBUG: logging.DEBUG,
    TypeMsg.INFO: logging.INFO,
    TypeMsg.WARNING: logging.WARNING,
    TypeMsg.ERROR: logging.ERROR,
    TypeMsg.CRITICAL: logging.CRITICAL,
}


async def log_info(
    message: str,
    *,
    type_msg: TypeMsg = TypeMsg.INFO,
    logger_name: str = DEFAULT_LOGGER,
    extra: dict[str, Any] | None = None,
) -> None:
    """
    Асинхронное логирование с уровнем из TypeMsg.

    Args:
        message: Сообщение
        type_msg: Уровень (по умолчанию INFO)
        logger_name: Имя логгера
        extra: Дополнительные поля записи
    """
    _emit(_LEVELS.get(type_msg, logging.INFO), message, logger_name, extra, False)


async def log_debug(
    message: str,
    logger_name: str = DEFAULT_LOGGER,
    extra: dict[str, Any] | None = None,
) -> None:
    """Логирование DEBUG уровня."""
    _emit(logging.DEBUG, message, logger_name, extra, False)


async def log_warning(
    message: str,
    logger_name: str = DEFAULT_LOGGER,
    extra: dict[str, Any] | None = None,
) -> None:
    """Логирование WARNING уровня."""
    _emit(logging.WARNING, message, logger_name, extra, False)


async def log_error(
    message: str,
    logger_name: str = DEFAULT_LOGGER,
    extra: dict[str, Any] | None = None,
    exc_info: bool = False,
) -> None:
    """
    Логирование ERROR уровня.

    Args:
        message: Сообщение об ошибке
        logger_name: Имя логгера
        extra: Дополнительные поля записи
        exc_info: Включать ли трейсбек текущего исключения
    """
    _emit(logging.ERROR, message, logger_name, extra, exc_info)


async def log_critical(
    message: str,
    logger_name: str = DEFAULT_LOGGER,
    extra: dict[str, Any] | None = None,
    exc_info: bool = False,
) -> None:
    """Логирование CRITICAL уровня: ситуации, требующие ручного вмешательства."""
    _emit(logging.CRITICAL, message, logger_name, extra, exc_info)
