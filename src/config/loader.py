# src/config/loader.py
"""
Загрузчик конфигурации проекта.
Единственный источник истины: config/config.json.
Секреты и адреса хостов переопределяются из переменных окружения.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# =============================================================================
# ОПРЕДЕЛЕНИЕ ПУТЕЙ
# =============================================================================

def get_project_root() -> Path:
    """Возвращает корневую директорию проекта."""
    return Path(__file__).parent.parent.parent


def get_config_path() -> Path:
    """Возвращает путь к файлу конфигурации."""
    return get_project_root() / "config" / "config.json"


def load_config_json(path: Path | None = None) -> dict[str, Any]:
    """
    Загружает config.json и возвращает словарь без служебных ключей _comment_*.

    Args:
        path: Путь к файлу (по умолчанию config/config.json)
    """
    config_path = path or get_config_path()
    if not config_path.exists():
        raise FileNotFoundError(f"Файл конфигурации не найден: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    return {k: v for k, v in data.items() if not k.startswith("_comment_")}


# =============================================================================
# PYDANTIC МОДЕЛИ КОНФИГУРАЦИИ
# =============================================================================

class SystemSettings(BaseModel):
    """Системные настройки."""
    PROJECT_NAME: str = "poke_mini_app"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"
    COMPONENT_MODE: str = "all"


class TelegramLogTarget(BaseModel):
    """Чат для служебных уведомлений в Telegram."""
    permission: bool = False
    chat_id: int
    message_thread_id: int | None = None

    @classmethod
    def from_dict_or_int(cls, value: dict | int | None) -> "TelegramLogTarget | None":
        """Создаёт объект из словаря или голого chat_id."""
        if value is None:
            return None
        if isinstance(value, dict):
            return cls(**value)
        if isinstance(value, int):
            return cls(permission=True, chat_id=value)
        return None


class LoggingSettings(BaseModel):
    """Настройки логирования."""
    LOG_LEVEL: str = "INFO"
    LOG_TO_FILE: bool = True
    LOG_FILE_PATH: str = "logs/app.log"
    LOG_FORMAT: str = "colored"
    LOG_MAX_BYTES: int = 10485760
    LOG_BACKUP_COUNT: int = 5
    # Сюда уходят алерты о сбоях расчёта после списания Stars
    LOG_TELEGRAM_PAYMENTS_CHAT_ID: TelegramLogTarget | None = None

    @field_validator("LOG_TELEGRAM_PAYMENTS_CHAT_ID", mode="before")
    @classmethod
    def parse_telegram_target(cls, v: dict | int | None) -> TelegramLogTarget | None:
        """Парсит значение как TelegramLogTarget."""
        return TelegramLogTarget.from_dict_or_int(v)


class TelegramSettings(BaseModel):
    """Настройки Telegram Bot API."""
    BOT_TOKEN: str = ""
    MINI_APP_URL: str = ""
    USE_WEBHOOK: bool = False
    WEBHOOK_HOST: str = "https://example.com"
    WEBHOOK_PATH: str = "/webhook"
    WEBHOOK_URL_MAIN: str | None = None
    WEBHOOK_SECRET: str | None = None
    WEBAPP_HOST: str = "0.0.0.0"
    WEBAPP_PORT: int = 8000

    @field_validator("BOT_TOKEN", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Получает токен из переменных окружения, если не задан."""
        if not v:
            return os.getenv("BOT_TOKEN", "")
        return v

    @model_validator(mode="after")
    def compute_webhook_url(self) -> "TelegramSettings":
        """Вычисляет URL вебхука, если он не задан явно."""
        if not self.WEBHOOK_URL_MAIN and self.BOT_TOKEN and self.WEBHOOK_HOST:
            self.WEBHOOK_URL_MAIN = f"{self.WEBHOOK_HOST}{self.WEBHOOK_PATH}/{self.BOT_TOKEN}"
        return self


class ApiSettings(BaseModel):
    """Настройки REST API."""
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8080
    CORS_ORIGINS: list[str] = Field(default_factory=lambda: ["*"])


class DatabaseSettings(BaseModel):
    """Настройки PostgreSQL."""
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "poke_mini_app"
    DB_USER: str = "postgres"
    DB_PASSWORD: str = ""
    DB_MIN_POOL_SIZE: int = 2
    DB_MAX_POOL_SIZE: int = 10
    DB_COMMAND_TIMEOUT: int = 60
    DB_OPERATION_TIMEOUT: float = 5.0
    DB_RETRY_ATTEMPTS: int = 3
    DB_RETRY_DELAY: float = 0.5

    @field_validator("DB_PASSWORD", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Получает пароль из переменных окружения."""
        if not v:
            return os.getenv("DB_PASSWORD", "")
        return v

    @property
    def dsn(self) -> str:
        """DSN для подключения к PostgreSQL."""
        return (
            f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )


class RedisSettings(BaseModel):
    """Настройки Redis."""
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ""
    REDIS_NAMESPACE: str = "poke"
    REDIS_MAX_CONNECTIONS: int = 20

    @field_validator("REDIS_PASSWORD", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Получает пароль из переменных окружения."""
        if not v:
            return os.getenv("REDIS_PASSWORD", "")
        return v

    @property
    def url(self) -> str:
        """URL для подключения к Redis."""
        auth = f":{self.REDIS_PASSWORD}@" if self.REDIS_PASSWORD else ""
        return f"redis://{auth}{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"


class RedisTTLSettings(BaseModel):
    """TTL ключей Redis (секунды)."""
    PROFILE_TTL: int = 300
    ACCESS_DEDUP_TTL: int = 300


class PaymentSettings(BaseModel):
    """Настройки оплаты в Telegram Stars."""
    CURRENCY: str = "XTR"
    MAX_UNITS_PER_PURCHASE: int = 100
    VALIDATE_PRE_CHECKOUT: bool = False
    SETTLEMENT_RETRY_ATTEMPTS: int = 3
    SETTLEMENT_RETRY_DELAY: float = 0.5


class LinkerSettings(BaseModel):
    """Настройки ленты ссылок."""
    MAX_CONTENT_LENGTH: int = 250
    MAX_TAGS: int = 10
    FEED_LIMIT: int = 100


# =============================================================================
# ГЛАВНЫЙ КЛАСС НАСТРОЕК
# =============================================================================

class Settings(BaseSettings):
    """
    Главный класс настроек приложения.
    Агрегирует все секции конфигурации.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    system: SystemSettings = Field(default_factory=SystemSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    telegram: TelegramSettings = Field(default_factory=TelegramSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    redis_ttl: RedisTTLSettings = Field(default_factory=RedisTTLSettings)
    payments: PaymentSettings = Field(default_factory=PaymentSettings)
    linkers: LinkerSettings = Field(default_factory=LinkerSettings)

    @classmethod
    def from_config_json(cls, path: Path | None = None) -> "Settings":
        """
        Создаёт объект Settings из config.json.
        Секреты и хосты переопределяются из переменных окружения.
        """
        data = load_config_json(path)

        return cls(
            system=SystemSettings(
                PROJECT_NAME=data.get("PROJECT_NAME", "poke_mini_app"),
                VERSION=data.get("VERSION", "1.0.0"),
                DEBUG=data.get("DEBUG", False),
                LOG_LEVEL=data.get("LOG_LEVEL", "INFO"),
                ENVIRONMENT=os.getenv("ENVIRONMENT", data.get("ENVIRONMENT", "development")),
                COMPONENT_MODE=os.getenv("COMPONENT_MODE", data.get("COMPONENT_MODE", "all")),
            ),
            logging=LoggingSettings(
                LOG_LEVEL=data.get("LOG_LEVEL", "INFO"),
                LOG_TO_FILE=data.get("LOG_TO_FILE", True),
                LOG_FILE_PATH=data.get("LOG_FILE_PATH", "logs/app.log"),
                LOG_FORMAT=data.get("LOG_FORMAT", "colored"),
                LOG_MAX_BYTES=data.get("LOG_MAX_BYTES", 10485760),
                LOG_BACKUP_COUNT=data.get("LOG_BACKUP_COUNT", 5),
                LOG_TELEGRAM_PAYMENTS_CHAT_ID=data.get("LOG_TELEGRAM_PAYMENTS_CHAT_ID"),
            ),
            telegram=TelegramSettings(
                BOT_TOKEN=os.getenv("BOT_TOKEN", data.get("BOT_TOKEN", "")),
                MINI_APP_URL=os.getenv("MINI_APP_URL", data.get("MINI_APP_URL", "")),
                USE_WEBHOOK=data.get("USE_WEBHOOK", False),
                WEBHOOK_HOST=data.get("WEBHOOK_HOST", "https://example.com"),
                WEBHOOK_PATH=data.get("WEBHOOK_PATH", "/webhook"),
                WEBHOOK_URL_MAIN=data.get("WEBHOOK_URL_MAIN"),
                WEBHOOK_SECRET=os.getenv("WEBHOOK_SECRET", data.get("WEBHOOK_SECRET")),
                WEBAPP_HOST=data.get("WEBAPP_HOST", "0.0.0.0"),
                WEBAPP_PORT=data.get("WEBAPP_PORT", 8000),
            ),
            api=ApiSettings(
                API_HOST=data.get("API_HOST", "0.0.0.0"),
                API_PORT=int(os.getenv("API_PORT", data.get("API_PORT", 8080))),
                CORS_ORIGINS=data.get("CORS_ORIGINS", ["*"]),
            ),
            database=DatabaseSettings(
                DB_HOST=os.getenv("DB_HOST", data.get("DB_HOST", "localhost")),
                DB_PORT=int(os.getenv("DB_PORT", data.get("DB_PORT", 5432))),
                DB_NAME=os.getenv("DB_NAME", data.get("DB_NAME", "poke_mini_app")),
                DB_USER=os.getenv("DB_USER", data.get("DB_USER", "postgres")),
                DB_PASSWORD=os.getenv("DB_PASSWORD", data.get("DB_PASSWORD", "")),
                DB_MIN_POOL_SIZE=data.get("DB_MIN_POOL_SIZE", 2),
                DB_MAX_POOL_SIZE=data.get("DB_MAX_POOL_SIZE", 10),
                DB_COMMAND_TIMEOUT=data.get("DB_COMMAND_TIMEOUT", 60),
                DB_OPERATION_TIMEOUT=data.get("DB_OPERATION_TIMEOUT", 5.0),
                DB_RETRY_ATTEMPTS=data.get("DB_RETRY_ATTEMPTS", 3),
                DB_RETRY_DELAY=data.get("DB_RETRY_DELAY", 0.5),
            ),
            redis=RedisSettings(
                REDIS_HOST=os.getenv("REDIS_HOST", data.get("REDIS_HOST", "localhost")),
                REDIS_PORT=int(os.getenv("REDIS_PORT", data.get("REDIS_PORT", 6379))),
                REDIS_DB=data.get("REDIS_DB", 0),
                REDIS_PASSWORD=os.getenv("REDIS_PASSWORD", data.get("REDIS_PASSWORD", "")),
                REDIS_NAMESPACE=data.get("REDIS_NAMESPACE", "poke"),
                REDIS_MAX_CONNECTIONS=data.get("REDIS_MAX_CONNECTIONS", 20),
            ),
            redis_ttl=RedisTTLSettings(
                PROFILE_TTL=data.get("PROFILE_TTL", 300),
                ACCESS_DEDUP_TTL=data.get("ACCESS_DEDUP_TTL", 300),
            ),
            payments=PaymentSettings(
                CURRENCY=data.get("CURRENCY", "XTR"),
                MAX_UNITS_PER_PURCHASE=data.get("MAX_UNITS_PER_PURCHASE", 100),
                VALIDATE_PRE_CHECKOUT=data.get("VALIDATE_PRE_CHECKOUT", False),
                SETTLEMENT_RETRY_ATTEMPTS=data.get("SETTLEMENT_RETRY_ATTEMPTS", 3),
                SETTLEMENT_RETRY_DELAY=data.get("SETTLEMENT_RETRY_DELAY", 0.5),
            ),
            linkers=LinkerSettings(
                MAX_CONTENT_LENGTH=data.get("MAX_CONTENT_LENGTH", 250),
                MAX_TAGS=data.get("MAX_TAGS", 10),
                FEED_LIMIT=data.get("FEED_LIMIT", 100),
            ),
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Возвращает синглтон настроек приложения.
    Перед чтением config.json подгружает .env из корня проекта.
    """
    from dotenv import load_dotenv

    env_path = get_project_root() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    return Settings.from_config_json()


# Экспорт синглтона для удобного импорта
settings = get_settings()
