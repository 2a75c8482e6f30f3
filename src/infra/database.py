# src/infra/database.py
"""
Менеджер базы данных PostgreSQL.
Пул соединений, ретраи при обрыве связи, таймауты операций и единицы работы в транзакции.
"""

from __future__ import annotations

import asyncio
import json
from functools import wraps
from typing import Any, Awaitable, Callable, TypeVar

import asyncpg
from asyncpg import Connection, Pool, Record

from src.common.constants import TypeMsg
from src.common.errors import TransientStoreError
from src.common.logger import log_error, log_info, log_warning

T = TypeVar("T")

# Ошибки, после которых запрос можно безопасно повторить
CONNECTION_ERRORS: tuple[type[BaseException], ...] = (
    asyncpg.PostgresConnectionError,
    asyncpg.InterfaceError,
    ConnectionRefusedError,
    OSError,
)


def retry_on_connection_error(
    max_attempts: int | None = None,
    delay: float | None = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Декоратор ретраев при ошибках подключения.

    Таймаут не повторяется. И таймаут, и исчерпанные попытки
    превращаются в TransientStoreError с именем операции.

    Без аргументов число попыток и задержка берутся у экземпляра
    (retry_attempts и retry_delay у DatabaseManager), иначе 3 и 0.5.

    Args:
        max_attempts: Максимальное количество попыток
        delay: Базовая задержка между попытками (секунды), растёт линейно
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            owner = args[0] if args else None
            attempts = max_attempts or getattr(owner, "retry_attempts", 3)
            base_delay = delay if delay is not None else getattr(owner, "retry_delay", 0.5)
            last_error: BaseException | None = None

            for attempt in range(1, attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except asyncio.TimeoutError as e:
                    await log_warning(f"Таймаут операции БД {func.__name__}")
                    raise TransientStoreError(func.__name__, e) from e
                except CONNECTION_ERRORS as e:
                    last_error = e
                    if attempt < attempts:
                        await log_info(
                            f"Ошибка подключения к БД (попытка {attempt}/{attempts}): {e}",
                            type_msg=TypeMsg.WARNING,
                        )
                        await asyncio.sleep(base_delay * attempt)
                    else:
                        await log_error(
                            f"БД недоступна после {attempts} попыток ({func.__name__}): {e}"
                        )

            raise TransientStoreError(func.__name__, last_error) from last_error

        return wrapper

    return decorator


async def _init_connection(conn: Connection) -> None:
    """JSONB приходит и уходит как обычные dict/list."""
    await conn.set_type_codec(
        "jsonb",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog",
    )


class DatabaseManager:
    """
    Менеджер подключений к PostgreSQL.
    Singleton: один пул на процесс.
    """

    _instance: DatabaseManager | None = None

    def __new__(cls) -> DatabaseManager:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if hasattr(self, "_initialized"):
            return
        self._initialized = True
        self._pool: Pool | None = None
        self._operation_timeout: float = 5.0
        self._retry_attempts: int = 3
        self._retry_delay: float = 0.5

    @property
    def pool(self) -> Pool:
        """Возвращает пул соединений."""
        if self._pool is None:
            raise RuntimeError("Пул соединений не инициализирован. Вызовите connect() сначала.")
        return self._pool

    @property
    def operation_timeout(self) -> float:
        return self._operation_timeout

    @property
    def retry_attempts(self) -> int:
        return self._retry_attempts

    @property
    def retry_delay(self) -> float:
        return self._retry_delay

    @retry_on_connection_error(max_attempts=3, delay=1.0)
    async def connect(
        self,
        dsn: str | None = None,
        min_size: int = 2,
        max_size: int = 10,
        command_timeout: int = 60,
        operation_timeout: float = 5.0,
        retry_attempts: int = 3,
        retry_delay: float = 0.5,
    ) -> None:
        """
        Создаёт пул соединений к PostgreSQL.

        Args:
            dsn: DSN строка подключения (если None, берётся из конфига)
            min_size: Минимальный размер пула
            max_size: Максимальный размер пула
            command_timeout: Жёсткий таймаут команд на уровне драйвера
            operation_timeout: Таймаут одной операции приложения
            retry_attempts: Попытки запроса при обрыве связи
            retry_delay: Базовая задержка между попытками запроса
        """
        if self._pool is not None:
            return

        if dsn is None:
            from src.config import settings
            dsn = settings.database.dsn
            min_size = settings.database.DB_MIN_POOL_SIZE
            max_size = settings.database.DB_MAX_POOL_SIZE
            command_timeout = settings.database.DB_COMMAND_TIMEOUT
            operation_timeout = settings.database.DB_OPERATION_TIMEOUT
            retry_attempts = settings.database.DB_RETRY_ATTEMPTS
            retry_delay = settings.database.DB_RETRY_DELAY

        await log_info("Подключение к PostgreSQL...", type_msg=TypeMsg.INFO)

        self._operation_timeout = operation_timeout
        self._retry_attempts = max(1, retry_attempts)
        self._retry_delay = retry_delay
        self._pool = await asyncpg.create_pool(
            dsn=dsn,
            min_size=min_size,
            max_size=max_size,
            command_timeout=command_timeout,
            init=_init_connection,
        )

        await log_info("Подключение к PostgreSQL установлено", type_msg=TypeMsg.INFO)

    async def disconnect(self) -> None:
        """Закрывает пул соединений."""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            await log_info("Соединение с PostgreSQL закрыто", type_msg=TypeMsg.INFO)

    async def run_transaction(
        self,
        work: Callable[[Connection], Awaitable[T]],
        *,
        operation: str = "transaction",
        timeout: float | None = None,
    ) -> T:
        """
        Выполняет work(conn) в одной транзакции.

        Любое исключение внутри work (в том числе отмена по таймауту)
        откатывает транзакцию целиком. Таймаут и обрыв связи
        поднимаются как TransientStoreError, доменные ошибки пробрасываются как есть.

        Args:
            work: Корутина-функция, получающая соединение в транзакции
            operation: Имя операции для логов и ошибок
            timeout: Таймаут всей единицы работы (по умолчанию operation_timeout)

        Example:
            async def _apply(conn):
                await conn.execute("UPDATE ...")
                return await conn.fetchrow("SELECT ...")

            row = await db.run_transaction(_apply, operation="settle")
        """
        async def _unit() -> T:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    return await work(conn)

        try:
            return await asyncio.wait_for(_unit(), timeout or self._operation_timeout)
        except asyncio.TimeoutError as e:
            await log_warning(f"Таймаут транзакции {operation}")
            raise TransientStoreError(operation, e) from e
        except CONNECTION_ERRORS as e:
            await log_error(f"Транзакция {operation} прервана обрывом связи: {e}")
            raise TransientStoreError(operation, e) from e

    @retry_on_connection_error()
    async def execute(self, query: str, *args: Any) -> str:
        """
        Выполняет SQL запрос без возврата данных.

        Returns:
            Статус выполнения (например "UPDATE 1")
        """
        async with self.pool.acquire(timeout=self._operation_timeout) as conn:
            return await conn.execute(query, *args, timeout=self._operation_timeout)

    @retry_on_connection_error()
    async def fetch(self, query: str, *args: Any) -> list[Record]:
        """Выполняет SQL запрос и возвращает все строки."""
        async with self.pool.acquire(timeout=self._operation_timeout) as conn:
            return await conn.fetch(query, *args, timeout=self._operation_timeout)

    @retry_on_connection_error()
    async def fetchrow(self, query: str, *args: Any) -> Record | None:
        """Выполняет SQL запрос и возвращает одну строку или None."""
        async with self.pool.acquire(timeout=self._operation_timeout) as conn:
            return await conn.fetchrow(query, *args, timeout=self._operation_timeout)

    @retry_on_connection_error()
    async def fetchval(self, query: str, *args: Any, column: int = 0) -> Any:
        """Выполняет SQL запрос и возвращает одно значение."""
        async with self.pool.acquire(timeout=self._operation_timeout) as conn:
            return await conn.fetchval(
                query, *args, column=column, timeout=self._operation_timeout
            )

    async def health_check(self) -> bool:
        """Проверяет, что БД отвечает на SELECT 1."""
        try:
            return await self.fetchval("SELECT 1") == 1
        except (TransientStoreError, RuntimeError) as e:
            await log_error(f"Health check PostgreSQL failed: {e}")
            return False


_db_manager: DatabaseManager | None = None


def get_db() -> DatabaseManager:
    """Возвращает глобальный экземпляр DatabaseManager."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


async def init_db() -> None:
    """
    Подключается к БД по настройкам из конфига и применяет migrations/init.sql.
    """
    from src.config import settings

    db = get_db()
    await db.connect(
        dsn=settings.database.dsn,
        min_size=settings.database.DB_MIN_POOL_SIZE,
        max_size=settings.database.DB_MAX_POOL_SIZE,
        command_timeout=settings.database.DB_COMMAND_TIMEOUT,
        operation_timeout=settings.database.DB_OPERATION_TIMEOUT,
        retry_attempts=settings.database.DB_RETRY_ATTEMPTS,
        retry_delay=settings.database.DB_RETRY_DELAY,
    )
    await log_info(
        f"PostgreSQL подключён: {settings.database.DB_HOST}:"
        f"{settings.database.DB_PORT}/{settings.database.DB_NAME}",
        type_msg=TypeMsg.INFO,
    )

    await _init_schema(db)


async def _init_schema(db: DatabaseManager) -> None:
    """Применяет схему. Advisory lock не даёт bot и api мигрировать одновременно."""
    from src.config.loader import get_project_root

    schema_path = get_project_root() / "migrations" / "init.sql"
    if not schema_path.exists():
        await log_error(f"Файл схемы БД не найден: {schema_path}")
        return

    schema_sql = schema_path.read_text(encoding="utf-8")

    await log_info("Применение схемы БД...", type_msg=TypeMsg.INFO)
    async with db.pool.acquire() as conn:
        async with conn.transaction():
            await conn.execute("SELECT pg_advisory_xact_lock(424242)")
            await conn.execute(schema_sql)
    await log_info("Схема БД применена", type_msg=TypeMsg.INFO)


async def close_db() -> None:
    """Закрывает подключение к базе данных."""
    await get_db().disconnect()
