# tests/conftest.py
"""
Общие фикстуры и настройки для тестов.
"""

from __future__ import annotations

import asyncio
import copy
import os
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

# Устанавливаем переменные окружения перед импортом модулей
os.environ.setdefault("BOT_TOKEN", "test_bot_token")
os.environ.setdefault("DB_PASSWORD", "test_password")
os.environ.setdefault("REDIS_PASSWORD", "")

from src.common.constants import PaymentStatus  # noqa: E402
from src.common.errors import TransientStoreError  # noqa: E402
from src.core.catalog.models import Pokemon  # noqa: E402
from src.core.linkers.models import Linker  # noqa: E402
from src.core.linkers.service import LinkerService  # noqa: E402
from src.core.payments.models import Purchase  # noqa: E402
from src.core.payments.service import PaymentService  # noqa: E402
from src.core.users.models import OwnedCard, User  # noqa: E402
from src.core.users.service import UserService  # noqa: E402


POKEMON_UUID = "6f1c2c1e-0f5e-4a57-9c39-2d6f7d1b9a01"
PURCHASE_UUID = "0b7f3c7a-5d36-4b0e-8e9f-3a1d2c4b5e60"
LINKER_UUID = "c3a1e0f2-7b4d-4e8a-9f10-5d6c7b8a9e21"
TEST_USER_ID = 123456789


def _now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ФИКСТУРЫ КОНФИГУРАЦИИ
# =============================================================================

@pytest.fixture(scope="session")
def project_root() -> Path:
    """Корневая директория проекта."""
    return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def config_path(project_root: Path) -> Path:
    """Путь к файлу конфигурации."""
    return project_root / "config" / "config.json"


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Мок конфигурации для тестов."""
    return {
        "_comment_system": "служебный ключ",
        "PROJECT_NAME": "poke_mini_app_test",
        "VERSION": "1.0.0-test",
        "DEBUG": True,
        "LOG_LEVEL": "DEBUG",
        "ENVIRONMENT": "test",
        "LOG_TO_FILE": False,
        "LOG_FILE_PATH": "logs/test.log",
        "LOG_TELEGRAM_PAYMENTS_CHAT_ID": {
            "permission": True,
            "chat_id": -1001234567890,
            "message_thread_id": 7,
        },
        "BOT_TOKEN": "",
        "MINI_APP_URL": "https://example.com/app",
        "USE_WEBHOOK": False,
        "DB_HOST": "localhost",
        "DB_PORT": 5432,
        "DB_NAME": "poke_test",
        "DB_USER": "test_user",
        "DB_OPERATION_TIMEOUT": 2.5,
        "REDIS_HOST": "localhost",
        "REDIS_PORT": 6379,
        "REDIS_NAMESPACE": "poke_test",
        "PROFILE_TTL": 60,
        "ACCESS_DEDUP_TTL": 120,
        "MAX_UNITS_PER_PURCHASE": 50,
        "VALIDATE_PRE_CHECKOUT": True,
        "SETTLEMENT_RETRY_ATTEMPTS": 5,
        "MAX_CONTENT_LENGTH": 300,
        "MAX_TAGS": 5,
        "FEED_LIMIT": 20,
    }


@pytest.fixture
def temp_config_file(tmp_path: Path, mock_config: dict[str, Any]) -> Path:
    """Создаёт временный файл конфигурации."""
    import json

    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps(mock_config), encoding="utf-8")
    return config_file


# =============================================================================
# ФИКСТУРЫ ИНФРАСТРУКТУРЫ (МОКИ)
# =============================================================================

@pytest.fixture
def mock_conn() -> AsyncMock:
    """Соединение внутри транзакции."""
    conn = AsyncMock()
    conn.fetchrow = AsyncMock(return_value=None)
    conn.fetchval = AsyncMock(return_value=None)
    conn.execute = AsyncMock(return_value="INSERT 0 1")
    return conn


@pytest.fixture
def mock_db(mock_conn: AsyncMock) -> AsyncMock:
    """Мок DatabaseManager. run_transaction вызывает work(mock_conn)."""
    db = AsyncMock()
    db.fetch = AsyncMock(return_value=[])
    db.fetchrow = AsyncMock(return_value=None)
    db.fetchval = AsyncMock(return_value=None)
    db.execute = AsyncMock(return_value="UPDATE 1")
    db.health_check = AsyncMock(return_value=True)

    async def run_transaction(work, *, operation: str = "transaction", timeout=None):
        return await work(mock_conn)

    db.run_transaction = AsyncMock(side_effect=run_transaction)
    return db


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Мок RedisClient."""
    redis = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    redis.set_if_absent = AsyncMock(return_value=True)
    redis.delete = AsyncMock(return_value=1)
    redis.get_model = AsyncMock(return_value=None)
    redis.set_model = AsyncMock(return_value=True)
    redis.health_check = AsyncMock(return_value=True)
    return redis


@pytest.fixture
def mock_gateway() -> AsyncMock:
    """Мок BotGateway."""
    gateway = AsyncMock()
    gateway.deliver_invoice = AsyncMock(return_value="https://t.me/$test_invoice")
    gateway.notify_payment_outcome = AsyncMock()
    gateway.alert_operators = AsyncMock()
    return gateway


@pytest.fixture
def mock_user_service() -> MagicMock:
    """Мок UserService для сервисов, которые только дёргают счётчики."""
    service = MagicMock()
    service.record_post = AsyncMock()
    service.record_promotion = AsyncMock()
    service.invalidate_cache = AsyncMock()
    service.create_or_update_user = AsyncMock()
    service.repository = MagicMock()
    service.repository.apply_purchase = AsyncMock()
    return service


# =============================================================================
# ФИКСТУРЫ ДАННЫХ (СТРОКИ БД)
# =============================================================================

@pytest.fixture
def sample_pokemon_row() -> dict[str, Any]:
    """Строка таблицы pokemons."""
    now = _now()
    return {
        "id": uuid.UUID(POKEMON_UUID),
        "pokemon_id": 25,
        "name": "Pikachu",
        "image": "https://img.example.com/25.png",
        "types": ["electric"],
        "height": 4,
        "weight": 60,
        "rarity": "rare",
        "total_units": 100,
        "available_units": 10,
        "price_per_unit": 5,
        "created_at": now,
        "updated_at": now,
    }


@pytest.fixture
def sample_purchase_row() -> dict[str, Any]:
    """Строка таблицы purchases в статусе pending."""
    now = _now()
    return {
        "id": uuid.UUID(PURCHASE_UUID),
        "user_id": TEST_USER_ID,
        "username": None,
        "pokemon_id": uuid.UUID(POKEMON_UUID),
        "pokemon_name": "Pikachu",
        "units": 2,
        "total_price": 10,
        "status": "pending",
        "telegram_payment_id": None,
        "invoice_payload": "a" * 32,
        "created_at": now,
        "updated_at": now,
        "completed_at": None,
    }


@pytest.fixture
def completed_purchase_row(sample_purchase_row: dict[str, Any]) -> dict[str, Any]:
    """Та же покупка после расчёта."""
    now = _now()
    return {
        **sample_purchase_row,
        "username": "ash",
        "status": "completed",
        "telegram_payment_id": "charge_1",
        "updated_at": now,
        "completed_at": now,
    }


@pytest.fixture
def sample_user_row() -> dict[str, Any]:
    """Строка таблицы users."""
    now = _now()
    return {
        "telegram_id": TEST_USER_ID,
        "username": "ash",
        "first_name": "Ash",
        "last_name": "Ketchum",
        "purchased_cards": [],
        "total_purchases": 0,
        "total_spent": 0,
        "posts_count": 0,
        "promotions_made": 0,
        "role": "user",
        "is_banned": False,
        "last_active": now,
        "created_at": now - timedelta(days=30),
        "updated_at": now,
    }


@pytest.fixture
def sample_linker_row() -> dict[str, Any]:
    """Строка таблицы linkers."""
    now = _now()
    return {
        "id": uuid.UUID(LINKER_UUID),
        "user_id": TEST_USER_ID,
        "username": "ash",
        "content": "Look at this https://example.com/pikachu",
        "type": "url",
        "tags": ["pokemon"],
        "links": ["https://example.com/pikachu"],
        "promotions": 0,
        "promoted_by": [],
        "created_at": now,
        "updated_at": now,
    }


# =============================================================================
# ХРАНИЛИЩЕ В ПАМЯТИ
# =============================================================================

class InMemoryStore:
    """
    Хранилище с сериализуемыми транзакциями.

    Транзакции выполняются по одной под asyncio.Lock; при любом исключении
    состояние откатывается к снимку. Счётчики fail_before_commit и
    fail_after_commit имитируют обрыв связи до и после коммита.
    """

    def __init__(self) -> None:
        self.pokemons: dict[str, Pokemon] = {}
        self.purchases: dict[str, Purchase] = {}
        self.users: dict[int, User] = {}
        self.linkers: dict[str, Linker] = {}
        self.fail_before_commit = 0
        self.fail_after_commit = 0
        self._lock = asyncio.Lock()

    def _snapshot(self) -> tuple:
        return copy.deepcopy((self.pokemons, self.purchases, self.users, self.linkers))

    def _restore(self, snapshot: tuple) -> None:
        self.pokemons, self.purchases, self.users, self.linkers = snapshot

    async def run_transaction(
        self,
        work: Callable[[Any], Awaitable[Any]],
        *,
        operation: str = "transaction",
        timeout: Optional[float] = None,
    ) -> Any:
        async with self._lock:
            snapshot = self._snapshot()
            try:
                result = await work(self)
                if self.fail_before_commit:
                    self.fail_before_commit -= 1
                    raise TransientStoreError(operation)
            except BaseException:
                self._restore(snapshot)
                raise
            if self.fail_after_commit:
                self.fail_after_commit -= 1
                raise TransientStoreError(operation)
            return result

    async def health_check(self) -> bool:
        return True

    def add_pokemon(self, name: str = "Pikachu", available: int = 10, price: int = 5) -> Pokemon:
        pokemon = Pokemon(
            id=str(uuid.uuid4()),
            pokemon_id=len(self.pokemons) + 1,
            name=name,
            total_units=available,
            available_units=available,
            price_per_unit=price,
            created_at=_now(),
            updated_at=_now(),
        )
        self.pokemons[pokemon.id] = pokemon
        return pokemon

    def add_linker(self, user_id: int = TEST_USER_ID, content: str = "hello") -> Linker:
        linker = Linker(
            id=str(uuid.uuid4()),
            user_id=user_id,
            content=content,
            created_at=_now(),
            updated_at=_now(),
        )
        self.linkers[linker.id] = linker
        return linker


class FakePokemonRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def list_all(self) -> list[Pokemon]:
        return sorted(self._store.pokemons.values(), key=lambda p: p.pokemon_id)

    async def get_by_id(self, pokemon_id: uuid.UUID) -> Optional[Pokemon]:
        return self._store.pokemons.get(str(pokemon_id))

    async def decrement_available(self, conn: Any, pokemon_id: uuid.UUID, units: int) -> Optional[int]:
        await asyncio.sleep(0)
        pokemon = self._store.pokemons.get(str(pokemon_id))
        if pokemon is None or pokemon.available_units < units:
            return None
        remaining = pokemon.available_units - units
        self._store.pokemons[pokemon.id] = pokemon.model_copy(update={"available_units": remaining})
        return remaining


class FakePurchaseRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def create_pending(
        self,
        user_id: int,
        pokemon_id: uuid.UUID,
        pokemon_name: str,
        units: int,
        total_price: int,
        invoice_payload: str,
    ) -> Purchase:
        purchase = Purchase(
            id=str(uuid.uuid4()),
            user_id=user_id,
            pokemon_id=str(pokemon_id),
            pokemon_name=pokemon_name,
            units=units,
            total_price=total_price,
            invoice_payload=invoice_payload,
            created_at=_now(),
            updated_at=_now(),
        )
        self._store.purchases[invoice_payload] = purchase
        return purchase

    async def get_by_payload(self, invoice_payload: str) -> Optional[Purchase]:
        return self._store.purchases.get(invoice_payload)

    async def list_completed_by_user(self, user_id: int) -> list[Purchase]:
        return [
            p for p in self._store.purchases.values()
            if p.user_id == user_id and p.status == PaymentStatus.COMPLETED
        ]

    async def claim_pending(
        self,
        conn: Any,
        invoice_payload: str,
        username: Optional[str],
        telegram_payment_id: str,
    ) -> Optional[Purchase]:
        await asyncio.sleep(0)
        purchase = self._store.purchases.get(invoice_payload)
        if purchase is None or purchase.status != PaymentStatus.PENDING:
            return None
        claimed = purchase.model_copy(update={
            "status": PaymentStatus.COMPLETED,
            "username": username or purchase.username,
            "telegram_payment_id": telegram_payment_id,
            "completed_at": _now(),
            "updated_at": _now(),
        })
        self._store.purchases[invoice_payload] = claimed
        return claimed

    async def record_unsettled_charge(
        self,
        invoice_payload: str,
        telegram_payment_id: str,
        username: Optional[str],
    ) -> bool:
        purchase = self._store.purchases.get(invoice_payload)
        if purchase is None or purchase.status != PaymentStatus.PENDING:
            return False
        self._store.purchases[invoice_payload] = purchase.model_copy(
            update={"telegram_payment_id": telegram_payment_id}
        )
        return True


class FakeUserRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def _get_or_new(self, telegram_id: int) -> User:
        return self._store.users.get(telegram_id) or User(telegram_id=telegram_id, created_at=_now())

    async def get_by_telegram_id(self, telegram_id: int) -> Optional[User]:
        return self._store.users.get(telegram_id)

    async def upsert_profile(self, telegram_id, username, first_name, last_name) -> tuple[User, bool]:
        created = telegram_id not in self._store.users
        user = self._get_or_new(telegram_id).model_copy(
            update={"username": username, "first_name": first_name, "last_name": last_name}
        )
        self._store.users[telegram_id] = user
        return user, created

    async def apply_purchase(
        self,
        conn: Any,
        telegram_id: int,
        username: Optional[str],
        card: OwnedCard,
        total_price: int,
    ) -> None:
        await asyncio.sleep(0)
        user = self._get_or_new(telegram_id)
        self._store.users[telegram_id] = user.model_copy(update={
            "username": username or user.username,
            "purchased_cards": [*user.purchased_cards, card],
            "total_purchases": user.total_purchases + 1,
            "total_spent": user.total_spent + total_price,
        })

    async def increment_posts(self, telegram_id: int, username: Optional[str]) -> None:
        user = self._get_or_new(telegram_id)
        self._store.users[telegram_id] = user.model_copy(
            update={"posts_count": user.posts_count + 1, "username": username or user.username}
        )

    async def increment_promotions(self, telegram_id: int) -> None:
        user = self._get_or_new(telegram_id)
        self._store.users[telegram_id] = user.model_copy(
            update={"promotions_made": user.promotions_made + 1}
        )

    async def list_top_by_spent(self, limit: int) -> list[User]:
        users = sorted(self._store.users.values(), key=lambda u: (-u.total_spent, u.telegram_id))
        return users[:limit]


class FakeLinkerRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def get_by_id(self, linker_id: uuid.UUID) -> Optional[Linker]:
        return self._store.linkers.get(str(linker_id))

    async def find_by_link(self, url: str) -> Optional[Linker]:
        matches = [l for l in self._store.linkers.values() if url in l.links]
        return min(matches, key=lambda l: l.created_at) if matches else None

    async def create(self, user_id, username, content, linker_type, tags, links) -> Linker:
        linker = Linker(
            id=str(uuid.uuid4()),
            user_id=user_id,
            username=username,
            content=content,
            type=linker_type,
            tags=tags,
            links=links,
            created_at=_now(),
            updated_at=_now(),
        )
        self._store.linkers[linker.id] = linker
        return linker

    async def promote_once(self, linker_id: uuid.UUID, user_id: int) -> Optional[Linker]:
        await asyncio.sleep(0)
        # Проверка и запись без await между ними, как под блокировкой строки
        linker = self._store.linkers.get(str(linker_id))
        if linker is None or user_id in linker.promoted_by:
            return None
        promoted = linker.model_copy(update={
            "promotions": linker.promotions + 1,
            "promoted_by": [*linker.promoted_by, user_id],
        })
        self._store.linkers[promoted.id] = promoted
        return promoted

    async def update_content(self, linker_id, content, linker_type, tags, links) -> Optional[Linker]:
        linker = self._store.linkers.get(str(linker_id))
        if linker is None:
            return None
        updated = linker.model_copy(update={
            "content": content, "type": linker_type, "tags": tags, "links": links,
        })
        self._store.linkers[updated.id] = updated
        return updated

    async def delete(self, linker_id: uuid.UUID) -> bool:
        return self._store.linkers.pop(str(linker_id), None) is not None

    async def list_recent(self, limit: int) -> list[Linker]:
        linkers = sorted(self._store.linkers.values(), key=lambda l: l.created_at, reverse=True)
        return linkers[:limit]

    async def list_all(self) -> list[Linker]:
        return sorted(self._store.linkers.values(), key=lambda l: l.created_at, reverse=True)

    async def list_by_tag(self, tag: str, limit: int) -> list[Linker]:
        return [l for l in await self.list_recent(limit) if tag in l.tags]


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def memory_user_service(memory_store: InMemoryStore, mock_redis: AsyncMock) -> UserService:
    """UserService поверх хранилища в памяти."""
    service = UserService(db=memory_store, redis=mock_redis)
    service._repo = FakeUserRepository(memory_store)
    return service


@pytest.fixture
def memory_payment_service(
    memory_store: InMemoryStore,
    memory_user_service: UserService,
    mock_gateway: AsyncMock,
) -> PaymentService:
    """PaymentService поверх хранилища в памяти, без задержек между попытками."""
    service = PaymentService(
        memory_store,
        mock_gateway,
        memory_user_service,
        retry_attempts=3,
        retry_delay=0,
    )
    service._pokemons = FakePokemonRepository(memory_store)
    service._purchases = FakePurchaseRepository(memory_store)
    return service


@pytest.fixture
def memory_linker_service(
    memory_store: InMemoryStore,
    memory_user_service: UserService,
) -> LinkerService:
    """LinkerService поверх хранилища в памяти."""
    service = LinkerService(memory_store, memory_user_service)
    service._repo = FakeLinkerRepository(memory_store)
    return service
