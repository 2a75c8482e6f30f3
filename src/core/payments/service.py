# src/core/payments/service.py
"""
Расчёт покупок карточек за Telegram Stars.

Выставление счёта: проверка остатка (рекомендательная), pending-запись, счёт через бота.
Расчёт оплаты: одна транзакция из трёх шагов:
    1. pending -> completed (compare-and-swap по payload);
    2. списание единиц со склада с условием available_units >= units;
    3. зачисление карточки и агрегатов пользователю.
Любой сбой откатывает все три шага.
"""

from __future__ import annotations

import asyncio
import secrets
from typing import Optional
from uuid import UUID

from asyncpg import Connection

from src.common.constants import PaymentStatus, TypeMsg
from src.common.errors import (
    AppError,
    InsufficientInventoryError,
    InvalidInputError,
    InvariantViolationError,
    NotFoundError,
    PaymentAlreadyProcessedError,
    SettlementError,
    TransientStoreError,
)
from src.common.logger import log_critical, log_error, log_info, log_warning
from src.common.validation import parse_uuid, require_positive_user_id
from src.core.catalog.repository import PokemonRepository
from src.core.payments.gateway import BotGateway
from src.core.payments.models import (
    InvoiceLineItem,
    InvoiceResponse,
    PaymentStatusResponse,
    Purchase,
)
from src.core.payments.repository import PurchaseRepository
from src.core.users.models import OwnedCard
from src.core.users.service import UserService
from src.infra.database import DatabaseManager


class PaymentService:
    """
    Сервис расчёта покупок.

    Единственный писатель available_units и статусов покупок.
    """

    def __init__(
        self,
        db: DatabaseManager,
        gateway: BotGateway,
        user_service: UserService,
        *,
        max_units_per_purchase: int = 100,
        retry_attempts: int = 3,
        retry_delay: float = 0.5,
    ) -> None:
        """
        Args:
            db: Менеджер базы данных
            gateway: Порт к Telegram (счета, уведомления)
            user_service: Сервис пользователей (сброс кэша профиля после зачисления)
            max_units_per_purchase: Верхняя граница units в одном счёте
            retry_attempts: Попытки расчёта при TransientStoreError
            retry_delay: Базовая задержка между попытками (секунды)
        """
        self._db = db
        self._gateway = gateway
        self._users = user_service
        self._pokemons = PokemonRepository(db)
        self._purchases = PurchaseRepository(db)
        self._max_units = max_units_per_purchase
        self._retry_attempts = max(1, retry_attempts)
        self._retry_delay = retry_delay

    # =========================================================================
    # ВЫСТАВЛЕНИЕ СЧЁТА
    # =========================================================================

    async def create_invoice(self, user_id: int, pokemon_id: str, units: int) -> InvoiceResponse:
        """
        Создаёт pending-покупку и выставляет счёт в Telegram.

        Проверка остатка здесь рекомендательная: два параллельных счёта
        могут пройти её оба. Авторитетное списание происходит при расчёте.

        Raises:
            InvalidInputError: некорректные user_id, pokemon_id или units
            NotFoundError: карточки нет
            InsufficientInventoryError: остатка не хватает
            SettlementError: Telegram не принял счёт (pending-запись остаётся)
        """
        require_positive_user_id(user_id)
        if units < 1 or units > self._max_units:
            raise InvalidInputError(
                f"Units must be between 1 and {self._max_units}",
                details={"units": units},
            )
        item_id = parse_uuid(pokemon_id, "pokemon_id")

        pokemon = await self._pokemons.get_by_id(item_id)
        if pokemon is None:
            raise NotFoundError("Pokemon not found", details={"pokemon_id": pokemon_id})
        if pokemon.available_units < units:
            raise InsufficientInventoryError(pokemon.id, units, pokemon.available_units)

        total_price = pokemon.price_per_unit * units
        payload = secrets.token_hex(16)

        purchase = await self._purchases.create_pending(
            user_id=user_id,
            pokemon_id=item_id,
            pokemon_name=pokemon.name,
            units=units,
            total_price=total_price,
            invoice_payload=payload,
        )

        try:
            invoice_link = await self._gateway.deliver_invoice(
                user_id=user_id,
                title=f"{pokemon.name} Pokemon Card",
                description=f"Purchase {units} units of {pokemon.name} Pokemon card",
                payload=payload,
                line_items=[InvoiceLineItem(label=f"{pokemon.name} x{units}", amount=total_price)],
            )
        except SettlementError:
            await log_warning(
                f"Счёт для покупки {purchase.id} не доставлен, запись остаётся pending",
                extra={"invoice_payload": payload, "user_id": user_id},
            )
            raise

        await log_info(
            f"Счёт выставлен: user={user_id} pokemon={pokemon.name} units={units} total={total_price} XTR",
            type_msg=TypeMsg.INFO,
            extra={"purchase_id": purchase.id},
        )
        return InvoiceResponse(
            invoice_link=invoice_link,
            invoice_payload=payload,
            total_stars=total_price,
        )

    async def validate_pre_checkout(self, invoice_payload: str, total_amount: int) -> Optional[str]:
        """
        Проверка перед списанием Stars.

        Returns:
            None если покупку можно оплатить, иначе причина отказа для пользователя
        """
        purchase = await self._purchases.get_by_payload(invoice_payload)
        if purchase is None:
            return "Purchase not found"
        if purchase.status != PaymentStatus.PENDING:
            return "This invoice has already been paid"
        if purchase.total_price != total_amount:
            return "Invoice amount does not match the purchase"

        pokemon = await self._pokemons.get_by_id(UUID(purchase.pokemon_id))
        if pokemon is None or pokemon.available_units < purchase.units:
            return "Sorry, this card is sold out"
        return None

    # =========================================================================
    # РАСЧЁТ ОПЛАТЫ
    # =========================================================================

    async def settle_successful_payment(
        self,
        invoice_payload: str,
        user_id: int,
        username: Optional[str],
        telegram_payment_id: str,
    ) -> Purchase:
        """
        Применяет пойманную оплату к покупке, складу и пользователю.

        Повтор при TransientStoreError безопасен: шаг 1 идемпотентен.
        Если повтор видит уже завершённую покупку с тем же ID платежа,
        значит предыдущая попытка закоммитилась, и результат возвращается как успех.

        Raises:
            PaymentAlreadyProcessedError: нет pending-покупки (дубль уведомления или неизвестный payload)
            InvariantViolationError: склад ушёл бы в минус, требуется ручная сверка
            TransientStoreError: хранилище недоступно после всех попыток
        """
        for attempt in range(1, self._retry_attempts + 1):
            try:
                purchase = await self._db.run_transaction(
                    lambda conn: self._apply_settlement(
                        conn, invoice_payload, user_id, username, telegram_payment_id
                    ),
                    operation="settle_payment",
                )
                break
            except PaymentAlreadyProcessedError:
                if attempt > 1:
                    settled = await self._purchases.get_by_payload(invoice_payload)
                    if (
                        settled is not None
                        and settled.status == PaymentStatus.COMPLETED
                        and settled.telegram_payment_id == telegram_payment_id
                    ):
                        purchase = settled
                        break
                raise
            except InvariantViolationError as e:
                await self._escalate_oversold(invoice_payload, user_id, username, telegram_payment_id, e)
                raise
            except TransientStoreError as e:
                if attempt == self._retry_attempts:
                    await log_critical(
                        f"Расчёт оплаты не выполнен после {attempt} попыток, payload={invoice_payload}",
                        extra={
                            "invoice_payload": invoice_payload,
                            "user_id": user_id,
                            "telegram_payment_id": telegram_payment_id,
                            "reason": e.details.get("reason"),
                        },
                    )
                    await self._gateway.alert_operators(
                        f"⚠️ Settlement failed after retries\n"
                        f"payload: {invoice_payload}\nuser: {user_id}\ncharge: {telegram_payment_id}"
                    )
                    raise
                await log_warning(
                    f"Расчёт оплаты: хранилище недоступно (попытка {attempt}/{self._retry_attempts})"
                )
                await asyncio.sleep(self._retry_delay * attempt)

        await self._users.invalidate_cache(purchase.user_id)
        await log_info(
            f"Оплата рассчитана: purchase={purchase.id} user={purchase.user_id} "
            f"{purchase.pokemon_name} x{purchase.units} = {purchase.total_price} XTR",
            type_msg=TypeMsg.INFO,
        )
        return purchase

    async def _apply_settlement(
        self,
        conn: Connection,
        invoice_payload: str,
        user_id: int,
        username: Optional[str],
        telegram_payment_id: str,
    ) -> Purchase:
        """Три шага расчёта на одном соединении внутри транзакции."""
        purchase = await self._purchases.claim_pending(
            conn, invoice_payload, username, telegram_payment_id
        )
        if purchase is None:
            raise PaymentAlreadyProcessedError(invoice_payload)

        if purchase.user_id != user_id:
            await log_warning(
                f"Покупку {purchase.id} оплатил другой пользователь: "
                f"владелец={purchase.user_id} плательщик={user_id}"
            )

        remaining = await self._pokemons.decrement_available(
            conn, UUID(purchase.pokemon_id), purchase.units
        )
        if remaining is None:
            raise InvariantViolationError(
                f"Oversold: not enough units of {purchase.pokemon_name} to settle purchase {purchase.id}",
                details={
                    "purchase_id": purchase.id,
                    "pokemon_id": purchase.pokemon_id,
                    "units": purchase.units,
                    "invoice_payload": invoice_payload,
                },
            )

        card = OwnedCard(
            pokemon_id=purchase.pokemon_id,
            pokemon_name=purchase.pokemon_name,
            units=purchase.units,
            purchased_at=purchase.completed_at or purchase.updated_at,
        )
        await self._users.repository.apply_purchase(
            conn, purchase.user_id, username, card, purchase.total_price
        )
        return purchase

    async def _escalate_oversold(
        self,
        invoice_payload: str,
        user_id: int,
        username: Optional[str],
        telegram_payment_id: str,
        error: InvariantViolationError,
    ) -> None:
        """Stars списаны, а карточек нет: фиксируем платёж и поднимаем тревогу."""
        await log_critical(
            f"OVERSOLD: {error.message}. Требуется ручная сверка, charge={telegram_payment_id}",
            extra={**error.details, "user_id": user_id, "telegram_payment_id": telegram_payment_id},
        )
        try:
            await self._purchases.record_unsettled_charge(invoice_payload, telegram_payment_id, username)
        except AppError as e:
            await log_error(f"Не удалось сохранить ID платежа для сверки {invoice_payload}: {e}")

        await self._gateway.alert_operators(
            f"🚨 Oversold at settlement\n"
            f"payload: {invoice_payload}\nuser: {user_id}\ncharge: {telegram_payment_id}\n"
            f"{error.message}"
        )

    # =========================================================================
    # ЧТЕНИЕ
    # =========================================================================

    async def get_payment_status(self, invoice_payload: str) -> PaymentStatusResponse:
        """
        Raises:
            NotFoundError: покупки с таким payload нет
        """
        purchase = await self._purchases.get_by_payload(invoice_payload)
        if purchase is None:
            raise NotFoundError("Payment not found", details={"invoice_payload": invoice_payload})

        return PaymentStatusResponse(
            status=purchase.status,
            purchase_id=purchase.id,
            completed_at=purchase.completed_at if purchase.status == PaymentStatus.COMPLETED else None,
        )

    async def get_user_purchases(self, user_id: int) -> list[Purchase]:
        """Завершённые покупки пользователя, новые первыми."""
        require_positive_user_id(user_id)
        return await self._purchases.list_completed_by_user(user_id)
