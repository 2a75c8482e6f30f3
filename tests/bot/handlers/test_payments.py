# tests/bot/handlers/test_payments.py
"""
Тесты хендлеров оплаты в Telegram Stars.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.bot.handlers.payments import on_pre_checkout, on_successful_payment
from src.common.errors import (
    InvariantViolationError,
    PaymentAlreadyProcessedError,
    TransientStoreError,
)
from src.config import settings


@pytest.fixture
def payment_service() -> MagicMock:
    service = MagicMock()
    service.validate_pre_checkout = AsyncMock(return_value=None)
    service.settle_successful_payment = AsyncMock()
    return service


@pytest.fixture
def gateway() -> MagicMock:
    gateway = MagicMock()
    gateway.notify_payment_outcome = AsyncMock()
    return gateway


@pytest.fixture(autouse=True)
def wired(payment_service: MagicMock, gateway: MagicMock):
    with patch("src.bot.handlers.payments.get_payment_service", return_value=payment_service), \
         patch("src.bot.handlers.payments.get_gateway", return_value=gateway), \
         patch("src.bot.handlers.payments.log_info", new_callable=AsyncMock), \
         patch("src.bot.handlers.payments.log_error", new_callable=AsyncMock):
        yield


@pytest.fixture
def query() -> MagicMock:
    query = MagicMock()
    query.id = "pcq_1"
    query.from_user.id = 123456789
    query.invoice_payload = "a" * 32
    query.total_amount = 10
    query.answer = AsyncMock()
    return query


@pytest.fixture
def paid_message() -> MagicMock:
    message = MagicMock()
    message.from_user.id = 123456789
    message.from_user.username = "ash"
    message.successful_payment.invoice_payload = "a" * 32
    message.successful_payment.total_amount = 10
    message.successful_payment.currency = "XTR"
    message.successful_payment.telegram_payment_charge_id = "charge_1"
    return message


class TestPreCheckout:

    @pytest.mark.asyncio
    async def test_approved_without_validation(self, query: MagicMock, payment_service: MagicMock) -> None:
        with patch.object(settings.payments, "VALIDATE_PRE_CHECKOUT", False):
            await on_pre_checkout(query)

        query.answer.assert_awaited_once_with(ok=True)
        payment_service.validate_pre_checkout.assert_not_called()

    @pytest.mark.asyncio
    async def test_validated_ok(self, query: MagicMock, payment_service: MagicMock) -> None:
        with patch.object(settings.payments, "VALIDATE_PRE_CHECKOUT", True):
            await on_pre_checkout(query)

        payment_service.validate_pre_checkout.assert_awaited_once_with("a" * 32, 10)
        query.answer.assert_awaited_once_with(ok=True)

    @pytest.mark.asyncio
    async def test_validated_rejected(self, query: MagicMock, payment_service: MagicMock) -> None:
        payment_service.validate_pre_checkout.return_value = "Sorry, this card is sold out"

        with patch.object(settings.payments, "VALIDATE_PRE_CHECKOUT", True):
            await on_pre_checkout(query)

        query.answer.assert_awaited_once_with(ok=False, error_message="Sorry, this card is sold out")

    @pytest.mark.asyncio
    async def test_store_unavailable_rejects(self, query: MagicMock, payment_service: MagicMock) -> None:
        payment_service.validate_pre_checkout.side_effect = TransientStoreError("fetchrow")

        with patch.object(settings.payments, "VALIDATE_PRE_CHECKOUT", True):
            await on_pre_checkout(query)

        assert query.answer.call_args.kwargs["ok"] is False


class TestSuccessfulPayment:

    @pytest.mark.asyncio
    async def test_settled_and_user_notified(
        self,
        paid_message: MagicMock,
        payment_service: MagicMock,
        gateway: MagicMock,
    ) -> None:
        await on_successful_payment(paid_message)

        payment_service.settle_successful_payment.assert_awaited_once_with(
            invoice_payload="a" * 32,
            user_id=123456789,
            username="ash",
            telegram_payment_id="charge_1",
        )
        gateway.notify_payment_outcome.assert_awaited_once_with(123456789, succeeded=True)

    @pytest.mark.asyncio
    async def test_duplicate_update_is_silent(
        self,
        paid_message: MagicMock,
        payment_service: MagicMock,
        gateway: MagicMock,
    ) -> None:
        payment_service.settle_successful_payment.side_effect = PaymentAlreadyProcessedError("a" * 32)

        await on_successful_payment(paid_message)

        gateway.notify_payment_outcome.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            TransientStoreError("settle_payment"),
            InvariantViolationError("Inventory would go negative"),
        ],
    )
    async def test_settlement_failure_reported(
        self,
        paid_message: MagicMock,
        payment_service: MagicMock,
        gateway: MagicMock,
        error: Exception,
    ) -> None:
        payment_service.settle_successful_payment.side_effect = error

        await on_successful_payment(paid_message)

        gateway.notify_payment_outcome.assert_awaited_once_with(123456789, succeeded=False)
