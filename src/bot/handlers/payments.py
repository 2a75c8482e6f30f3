# src/bot/handlers/payments.py
"""
Оплата в Telegram Stars: pre-checkout и successful_payment.
"""

from __future__ import annotations

from aiogram import F, Router
from aiogram.types import Message, PreCheckoutQuery

from src.bot.dependencies import get_gateway, get_payment_service
from src.common.constants import TypeMsg
from src.common.errors import AppError, PaymentAlreadyProcessedError
from src.common.logger import log_error, log_info

router = Router(name="payments")


@router.pre_checkout_query()
async def on_pre_checkout(query: PreCheckoutQuery) -> None:
    """
    Подтверждение перед списанием Stars.

    По умолчанию одобряется всегда; с VALIDATE_PRE_CHECKOUT проверяются
    статус покупки, сумма и остаток на складе.
    """
    from src.config import settings

    await log_info(
        f"Pre-checkout {query.id} от {query.from_user.id}",
        type_msg=TypeMsg.DEBUG,
    )

    if not settings.payments.VALIDATE_PRE_CHECKOUT:
        await query.answer(ok=True)
        return

    try:
        reason = await get_payment_service().validate_pre_checkout(
            query.invoice_payload, query.total_amount
        )
    except AppError as e:
        await log_error(f"Ошибка проверки pre-checkout {query.id}: {e}", exc_info=True)
        reason = "Payment is temporarily unavailable, please try again later"

    if reason is None:
        await query.answer(ok=True)
    else:
        await query.answer(ok=False, error_message=reason)


@router.message(F.successful_payment)
async def on_successful_payment(message: Message) -> None:
    """Stars списаны: рассчитываем покупку и сообщаем пользователю итог."""
    payment = message.successful_payment
    user = message.from_user

    await log_info(
        f"Оплата от {user.id}: {payment.total_amount} {payment.currency}, "
        f"charge={payment.telegram_payment_charge_id}",
        type_msg=TypeMsg.INFO,
    )

    gateway = get_gateway()
    try:
        await get_payment_service().settle_successful_payment(
            invoice_payload=payment.invoice_payload,
            user_id=user.id,
            username=user.username,
            telegram_payment_id=payment.telegram_payment_charge_id,
        )
    except PaymentAlreadyProcessedError:
        await log_info(
            f"Повторное уведомление об оплате {payment.invoice_payload}, пропускаем",
            type_msg=TypeMsg.WARNING,
        )
        return
    except AppError as e:
        await log_error(
            f"Ошибка расчёта оплаты {payment.invoice_payload}: {e}",
            extra={"user_id": user.id, "error_code": e.error_code},
            exc_info=True,
        )
        await gateway.notify_payment_outcome(user.id, succeeded=False)
        return

    await gateway.notify_payment_outcome(user.id, succeeded=True)
