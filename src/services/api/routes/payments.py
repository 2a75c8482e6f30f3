# src/services/api/routes/payments.py
"""
Покупки: выставление счёта и статус оплаты.
Сам расчёт выполняет бот при получении successful_payment.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from src.core.payments.models import (
    CreateInvoiceRequest,
    InvoiceResponse,
    PaymentStatusRequest,
    PaymentStatusResponse,
    Purchase,
)
from src.core.payments.service import PaymentService
from src.services.api.dependencies import get_payment_service

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("/create-invoice", response_model=InvoiceResponse)
async def create_invoice(
    request: CreateInvoiceRequest,
    service: PaymentService = Depends(get_payment_service),
):
    return await service.create_invoice(
        user_id=request.user_id,
        pokemon_id=request.pokemon_id,
        units=request.units,
    )


@router.post("/status", response_model=PaymentStatusResponse)
async def payment_status(
    request: PaymentStatusRequest,
    service: PaymentService = Depends(get_payment_service),
):
    return await service.get_payment_status(request.invoice_payload)


@router.get("/user/{user_id}", response_model=list[Purchase])
async def user_purchases(user_id: int, service: PaymentService = Depends(get_payment_service)):
    return await service.get_user_purchases(user_id)
