# src/core/payments/models.py
"""
Модели покупок и счетов в Telegram Stars.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import Field

from src.common.constants import PaymentStatus
from src.shared.models.common import CamelModel


class Purchase(CamelModel):
    """Запись о покупке. Создаётся pending при выставлении счёта."""

    id: str
    user_id: int
    username: Optional[str] = None
    pokemon_id: str
    pokemon_name: str
    units: int = Field(..., ge=1)
    total_price: int = Field(..., gt=0)
    status: PaymentStatus = PaymentStatus.PENDING
    telegram_payment_id: Optional[str] = None
    invoice_payload: str
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None


@dataclass(frozen=True)
class InvoiceLineItem:
    """Позиция счёта (LabeledPrice в терминах Bot API)."""

    label: str
    amount: int


class CreateInvoiceRequest(CamelModel):
    """Запрос Mini App на покупку."""

    pokemon_id: str = Field(..., min_length=1)
    units: int = Field(..., ge=1)
    user_id: int = Field(..., gt=0)


class InvoiceResponse(CamelModel):
    """Выставленный счёт."""

    invoice_link: str
    invoice_payload: str
    total_stars: int


class PaymentStatusRequest(CamelModel):
    invoice_payload: str = Field(..., min_length=1)


class PaymentStatusResponse(CamelModel):
    """Статус покупки по payload счёта."""

    status: PaymentStatus
    purchase_id: str
    completed_at: Optional[datetime] = None
