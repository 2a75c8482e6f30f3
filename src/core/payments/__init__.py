# src/core/payments/__init__.py
"""
Покупки карточек: счета в Telegram Stars и атомарный расчёт оплаты.
"""

from src.core.payments.gateway import BotGateway
from src.core.payments.models import InvoiceLineItem, Purchase
from src.core.payments.repository import PurchaseRepository
from src.core.payments.service import PaymentService

__all__ = [
    "BotGateway",
    "InvoiceLineItem",
    "Purchase",
    "PurchaseRepository",
    "PaymentService",
]
