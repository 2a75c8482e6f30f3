# src/common/errors.py
"""
Доменные исключения приложения.

Каждое исключение несёт машинно-читаемый error_code и HTTP-статус,
по которым API формирует ErrorResponse, а бот решает, что сказать пользователю.
"""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Базовое исключение приложения."""

    error_code: str = "internal_error"
    status_code: int = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Сериализация для ErrorResponse."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details or None,
        }


class NotFoundError(AppError):
    """Сущность не найдена."""

    error_code = "not_found"
    status_code = 404


class InvalidInputError(AppError):
    """Некорректный запрос."""

    error_code = "invalid_input"
    status_code = 400


class ForbiddenError(AppError):
    """Нарушение владения ресурсом."""

    error_code = "forbidden"
    status_code = 403


class ConflictError(AppError):
    """Конфликт с текущим состоянием хранилища."""

    error_code = "conflict"
    status_code = 409


class DuplicateLinkError(ConflictError):
    """Ссылка уже опубликована в другом посте."""

    error_code = "duplicate_link"

    def __init__(self, url: str, existing_linker_id: str) -> None:
        self.url = url
        self.existing_linker_id = existing_linker_id
        super().__init__(
            f"This link has already been posted: {url}",
            details={"url": url, "existing_linker_id": existing_linker_id},
        )


class InsufficientInventoryError(ConflictError):
    """Недостаточно карточек на складе."""

    error_code = "insufficient_inventory"

    def __init__(self, pokemon_id: str, requested: int, available: int) -> None:
        self.pokemon_id = pokemon_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Not enough units available. Only {available} units left",
            details={"pokemon_id": pokemon_id, "requested": requested, "available": available},
        )


class PaymentAlreadyProcessedError(ConflictError):
    """Нет ожидающей покупки для payload: уже оплачена или неизвестна."""

    error_code = "already_processed"

    def __init__(self, invoice_payload: str) -> None:
        self.invoice_payload = invoice_payload
        super().__init__(
            "Purchase not found or already processed",
            details={"invoice_payload": invoice_payload},
        )


class TransientStoreError(AppError):
    """Таймаут или недоступность хранилища. Операцию можно повторить."""

    error_code = "store_unavailable"
    status_code = 503

    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        self.operation = operation
        self.cause = cause
        reason = f"{type(cause).__name__}: {cause}" if cause is not None else "timeout"
        super().__init__(
            f"Storage is temporarily unavailable ({operation})",
            details={"operation": operation, "reason": reason},
        )


class InvariantViolationError(AppError):
    """
    Нарушен инвариант хранилища при расчёте.

    Возникает, когда списание единиц увело бы остаток ниже нуля.
    Stars к этому моменту уже списаны, нужна ручная сверка.
    """

    error_code = "invariant_violation"
    status_code = 500


class SettlementError(AppError):
    """Не удалось выставить счёт через Telegram."""

    error_code = "invoice_dispatch_failed"
    status_code = 502
