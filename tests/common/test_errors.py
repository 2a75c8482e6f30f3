# tests/common/test_errors.py
"""
Тесты доменных исключений и валидации идентификаторов.
"""

from __future__ import annotations

from uuid import UUID

import pytest

from src.common.errors import (
    AppError,
    ConflictError,
    DuplicateLinkError,
    ForbiddenError,
    InsufficientInventoryError,
    InvalidInputError,
    InvariantViolationError,
    NotFoundError,
    PaymentAlreadyProcessedError,
    SettlementError,
    TransientStoreError,
)
from src.common.validation import parse_uuid, require_positive_user_id


class TestStatusMapping:

    @pytest.mark.parametrize(
        "error, status, code",
        [
            (NotFoundError("Pokemon not found"), 404, "not_found"),
            (InvalidInputError("Invalid units"), 400, "invalid_input"),
            (ForbiddenError("Not your post"), 403, "forbidden"),
            (ConflictError("Already promoted"), 409, "conflict"),
            (DuplicateLinkError("https://a.b", "id-1"), 409, "duplicate_link"),
            (InsufficientInventoryError("p1", 5, 2), 409, "insufficient_inventory"),
            (PaymentAlreadyProcessedError("payload"), 409, "already_processed"),
            (TransientStoreError("fetch"), 503, "store_unavailable"),
            (InvariantViolationError("negative stock"), 500, "invariant_violation"),
            (SettlementError("Failed to create invoice"), 502, "invoice_dispatch_failed"),
        ],
    )
    def test_codes(self, error: AppError, status: int, code: str) -> None:
        assert error.status_code == status
        assert error.error_code == code
        assert isinstance(error, AppError)

    def test_to_dict_without_details(self) -> None:
        assert NotFoundError("User not found").to_dict() == {
            "error_code": "not_found",
            "message": "User not found",
            "details": None,
        }


class TestDetails:

    def test_duplicate_link(self) -> None:
        error = DuplicateLinkError("https://example.com/x", "abc")

        assert error.existing_linker_id == "abc"
        assert error.details == {"url": "https://example.com/x", "existing_linker_id": "abc"}
        assert "https://example.com/x" in error.message

    def test_insufficient_inventory(self) -> None:
        error = InsufficientInventoryError("p1", requested=5, available=2)

        assert error.message == "Not enough units available. Only 2 units left"
        assert error.details["requested"] == 5

    def test_transient_with_cause(self) -> None:
        error = TransientStoreError("settle_payment", ConnectionResetError("reset"))

        assert error.details == {"operation": "settle_payment", "reason": "ConnectionResetError: reset"}

    def test_transient_without_cause(self) -> None:
        assert TransientStoreError("fetch").details["reason"] == "timeout"


class TestValidation:

    def test_parse_uuid(self) -> None:
        value = "6f1c2c1e-0f5e-4a57-9c39-2d6f7d1b9a01"
        assert parse_uuid(value) == UUID(value)

    @pytest.mark.parametrize("value", ["25", "", None, "not-a-uuid"])
    def test_parse_uuid_invalid(self, value) -> None:
        with pytest.raises(InvalidInputError, match="Invalid pokemon_id") as exc_info:
            parse_uuid(value, "pokemon_id")

        assert exc_info.value.details == {"pokemon_id": value}

    def test_positive_user_id(self) -> None:
        assert require_positive_user_id(42) == 42

    @pytest.mark.parametrize("user_id", [0, -5])
    def test_non_positive_user_id(self, user_id: int) -> None:
        with pytest.raises(InvalidInputError):
            require_positive_user_id(user_id)
