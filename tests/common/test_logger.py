# tests/common/test_logger.py
"""
Unit тесты для модуля логирования (src/common/logger.py).
"""

import json
import logging
import sys
from unittest.mock import MagicMock, Mock, patch

import pytest

from src.common.constants import TypeMsg
from src.common.logger import (
    DEFAULT_LOGGER,
    ColoredFormatter,
    JsonFormatter,
    _get_caller_info,
    _loggers,
    get_logger,
    log_critical,
    log_debug,
    log_error,
    log_info,
    log_warning,
    setup_logging,
)


def make_record(level: int = logging.INFO, msg: str = "Test message", exc_info=None) -> logging.LogRecord:
    return logging.LogRecord(
        name="test_logger",
        level=level,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


class TestJsonFormatter:
    """Тесты для JsonFormatter."""

    def test_format_basic_record(self) -> None:
        result = json.loads(JsonFormatter().format(make_record()))

        assert result["level"] == "INFO"
        assert result["logger"] == "test_logger"
        assert result["message"] == "Test message"
        assert result["timestamp"].endswith("Z")
        assert "extra" not in result

    def test_format_with_extra_data(self) -> None:
        record = make_record(logging.WARNING, "Warning message")
        record.extra_data = {"user_id": 123, "invoice_payload": "abc"}

        result = json.loads(JsonFormatter().format(record))

        assert result["extra"] == {"user_id": 123, "invoice_payload": "abc"}

    def test_format_with_exception(self) -> None:
        try:
            raise ValueError("Test exception")
        except ValueError:
            exc_info = sys.exc_info()

        result = json.loads(JsonFormatter().format(make_record(logging.ERROR, "Error occurred", exc_info)))

        assert "ValueError: Test exception" in result["exception"]

    def test_non_ascii_kept(self) -> None:
        result = JsonFormatter().format(make_record(msg="Покупка завершена"))
        assert "Покупка завершена" in result


class TestColoredFormatter:
    """Тесты для ColoredFormatter."""

    def test_format_basic_record(self) -> None:
        result = ColoredFormatter().format(make_record())

        assert "[INFO]" in result
        assert "Test message" in result
        assert "\033[32m" in result

    def test_format_with_caller_info(self) -> None:
        record = make_record(logging.DEBUG, "Debug message")
        record.extra_data = {
            "caller_function": "settle",
            "caller_module": "src.core.payments.service",
            "caller_line": 42,
        }

        result = ColoredFormatter().format(record)

        assert "src.core.payments.service.settle():42" in result


class TestGetLogger:
    """Тесты для get_logger."""

    def setup_method(self) -> None:
        _loggers.clear()
        logging.getLogger("test_logger").handlers.clear()

    def test_get_logger_creates_new_logger(self) -> None:
        logger = get_logger("test_logger")

        assert logger.name == "test_logger"
        assert len(logger.handlers) >= 1
        assert logger.propagate is False

    def test_get_logger_returns_cached_logger(self) -> None:
        assert get_logger("test_logger") is get_logger("test_logger")

    @patch("src.config.settings")
    def test_get_logger_uses_settings(self, mock_settings: Mock) -> None:
        mock_settings.logging.LOG_LEVEL = "WARNING"
        mock_settings.logging.LOG_FORMAT = "json"
        mock_settings.logging.LOG_TO_FILE = False

        logger = get_logger("test_with_settings")

        assert logger.level == logging.WARNING

    def test_get_logger_handles_missing_settings(self) -> None:
        """Без конфига используются значения по умолчанию."""
        with patch.dict("sys.modules", {"src.config": None}):
            logger = get_logger("test_no_settings")

        assert logger.level == logging.INFO


class TestSetupLogging:

    def test_sets_third_party_levels(self) -> None:
        with patch("src.common.logger._LOGGING_INITIALIZED", False):
            setup_logging()

        assert DEFAULT_LOGGER in _loggers
        assert logging.getLogger("asyncpg").level == logging.WARNING
        assert logging.getLogger("aiogram").level == logging.INFO


class TestGetCallerInfo:

    def test_reports_calling_function(self) -> None:
        def outer():
            return inner()

        def inner():
            return _get_caller_info(depth=2)

        info = outer()

        assert info["caller_function"] == "outer"
        assert info["caller_module"] == __name__

    def test_too_deep_returns_empty(self) -> None:
        assert _get_caller_info(depth=10000) == {}


class TestLogFunctions:
    """Тесты для асинхронных функций логирования."""

    @pytest.fixture
    def logger(self) -> MagicMock:
        with patch("src.common.logger.get_logger") as mock_get_logger:
            mock_get_logger.return_value = MagicMock()
            yield mock_get_logger.return_value

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "type_msg, level",
        [
            (TypeMsg.DEBUG, logging.DEBUG),
            (TypeMsg.INFO, logging.INFO),
            (TypeMsg.WARNING, logging.WARNING),
            (TypeMsg.ERROR, logging.ERROR),
            (TypeMsg.CRITICAL, logging.CRITICAL),
        ],
    )
    async def test_log_info_level_from_type_msg(
        self,
        logger: MagicMock,
        type_msg: TypeMsg,
        level: int,
    ) -> None:
        await log_info("message", type_msg=type_msg)

        assert logger.log.call_args.args == (level, "message")

    @pytest.mark.asyncio
    async def test_extra_merged_with_caller(self, logger: MagicMock) -> None:
        await log_info("Test message", extra={"user_id": 123})

        extra_data = logger.log.call_args.kwargs["extra"]["extra_data"]
        assert extra_data["user_id"] == 123
        assert extra_data["caller_function"] == "test_extra_merged_with_caller"

    @pytest.mark.asyncio
    async def test_level_helpers(self, logger: MagicMock) -> None:
        await log_debug("d")
        await log_warning("w")
        await log_error("e")
        await log_critical("c")

        levels = [c.args[0] for c in logger.log.call_args_list]
        assert levels == [logging.DEBUG, logging.WARNING, logging.ERROR, logging.CRITICAL]

    @pytest.mark.asyncio
    async def test_log_error_with_exc_info(self, logger: MagicMock) -> None:
        await log_error("Error message", exc_info=True)

        assert logger.log.call_args.kwargs["exc_info"] is True

    @pytest.mark.asyncio
    async def test_custom_logger_name(self) -> None:
        with patch("src.common.logger.get_logger") as mock_get_logger:
            await log_info("Test message", logger_name="custom_logger")

        mock_get_logger.assert_called_once_with("custom_logger")
