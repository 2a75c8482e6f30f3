# tests/bot/handlers/test_commands.py
"""
Тесты команд бота.
"""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.bot.handlers.commands import (
    GENERIC_ERROR_TEXT,
    HELP_TEXT,
    cmd_collection,
    cmd_help,
    cmd_leaderboard,
    cmd_start,
    cmd_stats,
    get_mini_app_keyboard,
)
from src.common.errors import NotFoundError, TransientStoreError
from src.config import settings
from src.core.users.models import LeaderboardEntry, OwnedCard, UserStats


@pytest.fixture
def user_service() -> MagicMock:
    service = MagicMock()
    service.create_or_update_user = AsyncMock()
    service.get_collection = AsyncMock(return_value=[])
    service.get_stats = AsyncMock()
    service.get_leaderboard = AsyncMock(return_value=[])
    return service


@pytest.fixture(autouse=True)
def wired(user_service: MagicMock):
    with patch("src.bot.handlers.commands.get_user_service", return_value=user_service), \
         patch("src.bot.handlers.commands.log_info", new_callable=AsyncMock), \
         patch("src.bot.handlers.commands.log_error", new_callable=AsyncMock):
        yield


@pytest.fixture
def message() -> MagicMock:
    message = MagicMock()
    message.from_user.id = 123456789
    message.from_user.username = "ash"
    message.from_user.first_name = "Ash"
    message.from_user.last_name = None
    message.answer = AsyncMock()
    return message


def card(name: str, units: int) -> OwnedCard:
    return OwnedCard(
        pokemon_id=name.lower(),
        pokemon_name=name,
        units=units,
        purchased_at=datetime(2026, 1, 10, tzinfo=timezone.utc),
    )


class TestStart:

    @pytest.mark.asyncio
    async def test_registers_user(self, message: MagicMock, user_service: MagicMock) -> None:
        await cmd_start(message)

        user_service.create_or_update_user.assert_awaited_once_with(123456789, "ash", "Ash", None)
        assert "Welcome to Pokemon Card Collection" in message.answer.call_args.args[0]

    @pytest.mark.asyncio
    async def test_greets_even_if_profile_fails(self, message: MagicMock, user_service: MagicMock) -> None:
        user_service.create_or_update_user.side_effect = TransientStoreError("fetchrow")

        await cmd_start(message)

        message.answer.assert_awaited_once()

    def test_keyboard_with_url(self) -> None:
        with patch.object(settings.telegram, "MINI_APP_URL", "https://example.com/app"):
            markup = get_mini_app_keyboard()

        button = markup.inline_keyboard[0][0]
        assert button.web_app.url == "https://example.com/app"

    def test_no_keyboard_without_url(self) -> None:
        with patch.object(settings.telegram, "MINI_APP_URL", ""):
            assert get_mini_app_keyboard() is None


class TestHelp:

    @pytest.mark.asyncio
    async def test_help(self, message: MagicMock) -> None:
        await cmd_help(message)
        message.answer.assert_awaited_once_with(HELP_TEXT)


class TestCollection:

    @pytest.mark.asyncio
    async def test_empty(self, message: MagicMock) -> None:
        await cmd_collection(message)
        assert "Your Collection is Empty" in message.answer.call_args.args[0]

    @pytest.mark.asyncio
    async def test_grouped_by_pokemon(self, message: MagicMock, user_service: MagicMock) -> None:
        user_service.get_collection.return_value = [card("Pikachu", 2), card("Eevee", 1), card("Pikachu", 3)]

        await cmd_collection(message)

        text = message.answer.call_args.args[0]
        assert "Total Cards: <b>6</b>" in text
        assert "• Pikachu × 5" in text
        assert text.index("Pikachu") < text.index("Eevee")

    @pytest.mark.asyncio
    async def test_store_error(self, message: MagicMock, user_service: MagicMock) -> None:
        user_service.get_collection.side_effect = TransientStoreError("fetchrow")

        await cmd_collection(message)

        message.answer.assert_awaited_once_with(GENERIC_ERROR_TEXT)


class TestStats:

    @pytest.mark.asyncio
    async def test_stats(self, message: MagicMock, user_service: MagicMock) -> None:
        user_service.get_stats.return_value = UserStats(
            telegram_id=123456789,
            username="ash",
            total_cards=6,
            unique_pokemon=2,
            total_purchases=3,
            total_spent=25,
            member_since=datetime(2026, 1, 1, tzinfo=timezone.utc),
            last_purchase=datetime(2026, 1, 10, tzinfo=timezone.utc),
        )

        await cmd_stats(message)

        text = message.answer.call_args.args[0]
        assert "Unique Pokemon: <b>2</b>" in text
        assert "Last Purchase: Jan 10, 2026" in text
        assert "Average per Purchase: <b>8.3 ⭐</b>" in text

    @pytest.mark.asyncio
    async def test_unknown_user(self, message: MagicMock, user_service: MagicMock) -> None:
        user_service.get_stats.side_effect = NotFoundError("User not found")

        await cmd_stats(message)

        assert "No stats available" in message.answer.call_args.args[0]


class TestLeaderboard:

    @pytest.mark.asyncio
    async def test_empty(self, message: MagicMock) -> None:
        await cmd_leaderboard(message)
        assert "Leaderboard is empty" in message.answer.call_args.args[0]

    @pytest.mark.asyncio
    async def test_medals_and_ranks(self, message: MagicMock, user_service: MagicMock) -> None:
        user_service.get_leaderboard.return_value = [
            LeaderboardEntry(
                rank=i,
                telegram_id=i,
                username=None if i == 4 else f"user{i}",
                total_cards=10 - i,
                total_purchases=1,
                total_spent=100 - i,
            )
            for i in range(1, 5)
        ]

        await cmd_leaderboard(message)

        text = message.answer.call_args.args[0]
        assert "🥇 <b>user1</b>" in text
        assert "🥉 <b>user3</b>" in text
        assert "4. <b>4</b>" in text
        user_service.get_leaderboard.assert_awaited_once_with(limit=10)
