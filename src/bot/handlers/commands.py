# src/bot/handlers/commands.py
"""
Команды бота: /start, /help, /collection, /stats, /leaderboard.
"""

from __future__ import annotations

from collections import Counter
from typing import Optional

from aiogram import Router
from aiogram.filters import Command, CommandStart
from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup, Message, WebAppInfo
from aiogram.utils.keyboard import InlineKeyboardBuilder

from src.bot.dependencies import get_user_service
from src.common.constants import TypeMsg
from src.common.errors import AppError, NotFoundError
from src.common.logger import log_error, log_info

router = Router(name="commands")

MEDALS = ("🥇", "🥈", "🥉")

HELP_TEXT = (
    "📖 <b>Available Commands</b>\n\n"
    "/collection - View your owned Pokemon cards\n"
    "/stats - View your purchase statistics\n"
    "/leaderboard - See top collectors\n"
    "/start - Welcome message\n"
    "/help - Show this help message\n\n"
    "<b>How to Buy:</b>\n"
    "1. Open the mini app\n"
    "2. Browse Pokemon cards\n"
    "3. Tap \"Buy\" on any card\n"
    "4. Pay with Telegram Stars ⭐\n"
    "5. Cards are added to your collection!"
)

GENERIC_ERROR_TEXT = "❌ Something went wrong. Please try again later."


def get_mini_app_keyboard() -> Optional[InlineKeyboardMarkup]:
    """Кнопка запуска Mini App, если URL задан в конфиге."""
    from src.config import settings

    url = settings.telegram.MINI_APP_URL
    if not url:
        return None

    builder = InlineKeyboardBuilder()
    builder.row(InlineKeyboardButton(text="🎮 Open Mini App", web_app=WebAppInfo(url=url)))
    return builder.as_markup()


@router.message(CommandStart())
async def cmd_start(message: Message) -> None:
    """Регистрирует пользователя и показывает приветствие."""
    user = message.from_user
    await log_info(f"Команда /start от {user.id} ({user.username})", type_msg=TypeMsg.DEBUG)

    try:
        await get_user_service().create_or_update_user(
            user.id, user.username, user.first_name, user.last_name
        )
    except AppError as e:
        # Приветствие показываем даже без профиля
        await log_error(f"Не удалось сохранить пользователя {user.id}: {e}")

    await message.answer(
        f"🎮 <b>Welcome to Pokemon Card Collection!</b>\n\n"
        f"Hey {user.first_name or 'collector'}! 👋\n\n"
        f"Buy Pokemon cards with Telegram Stars ⭐, build your collection "
        f"and compete on the leaderboard.\n\n"
        f"Type /help to see all commands.",
        reply_markup=get_mini_app_keyboard(),
    )


@router.message(Command("help"))
async def cmd_help(message: Message) -> None:
    await message.answer(HELP_TEXT)


@router.message(Command("collection"))
async def cmd_collection(message: Message) -> None:
    """Коллекция, сгруппированная по покемонам."""
    try:
        cards = await get_user_service().get_collection(message.from_user.id)
    except AppError as e:
        await log_error(f"Ошибка в cmd_collection: {e}", exc_info=True)
        await message.answer(GENERIC_ERROR_TEXT)
        return

    if not cards:
        await message.answer(
            "📦 <b>Your Collection is Empty</b>\n\n"
            "You haven't purchased any Pokemon cards yet!\n"
            "Open the mini app to start collecting! 🎮"
        )
        return

    units = Counter()
    for card in cards:
        units[card.pokemon_name] += card.units

    lines = ["🎴 <b>Your Pokemon Collection</b>\n", f"📊 Total Cards: <b>{sum(units.values())}</b>\n"]
    lines.extend(f"• {name} × {count}" for name, count in units.most_common())
    await message.answer("\n".join(lines))


@router.message(Command("stats"))
async def cmd_stats(message: Message) -> None:
    try:
        stats = await get_user_service().get_stats(message.from_user.id)
    except NotFoundError:
        await message.answer("❌ No stats available. Start collecting Pokemon cards first!")
        return
    except AppError as e:
        await log_error(f"Ошибка в cmd_stats: {e}", exc_info=True)
        await message.answer(GENERIC_ERROR_TEXT)
        return

    purchases = max(stats.total_purchases, 1)
    last_purchase = stats.last_purchase.strftime("%b %d, %Y") if stats.last_purchase else "N/A"
    member_since = stats.member_since.strftime("%b %d, %Y") if stats.member_since else "N/A"

    await message.answer(
        f"📊 <b>Your Statistics</b>\n\n"
        f"• Member Since: {member_since}\n"
        f"• Total Cards: <b>{stats.total_cards}</b>\n"
        f"• Unique Pokemon: <b>{stats.unique_pokemon}</b>\n"
        f"• Total Purchases: <b>{stats.total_purchases}</b>\n"
        f"• Total Spent: <b>{stats.total_spent} ⭐</b>\n"
        f"• Last Purchase: {last_purchase}\n"
        f"• Average per Purchase: <b>{stats.total_spent / purchases:.1f} ⭐</b>"
    )


@router.message(Command("leaderboard"))
async def cmd_leaderboard(message: Message) -> None:
    try:
        entries = await get_user_service().get_leaderboard(limit=10)
    except AppError as e:
        await log_error(f"Ошибка в cmd_leaderboard: {e}", exc_info=True)
        await message.answer(GENERIC_ERROR_TEXT)
        return

    if not entries:
        await message.answer("📊 Leaderboard is empty. Be the first collector!")
        return

    lines = ["🏆 <b>Top Collectors Leaderboard</b>\n"]
    for entry in entries:
        rank = MEDALS[entry.rank - 1] if entry.rank <= len(MEDALS) else f"{entry.rank}."
        name = entry.username or str(entry.telegram_id)
        lines.append(
            f"{rank} <b>{name}</b>\n"
            f"   💎 {entry.total_spent} ⭐ | 🎴 {entry.total_cards} cards | "
            f"🛍️ {entry.total_purchases} purchases"
        )
    await message.answer("\n".join(lines))
