# ============================================================
# КОМАНДЫ СТАТИСТИКИ
# ============================================================
#   /start        - приветствие
#   /ping         - время отклика
#   /stats        - ЛС: сумма по всем группам + кнопка Web App
#                   группа: статистика автора в этой группе
#   /leaderboard  - группа: топ-10 группы, ЛС: глобальный топ-10
#   /web          - только ЛС: кнопка Web App
#   /deletelast   - только группы: имитация удаления сообщения
#
# Ошибки БД не показываются пользователю: в чат уходит
# общий текст, подробности - в лог.
# ============================================================

import logging
import time
from typing import Optional

from aiogram import Router
from aiogram.filters import Command, CommandStart
from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup, Message, WebAppInfo
from sqlalchemy.exc import SQLAlchemyError

from statbot.context import AppContext
from statbot.services.entities import Actor, ChatRef
from statbot.utils.stats_text import (
    GENERIC_ERROR_TEXT,
    GROUP_ONLY_TEXT,
    NO_STATS_TEXT,
    WEBAPP_NOT_CONFIGURED_TEXT,
    leaderboard_text,
    user_stat_text,
    welcome_text,
)

logger = logging.getLogger(__name__)

router = Router()
router.name = "stats_commands_router"

LEADERBOARD_LIMIT = 10


def webapp_keyboard(ctx: AppContext, text: str = "📊 Открыть Web App") -> Optional[InlineKeyboardMarkup]:
    """Кнопка Web App, если URL настроен"""
    if not ctx.settings.webapp_configured:
        return None
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text=text, web_app=WebAppInfo(url=ctx.settings.webapp_url))]
    ])


@router.message(CommandStart())
async def cmd_start(message: Message):
    first_name = message.from_user.first_name if message.from_user else None
    await message.answer(welcome_text(first_name), parse_mode="HTML")


@router.message(Command("ping"))
async def cmd_ping(message: Message):
    started = time.perf_counter()
    reply = await message.answer("Pong!")
    elapsed_ms = (time.perf_counter() - started) * 1000
    await reply.edit_text(f"Pong!\n<code>{elapsed_ms:.2f}</code> ms", parse_mode="HTML")


@router.message(Command("stats"))
async def cmd_stats(message: Message, ctx: AppContext):
    if message.from_user is None:
        return
    user_id = message.from_user.id
    chat = ChatRef.from_chat(message.chat)

    try:
        if chat.is_private:
            stat = await ctx.queries.get_aggregated_user_stat(user_id)
            title = "📊 Ваша статистика (все группы)"
        else:
            stat = await ctx.queries.get_user_stat(user_id, chat.chat_id)
            title = "📊 Ваша статистика в группе"
    except SQLAlchemyError:
        logger.exception(f"[STATS_CMD] ❌ Ошибка чтения статистики user={user_id}")
        await message.answer(GENERIC_ERROR_TEXT)
        return

    text = user_stat_text(stat, ctx.settings.timezone, title) if stat else NO_STATS_TEXT
    keyboard = webapp_keyboard(ctx) if chat.is_private else None
    await message.answer(text, parse_mode="HTML", reply_markup=keyboard)


@router.message(Command("leaderboard"))
async def cmd_leaderboard(message: Message, ctx: AppContext):
    chat = ChatRef.from_chat(message.chat)

    try:
        if chat.is_private:
            stats = await ctx.queries.get_top_users(LEADERBOARD_LIMIT, 0)
            title = "Глобальный топ"
        else:
            stats = await ctx.queries.get_group_top_users(chat.chat_id, LEADERBOARD_LIMIT)
            title = f"Топ группы {chat.title or chat.chat_id}"
    except SQLAlchemyError:
        logger.exception(f"[STATS_CMD] ❌ Ошибка чтения топа chat={chat.chat_id}")
        await message.answer(GENERIC_ERROR_TEXT)
        return

    await message.answer(leaderboard_text(stats, title), parse_mode="HTML")


@router.message(Command("web"))
async def cmd_web(message: Message, ctx: AppContext):
    # Только в ЛС: в группе кнопка Web App не работает
    if not ChatRef.from_chat(message.chat).is_private:
        return

    keyboard = webapp_keyboard(ctx)
    if keyboard is None:
        await message.answer(WEBAPP_NOT_CONFIGURED_TEXT)
        return
    await message.answer("🌐 Статистика в Web App", reply_markup=keyboard)


@router.message(Command("deletelast"))
async def cmd_delete_last(message: Message, ctx: AppContext):
    """
    Имитация удаления сообщения.

    Bot API не присылает события об удалении, поэтому счётчик
    deleted можно проверить только этой командой.
    """
    if message.from_user is None:
        return
    chat = ChatRef.from_chat(message.chat)
    if chat.is_private:
        await message.answer(GROUP_ONLY_TEXT)
        return

    actor = Actor.from_user(message.from_user)
    try:
        applied = await ctx.stats.apply_delete(actor, chat)
    except SQLAlchemyError:
        logger.exception(f"[STATS_CMD] ❌ Ошибка учёта удаления user={actor.user_id}")
        await message.answer(GENERIC_ERROR_TEXT)
        return

    if applied:
        await message.answer(f"🗑 Имитировано удаление сообщения для {actor.first_name or actor.user_id}.")
