# ============================================================
# ТЕКСТЫ ОТВЕТОВ БОТА
# ============================================================
# Всё форматирование для Telegram (HTML parse_mode) в одном месте.
# Имена пользователей и названия групп всегда экранируются.
# ============================================================

import html
from datetime import datetime, timezone
from typing import Iterable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from statbot.services.stats_queries import UserStat

GENERIC_ERROR_TEXT = "❌ Что-то пошло не так. Попробуйте позже."
NO_STATS_TEXT = "📭 Пока нет статистики. Напишите что-нибудь в группе, где есть бот."
WEBAPP_NOT_CONFIGURED_TEXT = "⚠️ Web App не настроен."
GROUP_ONLY_TEXT = "ℹ️ Команда работает только в группах."
PRIVATE_ONLY_TEXT = "ℹ️ Команда работает только в личных сообщениях с ботом."

MEDALS = {1: "🥇", 2: "🥈", 3: "🥉"}


def display_name(first_name: Optional[str], last_name: Optional[str] = None,
                 username: Optional[str] = None, user_id: Optional[int] = None) -> str:
    name = " ".join(part for part in (first_name, last_name) if part)
    if not name and username:
        name = f"@{username}"
    if not name:
        name = f"id{user_id}" if user_id is not None else "—"
    return html.escape(name)


def format_local_time(value: Optional[datetime], tz_name: str) -> str:
    """Время из БД (naive UTC) в часовом поясе бота."""
    if value is None:
        return "—"
    try:
        tz = ZoneInfo(tz_name)
    except ZoneInfoNotFoundError:
        tz = timezone.utc
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz).strftime("%d.%m.%Y %H:%M")


def welcome_text(first_name: Optional[str]) -> str:
    return (
        f"👋 Привет, <b>{html.escape(first_name or 'друг')}</b>!\n\n"
        "Я считаю активность в группах: сообщения, слова, стикеры и медиа.\n\n"
        "<b>Команды:</b>\n"
        "/stats - ваша статистика\n"
        "/leaderboard - топ участников\n"
        "/web - открыть Web App\n"
        "/ping - проверить связь"
    )


def user_stat_text(stat: UserStat, tz_name: str, title: str = "📊 Ваша статистика") -> str:
    name = display_name(stat.first_name, stat.last_name, stat.username, stat.user_id)
    return (
        f"<b>{title}</b>\n"
        f"👤 {name}\n\n"
        f"💬 Сообщений: <b>{stat.message_count}</b>\n"
        f"📝 Слов: <b>{stat.word_count}</b>\n"
        f"📏 Слов на сообщение: <b>{stat.average_words}</b>\n"
        f"🎭 Стикеров: <b>{stat.sticker_count}</b>\n"
        f"🖼 Медиа: <b>{stat.media_count}</b>\n"
        f"✏️ Правок: <b>{stat.edited_message_count}</b>\n"
        f"🗑 Удалено: <b>{stat.deleted_count}</b>\n\n"
        f"🕒 Последняя активность: {format_local_time(stat.updated_at, tz_name)}"
    )


def leaderboard_text(stats: Iterable[UserStat], title: str) -> str:
    lines = [f"<b>🏆 {html.escape(title)}</b>", ""]
    place = 0
    for place, stat in enumerate(stats, start=1):
        marker = MEDALS.get(place, f"{place}.")
        name = display_name(stat.first_name, stat.last_name, stat.username, stat.user_id)
        lines.append(f"{marker} {name} - {stat.message_count} сообщ., {stat.word_count} слов")
    if place == 0:
        return NO_STATS_TEXT
    return "\n".join(lines)
