# ═══════════════════════════════════════════════════════════════════════════
# МОДЕРАЦИЯ: УДАЛЕНИЕ ЗАБАНЕННЫХ ИЗ ГРУППЫ
# ═══════════════════════════════════════════════════════════════════════════
# Когда забаненный пользователь пишет в группе, бот:
# 1. баннит его в чате (ban_chat_member)
# 2. пишет короткое уведомление
#
# Политика best-effort: ошибка Telegram API логируется с контекстом
# и НЕ повторяется. Решение о подсчёте от этого не зависит - событие
# уже отклонено Ban Gate.
# ═══════════════════════════════════════════════════════════════════════════

import html
import logging
from dataclasses import dataclass
from typing import Optional

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError

logger = logging.getLogger(__name__)


@dataclass
class RemovalResult:
    """
    Результат попытки удалить пользователя.

    Attributes:
        removed: ban_chat_member прошёл успешно
        notified: уведомление в чат отправлено
        error: текст ошибки Telegram API
    """
    removed: bool = False
    notified: bool = False
    error: Optional[str] = None


def removal_notice(display_name: str) -> str:
    return f"🚫 Пользователь <b>{html.escape(display_name)}</b> заблокирован и удалён из группы."


async def remove_banned_user(
    bot: Bot,
    chat_id: int,
    user_id: int,
    display_name: Optional[str] = None,
) -> RemovalResult:
    """
    Удаляет забаненного пользователя из группы и уведомляет чат.

    Никогда не бросает TelegramAPIError наружу.
    """
    result = RemovalResult()

    # ─── Шаг 1: бан в чате ───
    try:
        await bot.ban_chat_member(chat_id=chat_id, user_id=user_id)
        result.removed = True
        logger.info(f"[MODERATION] 🚫 Забаненный user_id={user_id} удалён из chat_id={chat_id}")
    except TelegramAPIError as e:
        result.error = str(e)
        logger.warning(
            f"[MODERATION] ⚠️ Не удалось удалить user_id={user_id} из chat_id={chat_id}: {e}"
        )
        return result

    # ─── Шаг 2: уведомление ───
    try:
        await bot.send_message(
            chat_id=chat_id,
            text=removal_notice(display_name or f"id{user_id}"),
            parse_mode="HTML",
        )
        result.notified = True
    except TelegramAPIError as e:
        result.error = str(e)
        logger.warning(
            f"[MODERATION] ⚠️ Не удалось отправить уведомление в chat_id={chat_id} "
            f"об удалении user_id={user_id}: {e}"
        )

    return result
