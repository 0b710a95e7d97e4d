# ============================================================
# КОМАНДЫ БАН-ЛИСТА (владелец бота и ADMIN_IDS)
# ============================================================
#   /ban 123456789 спам   - забанить пользователя
#   /ban -1001234567890   - забанить группу (отрицательный id)
#   /unban 123456789      - снять бан
#
# Бан действует на подсчёт статистики во всех группах.
# Забаненный пользователь удаляется из группы при следующем
# сообщении (см. MessageTrackingMiddleware).
# ============================================================

import logging
from typing import Optional, Tuple

from aiogram import Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message
from sqlalchemy.exc import SQLAlchemyError

from statbot.context import AppContext
from statbot.services.ban_gate import SUBJECT_GROUP, SUBJECT_USER
from statbot.utils.stats_text import GENERIC_ERROR_TEXT

logger = logging.getLogger(__name__)

router = Router()
router.name = "ban_commands_router"

BAN_USAGE = "Использование: /ban &lt;id&gt; [причина]"
UNBAN_USAGE = "Использование: /unban &lt;id&gt;"


def parse_ban_args(args: Optional[str]) -> Optional[Tuple[int, Optional[str]]]:
    """'<id> [причина]' -> (id, причина) или None при ошибке"""
    if not args:
        return None
    parts = args.split(maxsplit=1)
    try:
        subject_id = int(parts[0])
    except ValueError:
        return None
    reason = parts[1].strip() if len(parts) > 1 else None
    return subject_id, reason or None


def subject_type_for(subject_id: int) -> str:
    # id групп и супергрупп в Telegram отрицательные
    return SUBJECT_GROUP if subject_id < 0 else SUBJECT_USER


@router.message(Command("ban"))
async def cmd_ban(message: Message, command: CommandObject, ctx: AppContext):
    admin_id = message.from_user.id if message.from_user else None
    if not ctx.settings.is_admin(admin_id):
        return

    parsed = parse_ban_args(command.args)
    if parsed is None:
        await message.answer(BAN_USAGE, parse_mode="HTML")
        return
    subject_id, reason = parsed
    subject_type = subject_type_for(subject_id)

    try:
        await ctx.ban_gate.ban(subject_id, subject_type, reason=reason)
    except SQLAlchemyError:
        logger.exception(f"[BAN_CMD] ❌ Не удалось забанить {subject_id}")
        await message.answer(GENERIC_ERROR_TEXT)
        return

    logger.info(f"[BAN_CMD] admin_id={admin_id} забанил {subject_type} {subject_id}")
    await message.answer(f"🚫 {'Группа' if subject_type == SUBJECT_GROUP else 'Пользователь'} "
                         f"<code>{subject_id}</code> в бан-листе.", parse_mode="HTML")


@router.message(Command("unban"))
async def cmd_unban(message: Message, command: CommandObject, ctx: AppContext):
    admin_id = message.from_user.id if message.from_user else None
    if not ctx.settings.is_admin(admin_id):
        return

    parsed = parse_ban_args(command.args)
    if parsed is None:
        await message.answer(UNBAN_USAGE, parse_mode="HTML")
        return
    subject_id, _ = parsed

    try:
        removed = await ctx.ban_gate.unban(subject_id)
    except SQLAlchemyError:
        logger.exception(f"[BAN_CMD] ❌ Не удалось снять бан {subject_id}")
        await message.answer(GENERIC_ERROR_TEXT)
        return

    if removed:
        await message.answer(f"✅ Бан снят: <code>{subject_id}</code>", parse_mode="HTML")
    else:
        await message.answer(f"ℹ️ <code>{subject_id}</code> не найден в бан-листе.", parse_mode="HTML")
