"""
Учёт отредактированных сообщений.

Правка увеличивает только edited_message, остальные счётчики не трогает.
"""
import logging

from aiogram import Router
from aiogram.types import Message
from sqlalchemy.exc import SQLAlchemyError

from statbot.context import AppContext
from statbot.services.entities import Actor, ChatRef

logger = logging.getLogger(__name__)

router = Router()
router.name = "edited_messages_router"


@router.edited_message()
async def on_edited_message(message: Message, ctx: AppContext):
    user = message.from_user
    if user is None or user.is_bot:
        return

    actor = Actor.from_user(user)
    chat = ChatRef.from_chat(message.chat)
    try:
        await ctx.stats.apply_edit(actor, chat)
    except SQLAlchemyError:
        logger.exception(f"[TRACKER] ❌ Правка НЕ учтена: user={actor.user_id}, chat={chat.chat_id}")
