# ============================================================
# MESSAGE TRACKING MIDDLEWARE - ПОДСЧЁТ СООБЩЕНИЙ
# ============================================================
# Outer-middleware на message: срабатывает для КАЖДОГО сообщения,
# даже если ни один хендлер не подошёл.
#
# Порядок:
# 1. Ban Gate (группа, потом автор)
#    - группа забанена  -> молча игнорируем апдейт
#    - автор забанен    -> удаляем из группы, апдейт дальше не идёт
# 2. Классификация (неинтересные сообщения пропускаем без логов)
# 3. StatsEngine.apply_event с уже полученным вердиктом
# 4. Передаём апдейт хендлерам команд
#
# Ошибка БД на шагах 1-3 логируется с трейсбеком, но бот
# продолжает обработку: одно событие не должно ронять процесс.
# ============================================================

import logging
from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware
from aiogram.types import Message
from sqlalchemy.exc import SQLAlchemyError

from statbot.context import AppContext
from statbot.services.ban_gate import BanVerdict
from statbot.services.entities import Actor, ChatRef
from statbot.services.event_classifier import classify_message
from statbot.services.moderation import remove_banned_user

logger = logging.getLogger(__name__)


class MessageTrackingMiddleware(BaseMiddleware):
    def __init__(self, ctx: AppContext):
        super().__init__()
        self.ctx = ctx

    async def __call__(
        self,
        handler: Callable[[Message, Dict[str, Any]], Awaitable[Any]],
        event: Message,
        data: Dict[str, Any],
    ) -> Any:
        user = event.from_user
        if user is None or user.is_bot:
            return await handler(event, data)

        actor = Actor.from_user(user)
        chat = ChatRef.from_chat(event.chat)

        try:
            verdict = await self.ctx.ban_gate.check(actor.user_id, chat.chat_id)
        except SQLAlchemyError:
            logger.exception(
                f"[TRACKER] ❌ Ban Gate недоступен: user={actor.user_id}, chat={chat.chat_id}"
            )
            return await handler(event, data)

        if verdict is BanVerdict.GROUP_BANNED:
            return None

        if verdict is BanVerdict.USER_BANNED:
            logger.info(
                f"[TRACKER] 🚫 Сообщение забаненного user={actor.user_id} в chat={chat.chat_id}"
            )
            if not chat.is_private:
                await remove_banned_user(data["bot"], chat.chat_id, actor.user_id, actor.full_name)
            return None

        classified = classify_message(event)
        if classified is not None:
            try:
                await self.ctx.stats.apply_event(actor, chat, classified, verdict=verdict)
            except SQLAlchemyError:
                logger.exception(
                    f"[TRACKER] ❌ Событие НЕ учтено: user={actor.user_id}, chat={chat.chat_id}"
                )

        return await handler(event, data)
