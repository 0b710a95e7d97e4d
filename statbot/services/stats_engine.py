# ============================================================
# STATS ENGINE - ПРИМЕНЕНИЕ СОБЫТИЙ К СЧЁТЧИКАМ
# ============================================================
# Единственный писатель счётчиков статистики.
#
# Порядок для каждого события:
# 1. Ban Gate (если вердикт не передан вызывающим)
# 2. upsert профиля пользователя (users)
# 3. для лички - стоп, групповые строки не создаются
# 4. upsert пользователь-в-группе (user_group_stats)
# 5. upsert агрегата группы (groups) + пересчёт users / user_active
#
# Шаги 2-5 идут в одной транзакции. Ошибки БД НЕ глотаются:
# потеря события должна быть видна в логах вызывающего.
# ============================================================

import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from statbot.database.models import utcnow
from statbot.database.store import CounterStore
from statbot.services.ban_gate import BanGate, BanVerdict
from statbot.services.entities import Actor, ChatRef, CounterDelta
from statbot.services.event_classifier import ClassifiedEvent

logger = logging.getLogger(__name__)

# Окно "активных" пользователей группы по умолчанию
DEFAULT_ACTIVE_WINDOW = timedelta(days=30)

EDIT_DELTA = CounterDelta(edited_message=1)
DELETE_DELTA = CounterDelta(deleted=1)


def delta_for_event(event: ClassifiedEvent) -> CounterDelta:
    """Приращения для классифицированного сообщения."""
    counted = event.is_text or event.is_sticker or event.is_media
    return CounterDelta(
        message=1 if counted else 0,
        words=event.word_count,
        sticker=1 if event.is_sticker else 0,
        media=1 if event.is_media else 0,
    )


class StatsEngine:
    def __init__(
        self,
        sessionmaker: async_sessionmaker,
        store: CounterStore,
        ban_gate: BanGate,
        active_window: timedelta = DEFAULT_ACTIVE_WINDOW,
    ):
        self.sessionmaker = sessionmaker
        self.store = store
        self.ban_gate = ban_gate
        self.active_window = active_window

    async def apply_event(
        self,
        actor: Actor,
        chat: ChatRef,
        event: ClassifiedEvent,
        verdict: Optional[BanVerdict] = None,
    ) -> bool:
        """
        Применяет новое сообщение.

        Args:
            verdict: результат BanGate.check, если вызывающий уже проверил

        Returns:
            True если счётчики обновлены, False если событие отклонено баном
        """
        return await self._apply(actor, chat, delta_for_event(event), event.activity, verdict)

    async def apply_edit(
        self,
        actor: Actor,
        chat: ChatRef,
        verdict: Optional[BanVerdict] = None,
    ) -> bool:
        """Редактирование: только edited_message, остальные счётчики не трогаем."""
        return await self._apply(actor, chat, EDIT_DELTA, None, verdict)

    async def apply_delete(
        self,
        actor: Actor,
        chat: ChatRef,
        verdict: Optional[BanVerdict] = None,
    ) -> bool:
        """Удаление: отдельный счётчик deleted, message_count НЕ уменьшается."""
        return await self._apply(actor, chat, DELETE_DELTA, None, verdict)

    async def _apply(
        self,
        actor: Actor,
        chat: ChatRef,
        delta: CounterDelta,
        last_activity: Optional[str],
        verdict: Optional[BanVerdict],
    ) -> bool:
        if verdict is None:
            verdict = await self.ban_gate.check(actor.user_id, chat.chat_id)
        if verdict.banned:
            logger.debug(
                f"[STATS] Событие отклонено ({verdict.value}): user={actor.user_id}, chat={chat.chat_id}"
            )
            return False

        now = utcnow()
        async with self.sessionmaker.begin() as session:
            await self.store.upsert_profile(session, actor, delta, now, last_activity=last_activity)

            if not chat.is_private:
                await self.store.upsert_user_group(session, actor, chat, delta, now)
                await self.store.upsert_group(session, chat, delta, now)
                await self.store.refresh_group_users(session, chat.chat_id, now - self.active_window)

        logger.debug(
            f"[STATS] Upsert выполнен: user={actor.user_id}, chat={chat.chat_id}, delta={delta}"
        )
        return True
