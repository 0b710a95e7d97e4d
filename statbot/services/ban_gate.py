# ============================================================
# BAN GATE - ПРОВЕРКА БАН-ЛИСТА
# ============================================================
# Решает, можно ли считать событие от пользователя / из группы.
# Источники правды:
#   - таблица banned (id пользователя ИЛИ группы)
#   - липкий флаг users.is_banned (ставится модерацией)
#
# Проверка выполняется ДО классификации и до записи счётчиков,
# поэтому сообщение забаненного не попадает в БД даже временно.
# ============================================================

import logging
from enum import Enum
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from statbot.database.models import BanEntry, UserProfile, utcnow
from statbot.database.store import CounterStore

logger = logging.getLogger(__name__)

SUBJECT_USER = "user"
SUBJECT_GROUP = "group"

# banned.message - String(255)
BAN_REASON_MAX_LENGTH = 255


class BanVerdict(Enum):
    """Результат проверки пары (пользователь, чат)"""
    ALLOWED = "allowed"
    USER_BANNED = "user_banned"    # удалить пользователя из группы
    GROUP_BANNED = "group_banned"  # молча игнорировать весь чат

    @property
    def banned(self) -> bool:
        return self is not BanVerdict.ALLOWED


class BanGate:
    def __init__(self, sessionmaker: async_sessionmaker, store: CounterStore):
        self.sessionmaker = sessionmaker
        self.store = store

    @staticmethod
    async def _subject_banned(session: AsyncSession, subject_id: int) -> bool:
        entry = await session.get(BanEntry, subject_id)
        if entry is not None:
            return True
        flag = await session.scalar(
            select(UserProfile.is_banned).where(UserProfile.user_id == subject_id)
        )
        return bool(flag)

    async def is_banned(self, subject_id: int) -> bool:
        """Забанен ли пользователь или группа с этим id."""
        async with self.sessionmaker() as session:
            return await self._subject_banned(session, subject_id)

    async def check(self, user_id: int, chat_id: Optional[int] = None) -> BanVerdict:
        """
        Проверяет автора и чат.

        Бан группы важнее бана пользователя: из забаненной группы
        никого не выкидываем, просто ничего не считаем.
        Для лички chat_id совпадает с user_id - проверяем один раз.
        """
        async with self.sessionmaker() as session:
            if chat_id is not None and chat_id != user_id:
                if await self._subject_banned(session, chat_id):
                    return BanVerdict.GROUP_BANNED
            if await self._subject_banned(session, user_id):
                return BanVerdict.USER_BANNED
        return BanVerdict.ALLOWED

    async def ban(
        self,
        subject_id: int,
        subject_type: str = SUBJECT_USER,
        reason: Optional[str] = None,
        spammer: bool = False,
    ) -> None:
        """Добавляет запись в бан-лист; для пользователя ставит is_banned."""
        if subject_type not in (SUBJECT_USER, SUBJECT_GROUP):
            raise ValueError(f"Неизвестный тип субъекта бана: {subject_type}")

        if reason:
            reason = reason[:BAN_REASON_MAX_LENGTH]

        now = utcnow()
        async with self.sessionmaker.begin() as session:
            await self.store.upsert_ban_entry(session, subject_id, subject_type, reason, spammer, now)
            if subject_type == SUBJECT_USER:
                await self.store.set_user_banned(session, subject_id, True, now)

        logger.info(
            f"[BAN_GATE] 🚫 Забанен {subject_type} id={subject_id}, причина='{reason or '—'}'"
        )

    async def unban(self, subject_id: int) -> bool:
        """
        Снимает бан. Возвращает True, если что-то было снято.
        """
        async with self.sessionmaker.begin() as session:
            entries = await session.execute(delete(BanEntry).where(BanEntry.id == subject_id))
            flags = await session.execute(
                update(UserProfile)
                .where(UserProfile.user_id == subject_id, UserProfile.is_banned.is_(True))
                .values(is_banned=False)
            )
            removed = (entries.rowcount or 0) + (flags.rowcount or 0)

        if removed:
            logger.info(f"[BAN_GATE] ✅ Бан снят: id={subject_id}")
        return bool(removed)
