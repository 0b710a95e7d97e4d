# ============================================================
# STATS QUERIES - ЧТЕНИЕ СТАТИСТИКИ
# ============================================================
# Только чтение. Ничего здесь не пишет в БД.
# Среднее слов на сообщение считается ТОЛЬКО через
# stats_math.average_words из целых сумм: для агрегата по группам
# сначала суммируем слова и сообщения, потом делим
# (среднее средних было бы неверным).
# ============================================================

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from statbot.database.models import GroupAggregate, UserGroupStat, UserProfile
from statbot.services.stats_math import average_words

logger = logging.getLogger(__name__)

DEFAULT_GROUP_TOP_LIMIT = 10


def _int(value) -> int:
    # SUM() в MySQL возвращает Decimal, в остальных бэкендах int / None
    return int(value or 0)


@dataclass(frozen=True)
class UserStat:
    """Статистика пользователя: в одной группе или сумма по всем группам."""
    user_id: int
    group_id: Optional[int]
    first_name: str
    last_name: Optional[str] = None
    username: Optional[str] = None
    message_count: int = 0
    word_count: int = 0
    sticker_count: int = 0
    media_count: int = 0
    edited_message_count: int = 0
    deleted_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def average_words(self) -> int:
        return average_words(self.word_count, self.message_count)

    @classmethod
    def from_row(cls, row: UserGroupStat) -> "UserStat":
        return cls(
            user_id=row.user_id,
            group_id=row.group_id,
            first_name=row.first_name,
            last_name=row.last_name,
            username=row.username,
            message_count=row.message_count,
            word_count=row.word_count,
            sticker_count=row.sticker_count,
            media_count=row.media_count,
            edited_message_count=row.edited_message_count,
            deleted_count=row.deleted_count,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["average_words"] = self.average_words
        data["created_at"] = self.created_at.isoformat() if self.created_at else None
        data["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        return data


@dataclass(frozen=True)
class GroupSummary:
    id: int
    title: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class GroupStat:
    """Снимок агрегата группы."""
    id: int
    type: str
    title: str
    username: Optional[str]
    users: int
    user_active: int
    message: int
    edited_message: int
    words: int
    sticker: int
    media: int
    deleted: int

    @property
    def average_words(self) -> int:
        return average_words(self.words, self.message)

    @classmethod
    def from_row(cls, row: GroupAggregate) -> "GroupStat":
        return cls(
            id=row.id,
            type=row.type,
            title=group_title(row.id, row.title),
            username=row.username,
            users=row.users,
            user_active=row.user_active,
            message=row.message,
            edited_message=row.edited_message,
            words=row.words,
            sticker=row.sticker,
            media=row.media,
            deleted=row.deleted,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["average"] = self.average_words
        return data


def group_title(group_id: int, title: Optional[str]) -> str:
    """Название группы или заглушка "Group {id}", если оно неизвестно."""
    return title or f"Group {group_id}"


class StatsQueries:
    def __init__(self, sessionmaker: async_sessionmaker):
        self.sessionmaker = sessionmaker

    @staticmethod
    def _aggregated_select():
        """
        SELECT сумм по всем группам пользователя.

        Имена берём из профиля (он обновляется на каждом событии),
        а если профиля нет - из строк групп.
        """
        return (
            select(
                UserGroupStat.user_id,
                func.coalesce(UserProfile.first_name, func.max(UserGroupStat.first_name)).label("first_name"),
                func.coalesce(UserProfile.last_name, func.max(UserGroupStat.last_name)).label("last_name"),
                func.coalesce(UserProfile.username, func.max(UserGroupStat.username)).label("username"),
                func.sum(UserGroupStat.message_count).label("message_count"),
                func.sum(UserGroupStat.word_count).label("word_count"),
                func.sum(UserGroupStat.sticker_count).label("sticker_count"),
                func.sum(UserGroupStat.media_count).label("media_count"),
                func.sum(UserGroupStat.edited_message_count).label("edited_message_count"),
                func.sum(UserGroupStat.deleted_count).label("deleted_count"),
                func.min(UserGroupStat.created_at).label("created_at"),
                func.max(UserGroupStat.updated_at).label("updated_at"),
            )
            .select_from(UserGroupStat)
            .outerjoin(UserProfile, UserProfile.user_id == UserGroupStat.user_id)
            .group_by(
                UserGroupStat.user_id,
                UserProfile.first_name,
                UserProfile.last_name,
                UserProfile.username,
            )
        )

    @staticmethod
    def _aggregated_from_mapping(row) -> UserStat:
        return UserStat(
            user_id=row["user_id"],
            group_id=None,
            first_name=row["first_name"] or "",
            last_name=row["last_name"],
            username=row["username"],
            message_count=_int(row["message_count"]),
            word_count=_int(row["word_count"]),
            sticker_count=_int(row["sticker_count"]),
            media_count=_int(row["media_count"]),
            edited_message_count=_int(row["edited_message_count"]),
            deleted_count=_int(row["deleted_count"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    # ─────────────────────────────────────────────────────────
    # ПОЛЬЗОВАТЕЛИ
    # ─────────────────────────────────────────────────────────
    async def get_user_stat(self, user_id: int, group_id: int) -> Optional[UserStat]:
        async with self.sessionmaker() as session:
            row = await session.get(UserGroupStat, (user_id, group_id))
            return UserStat.from_row(row) if row is not None else None

    async def get_aggregated_user_stat(self, user_id: int) -> Optional[UserStat]:
        """Сумма по всем группам пользователя, None если активности нет."""
        stmt = self._aggregated_select().where(UserGroupStat.user_id == user_id)
        async with self.sessionmaker() as session:
            row = (await session.execute(stmt)).mappings().first()
        if row is None:
            return None
        return self._aggregated_from_mapping(row)

    async def get_top_users(self, limit: int, offset: int = 0) -> List[UserStat]:
        """
        Глобальный рейтинг: суммы по группам, сортировка по сообщениям,
        при равенстве - по user_id по возрастанию (стабильная пагинация).
        """
        stmt = (
            self._aggregated_select()
            .order_by(func.sum(UserGroupStat.message_count).desc(), UserGroupStat.user_id.asc())
            .limit(limit)
            .offset(offset)
        )
        async with self.sessionmaker() as session:
            rows = (await session.execute(stmt)).mappings().all()
        return [self._aggregated_from_mapping(row) for row in rows]

    async def count_users(self) -> int:
        async with self.sessionmaker() as session:
            total = await session.scalar(select(func.count(distinct(UserGroupStat.user_id))))
        return _int(total)

    async def get_group_top_users(self, group_id: int, limit: int = DEFAULT_GROUP_TOP_LIMIT) -> List[UserStat]:
        stmt = (
            select(UserGroupStat)
            .where(UserGroupStat.group_id == group_id)
            .order_by(UserGroupStat.message_count.desc(), UserGroupStat.user_id.asc())
            .limit(limit)
        )
        async with self.sessionmaker() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [UserStat.from_row(row) for row in rows]

    # ─────────────────────────────────────────────────────────
    # ГРУППЫ
    # ─────────────────────────────────────────────────────────
    async def get_groups(self, admin_id: int) -> List[GroupSummary]:
        """
        Группы для переключателя в Mini-App админа.

        Права админа проверяются на уровне API; сейчас админ видит
        все группы, в которых бот что-либо посчитал.
        """
        stmt = (
            select(
                UserGroupStat.group_id,
                func.coalesce(GroupAggregate.title, func.max(UserGroupStat.group_title)).label("title"),
            )
            .select_from(UserGroupStat)
            .outerjoin(GroupAggregate, GroupAggregate.id == UserGroupStat.group_id)
            .group_by(UserGroupStat.group_id, GroupAggregate.title)
            .order_by(UserGroupStat.group_id)
        )
        async with self.sessionmaker() as session:
            rows = (await session.execute(stmt)).all()
        logger.debug(f"[STATS] Список групп для админа {admin_id}: {len(rows)}")
        return [GroupSummary(id=row.group_id, title=group_title(row.group_id, row.title)) for row in rows]

    async def get_groups_for_user(self, user_id: int) -> List[GroupSummary]:
        stmt = (
            select(UserGroupStat.group_id, UserGroupStat.group_title)
            .where(UserGroupStat.user_id == user_id)
            .order_by(UserGroupStat.message_count.desc(), UserGroupStat.group_id.asc())
        )
        async with self.sessionmaker() as session:
            rows = (await session.execute(stmt)).all()
        return [GroupSummary(id=row.group_id, title=group_title(row.group_id, row.group_title)) for row in rows]

    async def get_group(self, group_id: int) -> Optional[GroupStat]:
        async with self.sessionmaker() as session:
            row = await session.get(GroupAggregate, group_id)
            return GroupStat.from_row(row) if row is not None else None

    async def get_top_groups(self, limit: int, offset: int = 0) -> List[GroupStat]:
        stmt = (
            select(GroupAggregate)
            .order_by(GroupAggregate.message.desc(), GroupAggregate.id.asc())
            .limit(limit)
            .offset(offset)
        )
        async with self.sessionmaker() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [GroupStat.from_row(row) for row in rows]

    async def count_groups(self) -> int:
        async with self.sessionmaker() as session:
            total = await session.scalar(select(func.count(GroupAggregate.id)))
        return _int(total)
