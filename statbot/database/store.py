# ============================================================
# COUNTER STORE - ХРАНИЛИЩЕ СЧЁТЧИКОВ
# ============================================================
# Единственное место, где пишутся счётчики статистики.
# Все инкременты - это INSERT ... ON CONFLICT / ON DUPLICATE KEY UPDATE
# с выражением `column = column + delta`, поэтому параллельные
# апдейты одного пользователя не теряют приращения.
#
# Синтаксис upsert отличается между бэкендами, поэтому на каждый
# бэкенд - свой адаптер. Вызывающий код про диалект не знает:
# адаптер выбирается один раз в create_counter_store().
# ============================================================

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import distinct, func, select, update
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from statbot.database.models import BanEntry, GroupAggregate, UserGroupStat, UserProfile
from statbot.services.entities import Actor, ChatRef, CounterDelta

logger = logging.getLogger(__name__)


class CounterStore:
    """
    Базовый адаптер. Наследники реализуют только _upsert().

    Методы работают внутри транзакции вызывающего (session),
    коммит делает StatsEngine / BanGate.
    """

    dialect_name = ""

    def _upsert(
        self,
        model,
        values: Dict[str, Any],
        index_elements: List[str],
        set_: Dict[str, Any],
    ):
        raise NotImplementedError

    # ─────────────────────────────────────────────────────────
    # ПРОФИЛЬ ПОЛЬЗОВАТЕЛЯ
    # ─────────────────────────────────────────────────────────
    async def upsert_profile(
        self,
        session: AsyncSession,
        actor: Actor,
        delta: CounterDelta,
        now: datetime,
        last_activity: Optional[str] = None,
    ) -> None:
        values = {
            "user_id": actor.user_id,
            "username": actor.username,
            "first_name": actor.first_name,
            "last_name": actor.last_name,
            "is_banned": False,
            "message": delta.message,
            "edited_message": delta.edited_message,
            "words": delta.words,
            "sticker": delta.sticker,
            "media": delta.media,
            "deleted": delta.deleted,
            "last_activity": last_activity,
            "created_at": now,
            "updated_at": now,
        }
        # is_banned в set_ отсутствует намеренно: флаг меняет только модерация
        set_ = {
            "username": actor.username,
            "first_name": actor.first_name,
            "last_name": actor.last_name,
            "message": UserProfile.message + delta.message,
            "edited_message": UserProfile.edited_message + delta.edited_message,
            "words": UserProfile.words + delta.words,
            "sticker": UserProfile.sticker + delta.sticker,
            "media": UserProfile.media + delta.media,
            "deleted": UserProfile.deleted + delta.deleted,
            "updated_at": now,
        }
        if last_activity is not None:
            set_["last_activity"] = last_activity

        await session.execute(self._upsert(UserProfile, values, ["user_id"], set_))

    async def set_user_banned(
        self,
        session: AsyncSession,
        user_id: int,
        banned: bool,
        now: datetime,
    ) -> None:
        """Выставляет is_banned, при необходимости создавая пустой профиль."""
        values = {
            "user_id": user_id,
            "first_name": "",
            "is_banned": banned,
            "created_at": now,
            "updated_at": now,
        }
        await session.execute(
            self._upsert(UserProfile, values, ["user_id"], {"is_banned": banned})
        )

    # ─────────────────────────────────────────────────────────
    # ПОЛЬЗОВАТЕЛЬ В ГРУППЕ
    # ─────────────────────────────────────────────────────────
    async def upsert_user_group(
        self,
        session: AsyncSession,
        actor: Actor,
        chat: ChatRef,
        delta: CounterDelta,
        now: datetime,
    ) -> None:
        values = {
            "user_id": actor.user_id,
            "group_id": chat.chat_id,
            "username": actor.username,
            "first_name": actor.first_name,
            "last_name": actor.last_name,
            "group_title": chat.title,
            "group_username": chat.username,
            "message_count": delta.message,
            "word_count": delta.words,
            "sticker_count": delta.sticker,
            "media_count": delta.media,
            "edited_message_count": delta.edited_message,
            "deleted_count": delta.deleted,
            "created_at": now,
            "updated_at": now,
        }
        # Название группы - последнее увиденное (last-write-wins)
        set_ = {
            "username": actor.username,
            "first_name": actor.first_name,
            "last_name": actor.last_name,
            "group_title": chat.title,
            "group_username": chat.username,
            "message_count": UserGroupStat.message_count + delta.message,
            "word_count": UserGroupStat.word_count + delta.words,
            "sticker_count": UserGroupStat.sticker_count + delta.sticker,
            "media_count": UserGroupStat.media_count + delta.media,
            "edited_message_count": UserGroupStat.edited_message_count + delta.edited_message,
            "deleted_count": UserGroupStat.deleted_count + delta.deleted,
            "updated_at": now,
        }
        await session.execute(
            self._upsert(UserGroupStat, values, ["user_id", "group_id"], set_)
        )

    # ─────────────────────────────────────────────────────────
    # АГРЕГАТ ГРУППЫ
    # ─────────────────────────────────────────────────────────
    async def upsert_group(
        self,
        session: AsyncSession,
        chat: ChatRef,
        delta: CounterDelta,
        now: datetime,
    ) -> None:
        values = {
            "id": chat.chat_id,
            "type": chat.type,
            "title": chat.title,
            "username": chat.username,
            "users": 0,
            "user_active": 0,
            "message": delta.message,
            "edited_message": delta.edited_message,
            "words": delta.words,
            "sticker": delta.sticker,
            "media": delta.media,
            "deleted": delta.deleted,
            "created_at": now,
            "updated_at": now,
        }
        set_ = {
            "type": chat.type,
            "title": chat.title,
            "username": chat.username,
            "message": GroupAggregate.message + delta.message,
            "edited_message": GroupAggregate.edited_message + delta.edited_message,
            "words": GroupAggregate.words + delta.words,
            "sticker": GroupAggregate.sticker + delta.sticker,
            "media": GroupAggregate.media + delta.media,
            "deleted": GroupAggregate.deleted + delta.deleted,
            "updated_at": now,
        }
        await session.execute(self._upsert(GroupAggregate, values, ["id"], set_))

    async def refresh_group_users(
        self,
        session: AsyncSession,
        group_id: int,
        active_since: datetime,
    ) -> None:
        """
        Пересчитывает users / user_active группы полным проходом
        по user_group_stats.

        Не инкрементально: снимок на момент записи. Это O(участников группы)
        на каждое событие - известный предел масштабирования, зато
        значения не дрейфуют после падения между шагами.
        """
        users_q = (
            select(func.count(distinct(UserGroupStat.user_id)))
            .where(UserGroupStat.group_id == group_id)
            .scalar_subquery()
        )
        active_q = (
            select(func.count(distinct(UserGroupStat.user_id)))
            .select_from(UserGroupStat)
            .join(UserProfile, UserProfile.user_id == UserGroupStat.user_id)
            .where(
                UserGroupStat.group_id == group_id,
                UserProfile.updated_at >= active_since,
            )
            .scalar_subquery()
        )
        await session.execute(
            update(GroupAggregate)
            .where(GroupAggregate.id == group_id)
            .values(users=users_q, user_active=active_q)
        )

    # ─────────────────────────────────────────────────────────
    # БАН-ЛИСТ
    # ─────────────────────────────────────────────────────────
    async def upsert_ban_entry(
        self,
        session: AsyncSession,
        subject_id: int,
        subject_type: str,
        reason: Optional[str],
        spammer: bool,
        now: datetime,
    ) -> None:
        values = {
            "id": subject_id,
            "type": subject_type,
            "spammer": spammer,
            "message": reason,
            "created_at": now,
        }
        set_ = {"type": subject_type, "spammer": spammer, "message": reason}
        await session.execute(self._upsert(BanEntry, values, ["id"], set_))


class SQLiteCounterStore(CounterStore):
    dialect_name = "sqlite"

    def _upsert(self, model, values, index_elements, set_):
        stmt = sqlite_insert(model).values(**values)
        return stmt.on_conflict_do_update(index_elements=index_elements, set_=set_)


class PostgresCounterStore(CounterStore):
    dialect_name = "postgresql"

    def _upsert(self, model, values, index_elements, set_):
        stmt = postgresql_insert(model).values(**values)
        return stmt.on_conflict_do_update(index_elements=index_elements, set_=set_)


class MySQLCounterStore(CounterStore):
    """MariaDB / MySQL: конфликт определяется любым уникальным ключом таблицы."""

    dialect_name = "mysql"

    def _upsert(self, model, values, index_elements, set_):
        stmt = mysql_insert(model).values(**values)
        return stmt.on_duplicate_key_update(**set_)


STORES_BY_DIALECT = {
    "sqlite": SQLiteCounterStore,
    "postgresql": PostgresCounterStore,
    "mysql": MySQLCounterStore,
    "mariadb": MySQLCounterStore,
}


def create_counter_store(engine: AsyncEngine) -> CounterStore:
    """Выбирает адаптер по диалекту движка."""
    dialect = engine.dialect.name
    store_cls = STORES_BY_DIALECT.get(dialect)
    if store_cls is None:
        raise ValueError(f"Неподдерживаемый бэкенд БД: {dialect}")
    logger.info(f"[STORE] Адаптер хранилища: {store_cls.__name__} (dialect={dialect})")
    return store_cls()
