from sqlalchemy import Column, Integer, String, BigInteger, DateTime, Boolean, Index, PrimaryKeyConstraint
from sqlalchemy.orm import declarative_base
from datetime import datetime, timezone

Base = declarative_base()


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


# 👤 Профиль пользователя (не зависит от группы)
# Счётчики здесь - суммарные по всем чатам, включая личку с ботом.
# is_banned выставляется только модерацией (BanGate.ban / unban),
# обычный upsert профиля его НЕ трогает.
class UserProfile(Base):
    __tablename__ = "users"

    user_id = Column(BigInteger, primary_key=True, autoincrement=False)
    username = Column(String(255), nullable=True)
    first_name = Column(String(255), nullable=False, default="")
    last_name = Column(String(255), nullable=True)
    is_banned = Column(Boolean, nullable=False, default=False)

    message = Column(Integer, nullable=False, default=0)
    edited_message = Column(Integer, nullable=False, default=0)
    words = Column(Integer, nullable=False, default=0)
    sticker = Column(Integer, nullable=False, default=0)
    media = Column(Integer, nullable=False, default=0)
    deleted = Column(Integer, nullable=False, default=0)
    last_activity = Column(String(32), nullable=True)  # text / sticker / photo / video ...

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, index=True)


# 🏠 Агрегат по группе
# users / user_active - снимок, пересчитывается после каждого события
# полным проходом по user_group_stats (см. CounterStore.refresh_group_users).
class GroupAggregate(Base):
    __tablename__ = "groups"

    id = Column(BigInteger, primary_key=True, autoincrement=False)
    type = Column(String(50), nullable=False, default="group")  # group, supergroup, channel
    title = Column(String(255), nullable=True)
    username = Column(String(255), nullable=True)

    users = Column(Integer, nullable=False, default=0)
    user_active = Column(Integer, nullable=False, default=0)

    message = Column(Integer, nullable=False, default=0)
    edited_message = Column(Integer, nullable=False, default=0)
    words = Column(Integer, nullable=False, default=0)
    sticker = Column(Integer, nullable=False, default=0)
    media = Column(Integer, nullable=False, default=0)
    deleted = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)


# 📊 Статистика пользователя в конкретной группе
# Одна строка на пару (user_id, group_id). Строки никогда не удаляются,
# удаление сообщения только увеличивает deleted_count.
class UserGroupStat(Base):
    __tablename__ = "user_group_stats"

    user_id = Column(BigInteger, nullable=False)
    group_id = Column(BigInteger, nullable=False, index=True)

    username = Column(String(255), nullable=True)
    first_name = Column(String(255), nullable=False, default="")
    last_name = Column(String(255), nullable=True)
    group_title = Column(String(255), nullable=True)
    group_username = Column(String(255), nullable=True)

    message_count = Column(Integer, nullable=False, default=0)
    word_count = Column(Integer, nullable=False, default=0)
    sticker_count = Column(Integer, nullable=False, default=0)
    media_count = Column(Integer, nullable=False, default=0)
    edited_message_count = Column(Integer, nullable=False, default=0)
    deleted_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        PrimaryKeyConstraint("user_id", "group_id", name="pk_user_group_stats"),
        Index("ix_user_group_stats_user", "user_id"),
    )


# 🚫 Бан-лист: id пользователя ИЛИ группы
class BanEntry(Base):
    __tablename__ = "banned"

    id = Column(BigInteger, primary_key=True, autoincrement=False)
    type = Column(String(50), nullable=False)  # user / group
    spammer = Column(Boolean, nullable=False, default=False)
    message = Column(String(255), nullable=True)  # причина
    created_at = Column(DateTime, nullable=False, default=utcnow)
