"""
Тесты движка статистики: upsert профиля, группы и пользователя-в-группе.
"""
import asyncio
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from statbot.database.models import GroupAggregate, UserGroupStat, UserProfile
from statbot.services.ban_gate import BanVerdict
from statbot.services.entities import Actor, ChatRef
from statbot.services.event_classifier import ClassifiedEvent
from statbot.services.stats_engine import delta_for_event

ACTOR = Actor(user_id=100, first_name="Ann", username="ann")
GROUP = ChatRef(chat_id=-1001, type="supergroup", title="Chat")
PRIVATE = ChatRef(chat_id=100, type="private")

TEXT_EVENT = ClassifiedEvent(is_text=True, word_count=3, activity="text")
STICKER_EVENT = ClassifiedEvent(is_sticker=True, activity="sticker")
PHOTO_EVENT = ClassifiedEvent(is_text=True, is_media=True, word_count=2, activity="photo")


async def _count(ctx, model) -> int:
    async with ctx.sessionmaker() as session:
        return await session.scalar(select(func.count()).select_from(model))


def test_delta_for_event():
    delta = delta_for_event(PHOTO_EVENT)
    assert delta.message == 1
    assert delta.words == 2
    assert delta.media == 1
    assert delta.sticker == 0


async def test_apply_event_creates_all_rows(ctx):
    assert await ctx.stats.apply_event(ACTOR, GROUP, TEXT_EVENT) is True
    assert await ctx.stats.apply_event(ACTOR, GROUP, STICKER_EVENT) is True
    assert await ctx.stats.apply_event(ACTOR, GROUP, PHOTO_EVENT) is True

    async with ctx.sessionmaker() as session:
        row = await session.get(UserGroupStat, (ACTOR.user_id, GROUP.chat_id))
        assert (row.message_count, row.word_count, row.sticker_count, row.media_count) == (3, 5, 1, 1)
        assert row.group_title == "Chat"

        profile = await session.get(UserProfile, ACTOR.user_id)
        assert (profile.message, profile.words, profile.sticker, profile.media) == (3, 5, 1, 1)
        assert profile.last_activity == "photo"

        group = await session.get(GroupAggregate, GROUP.chat_id)
        assert (group.message, group.words, group.users, group.user_active) == (3, 5, 1, 1)


async def test_private_chat_updates_only_profile(ctx):
    await ctx.stats.apply_event(ACTOR, PRIVATE, TEXT_EVENT)

    assert await _count(ctx, UserProfile) == 1
    assert await _count(ctx, UserGroupStat) == 0
    assert await _count(ctx, GroupAggregate) == 0


async def test_apply_edit_touches_only_edit_counter(ctx):
    await ctx.stats.apply_event(ACTOR, GROUP, TEXT_EVENT)
    await ctx.stats.apply_edit(ACTOR, GROUP)

    async with ctx.sessionmaker() as session:
        row = await session.get(UserGroupStat, (ACTOR.user_id, GROUP.chat_id))
        assert row.edited_message_count == 1
        assert row.message_count == 1
        assert row.word_count == 3


async def test_private_edit_creates_no_group_rows(ctx):
    await ctx.stats.apply_edit(ACTOR, PRIVATE)

    assert await _count(ctx, UserGroupStat) == 0
    assert await _count(ctx, GroupAggregate) == 0
    async with ctx.sessionmaker() as session:
        profile = await session.get(UserProfile, ACTOR.user_id)
        assert profile.edited_message == 1
        assert profile.message == 0


async def test_apply_delete_never_decrements(ctx):
    await ctx.stats.apply_event(ACTOR, GROUP, TEXT_EVENT)
    await ctx.stats.apply_delete(ACTOR, GROUP)

    async with ctx.sessionmaker() as session:
        row = await session.get(UserGroupStat, (ACTOR.user_id, GROUP.chat_id))
        assert row.deleted_count == 1
        assert row.message_count == 1
        group = await session.get(GroupAggregate, GROUP.chat_id)
        assert group.deleted == 1
        assert group.message == 1


async def test_concurrent_events_lose_no_updates(ctx):
    """N параллельных событий одного пользователя: ни одно приращение не потеряно"""
    n, words = 20, 4
    event = ClassifiedEvent(is_text=True, word_count=words, activity="text")

    results = await asyncio.gather(*(ctx.stats.apply_event(ACTOR, GROUP, event) for _ in range(n)))
    assert all(results)

    async with ctx.sessionmaker() as session:
        row = await session.get(UserGroupStat, (ACTOR.user_id, GROUP.chat_id))
        assert row.message_count == n
        assert row.word_count == n * words
        profile = await session.get(UserProfile, ACTOR.user_id)
        assert profile.message == n
        group = await session.get(GroupAggregate, GROUP.chat_id)
        assert group.message == n


async def test_banned_user_changes_nothing(ctx):
    await ctx.ban_gate.ban(ACTOR.user_id, reason="spam")

    assert await ctx.stats.apply_event(ACTOR, GROUP, PHOTO_EVENT) is False

    assert await _count(ctx, UserGroupStat) == 0
    assert await _count(ctx, GroupAggregate) == 0
    async with ctx.sessionmaker() as session:
        profile = await session.get(UserProfile, ACTOR.user_id)
        assert profile.message == 0
        assert profile.media == 0


async def test_banned_group_changes_nothing(ctx):
    await ctx.ban_gate.ban(GROUP.chat_id, "group")

    assert await ctx.stats.apply_event(ACTOR, GROUP, TEXT_EVENT) is False
    assert await _count(ctx, UserProfile) == 0


async def test_passed_verdict_skips_gate_lookup(ctx, monkeypatch):
    check = AsyncMock()
    monkeypatch.setattr(ctx.ban_gate, "check", check)

    assert await ctx.stats.apply_event(ACTOR, GROUP, TEXT_EVENT, verdict=BanVerdict.ALLOWED) is True
    assert await ctx.stats.apply_event(ACTOR, GROUP, TEXT_EVENT, verdict=BanVerdict.USER_BANNED) is False
    check.assert_not_awaited()


async def test_store_failure_propagates(ctx, monkeypatch):
    """Недоступная БД - ошибка вызывающему, а не тихая потеря события"""
    failing = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("db is down")))
    monkeypatch.setattr(ctx.store, "upsert_profile", failing)

    with pytest.raises(OperationalError):
        await ctx.stats.apply_event(ACTOR, GROUP, TEXT_EVENT, verdict=BanVerdict.ALLOWED)
