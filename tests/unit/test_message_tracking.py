"""
Middleware подсчёта: Ban Gate -> классификация -> StatsEngine -> хендлер.
"""
from unittest.mock import AsyncMock

from sqlalchemy.exc import OperationalError

from statbot.middleware.message_tracking import MessageTrackingMiddleware


async def _run(ctx, message, bot):
    handler = AsyncMock(return_value="handled")
    middleware = MessageTrackingMiddleware(ctx)
    result = await middleware(handler, message, {"bot": bot})
    return result, handler


async def test_text_message_is_counted_then_handled(ctx, bot_mock, message_factory):
    message = message_factory(user_id=5, chat_id=-10, text="hello big world")

    result, handler = await _run(ctx, message, bot_mock)

    assert result == "handled"
    handler.assert_awaited_once()
    stat = await ctx.queries.get_user_stat(5, -10)
    assert stat.message_count == 1
    assert stat.word_count == 3


async def test_service_message_is_not_counted(ctx, bot_mock, message_factory):
    message = message_factory(user_id=5, chat_id=-10, new_chat_title="Renamed")

    _, handler = await _run(ctx, message, bot_mock)

    handler.assert_awaited_once()
    assert await ctx.queries.get_user_stat(5, -10) is None


async def test_banned_user_is_removed_and_not_counted(ctx, bot_mock, message_factory):
    await ctx.ban_gate.ban(5)
    message = message_factory(user_id=5, chat_id=-10, text="spam spam")

    result, handler = await _run(ctx, message, bot_mock)

    assert result is None
    handler.assert_not_awaited()
    bot_mock.ban_chat_member.assert_awaited_once_with(chat_id=-10, user_id=5)
    assert await ctx.queries.get_user_stat(5, -10) is None


async def test_banned_user_in_private_is_dropped_without_kick(ctx, bot_mock, message_factory):
    await ctx.ban_gate.ban(5)
    message = message_factory(user_id=5, chat_id=5, chat_type="private", text="/stats")

    result, handler = await _run(ctx, message, bot_mock)

    assert result is None
    handler.assert_not_awaited()
    bot_mock.ban_chat_member.assert_not_awaited()


async def test_banned_group_is_ignored_silently(ctx, bot_mock, message_factory):
    await ctx.ban_gate.ban(-10, "group")
    message = message_factory(user_id=5, chat_id=-10, text="hello")

    result, handler = await _run(ctx, message, bot_mock)

    assert result is None
    handler.assert_not_awaited()
    bot_mock.ban_chat_member.assert_not_awaited()
    bot_mock.send_message.assert_not_awaited()
    assert await ctx.queries.get_user_stat(5, -10) is None


async def test_bot_author_is_skipped(ctx, bot_mock, message_factory):
    message = message_factory(user_id=5, chat_id=-10, text="hello")
    message = message.model_copy(update={"from_user": message.from_user.model_copy(update={"is_bot": True})})

    _, handler = await _run(ctx, message, bot_mock)

    handler.assert_awaited_once()
    assert await ctx.queries.get_user_stat(5, -10) is None


async def test_database_error_does_not_stop_handlers(ctx, bot_mock, message_factory, monkeypatch, caplog):
    failing = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("database is locked")))
    monkeypatch.setattr(ctx.stats, "apply_event", failing)
    message = message_factory(user_id=5, chat_id=-10, text="hello")

    result, handler = await _run(ctx, message, bot_mock)

    assert result == "handled"
    handler.assert_awaited_once()
    assert "user=5" in caplog.text
