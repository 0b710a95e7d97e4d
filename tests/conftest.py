import importlib
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable
from unittest.mock import AsyncMock

import pytest

# Гарантируем, что пакет statbot доступен для импортов из тестов
# (добавляем корень проекта в sys.path независимо от того, откуда запущен pytest).
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from aiogram import Bot, Router
from aiogram.types import Message, Update

from statbot.config import Settings
from statbot.context import AppContext, build_context
from statbot.database.session import create_engine, init_db

TEST_BOT_TOKEN = "123456:TEST-TOKEN"
OWNER_ID = 1
ADMIN_ID = 2


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Настройки с отдельной SQLite базой на каждый тест"""
    return Settings(
        bot_token=TEST_BOT_TOKEN,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'stats.sqlite'}",
        owner_id=OWNER_ID,
        admin_ids=(ADMIN_ID,),
        webapp_url="https://example.com/app",
    )


@pytest.fixture
async def ctx(settings) -> AppContext:
    """AppContext поверх файловой SQLite (нужна для параллельных транзакций)"""
    engine = create_engine(settings.database_url)
    await init_db(engine)
    context = build_context(settings, engine=engine)
    context.bot_username = "stat_test_bot"
    try:
        yield context
    finally:
        await context.close()


@pytest.fixture
def bot_mock():
    """Async mock for aiogram Bot."""
    bot = AsyncMock(spec=Bot)
    bot.send_message = AsyncMock()
    bot.ban_chat_member = AsyncMock(return_value=True)
    bot.get_me = AsyncMock()
    bot.session = AsyncMock()
    bot.id = 424242
    return bot


@pytest.fixture
def message_factory() -> Callable[..., Message]:
    """Factory for aiogram Message instances."""

    def _factory(
        *,
        message_id: int = 1,
        user_id: int = 100,
        chat_id: int = -1000,
        text: str = None,
        chat_type: str = "supergroup",
        first_name: str = "Test",
        last_name: str = None,
        username: str = None,
        chat_title: str = "Test chat",
        **content,
    ) -> Message:
        chat = {"id": chat_id, "type": chat_type}
        if chat_type == "private":
            chat["first_name"] = first_name
        else:
            chat["title"] = chat_title
        sender = {"id": user_id, "is_bot": False, "first_name": first_name}
        if last_name:
            sender["last_name"] = last_name
        if username:
            sender["username"] = username

        payload = {
            "message_id": message_id,
            "date": datetime.now(timezone.utc),
            "chat": chat,
            "from": sender,
        }
        if text is not None:
            payload["text"] = text
        payload.update(content)
        return Message.model_validate(payload)

    return _factory


@pytest.fixture
def update_factory(message_factory) -> Callable[..., Update]:
    """Factory for aiogram Update objects."""

    def _factory(message: Message = None, update_id: int = 1, edited: bool = False) -> Update:
        if message is None:
            message = message_factory(text="/start")
        key = "edited_message" if edited else "message"
        payload = {"update_id": update_id, key: message.model_dump()}
        return Update.model_validate(payload)

    return _factory


def _fresh_handlers_router() -> Router:
    """Перезагружает модули хендлеров: Router можно подключить только к одному dispatcher."""
    if "statbot.handlers" not in sys.modules:
        return importlib.import_module("statbot.handlers").handlers_router

    module_names = [name for name in list(sys.modules) if name.startswith("statbot.handlers.")]
    for name in module_names:
        importlib.reload(sys.modules[name])
    handlers_module = importlib.reload(sys.modules["statbot.handlers"])
    return handlers_module.handlers_router


@pytest.fixture
def router_factory():
    def factory():
        return _fresh_handlers_router()

    return factory
