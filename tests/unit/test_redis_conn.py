from unittest.mock import AsyncMock

from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.fsm.storage.redis import RedisStorage
from redis.exceptions import ConnectionError as RedisConnectionError

from statbot.services import redis_conn


async def test_no_url_gives_memory_storage():
    storage = await redis_conn.build_storage(None)
    assert isinstance(storage, MemoryStorage)


async def test_unreachable_redis_falls_back(monkeypatch):
    fake_redis = AsyncMock()
    fake_redis.ping.side_effect = RedisConnectionError("refused")
    monkeypatch.setattr(redis_conn.Redis, "from_url", lambda url: fake_redis)

    storage = await redis_conn.build_storage("redis://localhost:6379/0")

    assert isinstance(storage, MemoryStorage)
    fake_redis.aclose.assert_awaited_once()


async def test_reachable_redis_gives_redis_storage(monkeypatch):
    fake_redis = AsyncMock()
    monkeypatch.setattr(redis_conn.Redis, "from_url", lambda url: fake_redis)

    storage = await redis_conn.build_storage("redis://localhost:6379/0")

    assert isinstance(storage, RedisStorage)
    assert storage.redis is fake_redis
