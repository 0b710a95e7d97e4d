import logging
from typing import Optional

from aiogram.fsm.storage.base import BaseStorage
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.fsm.storage.redis import RedisStorage
from redis.asyncio import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


async def test_connection(redis: Redis) -> None:
    await redis.ping()
    logger.info("✅ Соединение с Redis установлено")


async def build_storage(redis_url: Optional[str]) -> BaseStorage:
    """
    Хранилище состояний диспетчера.

    Если Redis не настроен или недоступен - MemoryStorage
    (состояния будут утеряны при перезапуске).
    """
    if not redis_url:
        logger.info("ℹ️ REDIS_URL не задан, используется MemoryStorage")
        return MemoryStorage()

    redis = Redis.from_url(redis_url)
    try:
        await test_connection(redis)
    except (RedisError, OSError) as e:
        await redis.aclose()
        logger.warning(f"⚠️ Ошибка подключения к Redis: {e}")
        logger.info("ℹ️ Используется MemoryStorage для хранения состояний (данные будут утеряны при перезапуске)")
        return MemoryStorage()

    return RedisStorage(redis=redis)
