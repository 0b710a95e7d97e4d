import logging
import os

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from statbot.database.models import Base

logger = logging.getLogger(__name__)

# Сколько секунд SQLite ждёт снятия блокировки записи другим соединением
SQLITE_BUSY_TIMEOUT = 30


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Создаёт async движок под нужный бэкенд.

    Для SQLite заранее создаём каталог под файл базы (db/stats.sqlite)
    и увеличиваем таймаут блокировки: параллельные апдейты пишут в один файл.
    Для сетевых БД включаем pre-ping и переподключение раз в час.
    """
    url = make_url(database_url)

    if url.get_backend_name() == "sqlite":
        database = url.database
        if database and database != ":memory:":
            directory = os.path.dirname(os.path.abspath(database))
            os.makedirs(directory, exist_ok=True)
        return create_async_engine(
            url,
            echo=echo,
            connect_args={"timeout": SQLITE_BUSY_TIMEOUT},
        )

    return create_async_engine(
        url,
        echo=echo,
        pool_pre_ping=True,  # Проверка соединения перед использованием
        pool_recycle=3600,   # Переподключение каждый час
    )


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """Создаёт недостающие таблицы (для свежей SQLite без alembic)"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("✅ База данных инициализирована")
