"""
Контекст приложения: всё, что создаётся один раз при старте
и передаётся в middleware, хендлеры и HTTP API.
"""
import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from statbot.config import Settings, mask_db_url
from statbot.database.session import create_engine, create_sessionmaker
from statbot.database.store import CounterStore, create_counter_store
from statbot.services.ban_gate import BanGate
from statbot.services.stats_engine import StatsEngine
from statbot.services.stats_queries import StatsQueries

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    engine: AsyncEngine
    sessionmaker: async_sessionmaker
    store: CounterStore
    ban_gate: BanGate
    stats: StatsEngine
    queries: StatsQueries
    bot_username: str = ""

    async def close(self) -> None:
        await self.engine.dispose()


def build_context(settings: Settings, engine: AsyncEngine = None) -> AppContext:
    if engine is None:
        engine = create_engine(settings.database_url)
    logger.info(f"[CONTEXT] БД: {mask_db_url(settings.database_url)} ({engine.dialect.name})")

    sessionmaker = create_sessionmaker(engine)
    store = create_counter_store(engine)
    ban_gate = BanGate(sessionmaker, store)
    return AppContext(
        settings=settings,
        engine=engine,
        sessionmaker=sessionmaker,
        store=store,
        ban_gate=ban_gate,
        stats=StatsEngine(sessionmaker, store, ban_gate, settings.active_window),
        queries=StatsQueries(sessionmaker),
    )
