import asyncio
import logging
from typing import Optional

from aiogram import Bot, Dispatcher, Router
from aiogram.client.session.aiohttp import AiohttpSession
from aiogram.fsm.storage.base import BaseStorage

from statbot.config import load_settings
from statbot.context import AppContext, build_context
from statbot.database.session import init_db
from statbot.handlers import handlers_router
from statbot.middleware.app_context import AppContextMiddleware
from statbot.middleware.message_tracking import MessageTrackingMiddleware
from statbot.middleware.structured_logging import StructuredLoggingMiddleware
from statbot.services.redis_conn import build_storage
from statbot.utils.logger import setup_logging
from statbot.web.app import create_web_app
from statbot.webhook import register_webhook_handler, setup_webhook, start_web_server

logger = logging.getLogger(__name__)


def create_dispatcher(ctx: AppContext, storage: BaseStorage, router: Optional[Router] = None) -> Dispatcher:
    """Dispatcher со всеми middleware и хендлерами"""
    dp = Dispatcher(storage=storage)

    # Структурированное логирование апдейтов
    dp.update.outer_middleware(StructuredLoggingMiddleware())
    # Контекст приложения в каждый хендлер (data["ctx"])
    dp.update.middleware(AppContextMiddleware(ctx))
    # Подсчёт КАЖДОГО сообщения, даже без подходящего хендлера
    dp.message.outer_middleware(MessageTrackingMiddleware(ctx))

    dp.include_router(router or handlers_router)
    return dp


# главная асинхронная функция, запускающая бота
async def main():
    settings = load_settings()
    setup_logging(settings.log_level, settings.bot_token, settings.log_channel_id)

    ctx = build_context(settings)
    if ctx.engine.dialect.name == "sqlite":
        # Для свежей SQLite создаём таблицы сразу, остальные бэкенды - через alembic
        await init_db(ctx.engine)

    storage = await build_storage(settings.redis_url)
    bot = Bot(token=settings.bot_token, session=AiohttpSession(timeout=60.0))
    dp = create_dispatcher(ctx, storage)

    me = await bot.get_me()
    ctx.bot_username = me.username or ""
    logging.info(f"🤖 Бот @{ctx.bot_username} успешно запущен и готов к работе.")

    app = create_web_app(ctx)
    if settings.use_webhook:
        register_webhook_handler(app, dp, bot, settings.webhook_path)

    runner = await start_web_server(app, settings.server_host, settings.server_port)
    try:
        # ✅ Выбираем режим запуска: webhook или polling
        if settings.use_webhook:
            logging.info("🌐 Запуск в режиме webhook...")
            await setup_webhook(bot, settings)
            await asyncio.Event().wait()
        else:
            logging.info("🔄 Запуск в режиме polling...")
            # Удаление вебхука перед запуском поллинга
            await bot.delete_webhook(drop_pending_updates=True)
            await dp.start_polling(bot, allowed_updates=dp.resolve_used_update_types())
    finally:
        await runner.cleanup()
        await storage.close()
        await bot.session.close()
        await ctx.close()
        logging.info("🛑 Бот остановлен")
