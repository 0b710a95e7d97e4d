"""
Webhook и HTTP сервер для Telegram бота
"""
import asyncio
import logging

from aiohttp import web
from aiogram import Bot, Dispatcher
from aiogram.exceptions import TelegramRetryAfter
from aiogram.webhook.aiohttp_server import SimpleRequestHandler, setup_application

from statbot.config import Settings

logger = logging.getLogger(__name__)

ALLOWED_UPDATES = ["message", "edited_message"]
MAX_WEBHOOK_ATTEMPTS = 5


def register_webhook_handler(app: web.Application, dp: Dispatcher, bot: Bot, path: str) -> None:
    """Регистрирует путь вебхука в общем aiohttp приложении"""
    webhook_requests_handler = SimpleRequestHandler(dispatcher=dp, bot=bot)
    webhook_requests_handler.register(app, path=path)
    setup_application(app, dp, bot=bot)
    logger.info(f"✅ Webhook handler зарегистрирован на {path}")


async def setup_webhook(bot: Bot, settings: Settings, max_attempts: int = MAX_WEBHOOK_ATTEMPTS):
    """
    Регистрирует WEBHOOK_URL в Telegram.

    Flood control (TelegramRetryAfter) повторяем до max_attempts раз,
    остальные ошибки Bot API пробрасываются сразу.
    """
    for attempt in range(1, max_attempts + 1):
        try:
            await bot.set_webhook(
                url=settings.webhook_url,
                drop_pending_updates=True,
                allowed_updates=ALLOWED_UPDATES,
            )
        except TelegramRetryAfter as e:
            if attempt == max_attempts:
                logger.error(f"❌ set_webhook: лимит попыток ({max_attempts}) исчерпан")
                raise
            delay = max(int(e.retry_after), 1)
            logger.warning(f"⚠️ set_webhook: flood control, попытка {attempt}/{max_attempts}, ждём {delay} сек.")
            await asyncio.sleep(delay)
            continue

        info = await bot.get_webhook_info()
        if info.url != settings.webhook_url:
            logger.warning(f"⚠️ Telegram вернул другой webhook: {info.url!r}, ожидали {settings.webhook_url!r}")
        else:
            logger.info(f"✅ Webhook установлен: {settings.webhook_url} ({', '.join(ALLOWED_UPDATES)})")
        if info.last_error_date:
            logger.warning(f"⚠️ Последняя ошибка доставки webhook: {info.last_error_message}")
        return


async def start_web_server(app: web.Application, host: str, port: int) -> web.AppRunner:
    """Запуск HTTP сервера (Mini-App API + webhook)"""
    runner = web.AppRunner(app)
    await runner.setup()

    # SSL обрабатывается на уровне nginx, бот работает по HTTP внутри сети
    site = web.TCPSite(runner, host=host, port=port)
    await site.start()
    logger.info(f"🚀 HTTP сервер запущен на {host}:{port}")
    return runner
