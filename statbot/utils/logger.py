import asyncio
import html
import logging
from typing import Optional

import aiohttp

CONSOLE_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

# Telegram ограничивает длину сообщения 4096 символами
TELEGRAM_MESSAGE_LIMIT = 4000


# ==== СПЕЦИАЛЬНЫЕ ФОРМАТИРОВАННЫЕ ЛОГИ ДЛЯ TELEGRAM ====

async def send_formatted_log(bot_token: str, chat_id: str, message: str) -> bool:
    """Отправляет отформатированное сообщение в канал логов в Telegram"""
    if not bot_token or not chat_id:
        print("❗ BOT_TOKEN или LOG_CHANNEL_ID не установлены")
        return False

    url = f"https://api.telegram.org/bot{bot_token}/sendMessage"
    payload = {
        "chat_id": chat_id,
        "text": message,
        "parse_mode": "HTML",
        "disable_web_page_preview": True
    }

    async with aiohttp.ClientSession() as session:
        try:
            resp = await session.post(url, data=payload)
            if resp.status != 200:
                text = await resp.text()
                print(f"❌ Telegram API Error: {resp.status}: {text}")
                return False
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            print(f"❌ Ошибка при отправке лога в Telegram: {e}")
            return False
    return True


class TelegramLogHandler(logging.Handler):
    """
    Пересылает записи ERROR и выше в канал логов.

    Отправка - фоновая задача в текущем event loop;
    вне loop запись просто пропускается.
    """

    def __init__(self, bot_token: str, chat_id: str, level: int = logging.ERROR):
        super().__init__(level=level)
        self.bot_token = bot_token
        self.chat_id = chat_id
        self._tasks = set()

    def format_message(self, record: logging.LogRecord) -> str:
        text = html.escape(self.format(record))[:TELEGRAM_MESSAGE_LIMIT]
        return (
            f"❌ #ОШИБКА 🔴\n"
            f"• Модуль: {html.escape(record.name)}\n"
            f"<pre>{text}</pre>"
        )

    def emit(self, record: logging.LogRecord) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        try:
            message = self.format_message(record)
        except Exception:
            self.handleError(record)
            return
        task = loop.create_task(send_formatted_log(self.bot_token, self.chat_id, message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


def setup_logging(level: str = "INFO", bot_token: Optional[str] = None, log_channel_id: Optional[str] = None) -> None:
    """Настройка корневого логгера: консоль + (опционально) канал логов"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Повторный вызов не должен дублировать вывод
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(console_handler)

    if bot_token and log_channel_id:
        telegram_handler = TelegramLogHandler(bot_token, log_channel_id)
        telegram_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        logger.addHandler(telegram_handler)

    # Отключаем встроенное логирование aiogram для апдейтов
    for logger_name in ("aiogram", "aiogram.dispatcher", "aiogram.event"):
        logging.getLogger(logger_name).setLevel(logging.ERROR)
