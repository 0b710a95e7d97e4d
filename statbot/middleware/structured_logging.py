# middleware/structured_logging.py
"""
Middleware для структурированного логирования апдейтов от Telegram
"""
import logging
from typing import Callable, Dict, Any, Awaitable, Optional

from aiogram import BaseMiddleware
from aiogram.types import Update

logger = logging.getLogger(__name__)


def describe_update(event: Update) -> Dict[str, Any]:
    """Короткое описание апдейта: тип, чат, отправитель"""
    message = event.message or event.edited_message
    if message is not None:
        update_type = "message" if event.message else "edited_message"
        return {
            "update_id": event.update_id,
            "type": update_type,
            "message_id": message.message_id,
            "chat_id": message.chat.id,
            "chat_type": getattr(message.chat.type, "value", message.chat.type),
            "from_id": message.from_user.id if message.from_user else None,
        }

    if event.callback_query:
        cb = event.callback_query
        return {
            "update_id": event.update_id,
            "type": "callback_query",
            "from_id": cb.from_user.id if cb.from_user else None,
        }

    return {"update_id": event.update_id, "type": "other"}


def format_update_line(info: Dict[str, Any]) -> str:
    parts = [f"{key}={value}" for key, value in info.items() if value is not None]
    return "📩 " + " ".join(parts)


class StructuredLoggingMiddleware(BaseMiddleware):
    """Одна строка на апдейт (DEBUG), ошибки хендлеров логируются и пробрасываются"""

    async def __call__(
        self,
        handler: Callable[[Update, Dict[str, Any]], Awaitable[Any]],
        event: Update,
        data: Dict[str, Any]
    ) -> Any:
        update_id: Optional[int] = getattr(event, "update_id", None)
        if isinstance(event, Update):
            logger.debug(format_update_line(describe_update(event)))

        try:
            return await handler(event, data)
        except Exception as e:
            logger.error(f"❌ Ошибка обработки update id={update_id}: {e}")
            raise
