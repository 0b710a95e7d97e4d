from aiogram.dispatcher.middlewares.base import BaseMiddleware
from aiogram.types import TelegramObject
from typing import Callable, Awaitable, Dict, Any

from statbot.context import AppContext


class AppContextMiddleware(BaseMiddleware):
    def __init__(self, ctx: AppContext):
        super().__init__()
        self.ctx = ctx  # сохраняем контекст приложения

    async def __call__(
            self,
            handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
            event: TelegramObject,
            data: Dict[str, Any],
    ) -> Any:
        data["ctx"] = self.ctx  # передаем контекст в хендлер через context data
        return await handler(event, data)  # вызываем хендлер
