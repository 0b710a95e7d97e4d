# Импорт всех роутеров для удобного подключения
from aiogram import Router

from .ban_commands import router as ban_commands_router
from .edited_messages import router as edited_messages_router
from .stats_commands import router as stats_commands_router

# Объединяем все роутеры в один
# (Router можно подключить только к одному dispatcher)
handlers_router = Router(name="handlers_router")
handlers_router.include_router(ban_commands_router)
handlers_router.include_router(stats_commands_router)
handlers_router.include_router(edited_messages_router)
