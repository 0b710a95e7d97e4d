"""
aiohttp приложение: Mini-App API, статика, /health.

В режиме webhook в это же приложение регистрируется путь вебхука
(см. statbot.webhook), поэтому сервер один на всё.
"""
import logging
from pathlib import Path

from aiohttp import web
from sqlalchemy.exc import SQLAlchemyError

from statbot.context import AppContext
from statbot.web.auth import telegram_auth_middleware
from statbot.web.routes import CTX_KEY, routes

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent / "static"
STATIC_FILES = ("style.css", "script.js")


@web.middleware
async def error_middleware(request: web.Request, handler):
    """Ошибки БД и прочие падения -> 500 без подробностей для клиента."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except SQLAlchemyError:
        logger.exception(f"[API] ❌ Ошибка БД: {request.method} {request.path}")
    except Exception:
        logger.exception(f"[API] ❌ Необработанная ошибка: {request.method} {request.path}")
    return web.json_response({"error": "Internal server error"}, status=500)


def _static_handler(filename: str):
    path = STATIC_DIR / filename

    async def handler(request: web.Request) -> web.FileResponse:
        return web.FileResponse(path)

    return handler


def create_web_app(ctx: AppContext) -> web.Application:
    app = web.Application(middlewares=[
        error_middleware,
        telegram_auth_middleware(ctx.settings.bot_token),
    ])
    app[CTX_KEY] = ctx
    app.add_routes(routes)

    app.router.add_get("/", _static_handler("index.html"))
    for filename in STATIC_FILES:
        app.router.add_get(f"/{filename}", _static_handler(filename))
    return app
