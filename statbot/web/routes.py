# ============================================================
# HTTP API ДЛЯ MINI-APP
# ============================================================
#   GET /api/stats              - своя статистика (сумма по группам),
#                                 админу ещё и список всех групп
#   GET /api/stats/{group_id}   - топ группы (запуск Mini-App из группы)
#   GET /api/top-users?page=N   - глобальный топ, только админ
#   GET /api/users?page=N       - пользователи, только админ
#   GET /api/groups?page=N      - группы, только админ
#   GET /public/info            - имя бота, без авторизации
#   GET /health                 - liveness
#
# Все /api/* проходят через telegram_auth_middleware.
# ============================================================

import logging
from typing import Any, Dict, Optional

from aiohttp import web

from statbot.context import AppContext
from statbot.services.stats_math import page_to_offset, total_pages
from statbot.web.auth import telegram_user

logger = logging.getLogger(__name__)

CTX_KEY = web.AppKey("ctx", AppContext)

USERS_PAGE_SIZE = 5
GROUPS_PAGE_SIZE = 5
TOP_USERS_PAGE_SIZE = 10
GROUP_TOP_LIMIT = 10

# Потолок номера страницы: OFFSET должен помещаться в INTEGER базы
MAX_PAGE = 100_000

routes = web.RouteTableDef()


def parse_page(request: web.Request) -> int:
    """Номер страницы с 1; мусор и значения меньше 1 -> 1, больше MAX_PAGE -> MAX_PAGE."""
    try:
        page = int(request.query.get("page", "1"))
    except ValueError:
        return 1
    return min(max(page, 1), MAX_PAGE)


def current_user_id(request: web.Request) -> Optional[int]:
    ctx = request.app[CTX_KEY]
    user: Dict[str, Any] = telegram_user(request, ctx.settings.bot_token)
    try:
        return int(user["id"])
    except (KeyError, TypeError, ValueError):
        return None


def unauthorized_user() -> web.Response:
    return web.json_response({"error": "User not identified"}, status=401)


def forbidden() -> web.Response:
    return web.json_response({"error": "Unauthorized"}, status=403)


# ─────────────────────────────────────────────────────────
# ПУБЛИЧНЫЕ
# ─────────────────────────────────────────────────────────
@routes.get("/health")
async def health(request: web.Request) -> web.Response:
    return web.Response(text="OK")


@routes.get("/public/info")
async def public_info(request: web.Request) -> web.Response:
    ctx = request.app[CTX_KEY]
    return web.json_response({"botUsername": ctx.bot_username})


# ─────────────────────────────────────────────────────────
# ПОЛЬЗОВАТЕЛЬ
# ─────────────────────────────────────────────────────────
@routes.get("/api/stats")
async def my_stats(request: web.Request) -> web.Response:
    ctx = request.app[CTX_KEY]
    user_id = current_user_id(request)
    if user_id is None:
        return unauthorized_user()

    stat = await ctx.queries.get_aggregated_user_stat(user_id)
    groups = await ctx.queries.get_groups_for_user(user_id)
    is_admin = ctx.settings.is_admin(user_id)
    payload = {
        "stats": stat.to_dict() if stat else None,
        "isAdmin": is_admin,
        "groupsForUser": [group.to_dict() for group in groups],
    }
    if is_admin:
        # Переключатель групп в Mini-App админа
        payload["groups"] = [group.to_dict() for group in await ctx.queries.get_groups(user_id)]
    return web.json_response(payload)


@routes.get(r"/api/stats/{group_id:-?\d+}")
async def group_stats(request: web.Request) -> web.Response:
    ctx = request.app[CTX_KEY]
    user_id = current_user_id(request)
    if user_id is None:
        return unauthorized_user()

    group_id = int(request.match_info["group_id"])
    group = await ctx.queries.get_group(group_id)
    top = await ctx.queries.get_group_top_users(group_id, GROUP_TOP_LIMIT)
    own = await ctx.queries.get_user_stat(user_id, group_id)
    return web.json_response({
        "group": group.to_dict() if group else None,
        "users": [stat.to_dict() for stat in top],
        "userStat": own.to_dict() if own else None,
        "isAdmin": ctx.settings.is_admin(user_id),
    })


# ─────────────────────────────────────────────────────────
# АДМИН
# ─────────────────────────────────────────────────────────
async def _users_page(request: web.Request, limit: int) -> web.Response:
    ctx = request.app[CTX_KEY]
    if not ctx.settings.is_admin(current_user_id(request)):
        return forbidden()

    page = parse_page(request)
    users = await ctx.queries.get_top_users(limit, page_to_offset(page, limit))
    total = await ctx.queries.count_users()
    return web.json_response({
        "users": [stat.to_dict() for stat in users],
        "totalPages": total_pages(total, limit),
        "currentPage": page,
    })


@routes.get("/api/users")
async def users(request: web.Request) -> web.Response:
    return await _users_page(request, USERS_PAGE_SIZE)


@routes.get("/api/top-users")
async def top_users(request: web.Request) -> web.Response:
    return await _users_page(request, TOP_USERS_PAGE_SIZE)


@routes.get("/api/groups")
async def groups(request: web.Request) -> web.Response:
    ctx = request.app[CTX_KEY]
    admin_id = current_user_id(request)
    if not ctx.settings.is_admin(admin_id):
        return forbidden()

    page = parse_page(request)
    data = await ctx.queries.get_top_groups(GROUPS_PAGE_SIZE, page_to_offset(page, GROUPS_PAGE_SIZE))
    total = await ctx.queries.count_groups()
    logger.debug(f"[API] admin_id={admin_id} запросил группы, страница {page}")
    return web.json_response({
        "groups": [group.to_dict() for group in data],
        "totalPages": total_pages(total, GROUPS_PAGE_SIZE),
        "currentPage": page,
    })
