# ============================================================
# WEB AUTH - ПРОВЕРКА ПОДПИСИ TELEGRAM MINI-APP
# ============================================================
# Mini-App присылает initData в заголовке Telegram-Data.
#
# 1. initData - url-encoded строка, из неё убираем hash
# 2. остальные пары сортируем по ключу и склеиваем "key=value" через \n
# 3. secret = HMAC_SHA256(key="WebAppData", msg=bot_token)
# 4. hash   = hex(HMAC_SHA256(key=secret, msg=data_check_string))
#
# Нет заголовка -> 401, подпись не сошлась -> 403.
# ============================================================

import hashlib
import hmac
import json
import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qsl

from aiohttp import web

logger = logging.getLogger(__name__)

INIT_DATA_HEADER = "Telegram-Data"
WEBAPP_SECRET_KEY = b"WebAppData"


class InitDataError(Exception):
    """Ошибка авторизации Mini-App: status - HTTP код, error - текст для клиента."""

    def __init__(self, status: int, error: str):
        super().__init__(error)
        self.status = status
        self.error = error


def data_check_string(pairs: List[Tuple[str, str]]) -> str:
    """Пары без hash, отсортированные по ключу, в формате key=value через \\n."""
    return "\n".join(f"{key}={value}" for key, value in sorted(pairs, key=lambda pair: pair[0]))


def compute_hash(pairs: List[Tuple[str, str]], bot_token: str) -> str:
    secret_key = hmac.new(WEBAPP_SECRET_KEY, bot_token.encode(), hashlib.sha256).digest()
    return hmac.new(secret_key, data_check_string(pairs).encode(), hashlib.sha256).hexdigest()


def verify_init_data(init_data: Optional[str], bot_token: str) -> Dict[str, Any]:
    """
    Проверяет подпись initData.

    Returns:
        dict пользователя из поля user (пустой, если поля нет или оно битое)

    Raises:
        InitDataError: 401 без данных, 403 при неверной подписи
    """
    if not init_data:
        raise InitDataError(401, "Not a Telegram Web App request")

    pairs = parse_qsl(init_data, keep_blank_values=True)
    received_hash = next((value for key, value in pairs if key == "hash"), None)
    unsigned = [(key, value) for key, value in pairs if key != "hash"]

    calculated_hash = compute_hash(unsigned, bot_token)
    if received_hash is None or not hmac.compare_digest(calculated_hash.encode(), received_hash.encode()):
        raise InitDataError(403, "Invalid hash")

    user_raw = next((value for key, value in unsigned if key == "user"), None)
    if not user_raw:
        return {}
    try:
        user = json.loads(user_raw)
    except json.JSONDecodeError:
        logger.warning("[WEB_AUTH] ⚠️ Поле user в initData не JSON")
        return {}
    return user if isinstance(user, dict) else {}


def telegram_user(request: web.Request, bot_token: str) -> Dict[str, Any]:
    """
    Пользователь из initData запроса.

    Только для путей за telegram_auth_middleware: подпись там уже проверена.
    """
    return verify_init_data(request.headers.get(INIT_DATA_HEADER), bot_token)


def telegram_auth_middleware(bot_token: str, prefix: str = "/api/"):
    """Middleware aiohttp: пропускает под prefix только запросы с верной подписью initData."""

    @web.middleware
    async def middleware(request: web.Request, handler):
        if not request.path.startswith(prefix):
            return await handler(request)

        try:
            verify_init_data(request.headers.get(INIT_DATA_HEADER), bot_token)
        except InitDataError as e:
            logger.debug(f"[WEB_AUTH] {e.status} {request.path}: {e.error}")
            return web.json_response({"error": e.error}, status=e.status)

        return await handler(request)

    return middleware
