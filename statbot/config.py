import os
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Mapping, Optional, Tuple
from urllib.parse import urlsplit, urlunsplit

from dotenv import load_dotenv

# Всегда ищем .env относительно корня проекта
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///db/stats.sqlite"
DEFAULT_SERVER_HOST = "localhost"
DEFAULT_SERVER_PORT = 8101
DEFAULT_TIMEZONE = "Asia/Jakarta"
DEFAULT_WEBHOOK_PATH = "/webhook"
DEFAULT_ACTIVE_WINDOW_DAYS = 30

BOT_MODES = ("polling", "webhook")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(ValueError):
    """Некорректная конфигурация. Фатально при старте."""


@dataclass(frozen=True)
class Settings:
    bot_token: str
    bot_mode: str = "polling"
    webhook_url: Optional[str] = None
    webhook_path: str = DEFAULT_WEBHOOK_PATH
    database_url: str = DEFAULT_DATABASE_URL
    server_host: str = DEFAULT_SERVER_HOST
    server_port: int = DEFAULT_SERVER_PORT
    webapp_url: Optional[str] = None
    owner_id: Optional[int] = None
    admin_ids: Tuple[int, ...] = field(default_factory=tuple)
    timezone: str = DEFAULT_TIMEZONE
    redis_url: Optional[str] = None
    log_level: str = "INFO"
    log_channel_id: Optional[str] = None
    active_window_days: int = DEFAULT_ACTIVE_WINDOW_DAYS

    @property
    def use_webhook(self) -> bool:
        return self.bot_mode == "webhook"

    @property
    def webapp_configured(self) -> bool:
        # Заглушка из примера .env не считается настроенным URL
        return bool(self.webapp_url) and self.webapp_url.startswith("http")

    @property
    def active_window(self) -> timedelta:
        return timedelta(days=self.active_window_days)

    def is_admin(self, user_id: Optional[int]) -> bool:
        """Владелец бота или пользователь из ADMIN_IDS."""
        if user_id is None:
            return False
        return user_id == self.owner_id or user_id in self.admin_ids


def resolve_env_path(environ: Mapping[str, str] = os.environ) -> str:
    """Путь до .env в зависимости от ENVIRONMENT, ENV_PATH имеет приоритет (для Docker)."""
    env_path = environ.get("ENV_PATH")
    if env_path:
        return env_path

    environment = environ.get("ENVIRONMENT", "development")
    if environment == "production":
        env_file = ".env.prod"
    elif environment == "testing":
        env_file = ".env.test"
    else:
        env_file = ".env.dev"
    return os.path.join(BASE_DIR, env_file)


def mask_db_url(url: str) -> str:
    """Скрывает пароль в URL БД для логов."""
    parts = urlsplit(url)
    if not parts.password:
        return url
    netloc = parts.netloc.replace(f":{parts.password}@", ":***@")
    return urlunsplit(parts._replace(netloc=netloc))


def _optional_int(environ: Mapping[str, str], name: str) -> Optional[int]:
    raw = (environ.get(name) or "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} должен быть целым числом, получено: {raw!r}") from None


def _parse_admin_ids(raw: str) -> Tuple[int, ...]:
    ids = []
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        try:
            ids.append(int(chunk))
        except ValueError:
            raise ConfigError(f"ADMIN_IDS содержит не число: {chunk!r}") from None
    return tuple(ids)


def settings_from_env(environ: Mapping[str, str]) -> Settings:
    """Собирает Settings из переменных окружения и проверяет их."""
    bot_token = (environ.get("BOT_TOKEN") or "").strip()
    if not bot_token:
        raise ConfigError("BOT_TOKEN не установлен")

    bot_mode = (environ.get("BOT_MODE") or "polling").strip().lower()
    if bot_mode not in BOT_MODES:
        raise ConfigError(f"BOT_MODE должен быть одним из {BOT_MODES}, получено: {bot_mode!r}")

    webhook_url = (environ.get("WEBHOOK_URL") or "").strip() or None
    if bot_mode == "webhook" and not webhook_url:
        raise ConfigError("WEBHOOK_URL обязателен в режиме webhook")

    webhook_path = (environ.get("WEBHOOK_PATH") or "").strip()
    if not webhook_path:
        webhook_path = (urlsplit(webhook_url).path if webhook_url else "") or DEFAULT_WEBHOOK_PATH

    server_port = _optional_int(environ, "SERVER_PORT") or DEFAULT_SERVER_PORT
    if not 0 < server_port < 65536:
        raise ConfigError(f"SERVER_PORT вне диапазона: {server_port}")

    log_level = (environ.get("LOG_LEVEL") or "INFO").strip().upper()
    if log_level not in LOG_LEVELS:
        raise ConfigError(f"LOG_LEVEL должен быть одним из {LOG_LEVELS}, получено: {log_level!r}")

    active_window_days = _optional_int(environ, "ACTIVE_WINDOW_DAYS")
    if active_window_days is None:
        active_window_days = DEFAULT_ACTIVE_WINDOW_DAYS
    if active_window_days <= 0:
        raise ConfigError("ACTIVE_WINDOW_DAYS должен быть положительным")

    return Settings(
        bot_token=bot_token,
        bot_mode=bot_mode,
        webhook_url=webhook_url,
        webhook_path=webhook_path,
        database_url=(environ.get("DATABASE_URL") or "").strip() or DEFAULT_DATABASE_URL,
        server_host=(environ.get("SERVER_HOST") or "").strip() or DEFAULT_SERVER_HOST,
        server_port=server_port,
        webapp_url=(environ.get("WEBAPP_URL") or "").strip() or None,
        owner_id=_optional_int(environ, "OWNER_ID"),
        admin_ids=_parse_admin_ids(environ.get("ADMIN_IDS", "")),
        timezone=(environ.get("TIMEZONE") or "").strip() or DEFAULT_TIMEZONE,
        redis_url=(environ.get("REDIS_URL") or "").strip() or None,
        log_level=log_level,
        log_channel_id=(environ.get("LOG_CHANNEL_ID") or "").strip() or None,
        active_window_days=active_window_days,
    )


def load_settings() -> Settings:
    """Загружает .env выбранного окружения и читает настройки."""
    env_path = resolve_env_path()
    print(f"[Config] Окружение: {os.getenv('ENVIRONMENT', 'development')}")
    print(f"[Config] Загрузка env из: {os.path.abspath(env_path)}")

    # Переменные окружения процесса важнее значений из файла
    load_dotenv(dotenv_path=env_path, override=False)
    return settings_from_env(os.environ)
