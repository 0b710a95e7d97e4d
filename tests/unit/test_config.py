import os
from datetime import timedelta

import pytest

from statbot import config as config_module
from statbot.config import ConfigError, Settings, mask_db_url, resolve_env_path, settings_from_env


def test_defaults():
    settings = settings_from_env({"BOT_TOKEN": "t"})
    assert settings.bot_mode == "polling"
    assert settings.database_url == "sqlite+aiosqlite:///db/stats.sqlite"
    assert settings.server_host == "localhost"
    assert settings.server_port == 8101
    assert settings.timezone == "Asia/Jakarta"
    assert settings.webhook_path == "/webhook"
    assert settings.active_window == timedelta(days=30)
    assert settings.admin_ids == ()


def test_missing_token():
    with pytest.raises(ConfigError):
        settings_from_env({})


def test_invalid_mode():
    with pytest.raises(ConfigError):
        settings_from_env({"BOT_TOKEN": "t", "BOT_MODE": "longpoll"})


def test_webhook_requires_url_and_derives_path():
    with pytest.raises(ConfigError):
        settings_from_env({"BOT_TOKEN": "t", "BOT_MODE": "webhook"})

    settings = settings_from_env({
        "BOT_TOKEN": "t",
        "BOT_MODE": "webhook",
        "WEBHOOK_URL": "https://bot.example.com/tg/hook",
    })
    assert settings.use_webhook is True
    assert settings.webhook_path == "/tg/hook"


@pytest.mark.parametrize(
    "env",
    [
        {"SERVER_PORT": "abc"},
        {"SERVER_PORT": "70000"},
        {"OWNER_ID": "owner"},
        {"ADMIN_IDS": "1,two"},
        {"LOG_LEVEL": "LOUD"},
        {"ACTIVE_WINDOW_DAYS": "0"},
    ],
)
def test_malformed_values(env):
    with pytest.raises(ConfigError):
        settings_from_env({"BOT_TOKEN": "t", **env})


def test_admin_check():
    settings = settings_from_env({"BOT_TOKEN": "t", "OWNER_ID": "1", "ADMIN_IDS": "2, 3,"})
    assert settings.admin_ids == (2, 3)
    assert settings.is_admin(1)
    assert settings.is_admin(3)
    assert not settings.is_admin(4)
    assert not settings.is_admin(None)


def test_webapp_configured():
    assert Settings(bot_token="t", webapp_url="https://example.com").webapp_configured
    assert not Settings(bot_token="t", webapp_url="YOUR_WEB_APP_URL").webapp_configured
    assert not Settings(bot_token="t").webapp_configured


def test_mask_db_url():
    assert mask_db_url("mysql+aiomysql://bot:secret@db:3306/stats") == "mysql+aiomysql://bot:***@db:3306/stats"
    assert mask_db_url("sqlite+aiosqlite:///db/stats.sqlite") == "sqlite+aiosqlite:///db/stats.sqlite"


def test_resolve_env_path():
    assert resolve_env_path({"ENV_PATH": "/etc/bot.env"}) == "/etc/bot.env"
    assert resolve_env_path({"ENVIRONMENT": "production"}).endswith(".env.prod")
    assert resolve_env_path({"ENVIRONMENT": "testing"}).endswith(".env.test")
    assert resolve_env_path({}).endswith(".env.dev")


def test_load_settings_reads_env_file(tmp_path, monkeypatch):
    env_file = tmp_path / "bot.env"
    env_file.write_text("BOT_TOKEN=from-file\nSERVER_PORT=9000\n", encoding="utf-8")
    monkeypatch.setenv("ENV_PATH", str(env_file))
    monkeypatch.delenv("BOT_TOKEN", raising=False)
    monkeypatch.delenv("SERVER_PORT", raising=False)

    try:
        settings = config_module.load_settings()
    finally:
        # load_dotenv пишет в os.environ - убираем за собой
        os.environ.pop("BOT_TOKEN", None)
        os.environ.pop("SERVER_PORT", None)

    assert settings.bot_token == "from-file"
    assert settings.server_port == 9000
