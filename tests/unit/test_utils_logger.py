import asyncio
import logging
from types import SimpleNamespace

import pytest

from statbot.utils import logger as logger_module


class DummyResponse:
    def __init__(self, status=200, body=""):
        self.status = status
        self._body = body

    async def text(self):
        return self._body


def _dummy_session(captured, response):
    class DummySession:
        async def __aenter__(self):
            return self

        async def __aexit__(self, exc_type, exc, tb):
            pass

        async def post(self, url, data):
            captured["url"] = url
            captured["data"] = data
            return response

    return DummySession


@pytest.mark.asyncio
async def test_send_formatted_log(monkeypatch):
    captured_payload = {}
    session_cls = _dummy_session(captured_payload, DummyResponse())
    monkeypatch.setattr(
        logger_module,
        "aiohttp",
        SimpleNamespace(ClientSession=lambda: session_cls(), ClientError=Exception),
    )

    assert await logger_module.send_formatted_log("TEST_TOKEN", "123", "message") is True

    assert captured_payload["url"].endswith("/botTEST_TOKEN/sendMessage")
    assert captured_payload["data"]["text"] == "message"
    assert captured_payload["data"]["chat_id"] == "123"


@pytest.mark.asyncio
async def test_send_formatted_log_api_error(monkeypatch):
    session_cls = _dummy_session({}, DummyResponse(status=400, body="Bad Request"))
    monkeypatch.setattr(
        logger_module,
        "aiohttp",
        SimpleNamespace(ClientSession=lambda: session_cls(), ClientError=Exception),
    )

    assert await logger_module.send_formatted_log("TEST_TOKEN", "123", "message") is False


@pytest.mark.asyncio
async def test_send_formatted_log_without_channel():
    assert await logger_module.send_formatted_log("TEST_TOKEN", "", "message") is False


@pytest.mark.asyncio
async def test_telegram_handler_creates_task(monkeypatch):
    sent = []

    async def dummy_send(bot_token, chat_id, message):
        sent.append((chat_id, message))
        return True

    monkeypatch.setattr(logger_module, "send_formatted_log", dummy_send)

    handler = logger_module.TelegramLogHandler("TEST_TOKEN", "123")
    handler.setFormatter(logging.Formatter("%(message)s"))
    record = logging.LogRecord("statbot.test", logging.ERROR, __file__, 1, "boom <b>", None, None)

    handler.emit(record)
    await asyncio.sleep(0)

    assert sent
    chat_id, message = sent[0]
    assert chat_id == "123"
    assert "boom &lt;b&gt;" in message
    assert "statbot.test" in message


def test_telegram_handler_outside_loop_skips(monkeypatch):
    called = []
    monkeypatch.setattr(logger_module, "send_formatted_log", lambda *args: called.append(args))

    handler = logger_module.TelegramLogHandler("TEST_TOKEN", "123")
    record = logging.LogRecord("statbot.test", logging.ERROR, __file__, 1, "boom", None, None)
    handler.emit(record)

    assert not called


def test_setup_logging_does_not_duplicate_handlers():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        logger_module.setup_logging("DEBUG")
        logger_module.setup_logging("DEBUG", bot_token="TEST_TOKEN", log_channel_id="123")

        kinds = [type(h) for h in root.handlers]
        assert kinds.count(logging.StreamHandler) == 1
        assert kinds.count(logger_module.TelegramLogHandler) == 1
        assert logging.getLogger("aiogram.event").level == logging.ERROR
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
