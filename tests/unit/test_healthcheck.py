from aiohttp import web
from aiohttp.test_utils import TestServer

from statbot import healthcheck


async def test_check_health_ok_and_failure():
    app = web.Application()

    async def health(request):
        return web.Response(text="OK")

    app.router.add_get("/health", health)

    async with TestServer(app, host="127.0.0.1") as server:
        assert await healthcheck.check_health(server.port) is True

    # Сервер остановлен - порт больше никто не слушает
    assert await healthcheck.check_health(server.port, timeout=1) is False


def test_main_rejects_bad_port(monkeypatch):
    monkeypatch.setenv("SERVER_PORT", "not-a-port")
    assert healthcheck.main() == 1
