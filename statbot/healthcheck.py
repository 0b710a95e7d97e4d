"""
Проверка живости для Docker HEALTHCHECK:

    python -m statbot.healthcheck

Код выхода 0 если /health ответил 200, иначе 1.
"""
import asyncio
import os
import sys

import aiohttp

from statbot.config import DEFAULT_SERVER_PORT

HEALTHCHECK_TIMEOUT = 5


async def check_health(port: int, timeout: float = HEALTHCHECK_TIMEOUT) -> bool:
    url = f"http://127.0.0.1:{port}/health"
    try:
        async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout)) as session:
            async with session.get(url) as resp:
                return resp.status == 200
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        print(f"❌ Healthcheck {url}: {e}", file=sys.stderr)
        return False


def main() -> int:
    try:
        port = int(os.getenv("SERVER_PORT") or DEFAULT_SERVER_PORT)
    except ValueError:
        print("❌ SERVER_PORT должен быть числом", file=sys.stderr)
        return 1
    return 0 if asyncio.run(check_health(port)) else 1


if __name__ == "__main__":
    sys.exit(main())
