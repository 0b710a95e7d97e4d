#!/usr/bin/env python3
"""
Главный файл для запуска бота
"""

import asyncio
import os
import sys

# Добавляем корневую директорию в PYTHONPATH
current_dir = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, current_dir)

# Устанавливаем рабочую директорию (db/stats.sqlite относительно корня)
os.chdir(current_dir)

from statbot.bot import main
from statbot.config import ConfigError

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except ConfigError as e:
        print(f"❌ Ошибка конфигурации: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n🛑 Бот остановлен пользователем")
