import os
import sys
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from alembic import context
from dotenv import load_dotenv

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from statbot.config import DEFAULT_DATABASE_URL, resolve_env_path

load_dotenv(resolve_env_path())

from statbot.database.models import Base

# ALEMBIC_URL позволяет мигрировать другую базу, не трогая DATABASE_URL бота
ALEMBIC_URL = os.getenv("ALEMBIC_URL") or os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL

config = context.config
config.set_main_option("sqlalchemy.url", ALEMBIC_URL)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# users, groups, user_group_stats, banned
target_metadata = Base.metadata


def run_migrations_offline() -> None:
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def do_run_migrations(connection: Connection) -> None:
    # SQLite не умеет ALTER большинства колонок - используем batch режим
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        render_as_batch=connection.dialect.name == "sqlite",
    )

    with context.begin_transaction():
        context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    import asyncio

    asyncio.run(run_migrations_online())
