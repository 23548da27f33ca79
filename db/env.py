import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from backend.app import models  # noqa: F401
from backend.app.core.config import settings
from backend.app.db.base import Base

if context.config.config_file_name is not None:
    fileConfig(context.config.config_file_name)


def database_url() -> str:
    # `alembic -x url=...` overrides DATABASE_URL for one-off databases.
    return context.get_x_argument(as_dictionary=True).get("url") or settings.database_url


def migration_options(url: str) -> dict:
    return {
        "target_metadata": Base.metadata,
        "compare_type": True,
        # SQLite cannot ALTER most constraints in place.
        "render_as_batch": url.startswith("sqlite"),
    }


def migrate(connection: Connection, url: str) -> None:
    context.configure(connection=connection, **migration_options(url))
    with context.begin_transaction():
        context.run_migrations()


async def migrate_online(url: str) -> None:
    engine = create_async_engine(url, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(migrate, url)
    finally:
        await engine.dispose()


def migrate_offline(url: str) -> None:
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **migration_options(url),
    )
    with context.begin_transaction():
        context.run_migrations()


if context.is_offline_mode():
    migrate_offline(database_url())
else:
    asyncio.run(migrate_online(database_url()))
