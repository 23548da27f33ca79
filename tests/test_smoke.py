import asyncio
import os

import pytest
from alembic import command
from alembic.config import Config
from fastapi.testclient import TestClient
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import create_async_engine

from backend.app.db.base import Base
from backend.app.main import create_app


async def _table_names(database_url: str) -> set[str]:
    engine = create_async_engine(database_url)
    try:
        async with engine.connect() as conn:
            return set(await conn.run_sync(lambda sync: inspect(sync).get_table_names()))
    finally:
        await engine.dispose()


def test_migrations_create_every_table():
    database_url = os.environ.get("DATABASE_URL", "")
    if not database_url.startswith("postgresql"):
        pytest.skip("DATABASE_URL not set to a PostgreSQL database")
    command.upgrade(Config("db/alembic.ini"), "head")
    assert set(Base.metadata.tables) <= asyncio.run(_table_names(database_url))


def test_health_endpoint():
    client = TestClient(create_app())
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.parametrize("path", ["/admin/", "/admin/giveaways", "/admin/orders"])
def test_back_office_requires_login(path):
    client = TestClient(create_app())
    assert client.get(path).status_code == 401


def test_forged_session_cookie_is_refused():
    client = TestClient(create_app())
    client.cookies.set("admin_session", "not-a-signed-value")
    assert client.get("/admin/").status_code == 401
