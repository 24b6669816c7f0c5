import copy
import os
import shutil
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.config import BACKEND_DIR
from app.core import db as db_module
from app.main import app


TEST_DB_URL = "sqlite://:memory:"
os.environ["DATABASE_URL"] = TEST_DB_URL
db_module.DB_URL = TEST_DB_URL
db_module.TORTOISE_ORM["connections"]["default"] = TEST_DB_URL

SHIPPED_MIGRATIONS = BACKEND_DIR / "migrations"

# First migration of an Aerich history always creates its bookkeeping table
AERICH_TABLE_SQL = (
    'CREATE TABLE IF NOT EXISTS "aerich" ('
    '"id" INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL, '
    '"version" VARCHAR(255) NOT NULL, '
    '"app" VARCHAR(100) NOT NULL, '
    '"content" JSON NOT NULL);'
)


@pytest.fixture
def sqlite_config(tmp_path: Path) -> dict:
    """
    Tortoise config pointing at a brand-new SQLite file for this test.
    The file does not exist until the first connection is opened.
    """
    config = copy.deepcopy(db_module.TORTOISE_ORM)
    config["connections"]["default"] = f"sqlite://{tmp_path / 'board.db'}"
    return config


@pytest.fixture
def migrations_dir(tmp_path: Path) -> Path:
    """
    Empty Aerich migrations root; tests drop version files into
    migrations_dir / "models" as needed.
    """
    root = tmp_path / "migrations"
    (root / "models").mkdir(parents=True)
    return root


@pytest.fixture
def shipped_migrations(tmp_path: Path) -> Path:
    """Copy of the migrations that ship with the application."""
    root = tmp_path / "shipped"
    shutil.copytree(SHIPPED_MIGRATIONS, root, ignore=shutil.ignore_patterns("__pycache__"))
    return root


@pytest.fixture
def write_migration(migrations_dir: Path):
    """
    Factory fixture writing an Aerich-style migration file whose upgrade()
    returns the given SQL. `creates_history` appends the aerich table DDL,
    as in the first migration Aerich generates.
    """

    def _write(version: str, sql: str, creates_history: bool = False) -> str:
        if creates_history:
            sql = sql + "\n" + AERICH_TABLE_SQL
        body = (
            "from tortoise import BaseDBAsyncClient\n\n\n"
            "async def upgrade(db: BaseDBAsyncClient) -> str:\n"
            f"    return {sql!r}\n\n\n"
            "async def downgrade(db: BaseDBAsyncClient) -> str:\n"
            "    return ''\n"
        )
        (migrations_dir / "models" / version).write_text(body)
        return version

    return _write


@pytest_asyncio.fixture
async def client():
    """
    Provide an HTTPX AsyncClient bound to the FastAPI app (lifespan not run).
    """
    app.state.bootstrap = None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client
    app.state.bootstrap = None
