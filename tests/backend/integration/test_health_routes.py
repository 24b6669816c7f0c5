from functools import partial

import pytest

from app.core import db as db_module
from app.core.migration_manager import ReconciliationDecision, migrate_database
from app.core.store import open_store
from app.main import app, on_shutdown, on_startup


pytestmark = pytest.mark.asyncio


async def test_healthz_before_bootstrap(client):
    resp = await client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "database": None}


async def test_healthz_reports_bootstrap_decision(client, sqlite_config, shipped_migrations):
    result = await migrate_database(
        app, store_factory=partial(open_store, sqlite_config, location=shipped_migrations)
    )
    assert result is app

    resp = await client.get("/healthz")
    assert resp.json() == {"ok": True, "database": "has_pending_changes"}

    await migrate_database(app, store_factory=partial(open_store, sqlite_config, location=shipped_migrations))
    resp = await client.get("/healthz")
    assert resp.json()["database"] == "up_to_date"


async def test_startup_hook_migrates_then_serves(monkeypatch, tmp_path):
    """Startup runs the bootstrap against the configured database and shipped migrations."""
    monkeypatch.setitem(
        db_module.TORTOISE_ORM["connections"], "default", f"sqlite://{tmp_path / 'board.db'}"
    )
    try:
        await on_startup()
        assert app.state.bootstrap.decision is ReconciliationDecision.HAS_PENDING_CHANGES
        assert app.state.bootstrap.ok
    finally:
        await on_shutdown()

    try:
        await on_startup()
        assert app.state.bootstrap.decision is ReconciliationDecision.UP_TO_DATE
    finally:
        await on_shutdown()
        app.state.bootstrap = None


async def test_startup_aborts_when_bootstrap_fails(monkeypatch, tmp_path):
    """A failing bootstrap propagates out of the startup hook."""
    monkeypatch.setitem(
        db_module.TORTOISE_ORM["connections"], "default", f"sqlite://{tmp_path / 'no-such-dir' / 'board.db'}"
    )
    try:
        with pytest.raises(Exception):
            await on_startup()
        assert app.state.bootstrap.decision is ReconciliationDecision.NO_MIGRATION_HISTORY
        assert app.state.bootstrap.error is not None
    finally:
        app.state.bootstrap = None
