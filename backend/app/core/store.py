# app/core/store.py
"""
Storage collaborator for the database readiness bootstrap.

Wraps Tortoise ORM and Aerich's migration bookkeeping behind a small handle:
- reachability probe
- applied / pending change enumeration
- create-from-model (generate schemas straight from the current models)
- apply one pending change

Aerich layout: migration files live in <location>/<app label>/ and are named
"<n>_<timestamp>_<name>.py"; each defines `async def upgrade(db) -> str`
returning the SQL to run. Applied versions are rows of the `aerich` table,
which the first migration creates (as the one `aerich init-db` writes does).
"""
import importlib.util
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Protocol

from aerich.models import Aerich
from aerich.utils import get_models_describe
from tortoise import Tortoise, connections
from tortoise.exceptions import OperationalError
from tortoise.transactions import in_transaction

from app.config import settings
from app.core.db import TORTOISE_ORM


class StoreHandle(Protocol):
    """Operations the bootstrapper needs from the store."""

    async def can_connect(self) -> bool: ...

    async def get_applied_changes(self) -> list[str]: ...

    async def get_pending_changes(self, applied: list[str] | None = None) -> list[str]: ...

    async def ensure_created(self) -> None: ...

    async def apply_change(self, change_id: str) -> None: ...


def _version_order(path: Path) -> int:
    """Numeric prefix of an Aerich migration file ("3_20240101_add_cards.py" -> 3)."""
    prefix = path.name.split("_", 1)[0]
    return int(prefix) if prefix.isdigit() else -1


class AerichStore:
    """
    StoreHandle backed by Tortoise ORM connections and Aerich migrations.

    Tortoise must already be initialized with a config that includes
    "aerich.models" in the given app (see open_store()).
    """

    def __init__(self, app_label: str, connection_name: str, location: str | Path):
        self.app_label = app_label
        self.connection_name = connection_name
        self.migrations_dir = Path(location) / app_label
        self._reachable: bool | None = None

    async def can_connect(self) -> bool:
        try:
            conn = connections.get(self.connection_name)
            await conn.execute_query("SELECT 1")
        except Exception:
            # Any failure to reach the store counts as "cannot connect"
            self._reachable = False
            return False
        self._reachable = True
        return True

    def get_declared_changes(self) -> list[str]:
        """Migration version files shipped with the application, in declared order."""
        if not self.migrations_dir.is_dir():
            return []
        files = [
            p for p in self.migrations_dir.glob("*.py")
            if p.name != "__init__.py"
        ]
        return [p.name for p in sorted(files, key=lambda p: (_version_order(p), p.name))]

    async def get_applied_changes(self) -> list[str]:
        if not await self._is_reachable():
            return []
        return await self._read_history()

    async def get_pending_changes(self, applied: list[str] | None = None) -> list[str]:
        """Declared changes missing from `applied` (read from the store when not given)."""
        if not await self._is_reachable():
            return []
        if applied is None:
            applied = await self.get_applied_changes()
        done = set(applied)
        return [v for v in self.get_declared_changes() if v not in done]

    async def ensure_created(self) -> None:
        """
        Materialize the full schema from the current models.

        If the store could not be reached, the database itself is created first (a no-op on
        SQLite, CREATE DATABASE on server backends). The declared changes are
        recorded as applied only when the store has no history at all for this
        app; an existing history is left alone so its pending changes still run.
        """
        if self._reachable is False:
            await connections.get(self.connection_name).db_create()
        await Tortoise.generate_schemas(safe=True)
        self._reachable = True
        if await self._read_history():
            return
        content = get_models_describe(self.app_label)
        for version in self.get_declared_changes():
            await Aerich.create(version=version, app=self.app_label, content=content)

    async def apply_change(self, change_id: str) -> None:
        """
        Run one migration's upgrade SQL and record it, in a single transaction.

        Statements are executed one by one so a failure rolls back the earlier
        statements of the same migration. Backends that auto-commit DDL (MySQL)
        cannot honour this.
        """
        path = self.migrations_dir / change_id
        if not path.is_file():
            raise FileNotFoundError(f"Migration file not found: {path}")
        module = _load_migration(path)
        async with in_transaction(self.connection_name) as conn:
            sql = await module.upgrade(conn)
            for statement in split_sql(sql or ""):
                await conn.execute_query(statement)
            await Aerich.create(
                version=change_id,
                app=self.app_label,
                content=get_models_describe(self.app_label),
                using_db=conn,
            )

    async def migrate(self) -> list[str]:
        """Apply every pending change in declared order; return the applied ids."""
        done = []
        for change_id in await self.get_pending_changes():
            await self.apply_change(change_id)
            done.append(change_id)
        return done

    async def _is_reachable(self) -> bool:
        if self._reachable is None:
            return await self.can_connect()
        return self._reachable

    async def _read_history(self) -> list[str]:
        try:
            versions = await Aerich.filter(app=self.app_label).order_by("id").values_list(
                "version", flat=True
            )
        except OperationalError:
            # Bookkeeping table missing: the store has never been under Aerich
            return []
        return list(versions)


def split_sql(script: str) -> list[str]:
    """
    Split a migration script into single statements on `;`.

    Semicolons inside quoted strings/identifiers are kept; `--` line comments
    are dropped.
    """
    statements = []
    buf = []
    quote = None
    i = 0
    while i < len(script):
        ch = script[i]
        if quote:
            buf.append(ch)
            if ch == quote:
                quote = None
        elif ch in ("'", '"', "`"):
            quote = ch
            buf.append(ch)
        elif ch == "-" and script.startswith("--", i):
            end = script.find("\n", i)
            i = len(script) if end == -1 else end
            continue
        elif ch == ";":
            statements.append("".join(buf))
            buf = []
        else:
            buf.append(ch)
        i += 1
    statements.append("".join(buf))
    return [s.strip() for s in statements if s.strip()]


def _load_migration(path: Path):
    spec = importlib.util.spec_from_file_location(f"_aerich_migration_{path.stem}", path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load migration file: {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    if not hasattr(module, "upgrade"):
        raise AttributeError(f"Migration {path.name} has no upgrade() function")
    return module


@asynccontextmanager
async def open_store(
    config: dict | None = None,
    app_label: str = "models",
    location: str | Path | None = None,
) -> AsyncIterator[AerichStore]:
    """
    Scoped store handle: initialize Tortoise for the duration of the block and
    close every connection on exit, whether the block succeeded or raised.
    """
    if config is None:
        config = TORTOISE_ORM
    connection_name = config["apps"][app_label].get("default_connection", "default")
    await Tortoise.init(config=config)
    try:
        yield AerichStore(
            app_label=app_label,
            connection_name=connection_name,
            location=location or settings.migrations_location,
        )
    finally:
        await connections.close_all()
