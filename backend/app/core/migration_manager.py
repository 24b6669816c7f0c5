# app/core/migration_manager.py
"""
Database readiness bootstrap.

Runs once at startup, before request handling, and reconciles the store's
actual schema with the schema the application declares:

- Store unreachable, or no applied AND no pending migrations
    -> create the schema directly from the current models
- Pending migrations exist
    -> apply them one by one in declared order, stopping at the first failure
- Otherwise
    -> the database is up to date, nothing to do

Failures are logged with their phase (and migration id, when there is one) and
handed back unchanged; migrate_database() re-raises them so startup aborts.

Not safe to run from several processes against the same store at once: the
read-then-act sequence is not atomic. Serialize bootstrap calls upstream.
"""
import enum
import logging
import socket
from dataclasses import dataclass, field
from typing import Any, AsyncContextManager, Callable, Optional

from tortoise.exceptions import DBConnectionError

from app.core.store import StoreHandle, open_store

# Exceptions that mean "the store could not be reached". Other OSErrors, such
# as a missing migration file, are not connectivity failures.
CONNECTIVITY_ERRORS = (DBConnectionError, ConnectionError, TimeoutError, socket.gaierror)


class ReconciliationDecision(str, enum.Enum):
    NO_MIGRATION_HISTORY = "no_migration_history"
    HAS_PENDING_CHANGES = "has_pending_changes"
    UP_TO_DATE = "up_to_date"


class BootstrapErrorKind(str, enum.Enum):
    CONNECTIVITY = "connectivity"              # store unreachable when an action needed it
    CHANGE_APPLICATION = "change_application"  # a specific pending migration failed
    UNKNOWN = "unknown"                        # anything else a collaborator raised


@dataclass(frozen=True)
class BootstrapError:
    kind: BootstrapErrorKind
    phase: str                    # "probe", "create" or "apply"
    cause: BaseException          # the original exception, never wrapped
    change_id: Optional[str] = None


@dataclass
class BootstrapOutcome:
    """Observations and result of one bootstrap run."""
    can_connect: bool = False
    applied: list[str] = field(default_factory=list)
    pending: list[str] = field(default_factory=list)
    decision: Optional[ReconciliationDecision] = None
    changes_applied: list[str] = field(default_factory=list)
    error: Optional[BootstrapError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class _SafeLogger:
    """Best-effort logging: a missing logger is silent, a broken one is ignored."""

    def __init__(self, logger: Optional[logging.Logger]):
        self._logger = logger

    def info(self, msg: str, *args: Any) -> None:
        self._emit("info", msg, *args)

    def error(self, msg: str, *args: Any, exc: Optional[BaseException] = None) -> None:
        self._emit("error", msg, *args, exc_info=exc)

    def _emit(self, level: str, msg: str, *args: Any, **kwargs: Any) -> None:
        if self._logger is None:
            return
        try:
            getattr(self._logger, level)(msg, *args, **kwargs)
        except Exception:
            pass  # logging must never abort the bootstrap


def classify(can_connect: bool, applied: list[str], pending: list[str]) -> ReconciliationDecision:
    """Pick the reconciliation strategy for one observed store state."""
    if not can_connect or (not applied and not pending):
        return ReconciliationDecision.NO_MIGRATION_HISTORY
    if pending:
        return ReconciliationDecision.HAS_PENDING_CHANGES
    return ReconciliationDecision.UP_TO_DATE


def _error_kind(exc: BaseException, phase: str, reachable: bool, change_id: Optional[str]) -> BootstrapErrorKind:
    if isinstance(exc, CONNECTIVITY_ERRORS):
        return BootstrapErrorKind.CONNECTIVITY
    if phase == "create" and not reachable:
        return BootstrapErrorKind.CONNECTIVITY
    if phase == "apply" and change_id is not None:
        return BootstrapErrorKind.CHANGE_APPLICATION
    return BootstrapErrorKind.UNKNOWN


async def run_bootstrap(store: StoreHandle, logger: Optional[logging.Logger] = None) -> BootstrapOutcome:
    """
    Probe the store, classify it once, run the matching action.

    Never raises for store failures: the original exception is logged and
    returned as outcome.error.cause.
    """
    log = _SafeLogger(logger)
    outcome = BootstrapOutcome()
    phase = "probe"
    current_change: Optional[str] = None

    try:
        log.info("[bootstrap] Checking database existence and applying migrations...")

        outcome.can_connect = await store.can_connect()
        log.info("[bootstrap] Database can connect: %s", outcome.can_connect)

        outcome.applied = list(await store.get_applied_changes())
        outcome.pending = list(await store.get_pending_changes(outcome.applied))
        log.info("[bootstrap] Applied migrations count: %d", len(outcome.applied))
        log.info("[bootstrap] Pending migrations count: %d", len(outcome.pending))

        outcome.decision = classify(outcome.can_connect, outcome.applied, outcome.pending)
        log.info("[bootstrap] Decision: %s", outcome.decision.value)

        if outcome.decision is ReconciliationDecision.NO_MIGRATION_HISTORY:
            phase = "create"
            log.info("[bootstrap] No migrations found. Creating database from models...")
            await store.ensure_created()
            log.info("[bootstrap] Database created from models.")
        elif outcome.decision is ReconciliationDecision.HAS_PENDING_CHANGES:
            phase = "apply"
            log.info("[bootstrap] Applying %d pending migrations...", len(outcome.pending))
            for change_id in outcome.pending:
                current_change = change_id
                log.info("[bootstrap] Applying migration %s", change_id)
                await store.apply_change(change_id)
                outcome.changes_applied.append(change_id)
            current_change = None
            log.info("[bootstrap] Migrations applied successfully.")
        else:
            log.info("[bootstrap] Database is up to date.")
    except Exception as exc:
        kind = _error_kind(exc, phase, outcome.can_connect, current_change)
        outcome.error = BootstrapError(kind=kind, phase=phase, cause=exc, change_id=current_change)
        if current_change is not None:
            log.error(
                "[bootstrap] An error occurred while initializing the database "
                "(phase=%s, kind=%s, migration=%s).",
                phase, kind.value, current_change, exc=exc,
            )
        else:
            log.error(
                "[bootstrap] An error occurred while initializing the database (phase=%s, kind=%s).",
                phase, kind.value, exc=exc,
            )

    return outcome


StoreFactory = Callable[[], AsyncContextManager[StoreHandle]]


async def migrate_database(
    app: Any,
    logger: Optional[logging.Logger] = None,
    store_factory: Optional[StoreFactory] = None,
) -> Any:
    """
    Ensure the database exists and is up to date, then return `app` unchanged.

    The store handle is held only for the duration of the call and released
    on every exit path. On failure the original exception is raised, which
    aborts startup in the usual on_startup pattern. The outcome is kept on
    app.state.bootstrap when the host has a `state` attribute.
    """
    factory = store_factory or open_store
    try:
        async with factory() as store:
            outcome = await run_bootstrap(store, logger)
    except Exception as exc:
        # Opening or releasing the store scope failed
        _SafeLogger(logger).error("[bootstrap] Could not open or release the database scope.", exc=exc)
        raise

    state = getattr(app, "state", None)
    if state is not None:
        state.bootstrap = outcome

    if outcome.error is not None:
        raise outcome.error.cause
    return app
