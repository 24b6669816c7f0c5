# app/main.py
import logging

from fastapi import FastAPI

from app.config import settings
from app.core.db import init_db, close_db
from app.core.migration_manager import migrate_database

logger = logging.getLogger("uvicorn.error")

app = FastAPI(title=settings.APP_NAME)
app.state.bootstrap = None

@app.on_event("startup")
async def on_startup():
    # Bring the schema up to date before anything touches the database;
    # any failure propagates and aborts startup
    if settings.migrate_on_startup:
        await migrate_database(app, logger=logger)
    else:
        logger.info("[bootstrap] MIGRATE_ON_STARTUP disabled -> skip database bootstrap.")
    # Serving connection pool
    await init_db()

@app.on_event("shutdown")
async def on_shutdown():
    await close_db()

@app.get("/healthz")
def healthz():
    outcome = app.state.bootstrap
    return {
        "ok": True,
        "database": outcome.decision.value if outcome and outcome.decision else None,
    }
