"""
REST API for the data service.
One read route over tbl_test; the ingress maps /api/data onto /data.
"""
from __future__ import annotations

import logging
import threading
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from server import __version__
from server.config import get_settings, setup_logging
from server.persistence import RecordRepository, dispose_engine, get_connection, init_db

logger = logging.getLogger(__name__)

# Concurrent /data requests share one lazy migration attempt
_schema_lock = threading.Lock()


# ---------- Startup: ensure table and seed rows ----------
def _ensure_db() -> bool:
    """Run the migration. Returns False (and logs) when the database is unreachable."""
    try:
        init_db()
    except SQLAlchemyError:
        logger.exception("Database migration failed; /data will retry on the next request")
        return False
    return True


# ---------- Lifespan ----------
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging(get_settings().log_level)
    app.state.schema_ready = _ensure_db()
    yield
    dispose_engine()


# ---------- FastAPI app ----------
app = FastAPI(
    title="Data Service API",
    description="Serves the records of tbl_test to the client",
    version=__version__,
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(get_settings().cors_origins),
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)


# ---------- Response models ----------


class RecordOut(BaseModel):
    id: int
    data: str | None


# ---------- Endpoints ----------


@app.get("/data", response_model=list[RecordOut])
def get_data(request: Request) -> list[dict]:
    """All rows of tbl_test, ascending id."""
    if not getattr(request.app.state, "schema_ready", False):
        with _schema_lock:
            if not getattr(request.app.state, "schema_ready", False):
                request.app.state.schema_ready = _ensure_db()
    try:
        with get_connection() as conn:
            records = RecordRepository().list_all(conn)
    except SQLAlchemyError:
        logger.exception("Reading tbl_test failed")
        raise HTTPException(status_code=503, detail="Database unavailable")
    return [r.to_dict() for r in records]


# ---------- Run with: python -m server  (or uvicorn server.api:app --reload --port 5000) ----------
