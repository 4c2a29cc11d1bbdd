"""FastAPI application factory.

Lifespan
--------
On startup the app opens a single SQLite connection (shared across all
requests via ``request.app.state.db``), initialises the schema, loads every
benchmark variant from ``settings.runs_dir`` into a :class:`VariantCatalog`
and creates an empty :class:`PairRegistry`.  On shutdown it closes the
connection.

Routers
-------
All endpoint groups are mounted under ``/api``:

    /api/health, /api/models, /api/reload     server metadata
    /api/pair, /api/vote                      blind comparison
    /api/votes/recent, /api/leaderboard,
    /api/battles                              results
    /api/demo/vote, /api/demo/run             live demo (SSE)
    /api/extract                              markup normalization
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from arena.api.state import PairRegistry, VariantCatalog
from arena.config import settings
from arena.db import get_connection, init_db

from arena.api.routers import demo as demo_router
from arena.api.routers import extract as extract_router
from arena.api.routers import leaderboard as leaderboard_router
from arena.api.routers import meta as meta_router
from arena.api.routers import pairs as pairs_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the DB and load variants on startup; close the DB on shutdown."""
    conn = get_connection()
    init_db(conn)
    app.state.db = conn
    app.state.catalog = VariantCatalog(settings.runs_dir)
    app.state.catalog.reload()
    app.state.pairs = PairRegistry(settings.pair_lifetime_seconds)
    logger.info("vote database ready at %s", settings.db_path)
    try:
        yield
    finally:
        conn.close()


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    app = FastAPI(
        title="Design Arena API",
        description=(
            "Blind side-by-side comparison of model-generated landing pages. "
            "Serves normalized variants in random pairs, records votes, "
            "aggregates a leaderboard and streams live demo runs via "
            "Server-Sent Events."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    # Allow browser frontends on any origin (tighten for production).
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)

    app.include_router(meta_router.router, prefix="/api", tags=["meta"])
    app.include_router(pairs_router.router, prefix="/api", tags=["pairs"])
    app.include_router(leaderboard_router.router, prefix="/api", tags=["leaderboard"])
    app.include_router(demo_router.router, prefix="/api/demo", tags=["demo"])
    app.include_router(extract_router.router, prefix="/api", tags=["extract"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn arena.api.app:app --reload
app = create_app()
