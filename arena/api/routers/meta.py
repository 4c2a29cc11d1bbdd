"""Server metadata endpoints.

Routes
------
GET  /api/health     Liveness + loaded variant count + DB path
GET  /api/models     Models listed in benchmark.config.json
POST /api/reload     Re-read run artifacts from disk
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request

from arena.benchmark.prompt import load_config
from arena.config import settings

logger = logging.getLogger(__name__)

router = APIRouter()


def configured_models() -> list[dict[str, Any]]:
    """Return the configured models, or ``[]`` if the config is unreadable."""
    try:
        config = load_config(settings.config_path)
    except (OSError, ValueError) as exc:
        logger.warning("could not load %s: %s", settings.config_path, exc)
        return []
    return [m.model_dump(by_alias=True, exclude_none=True) for m in config.models]


@router.get("/health")
def health(request: Request) -> dict[str, Any]:
    return {
        "ok": True,
        "variants": len(request.app.state.catalog),
        "dbPath": str(settings.db_path),
    }


@router.get("/models")
def list_models() -> dict[str, Any]:
    return {"models": configured_models()}


@router.post("/reload")
def reload_variants(request: Request) -> dict[str, Any]:
    """Reload variants from ``settings.runs_dir``."""
    count = request.app.state.catalog.reload()
    return {"ok": True, "variants": count}
