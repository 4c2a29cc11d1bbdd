"""Live demo endpoints.

Routes
------
POST /api/demo/vote   Record a vote for two explicit variant ids
POST /api/demo/run    Run a random subset of models and stream progress (SSE)

The demo run executes in a background thread; each model gets its own
worker so the models generate in parallel.  Progress is pushed through an
``asyncio.Queue`` back to the event loop.

SSE event format
----------------
Every frame carries the event name both as the SSE ``event:`` field and
inside the JSON payload::

    event: chunk
    data: {"event": "chunk", "label": "...", "chunk": "...", "accumulated": 1234}

Events: ``run-start``, ``model-start``, ``chunk``, ``model-complete``,
``model-error``, ``run-complete``, ``error``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import random
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import Any, AsyncIterator, Callable, Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from arena.api.state import VariantCatalog
from arena.benchmark.loader import compute_variant_key
from arena.benchmark.models import ModelConfig
from arena.benchmark.prompt import load_config, sanitize_label
from arena.benchmark.runner import RunContext, run_model, start_run
from arena.config import settings
from arena.db.models import Vote
from arena.db.votes import record_vote

logger = logging.getLogger(__name__)

router = APIRouter()

# At most two demo runs generate at once.
_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="demo-run")

_CHUNK_LOG_EVERY = 20


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class DemoVoteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    left_variant_id: Optional[str] = Field(default=None, alias="leftVariantId")
    right_variant_id: Optional[str] = Field(default=None, alias="rightVariantId")
    winner_variant_id: Optional[str] = Field(default=None, alias="winnerVariantId")
    selection: Optional[str] = None


class DemoRunRequest(BaseModel):
    description: Optional[str] = None


# ---------------------------------------------------------------------------
# SSE helpers
# ---------------------------------------------------------------------------

def _sse(event: str, payload: dict[str, Any]) -> str:
    """Format one SSE frame with a named event."""
    return f"event: {event}\ndata: {json.dumps({'event': event, **payload})}\n\n"


# ---------------------------------------------------------------------------
# Background runner
# ---------------------------------------------------------------------------

def _run_one_model(
    run: RunContext,
    model: ModelConfig,
    emit: Callable[[str, dict[str, Any]], None],
    request_id: str,
) -> None:
    label = sanitize_label(model.display_label)
    identity = {
        "provider": model.provider,
        "model": model.model,
        "label": label,
        "variantKey": compute_variant_key(run.run_id, model.provider, model.model, label),
    }
    emit("model-start", identity)
    logger.info("[demo][%s] model-start %s (%s:%s)", request_id, label, model.provider, model.model)

    accumulated = 0
    chunks = 0

    def _on_chunk(chunk: str) -> None:
        nonlocal accumulated, chunks
        accumulated += len(chunk)
        chunks += 1
        if chunks == 1 or chunks % _CHUNK_LOG_EVERY == 0:
            logger.info("[demo][%s] model-chunk %s chunks=%d chars=%d", request_id, label, chunks, accumulated)
        emit("chunk", {**identity, "chunk": chunk, "accumulated": accumulated})

    try:
        result = run_model(run, model, on_chunk=_on_chunk)
    except Exception as exc:  # noqa: BLE001
        logger.exception("[demo][%s] model-error %s", request_id, label)
        emit("model-error", {**identity, "error": str(exc)})
        return

    emit("model-complete", {**identity, "outputLength": len(result.output_text or "")})
    logger.info("[demo][%s] model-complete %s outputLength=%d", request_id, label, len(result.output_text or ""))


def run_demo(
    description: str,
    catalog: VariantCatalog,
    emit: Callable[[str, dict[str, Any]], None],
    model_count: Optional[int] = None,
) -> None:
    """Run a random subset of the configured models and report via *emit*.

    Any failure before the models start is reported as an ``error`` event.
    """
    request_id = str(uuid.uuid4())
    logger.info("[demo][%s] request received: %r", request_id, description[:80])
    try:
        config = load_config(settings.config_path)
        run = start_run(config, description)
        logger.info("[demo][%s] run %s initialized at %s", request_id, run.run_id, run.output_dir)

        count = min(model_count or settings.demo_model_count, len(config.models))
        selected = random.sample(config.models, count)
        if not selected:
            raise ValueError("No models configured to run.")

        emit("run-start", {"runId": run.run_id, "modelCount": len(selected)})
        with ThreadPoolExecutor(max_workers=len(selected), thread_name_prefix="demo-model") as pool:
            futures = [
                pool.submit(_run_one_model, run, model, emit, request_id)
                for model in selected
            ]
            for future in futures:
                future.result()

        catalog.reload()
        emit("run-complete", {"runId": run.run_id, "outputDir": str(run.output_dir)})
        logger.info("[demo][%s] run %s complete", request_id, run.run_id)
    except Exception as exc:  # noqa: BLE001
        logger.exception("[demo][%s] run failed", request_id)
        emit("error", {"error": str(exc)})


def _run_in_thread(
    description: str,
    catalog: VariantCatalog,
    queue: "asyncio.Queue[str | None]",
    loop: asyncio.AbstractEventLoop,
) -> None:
    def _emit(event: str, payload: dict[str, Any]) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, _sse(event, payload))

    try:
        run_demo(description, catalog, _emit)
    finally:
        loop.call_soon_threadsafe(queue.put_nowait, None)  # sentinel


async def _demo_sse_generator(description: str, catalog: VariantCatalog) -> AsyncIterator[str]:
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[str | None] = asyncio.Queue()
    future = loop.run_in_executor(_executor, _run_in_thread, description, catalog, queue, loop)

    try:
        while True:
            item = await queue.get()
            if item is None:
                break
            yield item
    finally:
        await asyncio.shield(future)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.post("/vote")
def demo_vote(body: DemoVoteRequest, request: Request) -> dict[str, Any]:
    """Record a demo vote between two explicitly named variants."""
    left, right, winner = body.left_variant_id, body.right_variant_id, body.winner_variant_id
    if not left or not right or not winner or not body.selection:
        raise HTTPException(
            status_code=400,
            detail="leftVariantId, rightVariantId, winnerVariantId, and selection are required",
        )
    if body.selection not in ("left", "right"):
        raise HTTPException(status_code=400, detail="selection must be 'left' or 'right'")
    if winner not in (left, right):
        raise HTTPException(
            status_code=400, detail="winnerVariantId must match leftVariantId or rightVariantId"
        )
    if left == right:
        raise HTTPException(status_code=400, detail="leftVariantId and rightVariantId must differ")

    catalog = request.app.state.catalog
    if left not in catalog or right not in catalog:
        logger.warning("[demo/vote] variant metadata missing; proceeding with raw ids %s / %s", left, right)

    record_vote(
        request.app.state.db,
        Vote(
            pair_id=f"demo-{uuid.uuid4()}",
            left_variant_id=left,
            right_variant_id=right,
            winner_variant_id=winner,
            selection=body.selection,
            notes="demo",
        ),
    )
    return {"ok": True}


@router.post("/run")
async def demo_run(body: DemoRunRequest, request: Request) -> StreamingResponse:
    """Generate fresh variants for *description* and stream progress as SSE."""
    if not body.description:
        raise HTTPException(status_code=400, detail="description is required")

    return StreamingResponse(
        _demo_sse_generator(body.description, request.app.state.catalog),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",   # disable nginx proxy buffering
        },
    )
