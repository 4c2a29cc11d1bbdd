"""Blind pair endpoints.

Routes
------
GET  /api/pair    Hand out two random variants under anonymous tokens
POST /api/vote    Record the voter's pick for a pair and reveal both sides

A pair can be voted on once; it expires after
``settings.pair_lifetime_seconds`` if nobody votes.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from arena.api.state import PairSide
from arena.benchmark.models import BenchmarkVariant
from arena.db.models import SELECTIONS, Vote
from arena.db.votes import record_vote

router = APIRouter()


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class VoteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    pair_id: Optional[str] = Field(default=None, alias="pairId")
    selection: Optional[str] = None
    scores: Optional[dict[str, Optional[float]]] = None
    notes: Optional[str] = None


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def format_side(side: PairSide) -> dict[str, Any]:
    """Anonymous view of one side: markup and run context, no model identity."""
    variant = side.variant
    meta = variant.run_meta
    return {
        "token": side.token,
        "html": variant.primary_html,
        "source": variant.source_text,
        "heroRaw": variant.primary_raw,
        "context": {
            "description": meta.display_description,
            "productName": meta.product_name,
            "valueProp": meta.value_prop,
            "notes": meta.notes or "",
            "runTimestamp": meta.timestamp,
        },
    }


def reveal(variant: BenchmarkVariant) -> dict[str, Any]:
    return {
        "variantKey": variant.variant_key,
        "runId": variant.run_id,
        "runTimestamp": variant.run_timestamp,
        "provider": variant.metadata.provider,
        "model": variant.metadata.model,
        "label": variant.metadata.display_label,
        "temperature": variant.metadata.temperature,
        "maxOutputTokens": variant.metadata.max_output_tokens,
    }


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("/pair")
def get_pair(request: Request) -> dict[str, Any]:
    """Return a fresh blind pair, or a message when fewer than two variants exist."""
    catalog = request.app.state.catalog
    registry = request.app.state.pairs
    registry.purge_expired()

    picked = catalog.pick_pair()
    if picked is None:
        return {
            "pairId": None,
            "variants": len(catalog),
            "message": "Not enough variants to compare yet.",
        }

    pair = registry.register(*picked)
    return {
        "pairId": pair.pair_id,
        "left": format_side(pair.left),
        "right": format_side(pair.right),
    }


@router.post("/vote")
def vote(body: VoteRequest, request: Request) -> dict[str, Any]:
    """Record a vote for a registered pair and reveal both models."""
    if not body.pair_id or not body.selection:
        raise HTTPException(status_code=400, detail="pairId and selection are required.")

    registry = request.app.state.pairs
    # Only one request can claim a pair; a vote that is not recorded puts it back.
    pair = registry.claim(body.pair_id)
    if pair is None:
        raise HTTPException(status_code=404, detail="Pair not found or expired.")

    if body.selection not in SELECTIONS:
        registry.restore(pair)
        raise HTTPException(status_code=400, detail="Invalid selection option.")

    winner = pair.winner_for(body.selection)
    try:
        record_vote(
            request.app.state.db,
            Vote(
                pair_id=pair.pair_id,
                left_variant_id=pair.left.variant.variant_key,
                right_variant_id=pair.right.variant.variant_key,
                winner_variant_id=winner,
                selection=body.selection,
                scores=body.scores,
                notes=body.notes,
            ),
        )
    except Exception:
        registry.restore(pair)
        raise

    return {
        "ok": True,
        "selection": body.selection,
        "winnerVariantId": winner,
        "left": reveal(pair.left.variant),
        "right": reveal(pair.right.variant),
    }
