"""CRUD and aggregate queries for the ``votes`` table.

A vote compares two variants (left / right) presented as one blind pair.
``selection`` is one of ``left``, ``right``, ``tie`` or ``both_bad``; only
``left`` and ``right`` carry a ``winner_variant_id``.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from typing import Optional

from arena.db.models import SELECTIONS, LeaderboardRow, Vote, VoteStats

# Seeded demo rows are excluded from the public battle history.
_DEMO_SEED_NOTE = "demo-leaderboard"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _loads(raw: Optional[str]) -> Optional[dict]:
    return json.loads(raw) if raw else None


def _row_to_vote(row: sqlite3.Row) -> Vote:
    return Vote(
        id=row["id"],
        created_at=row["created_at"],
        pair_id=row["pair_id"],
        left_variant_id=row["left_variant_id"],
        right_variant_id=row["right_variant_id"],
        winner_variant_id=row["winner_variant_id"],
        selection=row["selection"],
        scores=_loads(row["scores_json"]),
        notes=row["notes"],
        automation_metadata=_loads(row["automation_metadata_json"]),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def record_vote(conn: sqlite3.Connection, vote: Vote) -> Vote:
    """Insert *vote* and return it with its ``id`` filled in.

    Raises:
        ValueError: If ``vote.selection`` is not a known selection.
    """
    if vote.selection not in SELECTIONS:
        raise ValueError(f"Invalid selection {vote.selection!r}.")

    vote.id = vote.id or str(uuid.uuid4())
    with conn:
        conn.execute(
            """
            INSERT INTO votes (
                id, pair_id, left_variant_id, right_variant_id, winner_variant_id,
                selection, scores_json, notes, automation_metadata_json
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                vote.id,
                vote.pair_id,
                vote.left_variant_id,
                vote.right_variant_id,
                vote.winner_variant_id,
                vote.selection,
                vote.scores_json(),
                vote.notes,
                vote.automation_metadata_json(),
            ),
        )
    return vote


def get_vote(conn: sqlite3.Connection, vote_id: str) -> Optional[Vote]:
    row = conn.execute("SELECT * FROM votes WHERE id = ?", (vote_id,)).fetchone()
    return _row_to_vote(row) if row else None


def list_recent_votes(conn: sqlite3.Connection, limit: int = 50) -> list[Vote]:
    """Return the newest *limit* votes, newest first."""
    rows = conn.execute(
        "SELECT * FROM votes ORDER BY created_at DESC, rowid DESC LIMIT ?",
        (limit,),
    ).fetchall()
    return [_row_to_vote(r) for r in rows]


def list_leaderboard(conn: sqlite3.Connection, limit: int = 10) -> list[LeaderboardRow]:
    """Return win counts per winning variant, most wins first."""
    rows = conn.execute(
        """
        SELECT winner_variant_id AS variant_id, COUNT(*) AS wins
        FROM   votes
        WHERE  winner_variant_id IS NOT NULL AND winner_variant_id != ''
        GROUP  BY winner_variant_id
        ORDER  BY wins DESC, variant_id ASC
        LIMIT  ?
        """,
        (limit,),
    ).fetchall()
    return [LeaderboardRow(variant_id=r["variant_id"], wins=int(r["wins"])) for r in rows]


def get_vote_stats(conn: sqlite3.Connection) -> VoteStats:
    totals = conn.execute(
        "SELECT COUNT(*) AS total, MAX(created_at) AS last_updated FROM votes"
    ).fetchone()
    distinct = conn.execute(
        """
        SELECT COUNT(DISTINCT winner_variant_id) AS models
        FROM   votes
        WHERE  winner_variant_id IS NOT NULL AND winner_variant_id != ''
        """
    ).fetchone()
    return VoteStats(
        total_votes=int(totals["total"] or 0),
        last_updated=totals["last_updated"],
        total_models=int(distinct["models"] or 0),
    )


def list_battle_history(conn: sqlite3.Connection, limit: int = 50) -> list[Vote]:
    """Return recent real battles, excluding seeded demo-leaderboard rows."""
    placeholders = ", ".join("?" for _ in SELECTIONS)
    rows = conn.execute(
        f"""
        SELECT *
        FROM   votes
        WHERE  selection IN ({placeholders})
          AND  (notes IS NULL OR notes != ?)
        ORDER  BY created_at DESC, rowid DESC
        LIMIT  ?
        """,
        (*SELECTIONS, _DEMO_SEED_NOTE, limit),
    ).fetchall()
    return [_row_to_vote(r) for r in rows]
