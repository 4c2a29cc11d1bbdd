"""Dataclass models representing vote rows and aggregates.

These are plain Python objects – not ORM models.  The DB layer serialises /
deserialises to and from these types.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional

SELECTIONS = ("left", "right", "tie", "both_bad")


@dataclass
class Vote:
    pair_id: str
    left_variant_id: str
    right_variant_id: str
    winner_variant_id: Optional[str]
    selection: str
    scores: Optional[dict[str, Optional[float]]] = None
    notes: Optional[str] = None
    automation_metadata: Optional[dict[str, Any]] = None
    id: Optional[str] = None
    created_at: Optional[str] = None

    def scores_json(self) -> Optional[str]:
        return json.dumps(self.scores) if self.scores else None

    def automation_metadata_json(self) -> Optional[str]:
        return json.dumps(self.automation_metadata) if self.automation_metadata else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "createdAt": self.created_at,
            "pairId": self.pair_id,
            "leftVariantId": self.left_variant_id,
            "rightVariantId": self.right_variant_id,
            "winnerVariantId": self.winner_variant_id,
            "selection": self.selection,
            "scores": self.scores,
            "notes": self.notes,
            "automationMetadata": self.automation_metadata,
        }


@dataclass
class LeaderboardRow:
    variant_id: str
    wins: int


@dataclass
class VoteStats:
    total_votes: int
    last_updated: Optional[str]
    total_models: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalVotes": self.total_votes,
            "lastUpdated": self.last_updated,
            "totalModels": self.total_models,
        }
