"""In-memory server state: the variant catalog and pending blind pairs.

Both objects live on ``app.state`` (created in the lifespan) rather than at
module level, so every app instance, and every test client, is isolated.
"""

from __future__ import annotations

import logging
import random
import threading
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from arena.benchmark.loader import compute_variant_key, load_variants, parse_variant_key
from arena.benchmark.models import BenchmarkVariant

logger = logging.getLogger(__name__)


class VariantCatalog:
    """All loaded variants, indexed by variant key.

    Besides the canonical key, each variant is also reachable by the key
    computed from its *unsanitized* label, which older demo votes recorded.
    """

    def __init__(self, runs_dir: Path) -> None:
        self.runs_dir = Path(runs_dir)
        self.variants: list[BenchmarkVariant] = []
        self.index: dict[str, BenchmarkVariant] = {}

    def __len__(self) -> int:
        return len(self.variants)

    def reload(self) -> int:
        variants = load_variants(self.runs_dir)
        index: dict[str, BenchmarkVariant] = {}
        for variant in variants:
            index[variant.variant_key] = variant
            parsed = parse_variant_key(variant.variant_key)
            raw_label = variant.metadata.label or variant.metadata.model
            if parsed is None or not raw_label or raw_label == parsed.label:
                continue
            legacy_key = compute_variant_key(
                parsed.run_folder, variant.metadata.provider, variant.metadata.model, raw_label
            )
            index.setdefault(legacy_key, variant)

        self.variants, self.index = variants, index
        logger.info("loaded %d variants from %s", len(variants), self.runs_dir)
        return len(variants)

    def get(self, variant_key: str) -> Optional[BenchmarkVariant]:
        return self.index.get(variant_key)

    def __contains__(self, variant_key: object) -> bool:
        return variant_key in self.index

    def pick_pair(
        self, rng: Optional[random.Random] = None
    ) -> Optional[tuple[BenchmarkVariant, BenchmarkVariant]]:
        """Return two distinct variants at random, or ``None`` if fewer than two."""
        if len(self.variants) < 2:
            return None
        first, second = (rng or random).sample(self.variants, 2)
        return first, second


@dataclass
class PairSide:
    token: str
    variant: BenchmarkVariant


@dataclass
class Pair:
    pair_id: str
    left: PairSide
    right: PairSide
    created_at: float = field(default_factory=time.monotonic)

    def winner_for(self, selection: str) -> Optional[str]:
        """Variant key of the winner; ``None`` for ``tie`` / ``both_bad``."""
        if selection == "left":
            return self.left.variant.variant_key
        if selection == "right":
            return self.right.variant.variant_key
        return None


class PairRegistry:
    """Blind pairs handed out to voters, each valid for *lifetime* seconds."""

    def __init__(self, lifetime: float) -> None:
        self.lifetime = lifetime
        self._pairs: dict[str, Pair] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._pairs)

    def register(self, left: BenchmarkVariant, right: BenchmarkVariant) -> Pair:
        pair = Pair(
            pair_id=str(uuid.uuid4()),
            left=PairSide(token=str(uuid.uuid4()), variant=left),
            right=PairSide(token=str(uuid.uuid4()), variant=right),
        )
        with self._lock:
            self._pairs[pair.pair_id] = pair
        return pair

    def claim(self, pair_id: str) -> Optional[Pair]:
        """Remove and return the pair; only one caller ever gets it."""
        with self._lock:
            return self._pairs.pop(pair_id, None)

    def restore(self, pair: Pair) -> None:
        """Put back a claimed pair whose vote was not recorded."""
        with self._lock:
            self._pairs.setdefault(pair.pair_id, pair)

    def purge_expired(self, now: Optional[float] = None) -> int:
        """Drop pairs older than the lifetime; return how many were dropped."""
        now = time.monotonic() if now is None else now
        with self._lock:
            expired = [
                pid for pid, pair in self._pairs.items()
                if now - pair.created_at > self.lifetime
            ]
            for pid in expired:
                del self._pairs[pid]
        return len(expired)
