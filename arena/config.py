"""Centralised settings for the design arena.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (one level up from this package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


def _root_dir() -> Path:
    return Path(os.environ.get("ARENA_ROOT", Path.cwd()))


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Workspace / storage
    # ------------------------------------------------------------------
    root_dir: Path = field(default_factory=_root_dir)
    config_path: Path = field(
        default_factory=lambda: Path(
            os.environ.get("ARENA_CONFIG", _root_dir() / "benchmark.config.json")
        )
    )
    runs_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("ARENA_RUNS_DIR", _root_dir() / "runs" / "html-design")
        )
    )
    data_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("ARENA_DATA_DIR", _root_dir() / "data")
        )
    )
    db_name: str = field(
        default_factory=lambda: os.environ.get("ARENA_DB_NAME", "arena-viewer.sqlite")
    )

    @property
    def db_path(self) -> Path:
        """Absolute path to the SQLite vote database."""
        return self.data_dir / self.db_name

    @property
    def schema_path(self) -> Path:
        """Absolute path to the schema SQL file bundled with the package."""
        return Path(__file__).resolve().parent / "db" / "schema.sql"

    # ------------------------------------------------------------------
    # Viewer server
    # ------------------------------------------------------------------
    host: str = field(default_factory=lambda: os.environ.get("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.environ.get("PORT", "4173")))
    pair_lifetime_seconds: float = field(
        default_factory=lambda: float(os.environ.get("ARENA_PAIR_LIFETIME", "1800"))
    )
    demo_model_count: int = field(
        default_factory=lambda: int(os.environ.get("ARENA_DEMO_MODELS", "2"))
    )

    # ------------------------------------------------------------------
    # Model providers
    # ------------------------------------------------------------------
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("REQUEST_TIMEOUT", "300.0"))
    )
    openai_base_url: str = field(
        default_factory=lambda: os.environ.get("OPENAI_BASE_URL", "https://api.openai.com/v1")
    )
    anthropic_base_url: str = field(
        default_factory=lambda: os.environ.get("ANTHROPIC_BASE_URL", "https://api.anthropic.com/v1")
    )
    google_base_url: str = field(
        default_factory=lambda: os.environ.get(
            "GOOGLE_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
        )
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = field(default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO"))

    def ensure_data_dir(self) -> None:
        """Create the data directory if it does not exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)


# Module-level singleton, import this everywhere:
#   from arena.config import settings
settings = Settings()
