"""Design arena CLI: entry-point for benchmark runs and the viewer.

Usage:
    python cli/main.py --help

Commands:
    run          → prompt every configured model, persist a new run
    extract      → normalize one saved model response
    variants     → list loaded variants
    leaderboard  → print win counts
    db init      → create the vote database
    serve        → start the arena HTTP server
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from arena.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import json
import logging
from typing import Optional

import typer

from arena.benchmark import load_config, load_variants, run_benchmark
from arena.config import settings
from arena.db import get_connection, init_db
from arena.db.votes import get_vote_stats, list_leaderboard
from arena.markup import extract_primary_section

DEFAULT_DESCRIPTION = (
    "Design a GitHub-style dashboard with activity graphs, repository cards, "
    "contribution heatmap, issue tracking, pull request overview, and clean, "
    "developer-focused UI."
)

app = typer.Typer(
    name="arena",
    help="Design arena CLI.",
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level."),
) -> None:
    """Configure logging once for every sub-command."""
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


# ---------------------------------------------------------------------------
# DB commands
# ---------------------------------------------------------------------------
db_app = typer.Typer(help="Vote database operations.", no_args_is_help=True)
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """Initialise the SQLite vote database (create tables if they do not exist)."""
    conn = get_connection()
    init_db(conn)
    conn.close()
    typer.echo(f"[db init] Database ready at {settings.db_path}")


# ---------------------------------------------------------------------------
# Benchmark commands
# ---------------------------------------------------------------------------
@app.command("run")
def run(
    description: str = typer.Option(DEFAULT_DESCRIPTION, help="Product description (\"Name - value prop\")."),
    notes: str = typer.Option("", help="Additional notes appended to the user message."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Skip model calls, write placeholders."),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Benchmark config JSON."),
) -> None:
    """Prompt every configured model and save the outputs as a new run."""
    path = config_path or settings.config_path
    try:
        config = load_config(path)
    except (OSError, ValueError) as e:
        typer.echo(f"❌ Could not load config {path}: {e}")
        raise typer.Exit(code=1)

    run_benchmark(config, description, notes=notes, dry_run=dry_run, echo=typer.echo)


@app.command("extract")
def extract(
    path: Path = typer.Argument(..., help="A saved response.txt (or any text file)."),
    raw: bool = typer.Option(False, "--raw", help="Print the raw section instead."),
    as_json: bool = typer.Option(False, "--json", help="Print both fields as JSON."),
) -> None:
    """Normalize one model response and print the embeddable HTML."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        typer.echo(f"❌ Error: {e}")
        raise typer.Exit(code=1)

    result = extract_primary_section(text)
    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
    else:
        typer.echo(result.raw_section if raw else result.sanitized_html)


@app.command("variants")
def variants(
    runs_dir: Optional[Path] = typer.Option(None, "--runs-dir", help="Runs directory to scan."),
) -> None:
    """List every variant that the arena would serve."""
    loaded = load_variants(runs_dir or settings.runs_dir)
    if not loaded:
        typer.echo("No variants found.")
        return
    for v in loaded:
        typer.echo(f"  {v.variant_key}  [{v.metadata.provider}:{v.metadata.model}]  {len(v.primary_html)} chars")


@app.command("leaderboard")
def leaderboard(
    limit: int = typer.Option(10, help="Number of rows to show."),
) -> None:
    """Print win counts per variant."""
    conn = get_connection()
    init_db(conn)
    try:
        rows = list_leaderboard(conn, limit)
        stats = get_vote_stats(conn)
    finally:
        conn.close()

    typer.echo(f"Votes: {stats.total_votes}  Models with wins: {stats.total_models}")
    if not rows:
        typer.echo("No winners yet.")
        return
    for i, row in enumerate(rows, start=1):
        typer.echo(f"  {i:>2}. {row.variant_id}  {row.wins} wins")


@app.command("serve")
def serve(
    host: Optional[str] = typer.Option(None, help="Bind address."),
    port: Optional[int] = typer.Option(None, help="Port."),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on code changes."),
) -> None:
    """Start the arena API server."""
    import uvicorn

    bind_host = host or settings.host
    bind_port = port or settings.port
    typer.echo(f"[serve] listening on http://{bind_host}:{bind_port}")
    uvicorn.run("arena.api.app:app", host=bind_host, port=bind_port, reload=reload)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
