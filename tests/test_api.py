"""Tests for the arena HTTP API.

Every test gets its own workspace under ``tmp_path``: a runs directory with
two variants, a benchmark config, and a fresh SQLite file.  Provider calls
are replaced with a local fake; no network access happens.
"""

from __future__ import annotations

import json
import sqlite3
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from arena.api.app import create_app
from arena.api.routers.leaderboard import _infer_from_label, _run_timestamp_from_folder
from arena.api.state import Pair, PairRegistry
from arena.benchmark.models import ModelResult
from arena.config import settings
from arena.db.votes import record_vote


_CONFIG = {
    "benchmarkName": "html-design",
    "promptPath": "prompts/landing-page.md",
    "outputDir": "runs",
    "models": [
        {"provider": "openai", "model": "gpt-4o", "label": "GPT 4o"},
        {"provider": "anthropic", "model": "claude-sonnet-4-5"},
        {"provider": "google", "model": "gemini-2.5-pro"},
    ],
}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

def _write_variant(run_dir: Path, folder: str, metadata: dict, response: str) -> None:
    variant_dir = run_dir / folder
    variant_dir.mkdir(parents=True)
    (variant_dir / "metadata.json").write_text(json.dumps(metadata), encoding="utf-8")
    (variant_dir / "response.txt").write_text(response, encoding="utf-8")


@pytest.fixture()
def workspace(tmp_path: Path, monkeypatch) -> Path:
    runs = tmp_path / "runs"
    run_dir = runs / "2025-01-02T03-04-05-678Z-abc123"
    run_dir.mkdir(parents=True)
    (run_dir / "meta.json").write_text(
        json.dumps(
            {
                "benchmark": "html-design",
                "runId": run_dir.name,
                "timestamp": "2025-01-02T03:04:05.678Z",
                "description": "Acme - Rockets",
            }
        ),
        encoding="utf-8",
    )
    _write_variant(
        run_dir,
        "gpt-4o",
        {"provider": "openai", "model": "gpt-4o", "label": "GPT 4o"},
        '<section id="hero"><Button variant="primary">Buy</Button></section>',
    )
    _write_variant(
        run_dir,
        "claude-sonnet-4-5",
        {"provider": "anthropic", "model": "claude-sonnet-4-5"},
        "<main><h1>Claude</h1><script>x()</script></main>",
    )

    (tmp_path / "prompts").mkdir()
    (tmp_path / "prompts" / "landing-page.md").write_text(
        "Page for [PRODUCT NAME]: [1-sentence value proposition]", encoding="utf-8"
    )
    (tmp_path / "benchmark.config.json").write_text(json.dumps(_CONFIG), encoding="utf-8")

    monkeypatch.setattr(settings, "root_dir", tmp_path)
    monkeypatch.setattr(settings, "runs_dir", runs)
    monkeypatch.setattr(settings, "config_path", tmp_path / "benchmark.config.json")
    monkeypatch.setattr(settings, "data_dir", tmp_path / "data")
    return tmp_path


@pytest.fixture()
def client(workspace: Path):
    with TestClient(create_app(), raise_server_exceptions=True) as c:
        yield c


def _vote_on_new_pair(client: TestClient, selection: str = "left") -> dict:
    pair = client.get("/api/pair").json()
    resp = client.post("/api/vote", json={"pairId": pair["pairId"], "selection": selection})
    assert resp.status_code == 200
    return resp.json()


def _parse_sse(text: str) -> list[tuple[str, dict]]:
    events = []
    for frame in text.strip().split("\n\n"):
        lines = dict(line.split(": ", 1) for line in frame.splitlines() if ": " in line)
        events.append((lines["event"], json.loads(lines["data"])))
    return events


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------

class TestMeta:
    def test_health(self, client: TestClient, workspace: Path) -> None:
        resp = client.get("/api/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["ok"] is True
        assert data["variants"] == 2
        assert data["dbPath"] == str(workspace / "data" / settings.db_name)

    def test_models(self, client: TestClient) -> None:
        models = client.get("/api/models").json()["models"]
        assert [m["model"] for m in models] == ["gpt-4o", "claude-sonnet-4-5", "gemini-2.5-pro"]

    def test_models_with_broken_config(self, client: TestClient, workspace: Path) -> None:
        (workspace / "benchmark.config.json").write_text("{", encoding="utf-8")
        assert client.get("/api/models").json() == {"models": []}

    def test_reload_picks_up_new_runs(self, client: TestClient, workspace: Path) -> None:
        run_dir = workspace / "runs" / "2025-02-01T00-00-00-000Z-def456"
        run_dir.mkdir()
        (run_dir / "meta.json").write_text(
            json.dumps({"timestamp": "2025-02-01T00:00:00.000Z"}), encoding="utf-8"
        )
        _write_variant(run_dir, "g", {"provider": "google", "model": "gemini-2.5-pro"}, "<p>g</p>")

        resp = client.post("/api/reload")
        assert resp.json() == {"ok": True, "variants": 3}


# ---------------------------------------------------------------------------
# Blind pairs
# ---------------------------------------------------------------------------

class TestPairs:
    def test_pair_is_anonymous(self, client: TestClient) -> None:
        data = client.get("/api/pair").json()
        assert data["pairId"]
        assert data["left"]["token"] != data["right"]["token"]
        for side in (data["left"], data["right"]):
            assert set(side) == {"token", "html", "source", "heroRaw", "context"}
            assert "<script" not in side["html"]
            assert side["context"]["description"] == "Acme - Rockets"
        htmls = {data["left"]["html"], data["right"]["html"]}
        assert '<section id="hero"><button class="arena-btn">Buy</button></section>' in htmls

    def test_not_enough_variants(self, workspace: Path, monkeypatch) -> None:
        monkeypatch.setattr(settings, "runs_dir", workspace / "empty")
        with TestClient(create_app()) as c:
            data = c.get("/api/pair").json()
        assert data["pairId"] is None
        assert data["variants"] == 0

    def test_vote_reveals_and_records(self, client: TestClient) -> None:
        pair = client.get("/api/pair").json()
        resp = client.post(
            "/api/vote",
            json={"pairId": pair["pairId"], "selection": "right", "scores": {"layout": 5}},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["ok"] is True
        assert data["winnerVariantId"] == data["right"]["variantKey"]
        assert {data["left"]["provider"], data["right"]["provider"]} == {"openai", "anthropic"}

        [vote] = client.get("/api/votes/recent").json()["votes"]
        assert vote["pairId"] == pair["pairId"]
        assert vote["scores"] == {"layout": 5.0}

    def test_tie_has_no_winner(self, client: TestClient) -> None:
        assert _vote_on_new_pair(client, "tie")["winnerVariantId"] is None

    def test_pair_can_only_be_voted_once(self, client: TestClient) -> None:
        pair = client.get("/api/pair").json()
        body = {"pairId": pair["pairId"], "selection": "left"}
        assert client.post("/api/vote", json=body).status_code == 200
        resp = client.post("/api/vote", json=body)
        assert resp.status_code == 404
        assert resp.json() == {"error": "Pair not found or expired."}

    def test_missing_fields(self, client: TestClient) -> None:
        resp = client.post("/api/vote", json={"selection": "left"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "pairId and selection are required."}

    def test_unknown_pair(self, client: TestClient) -> None:
        resp = client.post("/api/vote", json={"pairId": "nope", "selection": "left"})
        assert resp.status_code == 404

    def test_invalid_selection(self, client: TestClient) -> None:
        pair = client.get("/api/pair").json()
        resp = client.post("/api/vote", json={"pairId": pair["pairId"], "selection": "maybe"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid selection option."}

    def test_expired_pair(self, client: TestClient) -> None:
        pair = client.get("/api/pair").json()
        client.app.state.pairs.lifetime = -1
        client.app.state.pairs.purge_expired()
        resp = client.post("/api/vote", json={"pairId": pair["pairId"], "selection": "left"})
        assert resp.status_code == 404

    def test_concurrent_votes_record_once(self, client: TestClient, monkeypatch) -> None:
        def slow_record_vote(conn, vote):
            time.sleep(0.2)
            return record_vote(conn, vote)

        monkeypatch.setattr("arena.api.routers.pairs.record_vote", slow_record_vote)
        pair_id = client.get("/api/pair").json()["pairId"]

        def cast(selection: str) -> int:
            body = {"pairId": pair_id, "selection": selection}
            return client.post("/api/vote", json=body).status_code

        with ThreadPoolExecutor(max_workers=2) as pool:
            statuses = sorted(pool.map(cast, ["left", "right"]))

        assert statuses == [200, 404]
        assert len(client.get("/api/votes/recent").json()["votes"]) == 1

    def test_invalid_selection_keeps_pair_open(self, client: TestClient) -> None:
        pair_id = client.get("/api/pair").json()["pairId"]
        bad = client.post("/api/vote", json={"pairId": pair_id, "selection": "maybe"})
        assert bad.status_code == 400
        good = client.post("/api/vote", json={"pairId": pair_id, "selection": "tie"})
        assert good.status_code == 200

    def test_failed_write_keeps_pair_open(self, client: TestClient, monkeypatch) -> None:
        def locked(conn, vote):
            raise sqlite3.OperationalError("database is locked")

        pair_id = client.get("/api/pair").json()["pairId"]
        body = {"pairId": pair_id, "selection": "left"}
        with monkeypatch.context() as m:
            m.setattr("arena.api.routers.pairs.record_vote", locked)
            with pytest.raises(sqlite3.OperationalError):
                client.post("/api/vote", json=body)

        assert client.post("/api/vote", json=body).status_code == 200
        assert len(client.get("/api/votes/recent").json()["votes"]) == 1


class TestPairRegistry:
    @pytest.fixture()
    def registry(self, client: TestClient) -> tuple[PairRegistry, Pair]:
        registry = PairRegistry(lifetime=60)
        left, right = client.app.state.catalog.variants
        return registry, registry.register(left, right)

    def test_claim_is_single_use(self, registry) -> None:
        pairs, pair = registry
        assert pairs.claim(pair.pair_id) is pair
        assert pairs.claim(pair.pair_id) is None
        assert len(pairs) == 0

    def test_restore_makes_pair_claimable_again(self, registry) -> None:
        pairs, pair = registry
        pairs.claim(pair.pair_id)
        pairs.restore(pair)
        assert pairs.claim(pair.pair_id) is pair

    def test_restored_pair_still_expires(self, registry) -> None:
        pairs, pair = registry
        pairs.restore(pairs.claim(pair.pair_id))
        assert pairs.purge_expired(now=pair.created_at + 61) == 1

    def test_only_one_thread_wins_a_claim(self, registry) -> None:
        pairs, pair = registry
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(pairs.claim, [pair.pair_id] * 32))
        assert [r for r in results if r is not None] == [pair]


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

class TestResults:
    def test_leaderboard_pads_configured_models(self, client: TestClient) -> None:
        winner = _vote_on_new_pair(client, "left")["winnerVariantId"]
        data = client.get("/api/leaderboard").json()

        entries = data["entries"]
        assert entries[0]["wins"] == 1
        assert entries[0]["variantId"] == winner
        assert len(entries) == 3
        assert {e["model"] for e in entries} == {"gpt-4o", "claude-sonnet-4-5", "gemini-2.5-pro"}
        assert data["stats"]["totalVotes"] == 1
        assert data["stats"]["totalModels"] == 1

    def test_leaderboard_describes_unknown_ids(self, client: TestClient) -> None:
        client.post(
            "/api/demo/vote",
            json={
                "leftVariantId": "2024-05-06T07-08-09-010Z-aaaaaa/claude-3-7-sonnet-0123456789ab",
                "rightVariantId": "other",
                "winnerVariantId": "2024-05-06T07-08-09-010Z-aaaaaa/claude-3-7-sonnet-0123456789ab",
                "selection": "left",
            },
        )
        entries = client.get("/api/leaderboard").json()["entries"]
        top = entries[0]
        assert top["provider"] == "Anthropic"
        assert top["label"] == "claude-3-7-sonnet"
        assert top["model"] == "claude-3-7-sonnet"
        assert top["runTimestamp"] == "2024-05-06T07:08:09.010Z"

    def test_battles(self, client: TestClient) -> None:
        _vote_on_new_pair(client, "both_bad")
        [battle] = client.get("/api/battles").json()["battles"]
        assert battle["selection"] == "both_bad"
        assert battle["winner"] is None
        assert {battle["left"]["provider"], battle["right"]["provider"]} == {"openai", "anthropic"}

    def test_recent_votes_empty(self, client: TestClient) -> None:
        assert client.get("/api/votes/recent").json() == {"votes": []}


class TestLabelInference:
    def test_claude_version_suffix(self) -> None:
        assert _infer_from_label("claude-sonnet-4-5") == ("Anthropic", "claude-sonnet.4.5")

    def test_gpt_title_case(self) -> None:
        assert _infer_from_label("gpt-4o") == ("OpenAI", "Gpt 4o")

    def test_unknown(self) -> None:
        assert _infer_from_label("mystery") == (None, "mystery")

    def test_run_timestamp(self) -> None:
        assert _run_timestamp_from_folder("2025-01-02T03-04-05-678Z-abc123") == (
            "2025-01-02T03:04:05.678Z"
        )
        assert _run_timestamp_from_folder("misc") is None


# ---------------------------------------------------------------------------
# Demo
# ---------------------------------------------------------------------------

class TestDemoVote:
    _BODY = {
        "leftVariantId": "a",
        "rightVariantId": "b",
        "winnerVariantId": "a",
        "selection": "left",
    }

    def test_records_vote(self, client: TestClient) -> None:
        resp = client.post("/api/demo/vote", json=self._BODY)
        assert resp.json() == {"ok": True}
        [vote] = client.get("/api/votes/recent").json()["votes"]
        assert vote["notes"] == "demo"
        assert vote["pairId"].startswith("demo-")

    @pytest.mark.parametrize(
        "override,error",
        [
            ({"selection": None}, "required"),
            ({"selection": "tie"}, "selection must be 'left' or 'right'"),
            ({"winnerVariantId": "c"}, "winnerVariantId must match"),
            ({"rightVariantId": "a"}, "must differ"),
        ],
    )
    def test_validation(self, client: TestClient, override: dict, error: str) -> None:
        resp = client.post("/api/demo/vote", json={**self._BODY, **override})
        assert resp.status_code == 400
        assert error in resp.json()["error"]


class TestDemoRun:
    def test_requires_description(self, client: TestClient) -> None:
        resp = client.post("/api/demo/run", json={})
        assert resp.status_code == 400
        assert resp.json() == {"error": "description is required"}

    def test_streams_progress_and_reloads(self, client: TestClient, monkeypatch) -> None:
        def fake_call(model, system_prompt, user_message, config, on_chunk=None):
            if on_chunk is not None:
                on_chunk("<main>")
                on_chunk("</main>")
            return ModelResult(output_text="<main></main>")

        monkeypatch.setattr("arena.benchmark.runner.call_model", fake_call)
        monkeypatch.setattr(settings, "demo_model_count", 2)

        resp = client.post("/api/demo/run", json={"description": "Acme - Rockets"})
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/event-stream")

        events = _parse_sse(resp.text)
        names = [name for name, _ in events]
        assert names[0] == "run-start"
        assert names[-1] == "run-complete"
        assert names.count("model-start") == 2
        assert names.count("model-complete") == 2
        assert names.count("chunk") == 4
        for name, payload in events:
            assert payload["event"] == name

        assert events[0][1]["modelCount"] == 2
        chunk = next(p for n, p in events if n == "chunk")
        assert chunk["variantKey"].startswith(events[0][1]["runId"] + "/")

        assert client.get("/api/health").json()["variants"] == 4

    def test_model_failure_reported(self, client: TestClient, monkeypatch) -> None:
        def failing_call(*args, **kwargs):
            raise RuntimeError("provider down")

        monkeypatch.setattr("arena.benchmark.runner.call_model", failing_call)
        monkeypatch.setattr(settings, "demo_model_count", 1)

        events = _parse_sse(client.post("/api/demo/run", json={"description": "Acme"}).text)
        names = [name for name, _ in events]
        assert names == ["run-start", "model-start", "model-error", "run-complete"]
        assert events[2][1]["error"] == "provider down"

    def test_missing_config_reports_error(self, client: TestClient, workspace: Path, monkeypatch) -> None:
        monkeypatch.setattr(settings, "config_path", workspace / "missing.json")
        events = _parse_sse(client.post("/api/demo/run", json={"description": "Acme"}).text)
        assert [name for name, _ in events] == ["error"]


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

class TestExtract:
    def test_extract(self, client: TestClient) -> None:
        resp = client.post(
            "/api/extract",
            json={"text": '<main><Badge onClick="x()">New</Badge></main>'},
        )
        assert resp.status_code == 200
        assert resp.json() == {
            "sanitizedHtml": '<main><span class="arena-badge">New</span></main>',
            "rawSection": '<main><Badge onClick="x()">New</Badge></main>',
        }

    def test_extract_empty(self, client: TestClient) -> None:
        assert client.post("/api/extract", json={}).json() == {
            "sanitizedHtml": "",
            "rawSection": "",
        }
