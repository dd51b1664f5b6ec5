"""
Tests for the FastAPI surface. The orchestrator dependency is overridden with
one backed by a fake ledger, so no RPC is touched and the lifespan is not needed.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from backend_bubbles.analysis_engine.cache import ResultCache
from backend_bubbles.analysis_engine.orchestrator import AnalysisOrchestrator
from backend_bubbles.api_server.plugin import ANALYSIS_PATH
from backend_bubbles.api_server.server import app, get_orchestrator
from conftest import COUNTERPARTY_X, QUERIED, FakeLedgerClient, SleepRecorder, make_settings, native_record


@pytest.fixture
def ledger():
    return FakeLedgerClient({"s1": native_record("s1", COUNTERPARTY_X, 2_000_000_000)})


@pytest.fixture
def orchestrator(ledger, clock):
    return AnalysisOrchestrator(
        ledger,
        ResultCache(clock=clock),
        make_settings(),
        sleep=SleepRecorder(),
    )


@pytest.fixture
def client(orchestrator):
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_analysis_success(client):
    r = client.get(ANALYSIS_PATH, params={"address": QUERIED})
    assert r.status_code == 200
    assert r.json() == {
        "address": QUERIED,
        "isValid": True,
        "relatedAccounts": [{"address": COUNTERPARTY_X, "totalSolVolume": "2.00 SOL"}],
    }


def test_analysis_detailed(client):
    r = client.get(ANALYSIS_PATH, params={"address": QUERIED, "detailed": "true"})
    account = r.json()["relatedAccounts"][0]
    assert account["interactions"] == 1
    assert account["lastInteraction"] == 1_700_000_000
    assert account["transactionTypes"] == ["native_inflow"]


def test_analysis_invalid_address(client):
    r = client.get(ANALYSIS_PATH, params={"address": "not-a-valid-pubkey"})
    assert r.status_code == 200
    body = r.json()
    assert body["isValid"] is False
    assert body["relatedAccounts"] == []
    assert body["error"] == "Invalid Solana address format"


def test_analysis_missing_address(client):
    r = client.get(ANALYSIS_PATH)
    assert r.status_code == 400
    assert r.json() == {
        "address": "",
        "isValid": False,
        "relatedAccounts": [],
        "error": "Address parameter is required",
    }


def test_repeat_request_identical_and_cached(client, ledger):
    r1 = client.get(ANALYSIS_PATH, params={"address": QUERIED})
    r2 = client.get(ANALYSIS_PATH, params={"address": QUERIED})
    assert r1.content == r2.content
    assert len(ledger.list_calls) == 1


def test_cache_stats(client):
    client.get(ANALYSIS_PATH, params={"address": QUERIED})
    r = client.get(ANALYSIS_PATH, params={"cache": "stats"})
    assert r.status_code == 200
    body = r.json()
    assert body["totalEntries"] == 1
    assert body["maxSize"] == 1000
    assert body["ttlMinutes"] == 5
    assert "\"ttlMinutes\":5," in r.text
    assert body["entries"] == [{"address": QUERIED, "ageMinutes": 0, "expiresInMinutes": 5}]

    r2 = client.get("/api/cache/stats")
    assert r2.json() == body


def test_unexpected_error_returns_500(client, orchestrator, monkeypatch):
    async def boom(address):
        raise RuntimeError("unexpected")

    monkeypatch.setattr(orchestrator, "analyze", boom)
    r = client.get(ANALYSIS_PATH, params={"address": QUERIED})
    assert r.status_code == 500
    assert r.json()["error"] == "Internal server error"


def test_plugin_manifest(client):
    r = client.get("/api/ai-plugin")
    assert r.status_code == 200
    body = r.json()
    assert body["openapi"] == "3.0.0"
    assert ANALYSIS_PATH in body["paths"]
    assert body["paths"][ANALYSIS_PATH]["get"]["operationId"] == "analyzeSolanaAddress"


def test_well_known_redirects_to_manifest(client):
    r = client.get("/.well-known/ai-plugin.json", follow_redirects=False)
    assert r.status_code in (302, 307)
    assert r.headers["location"].endswith("/api/ai-plugin")
    followed = client.get("/.well-known/ai-plugin.json")
    assert followed.json()["openapi"] == "3.0.0"
