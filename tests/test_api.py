"""Tests for the internal API — analysis and scenario endpoints."""

import pytest
from fastapi.testclient import TestClient

from ltp_practice.api.routers import configure_routers
from ltp_practice.main import app
from ltp_practice.scenarios.generator import ADAPTIVE_SYMBOLS
from ltp_practice.scenarios.narrative import FallbackNarrativeGenerator
from ltp_practice.scenarios.seeds import SEED_SCENARIOS
from ltp_practice.scenarios.templates import SETUP_TEMPLATES

client = TestClient(app)

SESSION_OPEN = 1704898800000
FIVE_MIN = 5 * 60 * 1000
ONE_DAY = 24 * 60 * 60 * 1000


# ── Helpers ──────────────────────────────────────────────────────────────


def _bars(count: int, start: float = 100.0, step: float = 0.1, t0: int = SESSION_OPEN, dt: int = FIVE_MIN):
    bars = []
    for i in range(count):
        o = start + i * step
        c = o + step
        bars.append({
            "t": t0 + i * dt,
            "o": round(o, 2),
            "h": round(max(o, c) + 0.1, 2),
            "l": round(min(o, c) - 0.1, 2),
            "c": round(c, 2),
            "v": 10_000,
        })
    return bars


@pytest.fixture(autouse=True)
def _offline_narrative():
    configure_routers(narrative=FallbackNarrativeGenerator())


# ── Health ───────────────────────────────────────────────────────────────


class TestHealth:
    def test_ok(self):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


# ── Analysis ─────────────────────────────────────────────────────────────


class TestIndicatorsEndpoint:
    def test_series_aligned(self):
        resp = client.post("/indicators", json={"bars": _bars(30), "profile_levels": 10})
        assert resp.status_code == 200
        data = resp.json()
        assert len(data["ema9"]) == len(data["ema21"]) == len(data["vwap"]) == 30
        assert len(data["ribbon"]) == 30
        assert len(data["vwap_bands"]["upper_band2"]) == 30
        buckets = data["volume_profile"]["buckets"]
        assert len(buckets) == 10
        assert sum(b["is_poc"] for b in buckets) == 1
        assert data["volume_profile"]["total_volume"] == 300_000

    def test_timeframe_aggregation(self):
        one_minute = _bars(12, dt=60_000)
        resp = client.post("/indicators", json={"bars": one_minute, "timeframe_minutes": 5})
        assert resp.status_code == 200
        data = resp.json()
        assert len(data["ema9"]) == len(data["ribbon"]) == 3
        first = data["bars"][0]
        assert first["t"] == SESSION_OPEN
        assert (first["o"], first["h"], first["c"], first["v"]) == (100.0, 100.6, 100.5, 50_000)
        assert [b["v"] for b in data["bars"]] == [50_000, 50_000, 20_000]

    def test_invalid_timeframe(self):
        resp = client.post("/indicators", json={"bars": _bars(3), "timeframe_minutes": 0})
        assert resp.status_code == 422

    def test_missing_volume_defaults_to_zero(self):
        bars = _bars(3)
        for bar in bars:
            del bar["v"]
        data = client.post("/indicators", json={"bars": bars}).json()
        assert [b["v"] for b in data["bars"]] == [0, 0, 0]

    def test_empty_bars(self):
        resp = client.post("/indicators", json={"bars": []})
        assert resp.status_code == 200
        assert resp.json()["ema9"] == []

    def test_invalid_bar_rejected(self):
        bad = _bars(2)
        bad[0]["o"] = -1
        resp = client.post("/indicators", json={"bars": bad})
        assert resp.status_code == 422


class TestLevelsEndpoint:
    def test_levels_and_score(self):
        daily = _bars(6, start=95.0, step=1.0, t0=SESSION_OPEN - 6 * ONE_DAY, dt=ONE_DAY)
        resp = client.post("/levels", json={
            "daily_bars": daily,
            "intraday_bars": _bars(12),
            "current_price": 101.2,
            "premarket_high": 101.8,
            "premarket_low": 99.1,
            "top": 4,
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["levels"]
        assert len(data["top_levels"]) <= 4
        assert {"price", "label", "type", "strength", "timeframe"} <= set(data["levels"][0])
        assert 0 <= data["level_score"]["score"] <= 100

    def test_price_required(self):
        resp = client.post("/levels", json={"daily_bars": []})
        assert resp.status_code == 422


class TestPatienceEndpoint:
    def test_doji_at_level(self):
        doji = {"t": SESSION_OPEN, "o": 100, "h": 100.5, "l": 99.5, "c": 100.02, "v": 5000}
        resp = client.post("/patience", json={
            "bars": [doji],
            "levels": [{"price": 100, "label": "Support"}],
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["confirmed"] is True
        assert data["signals"][0]["pattern_type"] == "doji"
        assert data["signals"][0]["confidence"] == 97
        assert data["patience_score"]["score"] == 100

    def test_no_signals(self):
        resp = client.post("/patience", json={"bars": _bars(5, start=120), "levels": [{"price": 100}]})
        data = resp.json()
        assert data["confirmed"] is False
        assert data["signals"] == []
        assert data["patience_score"]["score"] == 30


# ── Scenarios ────────────────────────────────────────────────────────────


class TestScenarioEndpoint:
    def test_fallback_when_narrative_unavailable(self):
        resp = client.post("/scenarios/generate", json={"symbol": "qqq", "difficulty": "advanced", "seed": 1})
        assert resp.status_code == 200
        data = resp.json()
        assert data["source"] == "fallback"
        assert data["symbol"] == "QQQ"
        assert data["correct_action"] == "short"
        assert len(data["bars"]) == 100
        assert data["decision_point"]["index"] == 70

    def test_named_setup_without_narrative(self):
        resp = client.post("/scenarios/generate", json={
            "setup_type": "bear_trap",
            "use_narrative": False,
            "base_price": 25.0,
            "seed": 3,
        })
        data = resp.json()
        assert data["source"] == "template"
        assert data["setup_type"] == "failed_breakdown"
        assert data["correct_action"] == "long"

    def test_seed_replays_scenario(self):
        body = {"setup_type": "orb_breakout", "use_narrative": False, "seed": 99}
        first = client.post("/scenarios/generate", json=body).json()
        second = client.post("/scenarios/generate", json=body).json()
        assert first == second

    def test_invalid_difficulty(self):
        resp = client.post("/scenarios/generate", json={"difficulty": "expert"})
        assert resp.status_code == 422

    def test_invalid_focus_area(self):
        resp = client.post("/scenarios/generate", json={"focus_area": "volume"})
        assert resp.status_code == 422

    def test_stub_narrative_used(self):
        class _Narrative:
            async def generate(self, prompt):
                return {"title": "Custom", "correctAction": "wait", "priceAction": {"pattern": "drift"}}

        configure_routers(narrative=_Narrative())
        data = client.post("/scenarios/generate", json={"seed": 2}).json()
        assert data["source"] == "narrative"
        assert data["title"] == "Custom"
        assert data["setup_type"] == "patience_test"


class TestAdaptiveEndpoint:
    def test_high_accuracy_gets_advanced_fallback(self):
        resp = client.post("/scenarios/adaptive", json={
            "accuracy": 85,
            "weak_areas": ["patience", "trend"],
            "seed": 4,
            "use_narrative": False,
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["difficulty"] == "advanced"
        assert data["focus_area"] == "patience"
        assert data["setup_type"] == "failed_breakout"
        assert data["symbol"] in ADAPTIVE_SYMBOLS

    def test_low_accuracy_through_narrative_path(self):
        data = client.post("/scenarios/adaptive", json={"accuracy": 40, "weak_areas": ["volume"]}).json()
        assert data["difficulty"] == "beginner"
        assert data["focus_area"] == "all"
        assert len(data["bars"]) == 100

    def test_seed_replays_symbol(self):
        body = {"accuracy": 70, "seed": 11, "use_narrative": False}
        first = client.post("/scenarios/adaptive", json=body).json()
        second = client.post("/scenarios/adaptive", json=body).json()
        assert first["symbol"] == second["symbol"]
        assert first["bars"] == second["bars"]

    def test_accuracy_out_of_range(self):
        resp = client.post("/scenarios/adaptive", json={"accuracy": 120})
        assert resp.status_code == 422


class TestCatalogEndpoints:
    def test_setups(self):
        data = client.get("/scenarios/setups").json()
        assert {s["name"] for s in data["setups"]} == set(SETUP_TEMPLATES)
        assert data["aliases"]["bear_trap"] == "failed_breakdown"

    def test_seeds(self):
        data = client.get("/scenarios/seeds").json()
        assert len(data["seeds"]) == len(SEED_SCENARIOS)
        assert data["seeds"][0]["symbol"] == "AAPL"
