"""Tests for the console summary and the seed catalog script."""

import json

from ltp_practice.cli.summary import print_scenario_summary
from ltp_practice.scenarios.generator import build_scenario
from ltp_practice.scenarios.seeds import SEED_SCENARIOS
from scripts.generate_practice_scenarios import generate_catalog


class ConstantRng:
    def random(self) -> float:
        return 0.5


class TestScenarioSummary:

    def test_summary_format(self, capsys):
        """Summary prints the setup, decision bar and each key level."""
        scenario = build_scenario("support_bounce", symbol="AAPL", base_price=185.0, rng=ConstantRng())
        output = print_scenario_summary(scenario)

        assert "AAPL" in output
        assert "support_bounce (template)" in output
        assert "$185.00" in output
        assert "bar 70" in output
        assert "long" in output
        for level in scenario.key_levels:
            assert level.label in output
        assert capsys.readouterr().out.strip() == output.strip()


class TestSeedCatalog:

    def test_catalog_is_json_ready(self):
        catalog = generate_catalog(seed=7, interval_ms=5 * 60 * 1000)
        assert len(catalog) == len(SEED_SCENARIOS)
        assert [c["title"] for c in catalog] == [s.title for s in SEED_SCENARIOS]
        assert json.loads(json.dumps(catalog)) == catalog

    def test_same_seed_same_catalog(self):
        assert generate_catalog(3, 60_000) == generate_catalog(3, 60_000)

    def test_interval_spacing(self):
        catalog = generate_catalog(1, 60_000)
        bars = catalog[0]["bars"]
        assert bars[1]["t"] - bars[0]["t"] == 60_000
