"""Generate the built-in practice scenario catalog as JSON.

Usage (from the project root):
    python -m scripts.generate_practice_scenarios --out data/practice_scenarios.json --seed 42
"""

import argparse
import json
import logging
import sys
from pathlib import Path

import numpy as np

# Ensure project root is on path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from ltp_practice.config import load_config
from ltp_practice.scenarios.seeds import SEED_SCENARIOS, build_seed_scenario

logger = logging.getLogger("ltp_practice.seed")


def generate_catalog(seed: int | None, interval_ms: int) -> list[dict]:
    """Build every seed scenario from one RNG so a seed replays the whole file."""
    rng = np.random.default_rng(seed)
    catalog = []
    for entry in SEED_SCENARIOS:
        scenario = build_seed_scenario(entry, rng=rng, interval_ms=interval_ms)
        logger.info(
            "%-36s %-20s %3d bars, decision at %d",
            scenario.title, scenario.setup_type, len(scenario.bars), scenario.decision_point.index,
        )
        catalog.append(scenario.to_dict())
    return catalog


def main() -> None:
    parser = argparse.ArgumentParser(description="Write the practice scenario catalog to JSON")
    parser.add_argument("--out", default="data/practice_scenarios.json")
    parser.add_argument("--seed", type=int, help="RNG seed for reproducible bars")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    config = load_config()
    catalog = generate_catalog(args.seed, config.scenario_timeframe_minutes * 60 * 1000)

    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(catalog, indent=2) + "\n", encoding="utf-8")
    logger.info("Wrote %d scenarios → %s", len(catalog), out)


if __name__ == "__main__":
    main()
