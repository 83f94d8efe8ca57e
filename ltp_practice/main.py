"""LTP Practice — application entry point.

Boots the FastAPI internal server and provides the CLI entry point for
serving the API and generating one-off scenarios.
"""

import logging

from fastapi import FastAPI

from ltp_practice.api.routers import router

app = FastAPI(title="LTP Practice Engine", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("ltp_practice")


@app.get("/health")
async def health():
    """Liveness check."""
    return {"status": "ok"}


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli() -> None:
    """Parse CLI arguments and dispatch to the requested command."""
    import argparse
    import asyncio
    import json

    import numpy as np

    from ltp_practice.api.routers import configure_routers
    from ltp_practice.config import load_config
    from ltp_practice.scenarios.generator import (
        build_scenario,
        generate_ai_scenario,
        get_adaptive_params,
    )
    from ltp_practice.scenarios.models import DIFFICULTIES, ScenarioParams
    from ltp_practice.scenarios.narrative import build_narrative_generator

    parser = argparse.ArgumentParser(description="LTP practice analysis engine")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the internal API server")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, help="Override API_PORT")

    gen = sub.add_parser("generate", help="Print one practice scenario as JSON")
    gen.add_argument("--symbol", default="SPY")
    gen.add_argument("--difficulty", choices=DIFFICULTIES, default="beginner")
    gen.add_argument("--focus", default="all", choices=["level", "trend", "patience", "all"])
    gen.add_argument("--setup", help="Setup template name (skips the narrative call)")
    gen.add_argument("--base-price", type=float)
    gen.add_argument("--volatility", type=float, default=0.4)
    gen.add_argument("--seed", type=int, help="RNG seed for a reproducible scenario")
    gen.add_argument("--summary", action="store_true", help="Print a readable summary instead of JSON")
    gen.add_argument("--accuracy", type=float,
                     help="Learner accuracy 0-100; picks symbol and difficulty adaptively")
    gen.add_argument("--weak-area", action="append", choices=["level", "trend", "patience"],
                     help="Weakest LTP area, used as the focus with --accuracy")
    args = parser.parse_args()

    config = load_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if args.command == "serve":
        import uvicorn

        configure_routers(config)
        port = args.port or config.api_port
        logger.info("Starting API server on %s:%d", args.host, port)
        uvicorn.run(app, host=args.host, port=port, log_level=config.log_level.lower())
        return

    rng = np.random.default_rng(args.seed)
    interval_ms = config.scenario_timeframe_minutes * 60 * 1000
    if args.setup:
        scenario = build_scenario(
            args.setup,
            symbol=args.symbol.upper(),
            base_price=args.base_price,
            volatility=args.volatility,
            difficulty=args.difficulty,
            focus_area=args.focus,
            rng=rng,
            interval_ms=interval_ms,
        )
    else:
        if args.accuracy is not None:
            params = get_adaptive_params(args.accuracy, args.weak_area or (), rng)
        else:
            params = ScenarioParams(
                symbol=args.symbol.upper(),
                difficulty=args.difficulty,
                focus_area=args.focus,
            )
        scenario = asyncio.run(generate_ai_scenario(
            params, build_narrative_generator(config), rng, interval_ms,
        ))

    if args.summary:
        from ltp_practice.cli.summary import print_scenario_summary

        print_scenario_summary(scenario)
    else:
        print(json.dumps(scenario.to_dict(), indent=2))


if __name__ == "__main__":
    _run_cli()
