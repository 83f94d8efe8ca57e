"""Internal API routers — /indicators, /levels, /patience, /scenarios endpoints.

No business logic. Validates request bodies and delegates to the analysis
and scenario modules.
"""

import logging
from typing import Optional

import numpy as np
from fastapi import APIRouter
from pydantic import BaseModel, Field

from ltp_practice.analysis.indicators import (
    aggregate_bars,
    calculate_indicators,
    calculate_volume_profile,
)
from ltp_practice.analysis.levels import (
    PremarketRange,
    calculate_all_levels,
    calculate_level_score,
    get_top_levels,
)
from ltp_practice.analysis.models import Bar, KeyLevel
from ltp_practice.analysis.patience import calculate_patience_score, has_patience_confirmation
from ltp_practice.config import Config
from ltp_practice.scenarios.candles import FIVE_MINUTES_MS
from ltp_practice.scenarios.generator import (
    build_scenario,
    generate_ai_scenario,
    generate_fallback_scenario,
    get_adaptive_params,
)
from ltp_practice.scenarios.models import ScenarioParams
from ltp_practice.scenarios.narrative import (
    FallbackNarrativeGenerator,
    NarrativeGenerator,
    build_narrative_generator,
)
from ltp_practice.scenarios.seeds import SEED_SCENARIOS
from ltp_practice.scenarios.templates import SETUP_ALIASES, SETUP_TEMPLATES

logger = logging.getLogger("ltp_practice")
router = APIRouter()

# ── Shared state (set during app startup) ────────────────────────────────

_narrative: NarrativeGenerator = FallbackNarrativeGenerator()
_interval_ms: int = FIVE_MINUTES_MS


def configure_routers(
    config: Optional[Config] = None,
    narrative: Optional[NarrativeGenerator] = None,
) -> None:
    """Inject dependencies from the application startup.

    Args:
        config: Loaded ``Config``; picks the narrative generator and the
            scenario bar interval.
        narrative: Explicit generator, overriding the configured one
            (used by tests).
    """
    global _narrative, _interval_ms  # noqa: PLW0603
    if config is not None:
        _narrative = build_narrative_generator(config)
        _interval_ms = config.scenario_timeframe_minutes * 60 * 1000
    if narrative is not None:
        _narrative = narrative


# ── Request models ───────────────────────────────────────────────────────


class BarIn(BaseModel):
    t: int = Field(..., description="Epoch milliseconds")
    o: float = Field(..., gt=0)
    h: float = Field(..., gt=0)
    l: float = Field(..., gt=0)  # noqa: E741
    c: float = Field(..., gt=0)
    v: int = Field(0, ge=0)

    def to_bar(self) -> Bar:
        return Bar.from_dict(self.model_dump())


class LevelIn(BaseModel):
    price: float = Field(..., gt=0)
    label: str = "Level"
    type: str = "support"
    strength: int = Field(70, ge=0, le=100)
    timeframe: str = Field("intraday", pattern="^(daily|intraday|weekly)$")

    def to_level(self) -> KeyLevel:
        return KeyLevel(self.price, self.label, self.type, self.strength, self.timeframe)


class IndicatorRequest(BaseModel):
    bars: list[BarIn]
    profile_levels: int = Field(24, ge=1, le=500)
    timeframe_minutes: Optional[int] = Field(
        None, ge=1, le=1440, description="Aggregate bars to this timeframe first",
    )


class LevelRequest(BaseModel):
    daily_bars: list[BarIn] = []
    intraday_bars: list[BarIn] = []
    current_price: float = Field(..., gt=0)
    premarket_high: Optional[float] = Field(None, gt=0)
    premarket_low: Optional[float] = Field(None, gt=0)
    top: int = Field(6, ge=1, le=50)


class PatienceRequest(BaseModel):
    bars: list[BarIn]
    levels: list[LevelIn]
    min_confidence: int = Field(70, ge=0, le=100)


class ScenarioRequest(BaseModel):
    symbol: str = Field("SPY", min_length=1, max_length=10)
    difficulty: str = Field("beginner", pattern="^(beginner|intermediate|advanced)$")
    focus_area: str = Field("all", pattern="^(level|trend|patience|all)$")
    setup_type: Optional[str] = None
    market_context: Optional[str] = None
    base_price: Optional[float] = Field(None, gt=0)
    volatility: float = Field(0.4, gt=0, le=5)
    seed: Optional[int] = Field(None, ge=0, description="Replay a scenario exactly")
    use_narrative: bool = True


class AdaptiveScenarioRequest(BaseModel):
    accuracy: float = Field(..., ge=0, le=100, description="Learner accuracy, percent")
    weak_areas: list[str] = []
    seed: Optional[int] = Field(None, ge=0)
    use_narrative: bool = True


# ── Analysis ─────────────────────────────────────────────────────────────


@router.post("/indicators")
async def post_indicators(body: IndicatorRequest):
    """EMA 9/21, VWAP with bands, ribbon states and volume profile.

    With ``timeframe_minutes`` the bars are first merged into buckets of
    that width, so one request can serve the 1m/5m/15m chart views.
    """
    bars = [b.to_bar() for b in body.bars]
    if body.timeframe_minutes is not None:
        bars = aggregate_bars(bars, body.timeframe_minutes)
    bundle = calculate_indicators(bars)
    profile = calculate_volume_profile(bars, body.profile_levels)
    bands = bundle.vwap_bands

    return {
        "bars": [b.to_dict() for b in bars],
        "ema9": bundle.ema9,
        "ema21": bundle.ema21,
        "vwap": bundle.vwap,
        "vwap_bands": {
            "upper_band1": bands.upper_band1,
            "lower_band1": bands.lower_band1,
            "upper_band2": bands.upper_band2,
            "lower_band2": bands.lower_band2,
        },
        "ribbon": [
            {"color": s.color, "strength": s.strength, "expanding": s.expanding,
             "contracting": s.contracting}
            for s in bundle.ribbon.states
        ],
        "volume_profile": {
            "poc_price": profile.poc_price,
            "value_area_high": profile.value_area_high,
            "value_area_low": profile.value_area_low,
            "total_volume": profile.total_volume,
            "buckets": [
                {"price": b.price, "volume": b.volume, "buy_volume": b.buy_volume,
                 "sell_volume": b.sell_volume, "is_poc": b.is_poc,
                 "in_value_area": b.in_value_area}
                for b in profile.buckets
            ],
        },
    }


@router.post("/levels")
async def post_levels(body: LevelRequest):
    """Full level catalog, the most relevant levels and the level score."""
    premarket = None
    if body.premarket_high and body.premarket_low:
        premarket = PremarketRange(body.premarket_high, body.premarket_low)

    intraday = [b.to_bar() for b in body.intraday_bars]
    levels = calculate_all_levels(
        [b.to_bar() for b in body.daily_bars], intraday, body.current_price, premarket,
    )
    score = calculate_level_score(
        body.current_price, levels, bar=intraday[-1] if intraday else None,
    )

    return {
        "levels": [lv.to_dict() for lv in levels],
        "top_levels": [lv.to_dict() for lv in get_top_levels(levels, body.current_price, body.top)],
        "level_score": {"score": score.score, "reason": score.reason},
    }


@router.post("/patience")
async def post_patience(body: PatienceRequest):
    """Patience candles at the given levels plus the patience score."""
    bars = [b.to_bar() for b in body.bars]
    levels = [lv.to_level() for lv in body.levels]

    confirmed, strong, summary = has_patience_confirmation(bars, levels, body.min_confidence)
    score = calculate_patience_score(bars, levels)

    return {
        "confirmed": confirmed,
        "summary": summary,
        "signals": [s.to_dict() for s in score.candles],
        "confirming_signals": [s.to_dict() for s in strong],
        "patience_score": {"score": score.score, "reason": score.reason},
    }


# ── Scenarios ────────────────────────────────────────────────────────────


@router.post("/scenarios/generate")
async def post_generate_scenario(body: ScenarioRequest):
    """Generate one practice scenario.

    With ``use_narrative`` the configured narrative generator is tried
    first.  Without it, a known ``setup_type`` is built directly and
    anything else gets the fallback scenario for the difficulty.
    """
    rng = np.random.default_rng(body.seed)
    params = ScenarioParams(
        symbol=body.symbol.upper(),
        difficulty=body.difficulty,
        focus_area=body.focus_area,
        setup_type=body.setup_type,
        market_context=body.market_context,
    )

    if body.use_narrative:
        scenario = await generate_ai_scenario(params, _narrative, rng, _interval_ms)
    elif body.setup_type in SETUP_TEMPLATES or body.setup_type in SETUP_ALIASES:
        scenario = build_scenario(
            body.setup_type,
            symbol=params.symbol,
            base_price=body.base_price,
            volatility=body.volatility,
            difficulty=params.difficulty,
            focus_area=params.focus_area,
            rng=rng,
            interval_ms=_interval_ms,
        )
    else:
        scenario = generate_fallback_scenario(params, rng, _interval_ms)

    return scenario.to_dict()


@router.post("/scenarios/adaptive")
async def post_adaptive_scenario(body: AdaptiveScenarioRequest):
    """Generate a scenario pitched at the learner's accuracy and weakest area."""
    rng = np.random.default_rng(body.seed)
    params = get_adaptive_params(body.accuracy, body.weak_areas, rng)
    logger.info(
        "Adaptive scenario: accuracy=%.0f -> %s/%s %s",
        body.accuracy, params.difficulty, params.focus_area, params.symbol,
    )

    if body.use_narrative:
        scenario = await generate_ai_scenario(params, _narrative, rng, _interval_ms)
    else:
        scenario = generate_fallback_scenario(params, rng, _interval_ms)
    return scenario.to_dict()


@router.get("/scenarios/setups")
async def get_setups():
    """Available setup templates and their aliases."""
    return {
        "setups": [
            {
                "name": t.name,
                "title": t.title,
                "description": t.description,
                "correct_action": t.correct_action,
                "phases": [p.name for p in t.phases(100.0)],
            }
            for t in SETUP_TEMPLATES.values()
        ],
        "aliases": dict(SETUP_ALIASES),
    }


@router.get("/scenarios/seeds")
async def get_seeds():
    """The built-in seed catalog (metadata only; bars are generated on demand)."""
    return {
        "seeds": [
            {
                "index": i,
                "title": s.title,
                "symbol": s.symbol,
                "setup_type": s.setup_type,
                "difficulty": s.difficulty,
                "focus_area": s.focus_area,
            }
            for i, s in enumerate(SEED_SCENARIOS)
        ],
    }
