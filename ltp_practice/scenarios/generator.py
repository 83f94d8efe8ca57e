"""Scenario assembly — template bars, level catalog, decision point, LTP grading.

Three entry points:
- ``build_scenario()``: a named setup, fully deterministic given an rng.
- ``generate_fallback_scenario()``: one canned scenario per difficulty.
- ``generate_ai_scenario()``: narrative-enriched, falls back on any failure.
"""

import logging
import math
from typing import Any, Optional, Sequence

import numpy as np

from ltp_practice.analysis.levels import (
    calculate_all_levels,
    calculate_level_score,
    dedupe_levels,
    get_top_levels,
)
from ltp_practice.analysis.models import Bar, KeyLevel, LTPScore
from ltp_practice.analysis.patience import calculate_patience_score
from ltp_practice.analysis.trend import calculate_ltp_score, calculate_trend_score
from ltp_practice.scenarios.candles import (
    BASE_START_TIME,
    FIVE_MINUTES_MS,
    RandomSource,
    generate_phase_candles,
)
from ltp_practice.scenarios.models import (
    ACTIONS,
    DecisionPoint,
    LTPAnalysis,
    Scenario,
    ScenarioParams,
    ScorePart,
)
from ltp_practice.scenarios.narrative import NarrativeGenerator, build_prompt
from ltp_practice.scenarios.templates import (
    SETUP_ALIASES,
    SETUP_TEMPLATES,
    SetupTemplate,
    get_template,
)

logger = logging.getLogger("ltp_practice")

DECISION_FRACTION = 0.7
MAX_SCENARIO_LEVELS = 6
DEFAULT_VOLATILITY = 0.4
NARRATIVE_LEVEL_WINDOW = 0.05  # narrative level must sit within 5% of base

BASE_PRICES: dict[str, float] = {"SPY": 450.0, "QQQ": 380.0}
DEFAULT_BASE_PRICE = 150.0

NARRATIVE_VOLATILITY: dict[str, float] = {"low": 0.25, "moderate": 0.4, "high": 0.6}

ADAPTIVE_SYMBOLS: tuple[str, ...] = ("SPY", "QQQ", "AAPL", "NVDA", "TSLA", "META", "MSFT", "AMZN")
FOCUS_AREAS: tuple[str, ...] = ("level", "trend", "patience")

FALLBACK_MARKET_CONTEXT: dict[str, str] = {
    "spyTrend": "bullish",
    "vixLevel": "15.5 - moderate",
    "sectorPerformance": "Tech +0.3%, Financials -0.2%",
    "premarketAction": "Slightly higher, testing resistance",
}

# difficulty -> (setup, title, description, volatility)
FALLBACK_SCENARIOS: dict[str, tuple[str, str, str, float]] = {
    "beginner": (
        "support_bounce",
        "{symbol} Support Bounce",
        "Clear support level test with strong buying pressure",
        0.4,
    ),
    "intermediate": (
        "patience_test",
        "{symbol} Patience Test at Support",
        "Price sliding into support with mixed signals and no confirmation yet",
        0.4,
    ),
    "advanced": (
        "failed_breakout",
        "{symbol} False Breakout Trap",
        "Failed breakout above resistance with reversal pattern",
        0.6,
    ),
}


def default_base_price(symbol: str) -> float:
    return BASE_PRICES.get(symbol.upper(), DEFAULT_BASE_PRICE)


def decision_index(bar_count: int) -> int:
    """Index of the decision bar: 70% through the sequence, rounded down."""
    return math.floor(bar_count * DECISION_FRACTION)


def build_level_catalog(
    primary: Sequence[KeyLevel],
    history: list[Bar],
    current_price: float,
    max_levels: int = MAX_SCENARIO_LEVELS,
) -> list[KeyLevel]:
    """Merge setup levels with levels computed from *history*.

    *primary* levels are always kept; computed levels fill the remaining
    slots by relevance.  Returns a deduplicated catalog sorted by price,
    highest first.
    """
    kept = dedupe_levels(list(primary))
    computed = calculate_all_levels([], history, current_price)
    merged = dedupe_levels(kept + computed)
    extras = merged[len(kept):]

    slots = max(0, max_levels - len(kept))
    catalog = kept + get_top_levels(extras, current_price, slots)
    return sorted(catalog, key=lambda lv: lv.price, reverse=True)


def analyze_decision(
    history: list[Bar],
    levels: list[KeyLevel],
    direction: str,
) -> tuple[LTPAnalysis, LTPScore]:
    """Grade the last bar of *history* as a *direction* entry."""
    bar = history[-1]
    level = calculate_level_score(bar.close, levels, bar=bar)
    trend = calculate_trend_score(history, "short" if direction == "short" else "long")
    patience = calculate_patience_score(history, levels)

    analysis = LTPAnalysis(
        level=ScorePart(round(level.score), level.reason),
        trend=ScorePart(trend.score, trend.reason),
        patience=ScorePart(patience.score, patience.reason),
    )
    return analysis, calculate_ltp_score(level.score, trend.score, patience.score)


def build_scenario(
    setup_type: Optional[str],
    symbol: str = "SPY",
    base_price: Optional[float] = None,
    volatility: float = DEFAULT_VOLATILITY,
    difficulty: str = "beginner",
    focus_area: str = "all",
    key_levels: Optional[Sequence[KeyLevel]] = None,
    rng: Optional[RandomSource] = None,
    start_time: int = BASE_START_TIME,
    interval_ms: int = FIVE_MINUTES_MS,
    title: Optional[str] = None,
    description: Optional[str] = None,
    decision_context: Optional[str] = None,
    explanation: Optional[str] = None,
    ltp_analysis: Optional[LTPAnalysis] = None,
    tags: Optional[Sequence[str]] = None,
    market_context: Optional[dict[str, str]] = None,
    source: str = "template",
) -> Scenario:
    """Generate a complete scenario for a named setup.

    Bars come from the setup's phase template.  The first of *key_levels*
    (when given) anchors the template's key level; otherwise the template
    places its own.  Any text or score left as ``None`` is filled from the
    template and from grading the decision bar.
    """
    template = get_template(setup_type)
    base = base_price if base_price and base_price > 0 else default_base_price(symbol)
    if rng is None:
        rng = np.random.default_rng()

    if key_levels:
        primary = list(key_levels)
        level_price = template.level_price(base, primary[0].price)
    else:
        level_price = template.level_price(base)
        primary = [KeyLevel(
            round(level_price, 2), template.level_label, template.level_type,
            template.level_strength, "intraday",
        )]

    phases = template.phases(base, level_price)
    bars, spans = generate_phase_candles(phases, base, volatility, start_time, interval_ms, rng)

    idx = decision_index(len(bars))
    history = bars[:idx + 1]
    decision_bar = bars[idx]
    outcome_bars = [b for span in spans if span.outcome for b in bars[span.start:span.end]]

    levels = build_level_catalog(primary, history, decision_bar.close)
    computed, ltp = analyze_decision(history, levels, template.trade_direction)

    logger.debug(
        "Built %s scenario for %s: %d bars, decision at %d, LTP %d (%s)",
        template.name, symbol, len(bars), idx, ltp.overall, ltp.grade,
    )

    return Scenario(
        title=title or f"{template.title} - {symbol}",
        description=description or template.description,
        symbol=symbol,
        setup_type=template.name,
        difficulty=difficulty,
        focus_area=focus_area,
        bars=bars,
        key_levels=levels,
        decision_point=DecisionPoint(
            index=idx,
            price=decision_bar.close,
            time=decision_bar.time,
            context=decision_context or template.decision_context,
        ),
        correct_action=template.correct_action,
        outcome_bars=outcome_bars,
        ltp_analysis=ltp_analysis or computed,
        explanation=explanation or f"{template.explanation} LTP grade {ltp.grade} ({ltp.overall}/100).",
        tags=list(tags) if tags else [symbol, difficulty, focus_area, template.name],
        phases=spans,
        market_context=dict(market_context or {}),
        source=source,
    )


def generate_fallback_scenario(
    params: ScenarioParams,
    rng: Optional[RandomSource] = None,
    interval_ms: int = FIVE_MINUTES_MS,
) -> Scenario:
    """Deterministic canned scenario for the requested difficulty."""
    setup, title, description, volatility = FALLBACK_SCENARIOS.get(
        params.difficulty, FALLBACK_SCENARIOS["beginner"],
    )
    return build_scenario(
        setup,
        symbol=params.symbol,
        volatility=volatility,
        difficulty=params.difficulty,
        focus_area=params.focus_area,
        rng=rng,
        interval_ms=interval_ms,
        title=title.format(symbol=params.symbol),
        description=description,
        market_context=FALLBACK_MARKET_CONTEXT,
        source="fallback",
    )


# ── Narrative merge ──────────────────────────────────────────────────────


def _positive_float(value: Any, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 and math.isfinite(number) else default


def _text(value: Any, default: Optional[str] = None) -> Optional[str]:
    return value.strip() if isinstance(value, str) and value.strip() else default


def pick_setup(setup_type: Optional[str], action: Optional[str], description: str) -> str:
    """Choose the template whose chart matches a narrative.

    An explicit template name wins.  Otherwise the narrative's action and
    keywords in its price-action description pick the closest setup.
    """
    if setup_type and (setup_type in SETUP_TEMPLATES or setup_type in SETUP_ALIASES):
        return setup_type

    text = f"{setup_type or ''} {description}".lower()
    if action == "short":
        if "gap" in text:
            return "gap_fill"
        if "trap" in text or "breakout" in text:
            return "failed_breakout"
        if "vwap" in text:
            return "below_vwap_short"
        return "resistance_rejection"
    if action == "wait":
        if any(word in text for word in ("exhaust", "extended", "parabolic", "fomo")):
            return "trend_exhaustion"
        return "patience_test"
    if "trap" in text or "breakdown" in text:
        return "failed_breakdown"
    if "vwap" in text:
        return "vwap_reclaim"
    if "breakout" in text or "orb" in text or "opening range" in text:
        return "orb_breakout"
    return "support_bounce"


def parse_narrative_levels(raw: Any, default_price: float) -> list[KeyLevel]:
    """Coerce narrative ``keyLevels`` entries, defaulting each missing field."""
    if not isinstance(raw, list):
        return []

    levels: list[KeyLevel] = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        strength = int(_positive_float(entry.get("strength"), 70))
        levels.append(KeyLevel(
            price=round(_positive_float(entry.get("price"), default_price), 2),
            label=_text(entry.get("label"), "Level"),
            level_type=_text(entry.get("type"), "support"),
            strength=min(100, strength),
        ))
    return levels


def parse_narrative_analysis(raw: Any) -> Optional[LTPAnalysis]:
    """Narrative ``ltpAnalysis`` with a 70 / generic-reason default per part."""
    if not isinstance(raw, dict):
        return None

    def _part(name: str) -> ScorePart:
        part = raw.get(name)
        part = part if isinstance(part, dict) else {}
        score = min(100.0, _positive_float(part.get("score"), 70.0))
        return ScorePart(score, _text(part.get("reason"), f"{name.capitalize()} analysis"))

    return LTPAnalysis(level=_part("level"), trend=_part("trend"), patience=_part("patience"))


def scenario_from_narrative(
    params: ScenarioParams,
    data: dict,
    rng: Optional[RandomSource] = None,
    interval_ms: int = FIVE_MINUTES_MS,
) -> Scenario:
    """Build a scenario whose descriptive fields come from *data*.

    Only descriptive parameters are taken from the narrative; bars are
    always generated locally from the matching setup template.
    """
    base = _positive_float(data.get("basePrice"), default_base_price(params.symbol))

    price_action = data.get("priceAction")
    price_action = price_action if isinstance(price_action, dict) else {}
    action = data.get("correctAction") if data.get("correctAction") in ACTIONS else None
    description_text = " ".join(
        str(price_action.get(k, "")) for k in ("trend", "pattern")
    ) + " " + str(data.get("scenarioType", ""))

    template: SetupTemplate = get_template(pick_setup(params.setup_type, action, description_text))
    if action is not None and action != template.correct_action:
        logger.info(
            "Narrative action %s does not match %s chart, grading as %s",
            action, template.name, template.correct_action,
        )

    volatility = NARRATIVE_VOLATILITY.get(
        str(price_action.get("volatility", "")).lower(), DEFAULT_VOLATILITY,
    )

    narrative_levels = [
        lv for lv in parse_narrative_levels(data.get("keyLevels"), base)
        if abs(lv.price - base) <= base * NARRATIVE_LEVEL_WINDOW
    ]

    market_context = data.get("marketContext")
    if isinstance(market_context, dict):
        market_context = {str(k): str(v) for k, v in market_context.items()}
    else:
        market_context = {"spyTrend": params.market_context or "neutral"}

    tags = [params.symbol, params.difficulty, params.focus_area, template.name, "ai-generated"]

    return build_scenario(
        template.name,
        symbol=params.symbol,
        base_price=base,
        volatility=volatility,
        difficulty=params.difficulty,
        focus_area=params.focus_area,
        key_levels=narrative_levels or None,
        rng=rng,
        interval_ms=interval_ms,
        title=_text(data.get("title")),
        description=_text(data.get("description")),
        decision_context=_text(data.get("decisionContext")),
        explanation=_text(data.get("explanation")),
        ltp_analysis=parse_narrative_analysis(data.get("ltpAnalysis")),
        tags=tags,
        market_context=market_context,
        source="narrative",
    )


async def generate_ai_scenario(
    params: ScenarioParams,
    generator: NarrativeGenerator,
    rng: Optional[RandomSource] = None,
    interval_ms: int = FIVE_MINUTES_MS,
) -> Scenario:
    """Generate a narrative-enriched scenario.

    Makes at most one narrative call.  Any failure (transport error,
    malformed or missing output) is logged and answered with the fallback
    scenario for the requested difficulty.
    """
    if rng is None:
        rng = np.random.default_rng()

    try:
        data = await generator.generate(build_prompt(params))
    except Exception as exc:
        logger.warning("Narrative generation failed, using fallback scenario: %s", exc)
        return generate_fallback_scenario(params, rng, interval_ms)

    if not isinstance(data, dict) or not data:
        logger.info("No narrative available for %s, using fallback scenario", params.symbol)
        return generate_fallback_scenario(params, rng, interval_ms)

    try:
        scenario = scenario_from_narrative(params, data, rng, interval_ms)
    except Exception as exc:
        logger.warning("Narrative response unusable, using fallback scenario: %s", exc)
        return generate_fallback_scenario(params, rng, interval_ms)

    logger.info(
        "Narrative scenario generated: symbol=%s difficulty=%s action=%s",
        params.symbol, params.difficulty, scenario.correct_action,
    )
    return scenario


# ── Adaptive difficulty ──────────────────────────────────────────────────


def get_adaptive_params(
    accuracy: float,
    weak_areas: Sequence[str] = (),
    rng: Optional[RandomSource] = None,
) -> ScenarioParams:
    """Pick scenario parameters from a learner's track record.

    Accuracy of 80%+ earns advanced scenarios, 60%+ intermediate.  The
    first weak area (if it is level, trend or patience) becomes the focus.
    """
    if rng is None:
        rng = np.random.default_rng()

    if accuracy >= 80:
        difficulty = "advanced"
    elif accuracy >= 60:
        difficulty = "intermediate"
    else:
        difficulty = "beginner"

    focus_area = "all"
    if weak_areas and weak_areas[0] in FOCUS_AREAS:
        focus_area = weak_areas[0]

    pick = min(len(ADAPTIVE_SYMBOLS) - 1, int(rng.random() * len(ADAPTIVE_SYMBOLS)))
    return ScenarioParams(
        symbol=ADAPTIVE_SYMBOLS[pick],
        difficulty=difficulty,
        focus_area=focus_area,
    )
