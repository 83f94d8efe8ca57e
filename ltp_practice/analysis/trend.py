"""Trend detection and scoring — the "T" of LTP, plus the combined LTP grade.

Provides:
- ``detect_trend()``: dual-EMA stacking with price confirmation.
- ``determine_structure()``: higher-highs/higher-lows market structure.
- ``calculate_trend_score()``: 0-100 alignment of the trend with a trade
  direction.
- ``calculate_ltp_score()``: weighted Level / Trend / Patience grade.
"""

from dataclasses import dataclass
from typing import Literal, Optional

from ltp_practice.analysis.indicators import calculate_ema, calculate_ema_ribbon, calculate_vwap
from ltp_practice.analysis.models import Bar, LTPScore, TrendScore
from ltp_practice.analysis.patience import round_half_up

LEVEL_WEIGHT = 0.35
TREND_WEIGHT = 0.35
PATIENCE_WEIGHT = 0.30

_GRADES: tuple[tuple[int, str], ...] = ((85, "A"), (70, "B"), (55, "C"), (40, "D"))


@dataclass(frozen=True)
class TrendState:
    """Snapshot of the current trend direction and EMA values."""

    direction: Literal["bullish", "bearish", "flat"]
    ema_fast_value: float
    ema_slow_value: float
    slope: float  # ema_fast - ema_slow (positive = bullish bias)


def detect_trend(bars: list[Bar], ema_fast: int = 9, ema_slow: int = 21) -> TrendState:
    """Classify trend direction using EMA stacking and price position.

    Rules:
        - **Bullish**: EMA(fast) > EMA(slow) AND price > EMA(fast).
        - **Bearish**: EMA(fast) < EMA(slow) AND price < EMA(fast).
        - **Flat**: everything else, or fewer than *ema_slow* bars.
    """
    if len(bars) < ema_slow:
        return TrendState(direction="flat", ema_fast_value=0.0, ema_slow_value=0.0, slope=0.0)

    closes = [b.close for b in bars]
    ema_f = calculate_ema(closes, ema_fast)[-1]
    ema_s = calculate_ema(closes, ema_slow)[-1]
    price = closes[-1]

    if ema_f > ema_s and price > ema_f:
        direction = "bullish"
    elif ema_f < ema_s and price < ema_f:
        direction = "bearish"
    else:
        direction = "flat"

    return TrendState(
        direction=direction,
        ema_fast_value=ema_f,
        ema_slow_value=ema_s,
        slope=ema_f - ema_s,
    )


def determine_structure(bars: list[Bar]) -> Optional[str]:
    """Return ``"uptrend"``, ``"downtrend"`` or ``"range"`` (``None`` under 5 bars).

    Uptrend when at least half of the bar-to-bar steps make both a higher
    high and a higher low count; downtrend symmetrically.
    """
    if len(bars) < 5:
        return None

    higher_highs = higher_lows = lower_highs = lower_lows = 0
    for prev, bar in zip(bars, bars[1:]):
        if bar.high > prev.high:
            higher_highs += 1
        elif bar.high < prev.high:
            lower_highs += 1
        if bar.low > prev.low:
            higher_lows += 1
        elif bar.low < prev.low:
            lower_lows += 1

    threshold = len(bars) * 0.5
    if higher_highs >= threshold and higher_lows >= threshold:
        return "uptrend"
    if lower_highs >= threshold and lower_lows >= threshold:
        return "downtrend"
    return "range"


def calculate_trend_score(
    bars: list[Bar],
    direction: Literal["long", "short"],
    structure_lookback: int = 20,
) -> TrendScore:
    """Score how well the current trend supports a *direction* trade.

    Starts at 50 and moves by: EMA stacking ±15, price vs VWAP ±10,
    ribbon colour ±10, market structure ±15.  Clamped to 0-100.
    """
    if not bars:
        return TrendScore(score=50, reason="No price history to judge trend", structure=None)

    want = "bullish" if direction == "long" else "bearish"
    against = "bearish" if direction == "long" else "bullish"
    aligned: list[str] = []
    opposed: list[str] = []
    score = 50

    trend = detect_trend(bars)
    if trend.direction == want:
        score += 15
        aligned.append("EMA 9/21 stacked")
    elif trend.direction == against:
        score -= 15
        opposed.append("EMA 9/21 stacked against")

    price = bars[-1].close
    vwap = calculate_vwap(bars)[-1]
    above_vwap = price > vwap
    if above_vwap == (direction == "long") and price != vwap:
        score += 10
        aligned.append("price above VWAP" if above_vwap else "price below VWAP")
    elif price != vwap:
        score -= 10
        opposed.append("price on the wrong side of VWAP")

    ribbon = calculate_ema_ribbon([b.close for b in bars])
    color = ribbon.states[-1].color
    if color == want:
        score += 10
        aligned.append(f"{color} ribbon")
    elif color == against:
        score -= 10
        opposed.append(f"{color} ribbon")

    structure = determine_structure(bars[-structure_lookback:])
    if (structure == "uptrend" and direction == "long") or (
        structure == "downtrend" and direction == "short"
    ):
        score += 15
        aligned.append(structure)
    elif structure in ("uptrend", "downtrend"):
        score -= 15
        opposed.append(structure)

    score = max(0, min(100, score))
    if aligned and not opposed:
        reason = f"{want.capitalize()} trend aligned: {', '.join(aligned)}"
    elif opposed and not aligned:
        reason = f"Trend not aligned with {want} direction: {', '.join(opposed)}"
    elif aligned:
        reason = f"Mixed trend - supporting: {', '.join(aligned)}; against: {', '.join(opposed)}"
    else:
        reason = "No clear trend - EMAs flat and price chopping around VWAP"

    return TrendScore(score=score, reason=reason, structure=structure)


def calculate_ltp_score(level: float, trend: float, patience: float) -> LTPScore:
    """Combine the three LTP scores (weights 35/35/30) into an overall grade."""
    level = min(100.0, max(0.0, level))
    trend = min(100.0, max(0.0, trend))
    patience = min(100.0, max(0.0, patience))
    overall = round_half_up(level * LEVEL_WEIGHT + trend * TREND_WEIGHT + patience * PATIENCE_WEIGHT)

    grade = "F"
    for floor, letter in _GRADES:
        if overall >= floor:
            grade = letter
            break

    return LTPScore(level=level, trend=trend, patience=patience, overall=overall, grade=grade)
