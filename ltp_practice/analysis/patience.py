"""Patience candle detection — indecision/reversal candles near key levels.

A patience candle (doji, hammer, spinning top, small body) printing at a
key level is read as evidence that the level is being respected.
"""

import math
from dataclasses import dataclass
from typing import Optional

from ltp_practice.analysis.models import (
    Bar,
    KeyLevel,
    PatienceScore,
    PatienceSignal,
    PatternType,
)

# Confidence weighting; chosen empirically, not fitted to outcomes.
DISTANCE_WEIGHT = 0.4
PATTERN_WEIGHT = 0.6

PATTERN_SCORES: dict[str, int] = {
    "doji": 95,
    "hammer": 90,
    "inverted_hammer": 90,
    "spinning_top": 85,
    "small_body": 70,
}

NO_PATIENCE_SCORE = 30
MULTIPLE_TEST_BONUS = 10
MULTIPLE_TEST_BONUS_CAP = 20
RECENT_BONUS = 10
RECENT_BARS = 3

_DESCRIPTIONS: dict[str, str] = {
    "doji": "Doji at {label} shows indecision - buyers and sellers balanced",
    "hammer": "Hammer at {label} suggests buyers stepping in - bullish reversal signal",
    "inverted_hammer": "Inverted hammer at {label} shows buying pressure - watch for confirmation",
    "spinning_top": "Spinning top at {label} indicates uncertainty - wait for next candle",
    "small_body": "Small body candle at {label} shows decreasing momentum",
}


@dataclass(frozen=True)
class PatienceConfig:
    """Tunables for patience detection."""

    doji_body_percent: float = 0.10  # body / range below this is a doji
    max_body_percent: float = 0.35  # body / range below this is a small body
    proximity_percent: float = 0.3  # % distance from level counted as "near"
    min_wick_ratio: float = 2.0  # wick / body for hammer shapes
    lookback_bars: int = 10


DEFAULT_CONFIG = PatienceConfig()


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 ties going up (96.5 -> 97)."""
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class CandleShape:
    pattern: PatternType
    body_percent: float
    upper_wick: float
    lower_wick: float


def classify_candle(bar: Bar, config: PatienceConfig = DEFAULT_CONFIG) -> CandleShape:
    """Classify a candle by body size relative to its range and wick balance.

    Rules:
        - **doji**: body < 10% of range (range must be non-zero).
        - body < 35% of range:
            - **hammer**: lower wick > 2× body, upper wick < 0.5× body
            - **inverted_hammer**: upper wick > 2× body, lower wick < 0.5× body
            - **spinning_top**: both wicks > 0.5× body
            - **small_body**: anything else
        - **regular**: larger bodies; not a patience candle.
    """
    body = abs(bar.close - bar.open)
    total_range = bar.high - bar.low
    body_percent = body / total_range if total_range > 0 else 0.0
    upper_wick = bar.high - max(bar.open, bar.close)
    lower_wick = min(bar.open, bar.close) - bar.low

    def _shape(pattern: PatternType) -> CandleShape:
        return CandleShape(pattern, body_percent, upper_wick, lower_wick)

    if body_percent < config.doji_body_percent and total_range > 0:
        return _shape("doji")

    if body_percent < config.max_body_percent:
        if lower_wick > body * config.min_wick_ratio and upper_wick < body * 0.5:
            return _shape("hammer")
        if upper_wick > body * config.min_wick_ratio and lower_wick < body * 0.5:
            return _shape("inverted_hammer")
        if upper_wick > body * 0.5 and lower_wick > body * 0.5:
            return _shape("spinning_top")
        return _shape("small_body")

    return _shape("regular")


def is_near_level(bar: Bar, level: KeyLevel, proximity_percent: float) -> tuple[bool, float]:
    """Return ``(near, distance_pct)`` for a bar against a level.

    Near when the bar midpoint is within *proximity_percent* of the level,
    or when the bar's range straddles the level price.
    """
    mid = (bar.high + bar.low) / 2
    distance = abs(mid - level.price) / level.price * 100 if level.price > 0 else float("inf")
    straddles = bar.low <= level.price <= bar.high
    return distance <= proximity_percent or straddles, distance


def detect_patience_candles(
    bars: list[Bar],
    levels: list[KeyLevel],
    config: Optional[PatienceConfig] = None,
) -> list[PatienceSignal]:
    """Find patience candles at key levels among the most recent bars.

    Only the last ``lookback_bars`` bars are scanned.  Each qualifying
    candle is attributed to the first level (in *levels* order) it is near.

    Returns signals sorted by descending confidence.
    """
    cfg = config or DEFAULT_CONFIG
    if not bars or not levels:
        return []

    start = max(0, len(bars) - cfg.lookback_bars)
    signals: list[PatienceSignal] = []

    for bar_index in range(start, len(bars)):
        bar = bars[bar_index]
        shape = classify_candle(bar, cfg)
        if shape.pattern == "regular":
            continue

        for level in levels:
            near, distance = is_near_level(bar, level, cfg.proximity_percent)
            if not near:
                continue

            distance_score = max(0.0, 100 - distance * 100)
            pattern_score = PATTERN_SCORES[shape.pattern]
            confidence = round_half_up(DISTANCE_WEIGHT * distance_score + PATTERN_WEIGHT * pattern_score)

            signals.append(PatienceSignal(
                bar_index=bar_index,
                timestamp=bar.time,
                pattern_type=shape.pattern,
                level=level,
                confidence=confidence,
                description=_DESCRIPTIONS[shape.pattern].format(label=level.label),
            ))
            break

    signals.sort(key=lambda s: s.confidence, reverse=True)
    return signals


def has_patience_confirmation(
    bars: list[Bar],
    levels: list[KeyLevel],
    min_confidence: int = 70,
    config: Optional[PatienceConfig] = None,
) -> tuple[bool, list[PatienceSignal], str]:
    """Return ``(confirmed, candles, summary)`` using only high-confidence candles."""
    strong = [
        s for s in detect_patience_candles(bars, levels, config)
        if s.confidence >= min_confidence
    ]
    if not strong:
        return (
            False,
            [],
            "No patience candle confirmation at key levels yet. "
            "Wait for indecision or reversal patterns.",
        )

    best = strong[0]
    summary = (
        f"{best.pattern_type.replace('_', ' ')} pattern detected at {best.level.label} "
        f"with {best.confidence}% confidence. {best.description}"
    )
    return True, strong, summary


def calculate_patience_score(
    bars: list[Bar],
    levels: list[KeyLevel],
    config: Optional[PatienceConfig] = None,
) -> PatienceScore:
    """Score the "P" of LTP.

    Mean confidence of detected candles, plus 10 per extra candle (max 20)
    and 10 when one is within the last 3 bars, capped at 100.  With no
    candles the score is a fixed 30.
    """
    candles = detect_patience_candles(bars, levels, config)
    if not candles:
        return PatienceScore(
            score=NO_PATIENCE_SCORE,
            reason="No patience candles detected at key levels - setup not yet confirmed",
            candles=[],
        )

    avg_confidence = sum(c.confidence for c in candles) / len(candles)
    multiple_bonus = min(MULTIPLE_TEST_BONUS_CAP, (len(candles) - 1) * MULTIPLE_TEST_BONUS)
    recent_bonus = RECENT_BONUS if any(c.bar_index >= len(bars) - RECENT_BARS for c in candles) else 0

    score = min(100, round_half_up(avg_confidence + multiple_bonus + recent_bonus))

    if score >= 85:
        reason = (
            f"Strong patience confirmation - {len(candles)} candle(s) at key levels "
            "showing the level is being respected"
        )
    elif score >= 70:
        top = candles[0]
        reason = (
            f"Good patience signals - {top.pattern_type.replace('_', ' ')} at "
            f"{top.level.label} suggests level may hold"
        )
    elif score >= 50:
        reason = "Moderate patience - some indecision candles present but could use more confirmation"
    else:
        reason = "Weak patience signals - candles show some hesitation but pattern not clear"

    return PatienceScore(score=score, reason=reason, candles=candles)
