"""Key level detection — PDH/PDL, ORB, weekly, VWAP, round numbers, gaps, SMA 200.

Pure functions.  Each detector returns an empty result (or ``None``) when
the bar history is too short; none of them raise on short input.
"""

import math
from dataclasses import dataclass
from typing import Optional

from ltp_practice.analysis.indicators import calculate_vwap_bands
from ltp_practice.analysis.models import Bar, KeyLevel, LevelProximity, LevelScore

DEDUP_TOLERANCE = 0.001  # 0.1% of price
TOP_LEVEL_DISTANCE_WEIGHT = 0.6
TOP_LEVEL_STRENGTH_WEIGHT = 0.4
AT_LEVEL_THRESHOLD_PCT = 0.3

# (minimum price, increment); first match wins
_ROUND_NUMBER_TIERS: tuple[tuple[float, float], ...] = (
    (500.0, 50.0),
    (100.0, 10.0),
    (50.0, 5.0),
    (10.0, 1.0),
)
_ROUND_NUMBER_FLOOR_INCREMENT = 0.5


@dataclass(frozen=True)
class PremarketRange:
    high: float
    low: float


# ── Individual detectors ─────────────────────────────────────────────────


def calculate_pdh_pdl(daily_bars: list[Bar]) -> list[KeyLevel]:
    """Previous-day high/low from the second-to-last daily bar.

    The last bar is today's and is treated as not yet closed.
    """
    if len(daily_bars) < 2:
        return []

    yesterday = daily_bars[-2]
    return [
        KeyLevel(yesterday.high, "PDH", "pdh", 85, "daily"),
        KeyLevel(yesterday.low, "PDL", "pdl", 85, "daily"),
    ]


def calculate_orb(intraday_bars: list[Bar], orb_minutes: int = 15) -> list[KeyLevel]:
    """Opening-range high/low over the first *orb_minutes* of the session.

    The window is measured from the first intraday bar's timestamp and is
    inclusive of its end.
    """
    if not intraday_bars:
        return []

    orb_end = intraday_bars[0].time + orb_minutes * 60 * 1000
    orb_bars = [b for b in intraday_bars if b.time <= orb_end]

    return [
        KeyLevel(max(b.high for b in orb_bars), "ORB High", "orb_high", 80, "intraday"),
        KeyLevel(min(b.low for b in orb_bars), "ORB Low", "orb_low", 80, "intraday"),
    ]


def calculate_weekly_levels(daily_bars: list[Bar], lookback: int = 5) -> list[KeyLevel]:
    """High/low of the trailing *lookback* daily bars."""
    if len(daily_bars) < lookback:
        return []

    week = daily_bars[-lookback:]
    return [
        KeyLevel(max(b.high for b in week), "Week High", "weekly_high", 75, "weekly"),
        KeyLevel(min(b.low for b in week), "Week Low", "weekly_low", 75, "weekly"),
    ]


def calculate_vwap_levels(intraday_bars: list[Bar]) -> list[KeyLevel]:
    """Current VWAP and its ±1σ band as levels."""
    if not intraday_bars:
        return []

    bands = calculate_vwap_bands(intraday_bars)
    return [
        KeyLevel(bands.vwap[-1], "VWAP", "vwap", 90, "intraday"),
        KeyLevel(bands.upper_band1[-1], "VWAP +1σ", "vwap_upper", 60, "intraday"),
        KeyLevel(bands.lower_band1[-1], "VWAP -1σ", "vwap_lower", 60, "intraday"),
    ]


def round_number_increment(price: float) -> float:
    """Psychological-level spacing for a price magnitude."""
    for floor, increment in _ROUND_NUMBER_TIERS:
        if price >= floor:
            return increment
    return _ROUND_NUMBER_FLOOR_INCREMENT


def calculate_round_numbers(current_price: float, count: int = 2) -> list[KeyLevel]:
    """*count* round-number levels above and below the nearest round value.

    The nearest round value itself is skipped; non-positive prices are
    dropped.
    """
    increment = round_number_increment(current_price)
    nearest = round(current_price / increment) * increment

    levels: list[KeyLevel] = []
    for i in range(-count, count + 1):
        if i == 0:
            continue
        price = round(nearest + i * increment, 2)
        if price > 0:
            levels.append(KeyLevel(price, f"${price:g}", "round_number", 50, "daily"))
    return levels


def calculate_gap_levels(
    yesterday_close: float,
    today_open: float,
    premarket_high: Optional[float] = None,
    premarket_low: Optional[float] = None,
) -> list[KeyLevel]:
    """Gap-fill target and gap extreme, plus optional premarket high/low."""
    levels: list[KeyLevel] = []

    if today_open > yesterday_close:
        levels.append(KeyLevel(yesterday_close, "Gap Fill (PDC)", "gap_low", 85, "intraday"))
        levels.append(KeyLevel(today_open, "Gap High", "gap_high", 70, "intraday"))
    elif today_open < yesterday_close:
        levels.append(KeyLevel(yesterday_close, "Gap Fill (PDC)", "gap_high", 85, "intraday"))
        levels.append(KeyLevel(today_open, "Gap Low", "gap_low", 70, "intraday"))

    if premarket_high and premarket_low and premarket_high > 0 and premarket_low > 0:
        levels.append(KeyLevel(premarket_high, "PM High", "premarket_high", 75, "intraday"))
        levels.append(KeyLevel(premarket_low, "PM Low", "premarket_low", 75, "intraday"))

    return levels


def calculate_sma200_level(daily_bars: list[Bar], period: int = 200) -> Optional[KeyLevel]:
    """Simple average of the last *period* daily closes, or ``None``."""
    if len(daily_bars) < period:
        return None

    sma = sum(b.close for b in daily_bars[-period:]) / period
    return KeyLevel(sma, f"SMA {period}", "sma_200", 95, "daily")


# ── Composition and ranking ──────────────────────────────────────────────


def dedupe_levels(levels: list[KeyLevel], tolerance: float = DEDUP_TOLERANCE) -> list[KeyLevel]:
    """Drop levels closer than *tolerance* (fraction of either price) to an accepted one.

    Order is preserved; the earlier level wins.
    """
    unique: list[KeyLevel] = []
    for level in levels:
        duplicate = any(
            abs(existing.price - level.price) < tolerance * max(existing.price, level.price)
            for existing in unique
        )
        if not duplicate:
            unique.append(level)
    return unique


def calculate_all_levels(
    daily_bars: list[Bar],
    intraday_bars: list[Bar],
    current_price: float,
    premarket: Optional[PremarketRange] = None,
) -> list[KeyLevel]:
    """Run every detector, sort by distance to *current_price*, dedupe.

    The sort is stable, so among equidistant levels the one computed first
    is kept.
    """
    levels: list[KeyLevel] = []
    levels.extend(calculate_pdh_pdl(daily_bars))
    levels.extend(calculate_orb(intraday_bars))
    levels.extend(calculate_weekly_levels(daily_bars))
    levels.extend(calculate_vwap_levels(intraday_bars))
    if current_price > 0:
        levels.extend(calculate_round_numbers(current_price))

    sma200 = calculate_sma200_level(daily_bars)
    if sma200 is not None:
        levels.append(sma200)

    if len(daily_bars) >= 2 and intraday_bars:
        levels.extend(calculate_gap_levels(
            yesterday_close=daily_bars[-2].close,
            today_open=intraday_bars[0].open,
            premarket_high=premarket.high if premarket else None,
            premarket_low=premarket.low if premarket else None,
        ))

    levels.sort(key=lambda lv: abs(lv.price - current_price))
    return dedupe_levels(levels)


def get_top_levels(levels: list[KeyLevel], current_price: float, count: int = 6) -> list[KeyLevel]:
    """Return the *count* most relevant levels.

    Score = 0.6 × proximity + 0.4 × strength, where proximity decays
    linearly from 100 by 1000 points per unit of relative distance.
    """
    if current_price <= 0:
        return sorted(levels, key=lambda lv: -lv.strength)[:count]

    def _score(level: KeyLevel) -> float:
        distance = abs(level.price - current_price) / current_price
        proximity = max(0.0, 100 - distance * 1000)
        return TOP_LEVEL_DISTANCE_WEIGHT * proximity + TOP_LEVEL_STRENGTH_WEIGHT * level.strength

    return sorted(levels, key=_score, reverse=True)[:count]


def _distance_pct(price: float, level: KeyLevel) -> float:
    if level.price <= 0:
        return math.inf
    return abs(price - level.price) / level.price * 100


def is_at_key_level(
    current_price: float,
    levels: list[KeyLevel],
    threshold: float = AT_LEVEL_THRESHOLD_PCT,
    bar: Optional[Bar] = None,
) -> LevelProximity:
    """Return the first level within *threshold* percent of the price.

    When *bar* is given, a level inside the bar's high/low range also
    counts as reached.
    """
    for level in levels:
        distance = _distance_pct(current_price, level)
        straddles = bar is not None and bar.low <= level.price <= bar.high
        if distance <= threshold or straddles:
            return LevelProximity(at_level=True, level=level, distance=distance)
    return LevelProximity(at_level=False, level=None, distance=math.inf)


def calculate_level_score(
    current_price: float,
    levels: list[KeyLevel],
    threshold: float = AT_LEVEL_THRESHOLD_PCT,
    bar: Optional[Bar] = None,
) -> LevelScore:
    """Score the "L" of LTP for a price against a level catalog.

    At a level: strength plus a proximity bonus of up to 15, capped at 100.
    Otherwise partial credit by distance to the nearest level: 60 within
    1%, 45 within 2%, else 30.
    """
    hit = is_at_key_level(current_price, levels, threshold, bar)
    if hit.at_level and hit.level is not None:
        bonus = max(0.0, 15 - hit.distance * 10)
        return LevelScore(
            score=min(100.0, hit.level.strength + bonus),
            reason=(
                f"Price at {hit.level.label} ({hit.level.level_type}) - "
                f"within {hit.distance:.2f}% of level"
            ),
            nearest_level=hit.level,
        )

    if not levels:
        return LevelScore(
            score=30.0,
            reason="No key levels available - consider waiting for better entry",
            nearest_level=None,
        )

    nearest = min(levels, key=lambda lv: _distance_pct(current_price, lv))
    distance = _distance_pct(current_price, nearest)

    if distance < 1:
        return LevelScore(
            score=60.0,
            reason=f"Price approaching {nearest.label} - {distance:.2f}% away",
            nearest_level=nearest,
        )
    if distance < 2:
        return LevelScore(
            score=45.0,
            reason=f"Nearest level is {nearest.label} at {distance:.1f}% away",
            nearest_level=nearest,
        )
    return LevelScore(
        score=30.0,
        reason="Price not at a significant level - consider waiting for better entry",
        nearest_level=nearest,
    )
