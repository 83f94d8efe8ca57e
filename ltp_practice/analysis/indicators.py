"""Technical indicators — EMA, SMA, VWAP, VWAP bands, EMA ribbon, volume profile.

Pure functions, no I/O. Every series output has exactly one value per
input element; leading values use a running average instead of NaN.
"""

import math
from datetime import datetime
from zoneinfo import ZoneInfo

from ltp_practice.analysis.models import (
    Bar,
    IndicatorBundle,
    RibbonData,
    RibbonState,
    VolumeBucket,
    VolumeProfile,
    VWAPBands,
)

MARKET_TZ = ZoneInfo("America/New_York")

RIBBON_PERIODS: tuple[int, ...] = (8, 10, 12, 14, 16, 18, 20, 21)
RIBBON_AGREEMENT = 0.7
RIBBON_STRENGTH_MULTIPLIER = 25.0
RIBBON_SPREAD_CHANGE = 0.05

VALUE_AREA_PCT = 0.70


def _check_period(period: int) -> None:
    if period < 1:
        raise ValueError(f"period must be >= 1, got {period}")


# ── Moving averages ──────────────────────────────────────────────────────


def calculate_ema(prices: list[float], period: int) -> list[float]:
    """Calculate an Exponential Moving Average series.

    For indices before *period* values exist, the output is the running
    average of every price seen so far.  From index *period* onward:
        ``EMA_i = (price_i - EMA_{i-1}) × k + EMA_{i-1}``
    where ``k = 2 / (period + 1)``.

    Returns a list the same length as *prices*.
    """
    _check_period(period)
    if not prices:
        return []

    k = 2.0 / (period + 1)
    ema: list[float] = []

    total = 0.0
    for i in range(min(period, len(prices))):
        total += prices[i]
        ema.append(total / (i + 1))

    for i in range(period, len(prices)):
        ema.append((prices[i] - ema[i - 1]) * k + ema[i - 1])

    return ema


def calculate_sma(prices: list[float], period: int) -> list[float]:
    """Calculate a Simple Moving Average series.

    Uses all available history while fewer than *period* prices exist,
    then a trailing window of *period* prices.
    """
    _check_period(period)
    sma: list[float] = []
    window_sum = 0.0

    for i, price in enumerate(prices):
        window_sum += price
        if i >= period:
            window_sum -= prices[i - period]
        sma.append(window_sum / min(i + 1, period))

    return sma


# ── VWAP ─────────────────────────────────────────────────────────────────


def session_date(timestamp_ms: int, tz: ZoneInfo = MARKET_TZ) -> str:
    """Return the trading-session calendar date (YYYY-MM-DD) for a timestamp."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=tz).date().isoformat()


def calculate_vwap(bars: list[Bar], tz: ZoneInfo = MARKET_TZ) -> list[float]:
    """Calculate session VWAP.

    Accumulates ``typical_price × volume`` and ``volume``; both reset when
    the bar's calendar date (in *tz*) changes.  When cumulative volume is
    zero the bar's typical price is emitted instead.
    """
    vwap: list[float] = []
    cum_pv = 0.0
    cum_volume = 0.0
    last_date = None

    for bar in bars:
        bar_date = session_date(bar.time, tz)
        if last_date is not None and bar_date != last_date:
            cum_pv = 0.0
            cum_volume = 0.0
        last_date = bar_date

        tp = bar.typical_price
        cum_pv += tp * bar.volume
        cum_volume += bar.volume

        vwap.append(cum_pv / cum_volume if cum_volume > 0 else tp)

    return vwap


def calculate_vwap_bands(bars: list[Bar], tz: ZoneInfo = MARKET_TZ) -> VWAPBands:
    """Calculate VWAP with ±1σ and ±2σ standard-deviation bands.

    Variance is the volume-weighted ``E[X²] − E[X]²`` of typical price,
    accumulated and reset exactly like VWAP, and clamped at zero before
    the square root.  Zero cumulative volume collapses every band onto
    the VWAP value.
    """
    vwap: list[float] = []
    upper1: list[float] = []
    lower1: list[float] = []
    upper2: list[float] = []
    lower2: list[float] = []

    cum_pv = 0.0
    cum_p2v = 0.0
    cum_volume = 0.0
    last_date = None

    for bar in bars:
        bar_date = session_date(bar.time, tz)
        if last_date is not None and bar_date != last_date:
            cum_pv = 0.0
            cum_p2v = 0.0
            cum_volume = 0.0
        last_date = bar_date

        tp = bar.typical_price
        cum_pv += tp * bar.volume
        cum_p2v += tp * tp * bar.volume
        cum_volume += bar.volume

        if cum_volume > 0:
            mean = cum_pv / cum_volume
            variance = max(0.0, cum_p2v / cum_volume - mean * mean)
            sigma = math.sqrt(variance)
        else:
            mean = tp
            sigma = 0.0

        vwap.append(mean)
        upper1.append(mean + sigma)
        lower1.append(mean - sigma)
        upper2.append(mean + 2 * sigma)
        lower2.append(mean - 2 * sigma)

    return VWAPBands(
        vwap=vwap,
        upper_band1=upper1,
        lower_band1=lower1,
        upper_band2=upper2,
        lower_band2=lower2,
    )


# ── EMA ribbon ───────────────────────────────────────────────────────────


def calculate_ema_ribbon(
    prices: list[float],
    periods: tuple[int, ...] = RIBBON_PERIODS,
    agreement: float = RIBBON_AGREEMENT,
    strength_multiplier: float = RIBBON_STRENGTH_MULTIPLIER,
    spread_change: float = RIBBON_SPREAD_CHANGE,
) -> RibbonData:
    """Calculate the EMA ribbon and classify its state at every bar.

    Algorithm (per bar):
        1. Take the EMA values for all *periods*, keeping non-zero ones.
        2. Count adjacent pairs ordered shorter-above-longer (bullish)
           and the reverse (bearish).
        3. ``bullish``/``bearish`` when at least *agreement* of the
           comparisons agree, otherwise ``neutral``.
        4. Strength = spread as % of price × *strength_multiplier*, capped
           at 100.
        5. Expanding/contracting when spread% moved more than
           *spread_change* (relative) versus the previous bar.

    Bars with fewer than two valid EMA values are ``neutral`` with zero
    strength.
    """
    if not prices:
        return RibbonData(emas=[], states=[], periods=tuple(periods))

    emas = [calculate_ema(prices, p) for p in periods]
    states: list[RibbonState] = []

    for i, price in enumerate(prices):
        values = [ema[i] for ema in emas]
        valid = [v for v in values if v > 0]

        if len(valid) < 2:
            states.append(RibbonState(
                color="neutral",
                strength=0.0,
                top_value=values[0] if values and values[0] else price,
                bottom_value=values[-1] if values and values[-1] else price,
                expanding=False,
                contracting=False,
            ))
            continue

        bullish = 0
        bearish = 0
        for j in range(len(valid) - 1):
            if valid[j] > valid[j + 1]:
                bullish += 1
            elif valid[j] < valid[j + 1]:
                bearish += 1

        comparisons = len(valid) - 1
        if bullish >= comparisons * agreement:
            color = "bullish"
        elif bearish >= comparisons * agreement:
            color = "bearish"
        else:
            color = "neutral"

        top = max(valid)
        bottom = min(valid)
        separation = (top - bottom) / price * 100 if price > 0 else 0.0
        strength = min(100.0, separation * strength_multiplier)

        expanding = False
        contracting = False
        if i > 0 and prices[i - 1] > 0:
            prev = states[i - 1]
            prev_separation = (prev.top_value - prev.bottom_value) / prices[i - 1] * 100
            expanding = separation > prev_separation * (1 + spread_change)
            contracting = separation < prev_separation * (1 - spread_change)

        states.append(RibbonState(
            color=color,
            strength=strength,
            top_value=top,
            bottom_value=bottom,
            expanding=expanding,
            contracting=contracting,
        ))

    return RibbonData(emas=emas, states=states, periods=tuple(periods))


# ── Volume profile ───────────────────────────────────────────────────────


def calculate_volume_profile(
    bars: list[Bar],
    level_count: int = 24,
    value_area_pct: float = VALUE_AREA_PCT,
) -> VolumeProfile:
    """Distribute traded volume into *level_count* equal-width price buckets.

    Each bar's whole volume goes to the bucket holding its typical price,
    counted as buy volume when ``close >= open`` and sell volume otherwise.
    The point of control is the highest-volume bucket (first on ties).  The
    value area grows outward from it, adding whichever neighbour has more
    volume, until it holds *value_area_pct* of the total or both edges are
    exhausted.

    Returns an empty, zeroed profile for an empty bar list.
    """
    if level_count < 1:
        raise ValueError(f"level_count must be >= 1, got {level_count}")
    if not bars:
        return VolumeProfile()

    high = max(b.high for b in bars)
    low = min(b.low for b in bars)
    step = (high - low) / level_count

    volumes = [0.0] * level_count
    buys = [0.0] * level_count
    sells = [0.0] * level_count

    for bar in bars:
        if step > 0:
            idx = int((bar.typical_price - low) / step)
            idx = max(0, min(level_count - 1, idx))
        else:
            idx = 0
        volumes[idx] += bar.volume
        if bar.close >= bar.open:
            buys[idx] += bar.volume
        else:
            sells[idx] += bar.volume

    total = sum(volumes)
    poc = max(range(level_count), key=lambda k: (volumes[k], -k))

    included = {poc}
    accumulated = volumes[poc]
    below = poc - 1
    above = poc + 1
    while accumulated < total * value_area_pct and (below >= 0 or above < level_count):
        take_above = above < level_count and (below < 0 or volumes[above] >= volumes[below])
        if take_above:
            included.add(above)
            accumulated += volumes[above]
            above += 1
        else:
            included.add(below)
            accumulated += volumes[below]
            below -= 1

    buckets = [
        VolumeBucket(
            price_low=low + k * step,
            price_high=low + (k + 1) * step,
            price=low + (k + 0.5) * step,
            volume=volumes[k],
            buy_volume=buys[k],
            sell_volume=sells[k],
            is_poc=k == poc,
            in_value_area=k in included,
        )
        for k in range(level_count)
    ]

    return VolumeProfile(
        buckets=buckets,
        poc_price=buckets[poc].price,
        value_area_high=buckets[max(included)].price_high,
        value_area_low=buckets[min(included)].price_low,
        total_volume=total,
    )


# ── Aggregation / bundles ────────────────────────────────────────────────


def aggregate_bars(bars: list[Bar], minutes: int) -> list[Bar]:
    """Merge bars into fixed *minutes*-wide time buckets.

    Each output bar takes the first open, highest high, lowest low, last
    close and summed volume of the bars in its bucket, stamped with the
    bucket start time.
    """
    if minutes < 1:
        raise ValueError(f"minutes must be >= 1, got {minutes}")

    bucket_ms = minutes * 60 * 1000
    merged: list[Bar] = []
    current: Bar | None = None

    for bar in bars:
        start = bar.time - bar.time % bucket_ms
        if current is not None and current.time == start:
            current = Bar(
                time=start,
                open=current.open,
                high=max(current.high, bar.high),
                low=min(current.low, bar.low),
                close=bar.close,
                volume=current.volume + bar.volume,
            )
        else:
            if current is not None:
                merged.append(current)
            current = Bar(start, bar.open, bar.high, bar.low, bar.close, bar.volume)

    if current is not None:
        merged.append(current)
    return merged


def calculate_indicators(bars: list[Bar]) -> IndicatorBundle:
    """Calculate the standard practice-chart indicator set for *bars*."""
    closes = [b.close for b in bars]
    bands = calculate_vwap_bands(bars)
    return IndicatorBundle(
        ema9=calculate_ema(closes, 9),
        ema21=calculate_ema(closes, 21),
        vwap=bands.vwap,
        vwap_bands=bands,
        ribbon=calculate_ema_ribbon(closes),
    )
