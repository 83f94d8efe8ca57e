"""Synthetic candle generation for practice scenarios.

Bars are built one at a time: each opens at the previous close, closes at
open + trend component + uniform noise, and gets independent random wicks.
Phases string these together so a sequence reads as a recognizable setup.

All randomness comes from an injected source exposing ``random()`` (a
``numpy.random.Generator`` in normal use), so a seeded generator replays
the same scenario exactly.
"""

import math
from typing import Optional, Protocol

import numpy as np

from ltp_practice.analysis.models import Bar
from ltp_practice.scenarios.models import Phase, PhaseSpan, VolumeShape

BASE_START_TIME = 1704898800000  # 2024-01-10 09:30 America/New_York
FIVE_MINUTES_MS = 5 * 60 * 1000

TREND_FRACTION = 0.3  # share of the bar range a bias of 1.0 moves price
MAX_TREND_BIAS = 1.5
WICK_FRACTION = 0.5
BASE_VOLUME = 100_000
BASE_VOLUME_SPREAD = 200_000
TREND_VOLUME = 100_000

CONSOLIDATION_VOLATILITY = 0.5
CONSOLIDATION_VOLUME = 0.7


class RandomSource(Protocol):
    def random(self) -> float: ...


def _cents(price: float) -> float:
    return round(price, 2)


def volume_shape_multiplier(shape: VolumeShape, i: int, count: int) -> float:
    """Volume multiplier for bar *i* of a *count*-bar phase.

    ``increasing`` ramps 0.7 → 1.3, ``decreasing`` 1.3 → 0.7, ``climax``
    peaks at 1.5 mid-phase and falls to 0.7 at the edges.
    """
    if count <= 0:
        return 1.0
    if shape == "increasing":
        return 0.7 + 0.6 * i / count
    if shape == "decreasing":
        return 1.3 - 0.6 * i / count
    if shape == "climax":
        half = count / 2
        return 1.5 - 0.8 * abs(i - half) / half
    return 1.0


def generate_candle(
    open_price: float,
    timestamp: int,
    reference_price: float,
    volatility: float,
    trend: float,
    rng: RandomSource,
    volume_multiplier: float = 1.0,
) -> Bar:
    """Generate one bar opening at *open_price*.

    *volatility* is a percentage of *reference_price* giving the bar's
    nominal range; *trend* is a signed bias, where 1.0 moves the close by
    30% of that range.
    """
    price_range = reference_price * volatility / 100

    trend_impact = trend * price_range * TREND_FRACTION
    random_move = (rng.random() - 0.5) * price_range
    close = open_price + trend_impact + random_move

    wick_size = rng.random() * price_range * WICK_FRACTION
    high = max(open_price, close) + rng.random() * wick_size
    low = min(open_price, close) - rng.random() * wick_size

    move = abs(close - open_price)
    trend_volume = move / price_range * TREND_VOLUME if price_range > 0 else 0.0
    base_volume = BASE_VOLUME + rng.random() * BASE_VOLUME_SPREAD
    volume = round((base_volume + trend_volume) * volume_multiplier)

    return Bar(
        time=timestamp,
        open=_cents(open_price),
        high=_cents(high),
        low=_cents(low),
        close=_cents(close),
        volume=max(0, volume),
    )


def _trend_toward(open_price: float, target: float, price_range: float, bias: float) -> float:
    """Signed bias pointing from *open_price* to *target*.

    At least *bias* in magnitude so a phase keeps its character, more when
    the bar has to catch up with the path, capped at ``MAX_TREND_BIAS``.
    """
    if price_range <= 0 or bias <= 0:
        return 0.0
    desired = (target - open_price) / (price_range * TREND_FRACTION)
    if desired == 0:
        return 0.0
    magnitude = min(MAX_TREND_BIAS, max(bias, abs(desired)))
    return math.copysign(magnitude, desired)


def generate_trending_candles(
    count: int,
    start_price: float,
    end_price: float,
    volatility: float,
    start_time: int,
    interval_ms: int,
    rng: RandomSource,
    volume_shape: VolumeShape = "normal",
    trend_bias: float = 0.6,
    volume_multiplier: float = 1.0,
) -> list[Bar]:
    """Walk *count* bars from *start_price* toward *end_price*.

    Each bar aims at its point on the straight path between the two
    prices, so the sequence drifts toward the target while the noise keeps
    it from looking drawn with a ruler.
    """
    bars: list[Bar] = []
    if count <= 0:
        return bars

    step = (end_price - start_price) / count
    open_price = start_price

    for i in range(count):
        target = start_price + step * (i + 1)
        price_range = target * volatility / 100
        bar = generate_candle(
            open_price=open_price,
            timestamp=start_time + i * interval_ms,
            reference_price=target,
            volatility=volatility,
            trend=_trend_toward(open_price, target, price_range, trend_bias),
            rng=rng,
            volume_multiplier=volume_shape_multiplier(volume_shape, i, count) * volume_multiplier,
        )
        bars.append(bar)
        open_price = bar.close

    return bars


def generate_consolidation_candles(
    count: int,
    center: float,
    range_percent: float,
    volatility: float,
    start_time: int,
    interval_ms: int,
    rng: RandomSource,
    open_price: Optional[float] = None,
    trend_bias: float = 0.6,
    volume_multiplier: float = 1.0,
) -> list[Bar]:
    """Chop around *center* inside a band *range_percent* wide.

    The aim point swings sinusoidally across the band; volatility is halved
    and volume damped to 70%.
    """
    bars: list[Bar] = []
    if count <= 0:
        return bars

    range_size = center * range_percent / 100
    bar_volatility = volatility * CONSOLIDATION_VOLATILITY
    price = center if open_price is None else open_price

    for i in range(count):
        target = center + math.sin(i * 0.5) * range_size / 2
        price_range = target * bar_volatility / 100
        bar = generate_candle(
            open_price=price,
            timestamp=start_time + i * interval_ms,
            reference_price=target,
            volatility=bar_volatility,
            trend=_trend_toward(price, target, price_range, trend_bias),
            rng=rng,
            volume_multiplier=CONSOLIDATION_VOLUME * volume_multiplier,
        )
        bars.append(bar)
        price = bar.close

    return bars


def generate_range_candles(
    count: int,
    center: float,
    volatility: float,
    start_time: int,
    interval_ms: int,
    rng: RandomSource,
    open_price: Optional[float] = None,
    trend_bias: float = 0.6,
    volume_shape: VolumeShape = "normal",
    volume_multiplier: float = 1.0,
) -> list[Bar]:
    """Directionless two-way trade around *center* (an opening range).

    Every bar draws its own random bias in ``[-trend_bias, trend_bias)``.
    """
    bars: list[Bar] = []
    price = center if open_price is None else open_price

    for i in range(count):
        trend = (rng.random() - 0.5) * 2 * trend_bias
        bar = generate_candle(
            open_price=price,
            timestamp=start_time + i * interval_ms,
            reference_price=center,
            volatility=volatility,
            trend=trend,
            rng=rng,
            volume_multiplier=volume_shape_multiplier(volume_shape, i, count) * volume_multiplier,
        )
        bars.append(bar)
        price = bar.close

    return bars


def generate_phase_candles(
    phases: list[Phase],
    base_price: float,
    volatility: float,
    start_time: int = BASE_START_TIME,
    interval_ms: int = FIVE_MINUTES_MS,
    rng: Optional[RandomSource] = None,
) -> tuple[list[Bar], list[PhaseSpan]]:
    """Generate one continuous bar sequence from an ordered list of phases.

    The first bar opens at the first phase's ``start_price`` (or
    *base_price*); every later bar opens at the previous close, across
    phase boundaries too.  Timestamps advance by *interval_ms* per bar.

    Returns the bars and where each phase sits inside them.
    """
    if rng is None:
        rng = np.random.default_rng()

    bars: list[Bar] = []
    spans: list[PhaseSpan] = []
    price = base_price
    if phases and phases[0].start_price is not None:
        price = phases[0].start_price

    for phase in phases:
        if phase.bars <= 0:
            continue

        phase_time = start_time + len(bars) * interval_ms
        phase_volatility = volatility * phase.volatility

        if phase.kind == "consolidation":
            generated = generate_consolidation_candles(
                phase.bars, phase.target, phase.range_percent, phase_volatility,
                phase_time, interval_ms, rng,
                open_price=price,
                trend_bias=phase.trend_bias,
                volume_multiplier=phase.volume_multiplier,
            )
        elif phase.kind == "range":
            generated = generate_range_candles(
                phase.bars, phase.target, phase_volatility,
                phase_time, interval_ms, rng,
                open_price=price,
                trend_bias=phase.trend_bias,
                volume_shape=phase.volume_shape,
                volume_multiplier=phase.volume_multiplier,
            )
        else:
            generated = generate_trending_candles(
                phase.bars, price, phase.target, phase_volatility,
                phase_time, interval_ms, rng,
                volume_shape=phase.volume_shape,
                trend_bias=phase.trend_bias,
                volume_multiplier=phase.volume_multiplier,
            )

        spans.append(PhaseSpan(phase.name, len(bars), len(bars) + len(generated), phase.outcome))
        bars.extend(generated)
        price = bars[-1].close

    return bars, spans
