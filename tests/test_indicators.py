"""Deterministic tests for ltp_practice.analysis.indicators.

All tests use fixed bar fixtures. Same input = same output, always.
"""

import numpy as np
import pytest

from ltp_practice.analysis.indicators import (
    aggregate_bars,
    calculate_ema,
    calculate_ema_ribbon,
    calculate_indicators,
    calculate_sma,
    calculate_volume_profile,
    calculate_vwap,
    calculate_vwap_bands,
)
from ltp_practice.analysis.models import Bar, VolumeProfile
from ltp_practice.scenarios.candles import generate_trending_candles

SESSION_OPEN = 1704898800000  # 2024-01-10 09:30 America/New_York
FIVE_MIN = 5 * 60 * 1000
ONE_DAY = 24 * 60 * 60 * 1000


# ── Bar fixtures ─────────────────────────────────────────────────────────


def _make_bar(t: int, o: float, h: float, l: float, c: float, v: int = 1000) -> Bar:
    return Bar(time=t, open=o, high=h, low=l, close=c, volume=v)


def _random_bars(count: int = 60, seed: int = 7) -> list[Bar]:
    rng = np.random.default_rng(seed)
    return generate_trending_candles(count, 100.0, 103.0, 0.5, SESSION_OPEN, FIVE_MIN, rng)


# ── Moving averages ──────────────────────────────────────────────────────


class TestEMA:
    def test_running_average_then_recurrence(self):
        # k = 0.5 for period 3
        assert calculate_ema([1, 2, 3, 4, 5], 3) == pytest.approx([1, 1.5, 2, 3, 4])

    def test_length_matches_input(self):
        prices = [float(p) for p in range(1, 41)]
        for period in (1, 5, 9, 21, 50):
            assert len(calculate_ema(prices, period)) == len(prices)

    def test_empty_input(self):
        assert calculate_ema([], 9) == []

    def test_period_one_tracks_price(self):
        prices = [3.0, 7.0, 5.0]
        assert calculate_ema(prices, 1) == pytest.approx(prices)

    def test_non_positive_period_raises(self):
        with pytest.raises(ValueError):
            calculate_ema([1.0, 2.0], 0)


class TestSMA:
    def test_partial_window_then_rolling(self):
        assert calculate_sma([1, 2, 3, 4, 5], 3) == pytest.approx([1, 1.5, 2, 3, 4])

    def test_length_matches_input(self):
        prices = [float(p) for p in range(25)]
        assert len(calculate_sma(prices, 10)) == 25

    def test_non_positive_period_raises(self):
        with pytest.raises(ValueError):
            calculate_sma([1.0], -1)


# ── VWAP ─────────────────────────────────────────────────────────────────


class TestVWAP:
    def test_volume_weighted_typical_price(self):
        bars = [
            _make_bar(SESSION_OPEN, 10, 11, 9, 10, 100),  # tp 10
            _make_bar(SESSION_OPEN + FIVE_MIN, 12, 13, 11, 12, 300),  # tp 12
        ]
        assert calculate_vwap(bars) == pytest.approx([10.0, 11.5])

    def test_resets_on_new_session(self):
        bars = [
            _make_bar(SESSION_OPEN, 10, 11, 9, 10, 100),
            _make_bar(SESSION_OPEN + FIVE_MIN, 12, 13, 11, 12, 300),
            _make_bar(SESSION_OPEN + ONE_DAY, 20, 21, 19, 20, 50),  # tp 20
        ]
        vwap = calculate_vwap(bars)
        assert vwap[2] == pytest.approx(20.0)

    def test_zero_volume_returns_typical_price(self):
        bars = [
            _make_bar(SESSION_OPEN + i * FIVE_MIN, 10 + i, 11 + i, 9 + i, 10.5 + i, 0)
            for i in range(5)
        ]
        expected = [b.typical_price for b in bars]
        assert calculate_vwap(bars) == pytest.approx(expected)

    def test_empty(self):
        assert calculate_vwap([]) == []


class TestVWAPBands:
    def test_band_ordering(self):
        bands = calculate_vwap_bands(_random_bars())
        for i in range(len(bands.vwap)):
            assert bands.lower_band2[i] <= bands.lower_band1[i] <= bands.vwap[i]
            assert bands.vwap[i] <= bands.upper_band1[i] <= bands.upper_band2[i]

    def test_series_lengths(self):
        bars = _random_bars(30)
        bands = calculate_vwap_bands(bars)
        for series in (bands.vwap, bands.upper_band1, bands.lower_band1,
                       bands.upper_band2, bands.lower_band2):
            assert len(series) == len(bars)

    def test_single_bar_collapses(self):
        bands = calculate_vwap_bands([_make_bar(SESSION_OPEN, 10, 11, 9, 10, 500)])
        assert bands.upper_band2[0] == pytest.approx(bands.vwap[0], abs=1e-6)
        assert bands.lower_band2[0] == pytest.approx(bands.vwap[0], abs=1e-6)

    def test_zero_volume_collapses(self):
        bars = [_make_bar(SESSION_OPEN + i * FIVE_MIN, 10, 11, 9, 10, 0) for i in range(3)]
        bands = calculate_vwap_bands(bars)
        assert bands.upper_band1 == bands.vwap == bands.lower_band1

    def test_vwap_matches_plain_vwap(self):
        bars = _random_bars()
        assert calculate_vwap_bands(bars).vwap == pytest.approx(calculate_vwap(bars))


# ── Ribbon ───────────────────────────────────────────────────────────────


class TestEMARibbon:
    def test_rising_prices_bullish(self):
        ribbon = calculate_ema_ribbon([100 + i * 0.5 for i in range(60)])
        assert ribbon.states[-1].color == "bullish"
        assert ribbon.states[-1].strength > 0

    def test_falling_prices_bearish(self):
        ribbon = calculate_ema_ribbon([100 - i * 0.5 for i in range(60)])
        assert ribbon.states[-1].color == "bearish"

    def test_flat_prices_neutral(self):
        ribbon = calculate_ema_ribbon([50.0] * 30)
        assert all(s.color == "neutral" for s in ribbon.states)
        assert ribbon.states[-1].strength == 0.0

    def test_one_state_per_price(self):
        prices = [100 + (i % 5) for i in range(40)]
        ribbon = calculate_ema_ribbon(prices)
        assert len(ribbon.states) == len(prices)
        assert len(ribbon.emas) == len(ribbon.periods)
        assert all(len(e) == len(prices) for e in ribbon.emas)

    def test_strength_capped(self):
        ribbon = calculate_ema_ribbon([1.0 * (1.2 ** i) for i in range(40)])
        assert all(0.0 <= s.strength <= 100.0 for s in ribbon.states)

    def test_empty(self):
        ribbon = calculate_ema_ribbon([])
        assert ribbon.states == []


# ── Volume profile ───────────────────────────────────────────────────────


class TestVolumeProfile:
    def test_bucket_volume_sums_to_total(self):
        bars = _random_bars()
        profile = calculate_volume_profile(bars)
        assert len(profile.buckets) == 24
        assert sum(b.volume for b in profile.buckets) == pytest.approx(sum(b.volume for b in bars))
        assert profile.total_volume == pytest.approx(sum(b.volume for b in bars))

    def test_single_point_of_control(self):
        profile = calculate_volume_profile(_random_bars())
        poc = [b for b in profile.buckets if b.is_poc]
        assert len(poc) == 1
        assert poc[0].volume == max(b.volume for b in profile.buckets)
        assert profile.poc_price == poc[0].price

    def test_value_area_contiguous_and_covers_70pct(self):
        profile = calculate_volume_profile(_random_bars(), level_count=12)
        inside = [i for i, b in enumerate(profile.buckets) if b.in_value_area]
        assert inside == list(range(inside[0], inside[-1] + 1))
        covered = sum(profile.buckets[i].volume for i in inside)
        assert covered >= 0.7 * profile.total_volume
        assert profile.value_area_low <= profile.poc_price <= profile.value_area_high

    def test_buy_sell_split(self):
        bars = [
            _make_bar(SESSION_OPEN, 10, 11, 9, 10.5, 100),  # up bar
            _make_bar(SESSION_OPEN + FIVE_MIN, 10.5, 11, 9, 9.5, 40),  # down bar
        ]
        profile = calculate_volume_profile(bars, level_count=4)
        assert sum(b.buy_volume for b in profile.buckets) == 100
        assert sum(b.sell_volume for b in profile.buckets) == 40

    def test_empty_bars(self):
        assert calculate_volume_profile([]) == VolumeProfile()

    def test_zero_volume_bars(self):
        bars = [_make_bar(SESSION_OPEN + i * FIVE_MIN, 10, 11, 9, 10, 0) for i in range(5)]
        profile = calculate_volume_profile(bars)
        assert profile.total_volume == 0
        assert all(b.volume == 0 for b in profile.buckets)
        assert sum(1 for b in profile.buckets if b.is_poc) == 1

    def test_flat_range_goes_to_first_bucket(self):
        bars = [_make_bar(SESSION_OPEN + i * FIVE_MIN, 10, 10, 10, 10, 50) for i in range(3)]
        profile = calculate_volume_profile(bars, level_count=6)
        assert profile.buckets[0].volume == 150

    def test_invalid_level_count(self):
        with pytest.raises(ValueError):
            calculate_volume_profile(_random_bars(), level_count=0)


# ── Aggregation / bundle ─────────────────────────────────────────────────


class TestAggregateBars:
    def test_merges_one_minute_bars(self):
        one_min = 60 * 1000
        bars = [
            _make_bar(SESSION_OPEN + i * one_min, 10 + i, 11 + i, 9 + i, 10.5 + i, 100)
            for i in range(7)
        ]
        merged = aggregate_bars(bars, 5)
        assert len(merged) == 2
        first = merged[0]
        assert first.time == SESSION_OPEN
        assert first.open == 10
        assert first.high == 15
        assert first.low == 9
        assert first.close == 14.5
        assert first.volume == 500
        assert merged[1].volume == 200

    def test_invalid_minutes(self):
        with pytest.raises(ValueError):
            aggregate_bars([], 0)


class TestIndicatorBundle:
    def test_all_series_aligned(self):
        bars = _random_bars(40)
        bundle = calculate_indicators(bars)
        assert len(bundle.ema9) == len(bundle.ema21) == len(bundle.vwap) == 40
        assert len(bundle.ribbon.states) == 40
