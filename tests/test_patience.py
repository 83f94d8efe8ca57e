"""Tests for ltp_practice.analysis.patience — candle shapes and patience scoring."""

import pytest

from ltp_practice.analysis.models import Bar, KeyLevel
from ltp_practice.analysis.patience import (
    PatienceConfig,
    calculate_patience_score,
    classify_candle,
    detect_patience_candles,
    has_patience_confirmation,
    is_near_level,
    round_half_up,
)

SESSION_OPEN = 1704898800000
FIVE_MIN = 5 * 60 * 1000

SUPPORT = KeyLevel(price=100.0, label="Support", level_type="support", strength=80)
FAR_LEVEL = KeyLevel(price=120.0, label="Far", level_type="resistance", strength=80)


def _bar(o: float, h: float, l: float, c: float, i: int = 0) -> Bar:
    return Bar(time=SESSION_OPEN + i * FIVE_MIN, open=o, high=h, low=l, close=c, volume=50_000)


def _doji(i: int = 0) -> Bar:
    return _bar(100, 100.5, 99.5, 100.02, i)


def _regular(i: int = 0, base: float = 110.0) -> Bar:
    return _bar(base, base + 1.1, base - 0.1, base + 1, i)


# ── Candle shapes ────────────────────────────────────────────────────────


class TestClassifyCandle:
    @pytest.mark.parametrize(
        "ohlc,expected",
        [
            ((100, 100.5, 99.5, 100.02), "doji"),
            ((100, 100.25, 99.3, 100.2), "hammer"),
            ((100.2, 100.9, 99.95, 100), "inverted_hammer"),
            ((100, 100.5, 99.7, 100.2), "spinning_top"),
            ((100, 100.25, 99.65, 100.2), "small_body"),
            ((100, 101.1, 99.9, 101), "regular"),
        ],
    )
    def test_shapes(self, ohlc, expected):
        assert classify_candle(_bar(*ohlc)).pattern == expected

    def test_zero_range_is_not_doji(self):
        shape = classify_candle(_bar(100, 100, 100, 100))
        assert shape.pattern != "doji"
        assert shape.body_percent == 0.0

    def test_wicks_measured_from_body(self):
        shape = classify_candle(_bar(100, 100.25, 99.3, 100.2))
        assert shape.upper_wick == pytest.approx(0.05)
        assert shape.lower_wick == pytest.approx(0.7)


class TestIsNearLevel:
    def test_midpoint_within_proximity(self):
        near, distance = is_near_level(_bar(100.1, 100.3, 100.1, 100.2), SUPPORT, 0.3)
        assert near
        assert distance == pytest.approx(0.2)

    def test_straddle_counts(self):
        near, _ = is_near_level(_bar(101, 101.5, 99.9, 101.2), SUPPORT, 0.3)
        assert near

    def test_far(self):
        near, _ = is_near_level(_regular(), SUPPORT, 0.3)
        assert not near


# ── Detection ────────────────────────────────────────────────────────────


class TestDetectPatienceCandles:
    def test_doji_at_level_confidence(self):
        signals = detect_patience_candles([_doji()], [SUPPORT])
        assert len(signals) == 1
        # 0.4 * 100 (zero distance) + 0.6 * 95
        assert signals[0].confidence == 97
        assert signals[0].pattern_type == "doji"
        assert "Support" in signals[0].description

    def test_one_signal_per_candle(self):
        second = KeyLevel(price=100.1, label="Second", level_type="support", strength=70)
        signals = detect_patience_candles([_doji()], [SUPPORT, second])
        assert len(signals) == 1
        assert signals[0].level == SUPPORT

    def test_regular_candles_ignored(self):
        assert detect_patience_candles([_bar(99.5, 100.6, 99.4, 100.5)], [SUPPORT]) == []

    def test_candle_away_from_levels_ignored(self):
        assert detect_patience_candles([_doji()], [FAR_LEVEL]) == []

    def test_only_recent_bars_scanned(self):
        bars = [_doji(0)] + [_regular(i) for i in range(1, 12)]
        assert detect_patience_candles(bars, [SUPPORT]) == []

    def test_lookback_is_configurable(self):
        bars = [_doji(0)] + [_regular(i) for i in range(1, 12)]
        signals = detect_patience_candles(bars, [SUPPORT], PatienceConfig(lookback_bars=12))
        assert [s.bar_index for s in signals] == [0]

    def test_sorted_by_confidence(self):
        small_body = _bar(100, 100.25, 99.65, 100.2, 1)
        bars = [small_body, _doji(2)]
        signals = detect_patience_candles(bars, [SUPPORT])
        confidences = [s.confidence for s in signals]
        assert confidences == sorted(confidences, reverse=True)
        assert signals[0].pattern_type == "doji"

    def test_empty_inputs(self):
        assert detect_patience_candles([], [SUPPORT]) == []
        assert detect_patience_candles([_doji()], []) == []


class TestPatienceConfirmation:
    def test_confirmed_with_strong_candle(self):
        confirmed, candles, summary = has_patience_confirmation([_doji()], [SUPPORT])
        assert confirmed
        assert len(candles) == 1
        assert summary.startswith("doji pattern detected at Support with 97% confidence")

    def test_threshold_filters_weaker_candles(self):
        bars = [_bar(100, 100.25, 99.65, 100.2, 0), _doji(1)]
        confirmed, candles, _ = has_patience_confirmation(bars, [SUPPORT], min_confidence=90)
        assert confirmed
        assert [c.pattern_type for c in candles] == ["doji"]

    def test_not_confirmed(self):
        confirmed, candles, summary = has_patience_confirmation([_regular()], [SUPPORT])
        assert not confirmed
        assert candles == []
        assert "No patience candle" in summary


class TestPatienceScore:
    def test_no_candles_scores_30(self):
        result = calculate_patience_score([_regular()], [SUPPORT])
        assert result.score == 30
        assert result.candles == []

    def test_recent_strong_candle_capped(self):
        result = calculate_patience_score([_doji()], [SUPPORT])
        assert result.score == 100
        assert result.reason.startswith("Strong patience confirmation")

    def test_old_candle_has_no_recency_bonus(self):
        bars = [_doji(0)] + [_regular(i) for i in range(1, 6)]
        result = calculate_patience_score(bars, [SUPPORT])
        assert result.score == 97

    def test_score_within_bounds(self):
        bars = [_doji(i) for i in range(5)]
        result = calculate_patience_score(bars, [SUPPORT])
        assert 0 <= result.score <= 100
        assert len(result.candles) == 5

    def test_half_point_average_rounds_up(self):
        spinning_top = _bar(100, 100.5, 99.5, 100.2, 0)  # confidence 91
        small_body = _bar(100.05, 100.3, 99.7, 100.25, 1)  # confidence 82
        bars = [spinning_top, small_body] + [_regular(i) for i in range(2, 5)]
        result = calculate_patience_score(bars, [SUPPORT])
        assert sorted(c.confidence for c in result.candles) == [82, 91]
        # (91 + 82) / 2 + 10 multiple-test bonus
        assert result.score == 97


class TestRoundHalfUp:
    @pytest.mark.parametrize(
        "value,expected",
        [(96.5, 97), (0.5, 1), (2.5, 3), (96.49, 96), (96.51, 97), (-0.5, 0)],
    )
    def test_ties_go_up(self, value, expected):
        assert round_half_up(value) == expected
