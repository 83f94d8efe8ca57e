"""Analysis data models — typed value objects shared by the engine modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional


RibbonColor = Literal["bullish", "bearish", "neutral"]
LevelTimeframe = Literal["daily", "intraday", "weekly"]
PatternType = Literal[
    "doji", "hammer", "inverted_hammer", "spinning_top", "small_body", "regular",
]


@dataclass(frozen=True)
class Bar:
    """A single OHLCV bar.

    Precondition (not validated): ``low <= min(open, close) <= max(open, close) <= high``
    and sequences are ordered by non-decreasing ``time``.
    """

    time: int  # epoch milliseconds
    open: float
    high: float
    low: float
    close: float
    volume: int

    @property
    def typical_price(self) -> float:
        return (self.high + self.low + self.close) / 3

    def to_dict(self) -> dict:
        """Return the compact ``{t, o, h, l, c, v}`` wire form."""
        return {
            "t": self.time,
            "o": self.open,
            "h": self.high,
            "l": self.low,
            "c": self.close,
            "v": self.volume,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Bar:
        return cls(
            time=int(data["t"]),
            open=float(data["o"]),
            high=float(data["h"]),
            low=float(data["l"]),
            close=float(data["c"]),
            volume=int(data.get("v", 0)),
        )


@dataclass(frozen=True)
class KeyLevel:
    """A price level of interest (support, resistance, VWAP, ...)."""

    price: float
    label: str
    level_type: str  # e.g. "pdh", "orb_high", "vwap", "round_number"
    strength: int  # 0-100
    timeframe: LevelTimeframe = "intraday"

    def to_dict(self) -> dict:
        return {
            "price": self.price,
            "label": self.label,
            "type": self.level_type,
            "strength": self.strength,
            "timeframe": self.timeframe,
        }


# ── Indicator outputs ────────────────────────────────────────────────────


@dataclass(frozen=True)
class RibbonState:
    """Classification of the EMA ribbon at one bar."""

    color: RibbonColor
    strength: float  # 0-100
    top_value: float
    bottom_value: float
    expanding: bool
    contracting: bool


@dataclass(frozen=True)
class RibbonData:
    """Per-period EMA series plus one ``RibbonState`` per bar."""

    emas: list[list[float]]
    states: list[RibbonState]
    periods: tuple[int, ...]


@dataclass(frozen=True)
class VWAPBands:
    """VWAP with ±1σ and ±2σ bands, one value per bar in every series."""

    vwap: list[float]
    upper_band1: list[float]
    lower_band1: list[float]
    upper_band2: list[float]
    lower_band2: list[float]


@dataclass(frozen=True)
class VolumeBucket:
    """One equal-width price bucket of a volume profile."""

    price_low: float
    price_high: float
    price: float  # bucket midpoint
    volume: float
    buy_volume: float
    sell_volume: float
    is_poc: bool = False
    in_value_area: bool = False


@dataclass(frozen=True)
class VolumeProfile:
    """Volume distribution by price with point of control and value area."""

    buckets: list[VolumeBucket] = field(default_factory=list)
    poc_price: float = 0.0
    value_area_high: float = 0.0
    value_area_low: float = 0.0
    total_volume: float = 0.0


@dataclass(frozen=True)
class IndicatorBundle:
    """Indicators for one bar sequence, all aligned 1:1 with the bars."""

    ema9: list[float]
    ema21: list[float]
    vwap: list[float]
    vwap_bands: VWAPBands
    ribbon: RibbonData


# ── Scoring outputs ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class LevelProximity:
    """Result of checking whether a price sits at a key level."""

    at_level: bool
    level: Optional[KeyLevel]
    distance: float  # percent; ``inf`` when no level matched


@dataclass(frozen=True)
class LevelScore:
    score: float
    reason: str
    nearest_level: Optional[KeyLevel]


@dataclass(frozen=True)
class PatienceSignal:
    """A patience candle detected near a key level."""

    bar_index: int
    timestamp: int
    pattern_type: PatternType
    level: KeyLevel
    confidence: int  # 0-100
    description: str

    def to_dict(self) -> dict:
        return {
            "bar_index": self.bar_index,
            "timestamp": self.timestamp,
            "pattern_type": self.pattern_type,
            "level": self.level.to_dict(),
            "confidence": self.confidence,
            "description": self.description,
        }


@dataclass(frozen=True)
class PatienceScore:
    score: int
    reason: str
    candles: list[PatienceSignal]


@dataclass(frozen=True)
class TrendScore:
    score: int
    reason: str
    structure: Optional[str]  # "uptrend", "downtrend", "range" or None


@dataclass(frozen=True)
class LTPScore:
    """Weighted Level / Trend / Patience grade for a setup."""

    level: float
    trend: float
    patience: float
    overall: int
    grade: str
