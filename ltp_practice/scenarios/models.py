"""Scenario data models — phases, decision points, generated scenarios."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional

from ltp_practice.analysis.models import Bar, KeyLevel


Action = Literal["long", "short", "wait"]
Difficulty = Literal["beginner", "intermediate", "advanced"]
VolumeShape = Literal["normal", "increasing", "decreasing", "climax"]
PhaseKind = Literal["trend", "consolidation", "range"]

ACTIONS: tuple[str, ...] = ("long", "short", "wait")
DIFFICULTIES: tuple[str, ...] = ("beginner", "intermediate", "advanced")


@dataclass(frozen=True)
class Phase:
    """One named leg of a synthetic price sequence.

    ``target`` is the price a trend phase walks toward, or the centre of a
    consolidation.  ``volatility`` multiplies the scenario volatility.
    """

    name: str
    bars: int
    target: float
    volatility: float = 1.0
    trend_bias: float = 0.6
    volume_shape: VolumeShape = "normal"
    kind: PhaseKind = "trend"
    range_percent: float = 0.3  # consolidation half-swing, % of centre
    volume_multiplier: float = 1.0
    start_price: Optional[float] = None  # only honoured on the first phase
    outcome: bool = False


@dataclass(frozen=True)
class PhaseSpan:
    """Where a generated phase landed in the combined bar sequence."""

    name: str
    start: int
    end: int  # exclusive
    outcome: bool

    def to_dict(self) -> dict:
        return {"name": self.name, "start": self.start, "end": self.end, "outcome": self.outcome}


@dataclass(frozen=True)
class DecisionPoint:
    index: int
    price: float
    time: int
    context: str

    def to_dict(self) -> dict:
        return {"index": self.index, "price": self.price, "time": self.time, "context": self.context}


@dataclass(frozen=True)
class ScorePart:
    score: float
    reason: str

    def to_dict(self) -> dict:
        return {"score": self.score, "reason": self.reason}


@dataclass(frozen=True)
class LTPAnalysis:
    """Level / trend / patience breakdown attached to a scenario."""

    level: ScorePart
    trend: ScorePart
    patience: ScorePart

    def to_dict(self) -> dict:
        return {
            "level": self.level.to_dict(),
            "trend": self.trend.to_dict(),
            "patience": self.patience.to_dict(),
        }


@dataclass(frozen=True)
class ScenarioParams:
    """What the caller asks for when requesting a scenario."""

    symbol: str = "SPY"
    difficulty: Difficulty = "beginner"
    focus_area: str = "all"
    setup_type: Optional[str] = None
    market_context: Optional[str] = None


@dataclass(frozen=True)
class Scenario:
    """A complete practice scenario. Never updated after generation."""

    title: str
    description: str
    symbol: str
    setup_type: str
    difficulty: str
    focus_area: str
    bars: list[Bar]
    key_levels: list[KeyLevel]
    decision_point: DecisionPoint
    correct_action: Action
    outcome_bars: list[Bar]
    ltp_analysis: LTPAnalysis
    explanation: str
    tags: list[str] = field(default_factory=list)
    phases: list[PhaseSpan] = field(default_factory=list)
    market_context: dict[str, str] = field(default_factory=dict)
    source: Literal["narrative", "fallback", "template"] = "template"

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "symbol": self.symbol,
            "setup_type": self.setup_type,
            "difficulty": self.difficulty,
            "focus_area": self.focus_area,
            "bars": [b.to_dict() for b in self.bars],
            "key_levels": [lv.to_dict() for lv in self.key_levels],
            "decision_point": self.decision_point.to_dict(),
            "correct_action": self.correct_action,
            "outcome_bars": [b.to_dict() for b in self.outcome_bars],
            "ltp_analysis": self.ltp_analysis.to_dict(),
            "explanation": self.explanation,
            "tags": list(self.tags),
            "phases": [p.to_dict() for p in self.phases],
            "market_context": dict(self.market_context),
            "source": self.source,
        }
