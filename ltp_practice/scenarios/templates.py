"""Named setup templates — the phase choreography behind each scenario type.

Every template is an ordered list of 3-5 phases whose targets are
percentage offsets from the base price and from the setup's key level.
Phases flagged ``outcome`` play out after the trade would be taken and
are what the learner is graded against.  The non-outcome phases cover at
least the first ``floor(0.7 * total) + 1`` bars, so every outcome bar comes
after the decision bar.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable

from ltp_practice.scenarios.models import Action, Phase

logger = logging.getLogger("ltp_practice")

DEFAULT_SETUP = "support_bounce"


@dataclass(frozen=True)
class SetupTemplate:
    """A named setup: how to build its phases and how to grade it."""

    name: str
    title: str
    description: str
    correct_action: Action
    trade_direction: str  # "long" or "short"; the side the chart tempts
    level_label: str
    level_type: str
    level_strength: int
    default_level: Callable[[float], float]
    build_phases: Callable[[float, float], list[Phase]]
    decision_context: str
    explanation: str
    tags: tuple[str, ...] = field(default_factory=tuple)
    accepts_level: bool = True  # False: the level is derived from the base price only

    def level_price(self, base_price: float, key_level: float | None = None) -> float:
        if key_level is None or not self.accepts_level:
            return self.default_level(base_price)
        return key_level

    def phases(self, base_price: float, key_level: float | None = None) -> list[Phase]:
        level = self.level_price(base_price, key_level)
        return self.build_phases(base_price, level)


# ── Phase builders ───────────────────────────────────────────────────────


def _support_bounce(base: float, level: float) -> list[Phase]:
    return [
        Phase("initial uptrend", 30, base * 1.02),
        Phase("pullback to support", 35, level + base * 0.002, volume_shape="decreasing"),
        Phase("consolidation at support", 15, level + base * 0.003,
              volatility=0.6, kind="consolidation", range_percent=0.3),
        Phase("bounce", 20, base * 1.015, volume_shape="increasing", outcome=True),
    ]


def _resistance_rejection(base: float, level: float) -> list[Phase]:
    return [
        Phase("initial ranging", 25, base, start_price=base * 0.98),
        Phase("rally toward resistance", 40, level - base * 0.002, volume_shape="increasing"),
        Phase("test of resistance", 15, level - base * 0.003,
              volatility=0.7, kind="consolidation", range_percent=0.3),
        Phase("rejection", 20, base * 0.99, volume_shape="increasing", outcome=True),
    ]


def _vwap_reclaim(base: float, level: float) -> list[Phase]:
    return [
        Phase("open above VWAP", 15, base * 1.01, start_price=base * 1.005),
        Phase("morning weakness", 30, level - base * 0.015,
              volatility=1.2, volume_shape="increasing"),
        Phase("base building", 20, level - base * 0.01,
              volatility=0.7, kind="consolidation", range_percent=0.4),
        Phase("reclaim of VWAP", 15, level + base * 0.003, volume_shape="increasing"),
        Phase("continuation", 20, base * 1.02, outcome=True),
    ]


def _failed_breakdown(base: float, level: float) -> list[Phase]:
    return [
        Phase("drift down to support", 48, level + base * 0.005, start_price=base * 1.01),
        Phase("breakdown", 10, level - base * 0.015, volatility=1.5, volume_shape="climax"),
        Phase("sharp reversal", 13, level + base * 0.005, volatility=1.3, volume_shape="climax"),
        Phase("short squeeze", 17, base * 1.03, volume_shape="decreasing", outcome=True),
        Phase("consolidation at highs", 12, base * 1.03,
              volatility=0.6, kind="consolidation", range_percent=0.3, outcome=True),
    ]


def _failed_breakout(base: float, level: float) -> list[Phase]:
    return [
        Phase("rally to resistance", 48, level - base * 0.005, start_price=base * 0.99),
        Phase("breakout", 10, level + base * 0.015, volatility=1.5, volume_shape="climax"),
        Phase("sharp reversal", 13, level - base * 0.005, volatility=1.3, volume_shape="climax"),
        Phase("flush lower", 17, base * 0.97, volume_shape="decreasing", outcome=True),
        Phase("consolidation at lows", 12, base * 0.97,
              volatility=0.6, kind="consolidation", range_percent=0.3, outcome=True),
    ]


def _orb_breakout(base: float, level: float) -> list[Phase]:
    return [
        Phase("opening range", 12, base, volatility=1.2, kind="range", volume_multiplier=1.5),
        Phase("consolidation inside range", 40, base * 1.002,
              volatility=0.7, kind="consolidation", range_percent=0.5),
        Phase("range breakout", 19, level * 1.005, volume_shape="increasing"),
        Phase("continuation", 17, base * 1.025, outcome=True),
        Phase("profit taking", 12, base * 1.018,
              volatility=0.8, volume_shape="decreasing", outcome=True),
    ]


def _patience_test(base: float, level: float) -> list[Phase]:
    return [
        Phase("downtrend", 45, level + base * 0.005, start_price=base * 1.02),
        Phase("approach without confirmation", 26, level - base * 0.01,
              volatility=0.8, volume_shape="decreasing"),
        Phase("eventual bounce", 29, base, outcome=True),
    ]


def _gap_fill(base: float, level: float) -> list[Phase]:
    gap_open = base * 1.01
    return [
        Phase("gap open pop", 12, gap_open * 1.01,
              volatility=1.3, volume_shape="climax", start_price=gap_open),
        Phase("fade", 35, gap_open * 0.995),
        Phase("loss of VWAP", 24, base * 0.995, volume_shape="increasing"),
        Phase("gap fill", 17, level * 1.002, volume_shape="decreasing", outcome=True),
        Phase("bounce off gap fill", 12, base, volatility=0.8, outcome=True),
    ]


def _trend_exhaustion(base: float, level: float) -> list[Phase]:
    return [
        Phase("strong rally", 40, base * 1.02,
              volatility=1.1, volume_shape="increasing", start_price=base * 0.92),
        Phase("exhaustion", 20, level, volatility=0.6, volume_shape="decreasing"),
        Phase("topping", 15, level * 0.995,
              volatility=0.5, kind="consolidation", range_percent=0.4),
        Phase("breakdown", 25, base * 0.99,
              volatility=1.2, volume_shape="increasing", outcome=True),
    ]


def _below_vwap_short(base: float, level: float) -> list[Phase]:
    return [
        Phase("weak open below VWAP", 18, base * 0.99, start_price=base * 0.995),
        Phase("failed reclaim attempt", 35, level - base * 0.002),
        Phase("rejection from VWAP", 18, base * 0.985, volume_shape="increasing"),
        Phase("continuation lower", 17, base * 0.97, outcome=True),
        Phase("consolidation", 12, base * 0.97,
              volatility=0.7, kind="consolidation", range_percent=0.4, outcome=True),
    ]


# ── Registry ─────────────────────────────────────────────────────────────


SETUP_TEMPLATES: dict[str, SetupTemplate] = {
    t.name: t
    for t in (
        SetupTemplate(
            name="support_bounce",
            title="Support Bounce",
            description="Price pulls back into a well-defined support level after an uptrend.",
            correct_action="long",
            trade_direction="long",
            level_label="Key Support",
            level_type="support",
            level_strength=85,
            default_level=lambda base: base * 0.98,
            build_phases=_support_bounce,
            decision_context=(
                "Price has pulled back to support and is basing with shrinking volume. "
                "What is your move?"
            ),
            explanation=(
                "The uptrend is intact, price is holding a tested support level and "
                "the candles at the level show sellers drying up. Long with a stop "
                "below support."
            ),
            tags=("support", "pullback", "trend-continuation"),
        ),
        SetupTemplate(
            name="resistance_rejection",
            title="Resistance Rejection",
            description="Price rallies into overhead resistance and stalls.",
            correct_action="short",
            trade_direction="short",
            level_label="Key Resistance",
            level_type="resistance",
            level_strength=85,
            default_level=lambda base: base * 1.02,
            build_phases=_resistance_rejection,
            decision_context="Price is testing resistance after a steady rally. What is your move?",
            explanation=(
                "Price stalled under resistance and printed rejection candles. The "
                "level is doing its job; short with a stop above resistance."
            ),
            tags=("resistance", "rejection", "reversal"),
        ),
        SetupTemplate(
            name="vwap_reclaim",
            title="VWAP Reclaim",
            description="After early weakness, price builds a base and pushes back over VWAP.",
            correct_action="long",
            trade_direction="long",
            level_label="VWAP",
            level_type="vwap",
            level_strength=90,
            default_level=lambda base: base,
            build_phases=_vwap_reclaim,
            decision_context="Price just pushed back above VWAP after basing below it. What is your move?",
            explanation=(
                "Sellers failed to extend the morning low and buyers reclaimed VWAP "
                "on rising volume. Long on the reclaim with VWAP as the line in the sand."
            ),
            tags=("vwap", "reclaim", "reversal"),
        ),
        SetupTemplate(
            name="failed_breakdown",
            title="Failed Breakdown (Bear Trap)",
            description="Support breaks on a volume spike, then price snaps right back above it.",
            correct_action="long",
            trade_direction="long",
            level_label="Key Support (Broken Then Reclaimed)",
            level_type="support",
            level_strength=85,
            default_level=lambda base: base * 0.985,
            build_phases=_failed_breakdown,
            decision_context=(
                "Support broke, shorts piled in, and price is already back above the "
                "level. What is your move?"
            ),
            explanation=(
                "The breakdown had no follow-through and price reclaimed support fast. "
                "Trapped shorts fuel the squeeze; long with a stop under the trap low."
            ),
            tags=("trap", "support", "squeeze"),
        ),
        SetupTemplate(
            name="failed_breakout",
            title="False Breakout Trap",
            description="Price pokes above resistance on a volume spike, then falls back into range.",
            correct_action="short",
            trade_direction="short",
            level_label="Key Resistance (Broken Then Lost)",
            level_type="resistance",
            level_strength=85,
            default_level=lambda base: base * 1.015,
            build_phases=_failed_breakout,
            decision_context=(
                "The breakout above resistance just reversed back under the level. "
                "What is your move?"
            ),
            explanation=(
                "Buyers who chased the breakout are now trapped below resistance. "
                "Short the failed breakout with a stop above the spike high."
            ),
            tags=("trap", "resistance", "false-breakout"),
        ),
        SetupTemplate(
            name="orb_breakout",
            title="Opening Range Breakout",
            description="Price coils inside the opening range and then breaks the high.",
            correct_action="long",
            trade_direction="long",
            level_label="ORB High",
            level_type="orb_high",
            level_strength=80,
            default_level=lambda base: base * 1.008,
            build_phases=_orb_breakout,
            decision_context="Price is pressing through the opening-range high. What is your move?",
            explanation=(
                "A tight consolidation inside the opening range resolved upward on "
                "expanding volume. Long the break with the range high as support."
            ),
            tags=("orb", "breakout", "momentum"),
            accepts_level=False,
        ),
        SetupTemplate(
            name="patience_test",
            title="Patience at the Level",
            description="Price slides into support but no patience candle has printed yet.",
            correct_action="wait",
            trade_direction="long",
            level_label="Key Support Zone",
            level_type="support",
            level_strength=85,
            default_level=lambda base: base * 0.98,
            build_phases=_patience_test,
            decision_context=(
                "Price is at support but still printing full-bodied red candles. "
                "What is your move?"
            ),
            explanation=(
                "The level is there but the confirmation is not. Without a patience "
                "candle the trend is still down; wait for the level to prove itself."
            ),
            tags=("patience", "support", "discipline"),
        ),
        SetupTemplate(
            name="gap_fill",
            title="Gap Fill Short",
            description="A gap up fades, loses VWAP, and heads back toward the prior close.",
            correct_action="short",
            trade_direction="short",
            level_label="Previous Close (Gap Fill Target)",
            level_type="gap_low",
            level_strength=85,
            default_level=lambda base: base * 0.98,
            build_phases=_gap_fill,
            decision_context="The opening gap is fading and price just lost VWAP. What is your move?",
            explanation=(
                "The gap could not hold, VWAP flipped to resistance and the prior "
                "close is an obvious magnet. Short toward the gap fill."
            ),
            tags=("gap", "vwap", "fade"),
            accepts_level=False,
        ),
        SetupTemplate(
            name="trend_exhaustion",
            title="Trend Exhaustion Warning",
            description="A parabolic rally stretches far above VWAP while volume dries up.",
            correct_action="wait",
            trade_direction="long",
            level_label="Extension High",
            level_type="extension",
            level_strength=70,
            default_level=lambda base: base * 1.05,
            build_phases=_trend_exhaustion,
            decision_context=(
                "The stock is up big, far extended from VWAP, and stalling. "
                "What is your move?"
            ),
            explanation=(
                "Chasing an extended move far from any level is a FOMO trade. There is "
                "no level to lean on; wait for a pullback to VWAP or a real setup."
            ),
            tags=("exhaustion", "fomo", "discipline"),
            accepts_level=False,
        ),
        SetupTemplate(
            name="below_vwap_short",
            title="Below VWAP Weakness",
            description="Price opens weak, fails to reclaim VWAP, and rolls over.",
            correct_action="short",
            trade_direction="short",
            level_label="VWAP",
            level_type="vwap",
            level_strength=90,
            default_level=lambda base: base,
            build_phases=_below_vwap_short,
            decision_context="Price was just rejected from VWAP from below. What is your move?",
            explanation=(
                "Every push into VWAP has been sold and lower highs keep forming. "
                "Short the rejection with VWAP as the stop reference."
            ),
            tags=("vwap", "trend-continuation", "short"),
        ),
    )
}

SETUP_ALIASES: dict[str, str] = {
    "bear_trap": "failed_breakdown",
    "bull_trap": "failed_breakout",
}


def get_template(name: str | None) -> SetupTemplate:
    """Look up a setup template by name or alias.

    Unknown or missing names fall back to ``support_bounce``.
    """
    key = SETUP_ALIASES.get(name or "", name or "")
    template = SETUP_TEMPLATES.get(key)
    if template is None:
        if name:
            logger.info("Unknown setup type '%s', using %s", name, DEFAULT_SETUP)
        return SETUP_TEMPLATES[DEFAULT_SETUP]
    return template
