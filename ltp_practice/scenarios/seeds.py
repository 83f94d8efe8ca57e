"""Built-in practice scenario catalog.

Each seed pins the symbol, base price, volatility, levels and the coach's
LTP reasoning; bars are generated from the named setup template.
"""

from dataclasses import dataclass
from typing import Optional

from ltp_practice.analysis.models import KeyLevel
from ltp_practice.scenarios.candles import FIVE_MINUTES_MS, RandomSource
from ltp_practice.scenarios.generator import build_scenario
from ltp_practice.scenarios.models import LTPAnalysis, Scenario, ScorePart


@dataclass(frozen=True)
class SeedScenario:
    title: str
    description: str
    symbol: str
    setup_type: str
    difficulty: str
    focus_area: str
    base_price: float
    volatility: float
    key_levels: tuple[KeyLevel, ...]
    ltp_analysis: LTPAnalysis
    explanation: str
    decision_context: str
    tags: tuple[str, ...]


def _ltp(level: tuple[int, str], trend: tuple[int, str], patience: tuple[int, str]) -> LTPAnalysis:
    return LTPAnalysis(ScorePart(*level), ScorePart(*trend), ScorePart(*patience))


SEED_SCENARIOS: tuple[SeedScenario, ...] = (
    # Beginner
    SeedScenario(
        title="Support Bounce Setup - AAPL",
        description=(
            "Price has pulled back to a clear support level after an uptrend. "
            "Identify the correct action at this key level."
        ),
        symbol="AAPL",
        setup_type="support_bounce",
        difficulty="beginner",
        focus_area="level",
        base_price=185.00,
        volatility=0.4,
        key_levels=(
            KeyLevel(184.50, "Previous Day Low", "support", 85),
            KeyLevel(184.80, "VWAP", "vwap", 70),
            KeyLevel(185.00, "21 EMA", "ema", 60),
        ),
        ltp_analysis=_ltp(
            (85, "Clear PDL support at $184.50 with multiple prior touches"),
            (70, "Above VWAP on daily, pullback within uptrend"),
            (75, "3 candles of consolidation at level showing absorption"),
        ),
        explanation=(
            "A textbook support bounce. The previous day low at $184.50 held, volume "
            "dried up into the level and small-bodied candles showed seller exhaustion. "
            "Long with a stop below $184.45."
        ),
        decision_context="Price testing PDL with decreasing volume and absorption candles",
        tags=("level", "support", "pdl", "beginner", "bounce"),
    ),
    SeedScenario(
        title="Resistance Rejection - MSFT",
        description=(
            "Price rallying into overhead resistance. Determine if this is a short "
            "opportunity or if you should wait."
        ),
        symbol="MSFT",
        setup_type="resistance_rejection",
        difficulty="beginner",
        focus_area="level",
        base_price=377.00,
        volatility=0.35,
        key_levels=(
            KeyLevel(378.00, "Previous Day High", "resistance", 90),
            KeyLevel(376.50, "VWAP", "vwap", 70),
            KeyLevel(378.00, "Round Number", "round_number", 65),
        ),
        ltp_analysis=_ltp(
            (90, "PDH confluence with round number $378 creates strong resistance"),
            (65, "Extended move up, overextended from VWAP"),
            (70, "2 rejection candles forming at resistance"),
        ),
        explanation=(
            "Classic resistance rejection: the previous day high lined up with the $378 "
            "round number, and fading volume with shrinking bodies showed buyers running "
            "out of steam. Short with a stop above $378.15."
        ),
        decision_context="Price approaching PDH with waning momentum and rejection wicks",
        tags=("level", "resistance", "pdh", "beginner", "rejection"),
    ),
    SeedScenario(
        title="VWAP Reclaim Long - NVDA",
        description="Price reclaiming VWAP after morning weakness. Is this a valid long setup?",
        symbol="NVDA",
        setup_type="vwap_reclaim",
        difficulty="beginner",
        focus_area="trend",
        base_price=480.00,
        volatility=0.5,
        key_levels=(
            KeyLevel(480.50, "VWAP", "vwap", 80),
            KeyLevel(480.00, "9 EMA", "ema", 70),
            KeyLevel(478.50, "Morning Low", "support", 75),
        ),
        ltp_analysis=_ltp(
            (80, "VWAP reclaim provides dynamic support"),
            (75, "Higher lows forming, buyers stepping in"),
            (70, "Clean reclaim candle with follow-through"),
        ),
        explanation=(
            "NVDA found support at $478.50 after morning weakness and reclaimed VWAP on "
            "rising volume. Long above $481 with a stop below VWAP."
        ),
        decision_context="Price just reclaimed VWAP with increasing volume",
        tags=("vwap", "reclaim", "trend", "beginner", "momentum"),
    ),
    SeedScenario(
        title="Failed Breakdown Recovery - AMD",
        description="Price broke below support but quickly recovered. What does this tell us?",
        symbol="AMD",
        setup_type="failed_breakdown",
        difficulty="beginner",
        focus_area="level",
        base_price=142.00,
        volatility=0.6,
        key_levels=(
            KeyLevel(141.50, "Key Support", "support", 85),
            KeyLevel(142.00, "VWAP", "vwap", 70),
            KeyLevel(141.00, "$141 Psych Level", "round_number", 60),
        ),
        ltp_analysis=_ltp(
            (85, "Failed breakdown traps shorts, creates fuel for reversal"),
            (80, "V-shaped recovery shows strong buying pressure"),
            (75, "Waited for reclaim above support to confirm"),
        ),
        explanation=(
            "When support breaks and price immediately recovers, shorts are trapped and "
            "their covering fuels the reversal. Wait for the reclaim of the broken level, "
            "then go long."
        ),
        decision_context="Price swept below support and reversed sharply with high volume",
        tags=("failed_breakdown", "reversal", "trap", "beginner", "recovery"),
    ),
    SeedScenario(
        title="Simple Trend Following - SPY",
        description="SPY in a clear uptrend above all major MAs. Is this pullback a buying opportunity?",
        symbol="SPY",
        setup_type="support_bounce",
        difficulty="beginner",
        focus_area="trend",
        base_price=472.00,
        volatility=0.25,
        key_levels=(
            KeyLevel(471.50, "21 EMA", "ema", 80),
            KeyLevel(472.00, "VWAP", "vwap", 75),
            KeyLevel(471.00, "50 SMA", "ema", 70),
        ),
        ltp_analysis=_ltp(
            (80, "21 EMA acting as dynamic support in uptrend"),
            (90, "Clear uptrend with higher highs and higher lows"),
            (75, "Waiting for bounce confirmation at EMA"),
        ),
        explanation=(
            "In a clear uptrend, pullbacks to the 21 EMA are low-risk entries. As long "
            "as price holds above the key moving averages, buying the dip is correct."
        ),
        decision_context="Pullback to 21 EMA in established uptrend",
        tags=("trend", "ema", "pullback", "beginner", "continuation"),
    ),
    SeedScenario(
        title="Patience at the Level - META",
        description="Price reached support but no confirmation yet. Do you enter immediately or wait?",
        symbol="META",
        setup_type="patience_test",
        difficulty="beginner",
        focus_area="patience",
        base_price=354.00,
        volatility=0.4,
        key_levels=(
            KeyLevel(352.50, "Key Support Zone", "support", 85),
            KeyLevel(352.50, "Psychological Level", "round_number", 70),
        ),
        ltp_analysis=_ltp(
            (85, "Good support zone identified at $352.50"),
            (50, "Still in downtrend, no reversal confirmation"),
            (40, "No patience candles yet, momentum still down"),
        ),
        explanation=(
            "The level is valid but nothing confirms a reversal; candles keep making "
            "lower lows. Wait for two or three candles of consolidation or a clear "
            "reversal candle before entering."
        ),
        decision_context="Price at support but still making lower lows, no absorption",
        tags=("patience", "wait", "confirmation", "beginner", "discipline"),
    ),
    SeedScenario(
        title="Clear ORB Breakout - TSLA",
        description="TSLA breaks above the Opening Range High with volume. Is this a valid long entry?",
        symbol="TSLA",
        setup_type="orb_breakout",
        difficulty="beginner",
        focus_area="level",
        base_price=246.00,
        volatility=0.6,
        key_levels=(
            KeyLevel(247.00, "ORB High (First 30 min)", "orb_high", 85),
            KeyLevel(244.00, "ORB Low", "orb_low", 85),
            KeyLevel(246.50, "VWAP", "vwap", 75),
        ),
        ltp_analysis=_ltp(
            (85, "ORB high at $247 clearly defined and respected"),
            (85, "Breaking out with volume confirms bullish momentum"),
            (80, "Waited for clean break and retest"),
        ),
        explanation=(
            "The opening range set the day's boundaries and TSLA broke the $247 high on "
            "50% more volume. Enter on the breakout candle with a stop below the ORB high."
        ),
        decision_context="Clean break above ORB high with strong volume",
        tags=("orb", "breakout", "momentum", "beginner", "opening_range"),
    ),
    SeedScenario(
        title="Below VWAP Weakness - GOOGL",
        description=(
            "GOOGL trading below VWAP all morning. Price attempts to reclaim but fails. "
            "What do you do?"
        ),
        symbol="GOOGL",
        setup_type="below_vwap_short",
        difficulty="beginner",
        focus_area="trend",
        base_price=141.00,
        volatility=0.35,
        key_levels=(
            KeyLevel(141.70, "VWAP", "vwap", 80),
            KeyLevel(141.50, "9 EMA", "ema", 70),
            KeyLevel(140.00, "Morning Low", "support", 75),
        ),
        ltp_analysis=_ltp(
            (80, "VWAP acting as resistance after failed reclaim"),
            (85, "Below VWAP all day, sellers in control"),
            (75, "Waited for failed reclaim confirmation"),
        ),
        explanation=(
            "A failed VWAP reclaim confirms weakness: sellers defended $141.50. Short "
            "below $140.90 with a stop above VWAP, targeting the morning low."
        ),
        decision_context="Failed VWAP reclaim attempt, price rejecting lower",
        tags=("vwap", "below_vwap", "weakness", "beginner", "short"),
    ),
    # Intermediate
    SeedScenario(
        title="Gap Fill Short - NFLX",
        description="NFLX gapped up but struggling to hold. Is this a gap fill short opportunity?",
        symbol="NFLX",
        setup_type="gap_fill",
        difficulty="intermediate",
        focus_area="trend",
        base_price=485.00,
        volatility=0.5,
        key_levels=(
            KeyLevel(485.00, "Gap Open", "gap_top", 75),
            KeyLevel(485.50, "VWAP", "vwap", 70),
            KeyLevel(480.00, "Previous Close (Gap Fill Target)", "previous_close", 85),
        ),
        ltp_analysis=_ltp(
            (80, "Previous close at $480 is the gap fill target"),
            (75, "Below VWAP, making lower highs - gap fading"),
            (70, "Waited for VWAP loss and lower high confirmation"),
        ),
        explanation=(
            "A gap that cannot hold and loses VWAP often fills back to the previous "
            "close. NFLX popped, failed, lost VWAP and ground down toward $480."
        ),
        decision_context="Failed to hold gap, now below VWAP and trending down",
        tags=("gap", "gap_fill", "short", "intermediate", "fade"),
    ),
    SeedScenario(
        title="Trend Exhaustion Warning - COIN",
        description="COIN has rallied 8% and showing signs of exhaustion. Time to short or wait?",
        symbol="COIN",
        setup_type="trend_exhaustion",
        difficulty="intermediate",
        focus_area="patience",
        base_price=150.00,
        volatility=0.8,
        key_levels=(
            KeyLevel(149.00, "VWAP (Far Below)", "vwap", 75),
            KeyLevel(155.00, "1.618 Fib Extension", "extension", 70),
            KeyLevel(155.00, "$155 Psychological", "round_number", 65),
        ),
        ltp_analysis=_ltp(
            (60, "No clear resistance level, just extended"),
            (45, "Still technically uptrend but exhaustion signs"),
            (30, "No reversal confirmation yet, just slowing momentum"),
        ),
        explanation=(
            "Exhaustion is not reversal. Volume and candle size are fading but nothing "
            "has turned; shorting into strength gets stopped out on one more push. Wait "
            "for a reversal pattern or a level rejection."
        ),
        decision_context="Extended 8% from open, volume declining, candles getting smaller",
        tags=("exhaustion", "patience", "wait", "intermediate", "overextended"),
    ),
    # Advanced
    SeedScenario(
        title="The Bear Trap - RIVN",
        description=(
            "RIVN breaks below key support triggering stops, then reverses sharply. "
            "Can you identify the trap?"
        ),
        symbol="RIVN",
        setup_type="bear_trap",
        difficulty="advanced",
        focus_area="level",
        base_price=18.50,
        volatility=1.0,
        key_levels=(
            KeyLevel(18.00, "Key Support (Broken Then Reclaimed)", "support", 85),
            KeyLevel(17.50, "Bear Trap Low", "trap_low", 90),
            KeyLevel(18.20, "VWAP", "vwap", 70),
        ),
        ltp_analysis=_ltp(
            (90, "Bear trap identified - breakdown failed and reversed"),
            (85, "V-shaped recovery with massive volume shows trapped shorts"),
            (80, "Waited for reclaim of broken support to confirm trap"),
        ),
        explanation=(
            "The break below support triggered stops and fresh shorts, then price "
            "reversed at once. Heavy volume on the breakdown and heavier on the recovery "
            "is the tell. Enter above the reclaimed support."
        ),
        decision_context="Sharp reversal after breakdown below $18 support",
        tags=("bear_trap", "trap", "reversal", "advanced", "stop_hunt"),
    ),
    SeedScenario(
        title="The FOMO Test - SMCI",
        description=(
            "SMCI has rallied 15% and social media is buzzing. Everyone is buying. "
            "What do you do?"
        ),
        symbol="SMCI",
        setup_type="trend_exhaustion",
        difficulty="advanced",
        focus_area="patience",
        base_price=50.00,
        volatility=1.2,
        key_levels=(
            KeyLevel(52.00, "No Defined Level", "no_clear_level", 40),
            KeyLevel(49.00, "VWAP (Far Below)", "vwap", 70),
            KeyLevel(54.00, "Potential Extension", "extension", 50),
        ),
        ltp_analysis=_ltp(
            (30, "No clear level to trade against, just chasing momentum"),
            (60, "Uptrend yes, but massively extended from any level"),
            (20, "FOMO setup - no patience, just emotion"),
        ),
        explanation=(
            "A discipline test. There is no level to lean on, price is far above VWAP "
            "and there is zero patience in the setup. Let others chase; missing a move "
            "is not losing money."
        ),
        decision_context="Massive rally, everyone on social media buying, FOMO intense",
        tags=("fomo", "psychology", "discipline", "advanced", "wait"),
    ),
)


def build_seed_scenario(
    seed: SeedScenario,
    rng: Optional[RandomSource] = None,
    interval_ms: int = FIVE_MINUTES_MS,
) -> Scenario:
    """Generate the bars for a catalog entry and wrap them in a ``Scenario``."""
    return build_scenario(
        seed.setup_type,
        symbol=seed.symbol,
        base_price=seed.base_price,
        volatility=seed.volatility,
        difficulty=seed.difficulty,
        focus_area=seed.focus_area,
        key_levels=seed.key_levels,
        rng=rng,
        title=seed.title,
        description=seed.description,
        decision_context=seed.decision_context,
        explanation=seed.explanation,
        ltp_analysis=seed.ltp_analysis,
        tags=seed.tags,
        interval_ms=interval_ms,
    )
