"""Narrative collaborators — optional LLM enrichment for generated scenarios.

A narrative generator turns a prompt into descriptive scenario fields
(title, levels, price-action description, LTP reasoning).  It never
produces bars.  ``FallbackNarrativeGenerator`` is the no-network
implementation: it always returns ``None`` so the caller takes the
deterministic path.
"""

import json
import logging
from typing import Optional, Protocol

import httpx

from ltp_practice.config import Config
from ltp_practice.scenarios.models import ScenarioParams

logger = logging.getLogger("ltp_practice")

ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
MAX_TOKENS = 2048

SCENARIO_PROMPT = """You are an expert LTP (Level, Trend, Patience) trading coach creating practice scenarios for students.

Generate a realistic but fictional market scenario that tests the student's ability to identify valid trading setups using the LTP framework.

LTP Framework Scoring:
- LEVEL (35%): Is price at a key support/resistance level? (PDH/PDL, VWAP, ORB, round numbers, etc.)
- TREND (35%): Is the trade aligned with the trend? (EMA stacking, higher highs/lows, VWAP position)
- PATIENCE (30%): Is there confirmation? (Doji, hammer, multiple tests, volume patterns)

PARAMETERS:
- Symbol: {symbol}
- Difficulty: {difficulty}
- Focus Area: {focus_area}
- Setup Type: {setup_type}
- Market Context: {market_context}

DIFFICULTY GUIDELINES:
- Beginner: Clear setups with obvious LTP confluence (80%+ setup), 1-2 key levels
- Intermediate: Good setups requiring analysis (60-80% setup), 2-3 competing levels
- Advanced: Subtle setups or traps (40-60% or trap scenarios), multiple conflicting signals

Price data is generated separately; describe the setup only.

OUTPUT FORMAT (JSON only, no markdown):
{{
  "title": "SPY Support Bounce at PDL",
  "description": "Price approaching yesterday's low with potential bounce setup",
  "scenarioType": "reversal",
  "marketContext": {{
    "spyTrend": "bullish",
    "vixLevel": "14.5 - low volatility",
    "sectorPerformance": "Tech +0.5%, Financials flat",
    "premarketAction": "Flat, testing support"
  }},
  "basePrice": 450.00,
  "keyLevels": [
    {{"price": 449.20, "label": "PDL", "type": "pdl", "strength": 85}},
    {{"price": 450.50, "label": "VWAP", "type": "vwap", "strength": 80}}
  ],
  "priceAction": {{
    "trend": "downtrend into support",
    "volatility": "moderate",
    "pattern": "falling wedge into PDL"
  }},
  "decisionContext": "Price testing PDL for third time, small body candle forming",
  "correctAction": "long",
  "ltpAnalysis": {{
    "level": {{"score": 88, "reason": "Testing PDL with multiple touches"}},
    "trend": {{"score": 65, "reason": "Short-term downtrend but higher timeframe bullish"}},
    "patience": {{"score": 82, "reason": "Doji at PDL shows sellers exhausting"}}
  }},
  "explanation": "Valid long setup at PDL. Entry on break above doji high with stop below PDL."
}}"""


class NarrativeGenerator(Protocol):
    """Turns a prompt into a parsed JSON object, or ``None`` when unavailable."""

    async def generate(self, prompt: str) -> Optional[dict]: ...


def build_prompt(params: ScenarioParams) -> str:
    return SCENARIO_PROMPT.format(
        symbol=params.symbol,
        difficulty=params.difficulty,
        focus_area=params.focus_area,
        setup_type=params.setup_type or "any",
        market_context=params.market_context or "neutral",
    )


def extract_json_object(text: str) -> dict:
    """Parse the outermost ``{...}`` span of *text*.

    Raises ``ValueError`` when there is no object or it does not parse.
    """
    start = text.find("{")
    end = text.rfind("}")
    if start < 0 or end <= start:
        raise ValueError("No JSON object found in narrative response")

    data = json.loads(text[start:end + 1])
    if not isinstance(data, dict):
        raise ValueError("Narrative response is not a JSON object")
    return data


class AnthropicNarrativeGenerator:
    """One-shot Anthropic Messages API call.  No retries; errors propagate."""

    def __init__(self, api_key: str, model: str, timeout: float = 30.0) -> None:
        self._model = model
        self._timeout = timeout
        self._headers = {
            "x-api-key": api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }

    async def generate(self, prompt: str) -> Optional[dict]:
        payload = {
            "model": self._model,
            "max_tokens": MAX_TOKENS,
            "messages": [{"role": "user", "content": prompt}],
        }

        async with httpx.AsyncClient() as client:
            resp = await client.post(
                ANTHROPIC_API_URL,
                headers=self._headers,
                json=payload,
                timeout=self._timeout,
            )
        resp.raise_for_status()

        blocks = resp.json().get("content", [])
        text = "".join(b.get("text", "") for b in blocks if b.get("type") == "text")
        if not text:
            raise ValueError("Narrative response contained no text")

        return extract_json_object(text)


class FallbackNarrativeGenerator:
    """Never calls out; forces the deterministic scenario path."""

    async def generate(self, prompt: str) -> Optional[dict]:
        return None


def build_narrative_generator(config: Config) -> NarrativeGenerator:
    """Pick the narrative generator the configuration asks for.

    A missing API key selects the fallback even when the provider is
    ``anthropic``.
    """
    if config.narrative_enabled:
        return AnthropicNarrativeGenerator(
            api_key=config.anthropic_api_key,
            model=config.narrative_model,
            timeout=config.narrative_timeout_seconds,
        )

    if config.narrative_provider == "anthropic":
        logger.warning("ANTHROPIC_API_KEY not set, narrative generation disabled")
    return FallbackNarrativeGenerator()
