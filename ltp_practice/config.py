"""LTP Practice — application configuration.

Loads .env variables into a typed config object.
Validates variable values on startup.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv


_NARRATIVE_PROVIDERS = ("anthropic", "fallback")


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    narrative_provider: str  # "anthropic" or "fallback"
    anthropic_api_key: str
    narrative_model: str
    narrative_timeout_seconds: float
    log_level: str
    api_port: int
    scenario_timeframe_minutes: int

    @property
    def narrative_enabled(self) -> bool:
        """Return True when an external narrative call can be attempted."""
        return self.narrative_provider == "anthropic" and bool(self.anthropic_api_key)


def _parse_number(name: str, default: str, cast):
    raw = os.environ.get(name, default)
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"Invalid value for {name}: {raw!r}") from None


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` with a message naming the offending variable when
    a value cannot be parsed or is not one of the allowed choices.
    """
    load_dotenv(dotenv_path=env_path)

    provider = os.environ.get("NARRATIVE_PROVIDER", "anthropic").strip().lower()
    if provider not in _NARRATIVE_PROVIDERS:
        raise ValueError(
            f"Invalid value for NARRATIVE_PROVIDER: {provider!r} "
            f"(expected one of: {', '.join(_NARRATIVE_PROVIDERS)})"
        )

    timeframe = _parse_number("SCENARIO_TIMEFRAME_MINUTES", "5", int)
    if timeframe <= 0:
        raise ValueError("SCENARIO_TIMEFRAME_MINUTES must be positive")

    return Config(
        narrative_provider=provider,
        anthropic_api_key=os.environ.get("ANTHROPIC_API_KEY", ""),
        narrative_model=os.environ.get("NARRATIVE_MODEL", "claude-sonnet-4-20250514"),
        narrative_timeout_seconds=_parse_number("NARRATIVE_TIMEOUT_SECONDS", "30", float),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        api_port=_parse_number("API_PORT", "8080", int),
        scenario_timeframe_minutes=timeframe,
    )
