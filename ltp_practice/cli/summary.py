"""CLI summary — prints a generated scenario to the console."""

from ltp_practice.scenarios.models import Scenario


def print_scenario_summary(scenario: Scenario) -> str:
    """Format and print a one-screen summary of a scenario.

    Returns:
        The formatted string (also printed to stdout).
    """
    dp = scenario.decision_point
    ltp = scenario.ltp_analysis
    first = scenario.bars[0].open if scenario.bars else None
    last = scenario.outcome_bars[-1].close if scenario.outcome_bars else None

    first_str = f"${first:,.2f}" if first is not None else "N/A"
    last_str = f"${last:,.2f}" if last is not None else "N/A"

    lines = [
        "──────────────── LTP Practice Scenario ────────────────",
        f"  Title:           {scenario.title}",
        f"  Symbol:          {scenario.symbol}",
        f"  Setup:           {scenario.setup_type} ({scenario.source})",
        f"  Difficulty:      {scenario.difficulty} / focus {scenario.focus_area}",
        f"  Bars:            {len(scenario.bars)} ({len(scenario.outcome_bars)} outcome)",
        f"  Open → Outcome:  {first_str} → {last_str}",
        f"  Decision:        bar {dp.index} @ ${dp.price:,.2f}",
        f"  Correct Action:  {scenario.correct_action}",
        f"  Level:           {ltp.level.score:.0f}  {ltp.level.reason}",
        f"  Trend:           {ltp.trend.score:.0f}  {ltp.trend.reason}",
        f"  Patience:        {ltp.patience.score:.0f}  {ltp.patience.reason}",
    ]
    for level in scenario.key_levels:
        lines.append(f"    {level.price:>10,.2f}  {level.label} [{level.level_type}, {level.strength}]")
    lines.append("───────────────────────────────────────────────────────")

    output = "\n".join(lines)
    print(output)
    return output
