"""Grounded prompt assembly for the recommendation LLM call."""

from __future__ import annotations

from typing import List, Sequence

from models.records import WeatherSnapshot

INSTRUCTION = (
    "Provide a personalized outfit recommendation based on the question, the weather "
    "and the rules above. Explain your reasoning in plain natural language, as a stylist "
    "would, and do not repeat the rules verbatim."
)


def format_weather(weather: WeatherSnapshot) -> str:
    return (
        f"{weather.condition}, {weather.min_temp:.0f}-{weather.max_temp:.0f}°C "
        f"(average {weather.avg_temp:.1f}°C)"
    )


def render_prompt(user_input: str, weather: WeatherSnapshot, rules: Sequence[str]) -> str:
    """Combine the question, the forecast and retrieved rules into one prompt.

    Rules keep their ranked order. An empty rule list still produces a valid
    prompt so the model can answer from the weather and question alone.
    """

    lines: List[str] = []
    lines.append(f"User question: {user_input.strip()}")
    lines.append("")
    lines.append(f"Current weather: {format_weather(weather)}")
    lines.append("")
    lines.append("Relevant clothing rules:")
    lines.extend(rules)
    lines.append("")
    lines.append(INSTRUCTION)
    return "\n".join(lines)


__all__ = ["INSTRUCTION", "format_weather", "render_prompt"]
