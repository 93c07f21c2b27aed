"""Evaluation scenarios exercising weather bands, preferences and outages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from models.records import WeatherSnapshot
from outfit_app.errors import WeatherServiceError


@dataclass
class EvaluationScenario:
    name: str
    description: str
    user_input: str
    preference: str
    location: str
    weather: Optional[WeatherSnapshot]
    expectations: Dict[str, object] = field(default_factory=dict)
    weather_error: Optional[Exception] = None


SCENARIOS: List[EvaluationScenario] = [
    EvaluationScenario(
        name="chilly_cloudy_casual",
        description="Cold cloudy morning, casual style; warm layers should be retrieved.",
        user_input="It's chilly today, what should I wear to the office?",
        preference="casual",
        location="Beijing",
        weather=WeatherSnapshot.from_bounds(min_temp=2.0, max_temp=8.0, condition="cloudy"),
        expectations={
            "min_rules": 2,
            "outfit_keywords": ["Wool coat", "Puffer jacket"],
            "forbidden_keywords": ["shorts"],
        },
    ),
    EvaluationScenario(
        name="hot_sunny_formal",
        description="Heatwave with a formal dress code; only hot-weather formal rules apply.",
        user_input="Client meeting this afternoon and it's going to be scorching.",
        preference="formal",
        location="Guangzhou",
        weather=WeatherSnapshot.from_bounds(min_temp=26.0, max_temp=33.0, condition="sunny"),
        expectations={
            "min_rules": 1,
            "max_rules": 1,
            "outfit_keywords": ["dress shirt"],
            "forbidden_keywords": ["overcoat", "parka"],
        },
    ),
    EvaluationScenario(
        name="weather_outage_defaults",
        description="Weather provider down; defaults (15-25°C, sunny) still ground the answer.",
        user_input="What should I wear for a walk in the park?",
        preference="casual",
        location="Shanghai",
        weather=None,
        weather_error=WeatherServiceError("Weather API unreachable"),
        expectations={"min_rules": 3, "degraded": ["weather"], "prompt_keywords": ["sunny", "15-25°C"]},
    ),
    EvaluationScenario(
        name="no_matching_rules",
        description="Snowy day with a sporty preference has no rule; the LLM answers from weather alone.",
        user_input="Going for a run in the snow, any tips?",
        preference="sporty",
        location="Harbin",
        weather=WeatherSnapshot.from_bounds(min_temp=-12.0, max_temp=-4.0, condition="snowy"),
        expectations={"min_rules": 0, "max_rules": 0, "prompt_keywords": ["snowy"]},
    ),
]


__all__ = ["EvaluationScenario", "SCENARIOS"]
