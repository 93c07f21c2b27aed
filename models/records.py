"""Vector records, weather snapshots and request/response shapes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional

TEXT_MAX_LENGTH = 1000
WEATHER_MAX_LENGTH = 50
PREFERENCE_MAX_LENGTH = 50
OUTFIT_MAX_LENGTH = 500


@dataclass(frozen=True)
class AttributeField:
    """A filterable scalar column stored next to each vector."""

    name: str
    kind: Literal["int32", "varchar"]
    max_length: Optional[int] = None


CLOTHING_RULE_ATTRIBUTES = (
    AttributeField("temperature_min", "int32"),
    AttributeField("temperature_max", "int32"),
    AttributeField("weather", "varchar", WEATHER_MAX_LENGTH),
    AttributeField("preference", "varchar", PREFERENCE_MAX_LENGTH),
    AttributeField("outfit", "varchar", OUTFIT_MAX_LENGTH),
)


@dataclass
class VectorRecord:
    text: str
    vector: List[float]
    temperature_min: int = 0
    temperature_max: int = 0
    weather: str = ""
    preference: str = ""
    outfit: str = ""
    id: Optional[int] = None

    def attributes(self) -> Dict[str, object]:
        return {
            "temperature_min": self.temperature_min,
            "temperature_max": self.temperature_max,
            "weather": self.weather,
            "preference": self.preference,
            "outfit": self.outfit,
        }


@dataclass(frozen=True)
class WeatherSnapshot:
    """Forecast summary used to filter rules and ground the prompt."""

    avg_temp: float
    max_temp: float
    min_temp: float
    condition: str

    @classmethod
    def from_bounds(cls, min_temp: float, max_temp: float, condition: str) -> "WeatherSnapshot":
        return cls(
            avg_temp=(min_temp + max_temp) / 2,
            max_temp=max_temp,
            min_temp=min_temp,
            condition=condition,
        )


DEFAULT_WEATHER = WeatherSnapshot.from_bounds(min_temp=15.0, max_temp=25.0, condition="sunny")


@dataclass(frozen=True)
class RecommendationRequest:
    user_input: str
    preference: str = "casual"
    location: str = ""


@dataclass(frozen=True)
class RecommendationResult:
    text: str
    rules_used: List[str] = field(default_factory=list)
    weather: Optional[WeatherSnapshot] = None
    degraded: List[str] = field(default_factory=list)


__all__ = [
    "AttributeField",
    "CLOTHING_RULE_ATTRIBUTES",
    "DEFAULT_WEATHER",
    "OUTFIT_MAX_LENGTH",
    "PREFERENCE_MAX_LENGTH",
    "RecommendationRequest",
    "RecommendationResult",
    "TEXT_MAX_LENGTH",
    "VectorRecord",
    "WEATHER_MAX_LENGTH",
    "WeatherSnapshot",
]
