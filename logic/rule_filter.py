"""Hard constraints applied to rule retrieval before similarity ranking."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Mapping

from models.records import WeatherSnapshot


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


@dataclass(frozen=True)
class RuleFilter:
    """Temperature overlap plus exact weather and preference match.

    A rule applies when its ``[temperature_min, temperature_max]`` band
    overlaps the forecast ``[min_temp, max_temp]`` range.
    """

    min_temp: float
    max_temp: float
    weather: str
    preference: str

    @classmethod
    def for_weather(cls, weather: WeatherSnapshot, preference: str) -> "RuleFilter":
        return cls(
            min_temp=weather.min_temp,
            max_temp=weather.max_temp,
            weather=weather.condition,
            preference=preference,
        )

    @property
    def upper_bound(self) -> int:
        # Rule bounds are integers, so flooring/ceiling keeps the comparison exact.
        return math.floor(self.max_temp)

    @property
    def lower_bound(self) -> int:
        return math.ceil(self.min_temp)

    def to_expression(self) -> str:
        """Render the Milvus boolean expression for this filter."""

        return (
            f"temperature_min <= {self.upper_bound} and temperature_max >= {self.lower_bound} "
            f"and weather == {_quote(self.weather)} and preference == {_quote(self.preference)}"
        )

    def matches(self, attributes: Mapping[str, object]) -> bool:
        """Evaluate the filter locally against a record's attributes."""

        return (
            int(attributes.get("temperature_min", 0)) <= self.upper_bound
            and int(attributes.get("temperature_max", 0)) >= self.lower_bound
            and attributes.get("weather") == self.weather
            and attributes.get("preference") == self.preference
        )


__all__ = ["RuleFilter"]
