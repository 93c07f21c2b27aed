"""Weather provider abstractions and the QWeather implementation."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, List

import requests
from pydantic import BaseModel, ValidationError as PydanticValidationError

from logic.deadline import effective_timeout
from models.records import WeatherSnapshot
from outfit_app.errors import WeatherServiceError
from tools.observability import instrument_call


LOGGER = logging.getLogger(__name__)

CITY_IDS: Dict[str, str] = {
    "Beijing": "101010100",
    "Shanghai": "101020100",
    "Guangzhou": "101280101",
    "Shenzhen": "101280601",
    "Hangzhou": "101210101",
    "Nanjing": "101190101",
    "Wuhan": "101200101",
    "Chengdu": "101270101",
    "Chongqing": "101040100",
    "Xi'an": "101110101",
}

# Provider condition text (English or Chinese) -> rule vocabulary.
CONDITION_ALIASES: Dict[str, str] = {
    "sunny": "sunny",
    "clear": "sunny",
    "晴": "sunny",
    "晴天": "sunny",
    "cloudy": "cloudy",
    "partly cloudy": "cloudy",
    "few clouds": "cloudy",
    "overcast": "cloudy",
    "多云": "cloudy",
    "阴": "cloudy",
    "少云": "cloudy",
    "晴间多云": "cloudy",
    "rain": "rainy",
    "rainy": "rainy",
    "light rain": "rainy",
    "moderate rain": "rainy",
    "heavy rain": "rainy",
    "shower rain": "rainy",
    "thundershower": "rainy",
    "小雨": "rainy",
    "中雨": "rainy",
    "大雨": "rainy",
    "阵雨": "rainy",
    "雷阵雨": "rainy",
    "snow": "snowy",
    "snowy": "snowy",
    "light snow": "snowy",
    "moderate snow": "snowy",
    "heavy snow": "snowy",
    "小雪": "snowy",
    "中雪": "snowy",
    "大雪": "snowy",
    "雨夹雪": "snowy",
    "haze": "hazy",
    "fog": "hazy",
    "霾": "hazy",
    "雾": "hazy",
}


def normalize_condition(text: str) -> str:
    """Map provider condition text onto the vocabulary used by clothing rules."""

    cleaned = text.strip()
    return CONDITION_ALIASES.get(cleaned.lower(), CONDITION_ALIASES.get(cleaned, cleaned.lower()))


class _DailyForecast(BaseModel):
    tempMax: float
    tempMin: float
    textDay: str


class _ForecastResponse(BaseModel):
    code: str
    daily: List[_DailyForecast] = []


class WeatherProvider(ABC):
    """Abstract weather provider interface."""

    @abstractmethod
    def get_weather(self, location: str, timeout: float | None = None) -> WeatherSnapshot:
        """Return the forecast for ``location`` or raise :class:`WeatherServiceError`."""


class QWeatherProvider(WeatherProvider):
    """QWeather 3-day forecast client with schema validation.

    Failures are raised as :class:`WeatherServiceError`; the caller owns the
    fallback policy.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = "https://api.qweather.com/v7",
        timeout_seconds: float = 5.0,
        city_ids: Dict[str, str] | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.city_ids = city_ids if city_ids is not None else CITY_IDS

    def resolve_location(self, location: str) -> str:
        # Unknown names go to the API unchanged, which also accepts raw IDs.
        return self.city_ids.get(location, location)

    @instrument_call("weather", "get_weather")
    def get_weather(self, location: str, timeout: float | None = None) -> WeatherSnapshot:
        if not location:
            raise WeatherServiceError("location is required for weather lookups")
        if not self.api_key:
            raise WeatherServiceError("WEATHER_API_TOKEN not set")

        LOGGER.info("Fetching weather forecast", extra={"location": location})
        params = {"location": self.resolve_location(location), "key": self.api_key, "lang": "en"}
        url = f"{self.base_url}/weather/3d"

        try:
            response = requests.get(url, params=params, timeout=effective_timeout(self.timeout_seconds, timeout))
        except requests.Timeout as exc:
            raise WeatherServiceError(f"Weather API timed out: {exc}") from exc
        except requests.RequestException as exc:
            raise WeatherServiceError(f"Weather API unreachable: {exc}") from exc
        except ValueError as exc:
            raise WeatherServiceError(f"Invalid weather request: {exc}") from exc

        if response.status_code != 200:
            raise WeatherServiceError(f"Weather API request failed with status {response.status_code}")

        try:
            parsed = _ForecastResponse.model_validate(response.json())
        except (ValueError, PydanticValidationError) as exc:
            raise WeatherServiceError(f"Weather payload schema validation failed: {exc}") from exc

        if parsed.code != "200":
            raise WeatherServiceError(f"Weather API request failed with code {parsed.code}")
        if not parsed.daily:
            raise WeatherServiceError("No daily weather data")

        today = parsed.daily[0]
        return WeatherSnapshot.from_bounds(
            min_temp=today.tempMin,
            max_temp=today.tempMax,
            condition=normalize_condition(today.textDay),
        )


class MockWeatherProvider(WeatherProvider):
    """Offline deterministic weather provider for tests."""

    def __init__(self, snapshot: WeatherSnapshot | None = None, error: Exception | None = None) -> None:
        self.snapshot = snapshot or WeatherSnapshot.from_bounds(min_temp=12.0, max_temp=18.0, condition="sunny")
        self.error = error
        self.calls: List[str] = []

    def get_weather(self, location: str, timeout: float | None = None) -> WeatherSnapshot:
        LOGGER.info("Returning mock forecast", extra={"location": location})
        self.calls.append(location)
        if self.error is not None:
            raise self.error
        return self.snapshot


__all__ = [
    "CITY_IDS",
    "MockWeatherProvider",
    "QWeatherProvider",
    "WeatherProvider",
    "normalize_condition",
]
