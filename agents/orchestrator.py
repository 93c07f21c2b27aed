"""Recommendation orchestrator: weather, rule retrieval, grounded prompt, LLM."""

from __future__ import annotations

import logging
from typing import Dict, List, Tuple, Type

from logic.deadline import Deadline
from logic.prompt import render_prompt
from logic.rule_filter import RuleFilter
from logic.validation import validate_request
from models.records import DEFAULT_WEATHER, RecommendationResult, WeatherSnapshot
from outfit_app.errors import (
    EmbeddingServiceError,
    LLMServiceError,
    RecommendationError,
    ServiceError,
    StoreQueryError,
    WeatherServiceError,
)
from outfit_app.logging_config import get_logger, log_event, operation_context
from tools.embeddings import EmbeddingClient
from tools.llm_client import LLMClient
from tools.vector_store import VectorStore
from tools.weather_provider import WeatherProvider


LOGGER = get_logger(__name__)

# Which upstream failures are masked with a default and which end the request.
FAILURE_POLICY: Dict[Type[ServiceError], str] = {
    WeatherServiceError: "mask",
    EmbeddingServiceError: "mask",
    StoreQueryError: "mask",
    LLMServiceError: "propagate",
}


class RecommendationOrchestrator:
    """Runs the sequential recommendation pipeline for one request.

    The orchestrator holds no per-request state, so one instance can serve
    concurrent requests as long as its collaborators are thread-safe.
    """

    def __init__(
        self,
        weather_provider: WeatherProvider,
        embedder: EmbeddingClient,
        store: VectorStore,
        llm: LLMClient,
        top_k: int = 3,
        default_preference: str = "casual",
        default_location: str = "Shanghai",
        default_weather: WeatherSnapshot = DEFAULT_WEATHER,
    ) -> None:
        self.weather_provider = weather_provider
        self.embedder = embedder
        self.store = store
        self.llm = llm
        self.top_k = top_k
        self.default_preference = default_preference
        self.default_location = default_location
        self.default_weather = default_weather

    @staticmethod
    def _masked(exc: ServiceError) -> bool:
        for error_type, policy in FAILURE_POLICY.items():
            if isinstance(exc, error_type):
                return policy == "mask"
        return False

    def _fetch_weather(self, location: str, deadline: Deadline) -> Tuple[WeatherSnapshot, bool]:
        deadline.check("weather lookup")
        try:
            return self.weather_provider.get_weather(location, timeout=deadline.remaining()), False
        except WeatherServiceError as exc:
            if not self._masked(exc):
                raise
            log_event(
                LOGGER,
                level=logging.WARNING,
                event="weather_fallback",
                reason=str(exc),
                min_temp=self.default_weather.min_temp,
                max_temp=self.default_weather.max_temp,
                condition=self.default_weather.condition,
            )
            return self.default_weather, True

    def _retrieve_rules(
        self, user_input: str, rule_filter: RuleFilter, deadline: Deadline
    ) -> Tuple[List[str], bool]:
        try:
            deadline.check("query embedding")
            vector = self.embedder.embed_one(user_input, timeout=deadline.remaining())
            deadline.check("rule search")
            return self.store.search(vector, rule_filter, self.top_k, timeout=deadline.remaining()), False
        except (EmbeddingServiceError, StoreQueryError) as exc:
            if not self._masked(exc):
                raise
            log_event(
                LOGGER,
                level=logging.WARNING,
                event="rule_retrieval_fallback",
                reason=str(exc),
                error_type=type(exc).__name__,
            )
            return [], True

    def recommend(
        self,
        user_input: str | None,
        preference: str | None = None,
        location: str | None = None,
        deadline: Deadline | None = None,
    ) -> RecommendationResult:
        """Produce a grounded outfit recommendation.

        Raises ``ValidationError`` for empty input and ``RecommendationError``
        when the LLM fails or the deadline runs out. Weather and retrieval
        failures degrade to defaults instead.
        """

        request = validate_request(
            user_input,
            preference,
            location,
            default_preference=self.default_preference,
            default_location=self.default_location,
        )
        deadline = deadline or Deadline()

        with operation_context("agent:orchestrator.recommend") as correlation_id:
            log_event(
                LOGGER,
                level=logging.INFO,
                event="recommendation_started",
                correlation_id=correlation_id,
                preference=request.preference,
                location=request.location,
            )
            degraded: List[str] = []

            weather, weather_degraded = self._fetch_weather(request.location, deadline)
            if weather_degraded:
                degraded.append("weather")

            rule_filter = RuleFilter.for_weather(weather, request.preference)
            rules, rules_degraded = self._retrieve_rules(request.user_input, rule_filter, deadline)
            if rules_degraded:
                degraded.append("rules")

            prompt = render_prompt(request.user_input, weather, rules)

            deadline.check("LLM call")
            try:
                text = self.llm.complete(prompt, timeout=deadline.remaining())
            except LLMServiceError as exc:
                log_event(
                    LOGGER,
                    level=logging.ERROR,
                    event="recommendation_failed",
                    correlation_id=correlation_id,
                    reason=str(exc),
                )
                raise RecommendationError(f"Failed to generate recommendation: {exc}") from exc
            if not text or not text.strip():
                raise RecommendationError("LLM returned an empty recommendation")

            log_event(
                LOGGER,
                level=logging.INFO,
                event="recommendation_completed",
                correlation_id=correlation_id,
                rule_count=len(rules),
                condition=weather.condition,
                degraded=degraded,
            )
            return RecommendationResult(text=text, rules_used=rules, weather=weather, degraded=degraded)


__all__ = ["FAILURE_POLICY", "RecommendationOrchestrator"]
