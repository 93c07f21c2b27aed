"""Typed errors raised across the recommendation pipeline.

Collaborators (embedding, vector store, weather, LLM) always raise one of the
``ServiceError`` subclasses. Only the orchestrator decides whether a failure is
masked with a default or surfaced to the caller.
"""

from __future__ import annotations


class OutfitRecommenderError(Exception):
    """Base class for every error raised by the outfit recommender."""


class ValidationError(OutfitRecommenderError):
    """Caller input was rejected before any upstream call was made."""


class ServiceError(OutfitRecommenderError):
    """An upstream collaborator failed."""

    service = "upstream"


class EmbeddingServiceError(ServiceError):
    service = "embedding"


class StoreQueryError(ServiceError):
    service = "vector_store"


class StoreWriteError(ServiceError):
    service = "vector_store"


class WeatherServiceError(ServiceError):
    service = "weather"


class LLMServiceError(ServiceError):
    service = "llm"


class RecommendationError(OutfitRecommenderError):
    """The pipeline could not produce a recommendation."""


class DeadlineExceeded(RecommendationError):
    """The caller's deadline expired or the request was cancelled."""


__all__ = [
    "OutfitRecommenderError",
    "ValidationError",
    "ServiceError",
    "EmbeddingServiceError",
    "StoreQueryError",
    "StoreWriteError",
    "WeatherServiceError",
    "LLMServiceError",
    "RecommendationError",
    "DeadlineExceeded",
]
