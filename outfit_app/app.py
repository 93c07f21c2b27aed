"""Application container wiring the recommender and its collaborators."""

from __future__ import annotations

import logging

from agents.orchestrator import RecommendationOrchestrator
from agents.rule_ingestor import IngestionReport, RuleIngestor
from logic.deadline import Deadline
from models.clothing_rule import load_rules
from models.records import CLOTHING_RULE_ATTRIBUTES, RecommendationResult
from outfit_app.config import AppConfig
from outfit_app.errors import OutfitRecommenderError
from outfit_app.logging_config import configure_logging, get_logger, log_event
from tools.embeddings import EmbeddingClient, HashingEmbeddingClient, HttpEmbeddingClient
from tools.llm_client import LLMClient, OpenAILLMClient
from tools.vector_store import MilvusVectorStore, VectorStore
from tools.weather_provider import QWeatherProvider, WeatherProvider


LOGGER = get_logger(__name__)


class OutfitRecommenderApp:
    """Owns the service clients and exposes the recommendation entry points.

    Collaborators can be injected for tests; otherwise they are built from
    :class:`AppConfig`. The vector store connection is opened by
    :meth:`connect` and released by :meth:`close`, never at import time.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        store: VectorStore | None = None,
        embedder: EmbeddingClient | None = None,
        weather_provider: WeatherProvider | None = None,
        llm: LLMClient | None = None,
    ) -> None:
        self.config = config or AppConfig.from_env()
        configure_logging()

        self.embedder = embedder or self._build_embedder()
        self.store = store or MilvusVectorStore(
            uri=self.config.milvus_uri,
            collection_name=self.config.collection_name,
            dimension=self.config.embedding_dimension,
            token=self.config.milvus_token,
            timeout_seconds=self.config.store_timeout_seconds,
        )
        self.weather_provider = weather_provider or QWeatherProvider(
            api_key=self.config.weather_api_key,
            base_url=self.config.weather_base_url,
            timeout_seconds=self.config.weather_timeout_seconds,
        )
        self.llm = llm or OpenAILLMClient(
            api_key=self.config.llm_api_key,
            base_url=self.config.llm_base_url,
            model=self.config.llm_model,
            timeout_seconds=self.config.llm_timeout_seconds,
        )
        self.ingestor = RuleIngestor(embedder=self.embedder, store=self.store)
        self.orchestrator = RecommendationOrchestrator(
            weather_provider=self.weather_provider,
            embedder=self.embedder,
            store=self.store,
            llm=self.llm,
            top_k=self.config.top_k,
            default_preference=self.config.default_preference,
            default_location=self.config.default_location,
        )

    def _build_embedder(self) -> EmbeddingClient:
        if self.config.embedding_backend == "hashing":
            return HashingEmbeddingClient(dimension=self.config.embedding_dimension)
        return HttpEmbeddingClient(
            url=self.config.embedding_url,
            dimension=self.config.embedding_dimension,
            timeout_seconds=self.config.embedding_timeout_seconds,
        )

    def connect(self) -> None:
        """Open the store connection and make sure the rule collection exists."""

        self.store.connect()
        self.store.ensure_collection(
            self.config.collection_name, self.config.embedding_dimension, CLOTHING_RULE_ATTRIBUTES
        )

    def close(self) -> None:
        self.store.close()

    def __enter__(self) -> "OutfitRecommenderApp":
        self.connect()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def load_rules(self, path: str | None = None, clear: bool = False) -> IngestionReport:
        """Ingest the static rule file into the vector store."""

        rules = load_rules(path or self.config.rules_path)
        if clear:
            self.store.clear(self.config.collection_name)
        return self.ingestor.ingest(rules)

    def recommend(
        self,
        user_input: str | None,
        preference: str | None = None,
        location: str | None = None,
        deadline: Deadline | None = None,
    ) -> RecommendationResult:
        """Run the pipeline under the configured request deadline unless one is given."""

        return self.orchestrator.recommend(
            user_input,
            preference,
            location,
            deadline=deadline or Deadline.after(self.config.request_deadline_seconds),
        )

    def remember(self, user_input: str, result: RecommendationResult, preference: str = "") -> bool:
        """Store an answered question as a preference record; failures are logged only."""

        try:
            self.ingestor.store_preference(user_input, result.text, preference or self.config.default_preference)
        except OutfitRecommenderError as exc:
            log_event(LOGGER, level=logging.WARNING, event="preference_store_failed", reason=str(exc))
            return False
        return True


__all__ = ["OutfitRecommenderApp"]
