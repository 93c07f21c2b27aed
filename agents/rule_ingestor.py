"""Rule ingestor that embeds clothing rules into the vector store."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from models.clothing_rule import ClothingRule
from models.records import OUTFIT_MAX_LENGTH, PREFERENCE_MAX_LENGTH, TEXT_MAX_LENGTH, VectorRecord
from outfit_app.errors import EmbeddingServiceError, StoreWriteError
from outfit_app.logging_config import get_logger, log_event, operation_context
from tools.embeddings import EmbeddingClient
from tools.vector_store import VectorStore

logger = get_logger(__name__)


@dataclass
class IngestionReport:
    inserted: int = 0
    failures: List[Dict[str, str]] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)


class RuleIngestor:
    """Stores each rule as embedded text plus filterable structured fields."""

    def __init__(self, embedder: EmbeddingClient, store: VectorStore) -> None:
        self.embedder = embedder
        self.store = store

    def record_for_rule(self, rule: ClothingRule) -> VectorRecord:
        text = rule.describe()
        return VectorRecord(
            text=text,
            vector=self.embedder.embed_one(text),
            temperature_min=rule.temperature_min,
            temperature_max=rule.temperature_max,
            weather=rule.weather,
            preference=rule.preference,
            outfit=rule.outfit,
        )

    def ingest(self, rules: Sequence[ClothingRule]) -> IngestionReport:
        """Embed and insert every rule, skipping the ones that fail.

        Re-running ingestion inserts duplicates; callers clear the collection
        first when they need a fresh index.
        """

        with operation_context("agent:rule_ingestor.ingest") as correlation_id:
            report = IngestionReport()
            for rule in rules:
                try:
                    self.store.insert_record(self.record_for_rule(rule))
                except (EmbeddingServiceError, StoreWriteError) as exc:
                    logger.error(
                        "Failed to store clothing rule",
                        extra={"rule": rule.describe(), "error": str(exc), "correlation_id": correlation_id},
                    )
                    report.failures.append({"rule": rule.describe(), "reason": str(exc)})
                    continue
                report.inserted += 1

            log_event(
                logger,
                level=logging.INFO,
                event="rules_ingested",
                correlation_id=correlation_id,
                ingested=report.inserted,
                failed=report.failed,
            )
            return report

    def store_preference(self, user_input: str, recommendation: str, preference: str = "") -> None:
        """Remember a question and its answer as a searchable record.

        Raises :class:`EmbeddingServiceError` or :class:`StoreWriteError`.
        """

        text = f"User preference: {user_input} | Recommended outfit: {recommendation}"[:TEXT_MAX_LENGTH]
        record = VectorRecord(
            text=text,
            vector=self.embedder.embed_one(text),
            preference=preference[:PREFERENCE_MAX_LENGTH],
            outfit=recommendation[:OUTFIT_MAX_LENGTH],
        )
        self.store.insert_record(record)
        log_event(logger, level=logging.INFO, event="preference_stored", preference=preference)


__all__ = ["IngestionReport", "RuleIngestor"]
