"""Vector store abstractions with a Milvus implementation and an offline store."""

from __future__ import annotations

import math
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Mapping, Sequence

from pymilvus import DataType, MilvusClient, MilvusException

from logic.deadline import effective_timeout
from logic.rule_filter import RuleFilter
from models.records import CLOTHING_RULE_ATTRIBUTES, TEXT_MAX_LENGTH, AttributeField, VectorRecord
from outfit_app.errors import StoreQueryError, StoreWriteError
from outfit_app.logging_config import get_logger
from tools.observability import instrument_call

LOGGER = get_logger(__name__)

METRIC_TYPE = "L2"
INDEX_TYPE = "FLAT"
VECTOR_FIELD = "vector"


class VectorStore(ABC):
    """Collection of (text, vector, attributes) records with filtered ANN search."""

    def __init__(
        self,
        collection_name: str,
        dimension: int,
        attribute_schema: Sequence[AttributeField] = CLOTHING_RULE_ATTRIBUTES,
    ) -> None:
        self.collection_name = collection_name
        self.dimension = dimension
        self.attribute_schema = tuple(attribute_schema)

    def connect(self) -> None:
        """Open the underlying connection. Offline stores need nothing."""

    def close(self) -> None:
        """Release the underlying connection."""

    def __enter__(self) -> "VectorStore":
        self.connect()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @abstractmethod
    def ensure_collection(
        self,
        name: str | None = None,
        dimension: int | None = None,
        attribute_schema: Sequence[AttributeField] | None = None,
    ) -> None:
        """Create the collection and its similarity index if absent."""

    @abstractmethod
    def insert(self, text: str, vector: Sequence[float], attributes: Mapping[str, object]) -> None:
        """Append one record or raise :class:`StoreWriteError`."""

    @abstractmethod
    def search(
        self,
        query_vector: Sequence[float],
        rule_filter: RuleFilter,
        top_k: int = 3,
        timeout: float | None = None,
    ) -> List[str]:
        """Return outfit strings nearest first, restricted by ``rule_filter``."""

    @abstractmethod
    def clear(self, name: str | None = None) -> None:
        """Delete every record in the collection."""

    def insert_record(self, record: VectorRecord) -> None:
        self.insert(record.text, record.vector, record.attributes())

    def _configure(
        self,
        name: str | None,
        dimension: int | None,
        attribute_schema: Sequence[AttributeField] | None,
    ) -> None:
        if name:
            self.collection_name = name
        if dimension:
            self.dimension = dimension
        if attribute_schema:
            self.attribute_schema = tuple(attribute_schema)

    def _validate_record(
        self, text: str, vector: Sequence[float], attributes: Mapping[str, object]
    ) -> Dict[str, object]:
        """Check a record against the schema and return the row to write."""

        if len(vector) != self.dimension:
            raise StoreWriteError(
                f"Vector dimension {len(vector)} does not match collection dimension {self.dimension}"
            )
        if len(text) > TEXT_MAX_LENGTH:
            raise StoreWriteError(f"Record text exceeds {TEXT_MAX_LENGTH} characters")

        row: Dict[str, object] = {"text": text, VECTOR_FIELD: [float(value) for value in vector]}
        for attribute in self.attribute_schema:
            if attribute.name not in attributes:
                raise StoreWriteError(f"Missing attribute '{attribute.name}'")
            value = attributes[attribute.name]
            if attribute.kind == "int32":
                if isinstance(value, bool) or not isinstance(value, int):
                    raise StoreWriteError(f"Attribute '{attribute.name}' must be an integer")
                if not -(2**31) <= value < 2**31:
                    raise StoreWriteError(f"Attribute '{attribute.name}' is out of int32 range")
            else:
                if not isinstance(value, str):
                    raise StoreWriteError(f"Attribute '{attribute.name}' must be a string")
                if attribute.max_length is not None and len(value) > attribute.max_length:
                    raise StoreWriteError(
                        f"Attribute '{attribute.name}' exceeds {attribute.max_length} characters"
                    )
            row[attribute.name] = value
        return row


class MilvusVectorStore(VectorStore):
    """Milvus-backed store with a FLAT index over L2 distance.

    The client handle is created by :meth:`connect` and shared by all callers;
    every call carries a bounded timeout.
    """

    def __init__(
        self,
        uri: str = "http://localhost:19530",
        collection_name: str = "outfit_preferences",
        dimension: int = 768,
        token: str | None = None,
        timeout_seconds: float = 5.0,
        attribute_schema: Sequence[AttributeField] = CLOTHING_RULE_ATTRIBUTES,
    ) -> None:
        super().__init__(collection_name, dimension, attribute_schema)
        self.uri = uri
        self.token = token
        self.timeout_seconds = timeout_seconds
        self._client: MilvusClient | None = None
        self._connect_lock = threading.Lock()

    def connect(self) -> None:
        with self._connect_lock:
            if self._client is not None:
                return
            LOGGER.info("Connecting to Milvus", extra={"uri": self.uri})
            try:
                self._client = MilvusClient(uri=self.uri, token=self.token or "", timeout=self.timeout_seconds)
            except MilvusException as exc:
                raise StoreQueryError(f"Failed to connect to Milvus: {exc}") from exc

    def close(self) -> None:
        with self._connect_lock:
            if self._client is None:
                return
            try:
                self._client.close()
            finally:
                self._client = None

    @property
    def client(self) -> MilvusClient:
        if self._client is None:
            raise StoreQueryError("Milvus client not connected")
        return self._client

    def _build_schema(self):
        schema = self.client.create_schema(auto_id=True, enable_dynamic_field=False)
        schema.add_field(field_name="id", datatype=DataType.INT64, is_primary=True)
        schema.add_field(field_name="text", datatype=DataType.VARCHAR, max_length=TEXT_MAX_LENGTH)
        schema.add_field(field_name=VECTOR_FIELD, datatype=DataType.FLOAT_VECTOR, dim=self.dimension)
        for attribute in self.attribute_schema:
            if attribute.kind == "int32":
                schema.add_field(field_name=attribute.name, datatype=DataType.INT32)
            else:
                schema.add_field(
                    field_name=attribute.name, datatype=DataType.VARCHAR, max_length=attribute.max_length
                )
        return schema

    @instrument_call("vector_store", "ensure_collection")
    def ensure_collection(
        self,
        name: str | None = None,
        dimension: int | None = None,
        attribute_schema: Sequence[AttributeField] | None = None,
    ) -> None:
        self._configure(name, dimension, attribute_schema)
        try:
            if self.client.has_collection(self.collection_name, timeout=self.timeout_seconds):
                return

            index_params = self.client.prepare_index_params()
            index_params.add_index(field_name=VECTOR_FIELD, index_type=INDEX_TYPE, metric_type=METRIC_TYPE)
            self.client.create_collection(
                collection_name=self.collection_name,
                schema=self._build_schema(),
                index_params=index_params,
                timeout=self.timeout_seconds,
            )
        except MilvusException as exc:
            raise StoreWriteError(f"Failed to create collection {self.collection_name}: {exc}") from exc
        LOGGER.info("Created Milvus collection", extra={"collection": self.collection_name})

    @instrument_call("vector_store", "insert")
    def insert(self, text: str, vector: Sequence[float], attributes: Mapping[str, object]) -> None:
        row = self._validate_record(text, vector, attributes)
        try:
            self.client.insert(collection_name=self.collection_name, data=[row], timeout=self.timeout_seconds)
        except MilvusException as exc:
            raise StoreWriteError(f"Failed to insert record: {exc}") from exc

    @instrument_call("vector_store", "search")
    def search(
        self,
        query_vector: Sequence[float],
        rule_filter: RuleFilter,
        top_k: int = 3,
        timeout: float | None = None,
    ) -> List[str]:
        if top_k <= 0:
            return []
        try:
            results = self.client.search(
                collection_name=self.collection_name,
                data=[list(query_vector)],
                filter=rule_filter.to_expression(),
                limit=top_k,
                output_fields=["outfit"],
                search_params={"metric_type": METRIC_TYPE, "params": {}},
                anns_field=VECTOR_FIELD,
                timeout=effective_timeout(self.timeout_seconds, timeout),
            )
        except MilvusException as exc:
            raise StoreQueryError(f"Vector search failed: {exc}") from exc

        hits = [hit for group in results for hit in group]
        hits.sort(key=lambda hit: hit["distance"])
        return [hit["entity"]["outfit"] for hit in hits[:top_k]]

    @instrument_call("vector_store", "clear")
    def clear(self, name: str | None = None) -> None:
        collection = name or self.collection_name
        try:
            if not self.client.has_collection(collection, timeout=self.timeout_seconds):
                return
            # Auto ids are positive int64 values, so this matches every row.
            self.client.delete(collection_name=collection, filter="id >= 0", timeout=self.timeout_seconds)
        except MilvusException as exc:
            raise StoreWriteError(f"Failed to clear collection {collection}: {exc}") from exc


class InMemoryVectorStore(VectorStore):
    """Thread-safe offline store with exact L2 search, for tests and evaluation."""

    def __init__(
        self,
        collection_name: str = "outfit_preferences",
        dimension: int = 768,
        attribute_schema: Sequence[AttributeField] = CLOTHING_RULE_ATTRIBUTES,
    ) -> None:
        super().__init__(collection_name, dimension, attribute_schema)
        self._collections: Dict[str, List[VectorRecord]] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def ensure_collection(
        self,
        name: str | None = None,
        dimension: int | None = None,
        attribute_schema: Sequence[AttributeField] | None = None,
    ) -> None:
        with self._lock:
            self._configure(name, dimension, attribute_schema)
            self._collections.setdefault(self.collection_name, [])

    def _records(self) -> List[VectorRecord]:
        if self.collection_name not in self._collections:
            raise StoreQueryError(f"Collection {self.collection_name} does not exist")
        return self._collections[self.collection_name]

    def insert(self, text: str, vector: Sequence[float], attributes: Mapping[str, object]) -> None:
        row = self._validate_record(text, vector, attributes)
        with self._lock:
            if self.collection_name not in self._collections:
                raise StoreWriteError(f"Collection {self.collection_name} does not exist")
            record = VectorRecord(
                id=self._next_id,
                text=text,
                vector=list(row[VECTOR_FIELD]),  # type: ignore[arg-type]
                **{attribute.name: row[attribute.name] for attribute in self.attribute_schema},
            )
            self._next_id += 1
            self._collections[self.collection_name].append(record)

    @staticmethod
    def _distance(a: Sequence[float], b: Sequence[float]) -> float:
        return math.sqrt(sum((x - y) ** 2 for x, y in zip(a, b)))

    def search(
        self,
        query_vector: Sequence[float],
        rule_filter: RuleFilter,
        top_k: int = 3,
        timeout: float | None = None,
    ) -> List[str]:
        if len(query_vector) != self.dimension:
            raise StoreQueryError(
                f"Query dimension {len(query_vector)} does not match collection dimension {self.dimension}"
            )
        if top_k <= 0:
            return []
        with self._lock:
            candidates = [record for record in self._records() if rule_filter.matches(record.attributes())]
        ranked = sorted(candidates, key=lambda record: self._distance(query_vector, record.vector))
        return [record.outfit for record in ranked[:top_k]]

    def clear(self, name: str | None = None) -> None:
        with self._lock:
            collection = name or self.collection_name
            if collection in self._collections:
                self._collections[collection] = []

    def count(self) -> int:
        with self._lock:
            return len(self._collections.get(self.collection_name, []))


__all__ = ["VectorStore", "MilvusVectorStore", "InMemoryVectorStore", "METRIC_TYPE", "INDEX_TYPE"]
