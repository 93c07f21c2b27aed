"""Embedding clients: the remote batch service and a deterministic offline helper."""

from __future__ import annotations

import hashlib
import re
from abc import ABC, abstractmethod
from typing import Iterable, List, Sequence

import requests
from pydantic import BaseModel, ValidationError as PydanticValidationError

from logic.deadline import effective_timeout
from outfit_app.errors import EmbeddingServiceError
from outfit_app.logging_config import get_logger
from tools.observability import instrument_call

LOGGER = get_logger(__name__)


class _EmbeddingResponse(BaseModel):
    embeddings: List[List[float]]


class EmbeddingClient(ABC):
    """Turns texts into fixed-length vectors, one per text, in input order."""

    dimension: int

    @abstractmethod
    def embed(self, texts: Sequence[str], timeout: float | None = None) -> List[List[float]]:
        """Return one embedding per input text."""

    def embed_one(self, text: str, timeout: float | None = None) -> List[float]:
        return self.embed([text], timeout=timeout)[0]


def _check_count(texts: Sequence[str], vectors: List[List[float]]) -> List[List[float]]:
    if len(vectors) != len(texts):
        raise EmbeddingServiceError(
            f"Embedding service returned {len(vectors)} vectors for {len(texts)} texts"
        )
    return vectors


class HttpEmbeddingClient(EmbeddingClient):
    """Client for the batch embedding endpoint (``POST {"texts": [...]}``)."""

    def __init__(
        self,
        url: str = "http://localhost:8000/embed",
        dimension: int = 768,
        timeout_seconds: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.url = url
        self.dimension = dimension
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    @instrument_call("embedding", "embed")
    def embed(self, texts: Sequence[str], timeout: float | None = None) -> List[List[float]]:
        if not texts:
            return []

        try:
            response = self.session.post(
                self.url,
                json={"texts": list(texts)},
                timeout=effective_timeout(self.timeout_seconds, timeout),
            )
            response.raise_for_status()
            parsed = _EmbeddingResponse.model_validate(response.json())
        except requests.Timeout as exc:
            raise EmbeddingServiceError(f"Embedding request timed out: {exc}") from exc
        except requests.RequestException as exc:
            raise EmbeddingServiceError(f"Embedding request failed: {exc}") from exc
        except (ValueError, PydanticValidationError) as exc:
            raise EmbeddingServiceError(f"Malformed embedding payload: {exc}") from exc

        return _check_count(texts, parsed.embeddings)


class HashingEmbeddingClient(EmbeddingClient):
    """Creates repeatable embeddings with a hashed bag-of-words scheme.

    Used for offline runs and tests where no embedding service is available.
    """

    def __init__(self, dimension: int = 768) -> None:
        if dimension <= 0:
            raise ValueError("Embedding dimension must be positive")
        self.dimension = dimension

    @staticmethod
    def _tokenise(text: str) -> List[str]:
        return [token for token in re.split(r"[^\w]+", text.lower()) if token]

    def _hash_to_index(self, token: str) -> int:
        digest = hashlib.sha256(token.encode("utf-8")).digest()
        return int.from_bytes(digest[:4], "big") % self.dimension

    def _accumulate_tokens(self, tokens: Iterable[str]) -> List[float]:
        vector = [0.0] * self.dimension
        for token in tokens:
            idx = self._hash_to_index(token)
            vector[idx] += 1.0
        return vector

    def text_embedding(self, text: str) -> List[float]:
        if not text:
            return [0.0] * self.dimension
        return self._accumulate_tokens(self._tokenise(text))

    def embed(self, texts: Sequence[str], timeout: float | None = None) -> List[List[float]]:
        return _check_count(texts, [self.text_embedding(text) for text in texts])


__all__ = ["EmbeddingClient", "HashingEmbeddingClient", "HttpEmbeddingClient"]
