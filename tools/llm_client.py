"""LLM clients for OpenAI-compatible chat completion endpoints."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List

import openai
from openai import OpenAI

from logic.deadline import effective_timeout
from outfit_app.errors import LLMServiceError
from outfit_app.logging_config import get_logger
from tools.observability import instrument_call

LOGGER = get_logger(__name__)


class LLMClient(ABC):
    @abstractmethod
    def complete(self, prompt: str, timeout: float | None = None) -> str:
        """Send a single user-role prompt and return the generated text."""


class OpenAILLMClient(LLMClient):
    """Single-turn chat completions against an OpenAI-compatible API (DeepSeek by default)."""

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://api.deepseek.com/v1",
        model: str = "deepseek-chat",
        timeout_seconds: float = 30.0,
        client: Any | None = None,
    ) -> None:
        self.model = model
        self.timeout_seconds = timeout_seconds
        self._api_key = api_key
        self._base_url = base_url
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            if not self._api_key:
                raise LLMServiceError("DEEPSEEK_API_KEY not set")
            self._client = OpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=self.timeout_seconds,
                max_retries=0,
            )
        return self._client

    @instrument_call("llm", "complete")
    def complete(self, prompt: str, timeout: float | None = None) -> str:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                timeout=effective_timeout(self.timeout_seconds, timeout),
            )
        except openai.APITimeoutError as exc:
            raise LLMServiceError(f"LLM request timed out: {exc}") from exc
        except openai.OpenAIError as exc:
            raise LLMServiceError(f"LLM request failed: {exc}") from exc

        if not response.choices:
            raise LLMServiceError("LLM returned no choices")
        content = response.choices[0].message.content or ""
        if not content.strip():
            raise LLMServiceError("LLM returned an empty message")
        return content


class MockLLMClient(LLMClient):
    """Records prompts and returns a canned reply, for tests and evaluation."""

    def __init__(self, reply: str = "Wear a light jacket over a cotton shirt.", error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.prompts: List[str] = []

    def complete(self, prompt: str, timeout: float | None = None) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


__all__ = ["LLMClient", "MockLLMClient", "OpenAILLMClient"]
