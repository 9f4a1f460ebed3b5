# src/embeddings/openai_embedder.py — v2
"""OpenAI embedding adapter.

Uses the openai SDK for embedding generation.
Models: text-embedding-3-small, text-embedding-3-large.
"""

from __future__ import annotations

import logging

from imagematch.analysis.base_analyzer import AnalysisError
from imagematch.analysis.retry import NO_RETRY, with_retry
from imagematch.embeddings.base_embedder import BaseEmbedder

logger = logging.getLogger(__name__)

# Descriptions are capped well below the model's token window.
MAX_INPUT_CHARS = 8000

# Only the v3 models accept a requested output size.
_SHORTENABLE_PREFIX = "text-embedding-3"


class OpenAIEmbedder(BaseEmbedder):
    """Embeddings via OpenAI API."""

    def __init__(
        self,
        model: str = "text-embedding-3-large",
        api_key: str | None = None,
        dimensions: int = 3072,
        retry: bool = True,
    ) -> None:
        self._model = model
        self._api_key = api_key
        self._dimensions = dimensions
        self._retry = retry
        self.__client = None

    @property
    def _client(self):
        if self.__client is None:
            try:
                import openai
            except ImportError as e:
                raise ImportError(
                    "openai package required: pip install openai"
                ) from e
            self.__client = openai.AsyncOpenAI(api_key=self._api_key or "")
        return self.__client

    async def embed_query(self, text: str) -> list[float]:
        kwargs: dict = {}
        if self._model.startswith(_SHORTENABLE_PREFIX):
            kwargs["dimensions"] = self._dimensions
        response = await with_retry(
            self._client.embeddings.create,
            operation="embed description",
            retry_configs=None if self._retry else NO_RETRY,
            input=text[:MAX_INPUT_CHARS],
            model=self._model,
            encoding_format="float",
            **kwargs,
        )
        if not response.data or not response.data[0].embedding:
            raise AnalysisError(f"Empty embedding from {self._model}")
        embedding = list(response.data[0].embedding)
        if len(embedding) != self._dimensions:
            raise AnalysisError(
                f"{self._model} returned {len(embedding)} dimensions, "
                f"expected {self._dimensions}"
            )
        return embedding

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def provider_name(self) -> str:
        return "openai"

    @property
    def model_name(self) -> str:
        return self._model
