# src/embeddings/ollama_embedder.py — v2
"""Ollama embedding adapter (local inference).

Uses the Ollama REST API for local embedding generation.
Models: nomic-embed-text, mxbai-embed-large, etc.
"""

from __future__ import annotations

import asyncio
import json
import logging
import urllib.request

from imagematch.analysis.base_analyzer import AnalysisError
from imagematch.analysis.retry import NO_RETRY, with_retry
from imagematch.embeddings.base_embedder import BaseEmbedder

logger = logging.getLogger(__name__)


class OllamaEmbedder(BaseEmbedder):
    """Local embeddings via Ollama API.

    Ollama models have a fixed output size. Leave ``dimensions`` unset to adopt
    the size of the first vector; every later vector must match it.
    """

    def __init__(
        self,
        model: str = "nomic-embed-text",
        base_url: str = "http://localhost:11434",
        dimensions: int | None = None,
        timeout_s: float = 60.0,
        retry: bool = True,
    ) -> None:
        self._model_name = model
        self._base_url = base_url.rstrip("/")
        self._dimensions = dimensions
        self._timeout_s = timeout_s
        self._retry = retry

    async def embed_query(self, text: str) -> list[float]:
        embedding = await with_retry(
            asyncio.to_thread,
            self._embed_single,
            text,
            operation="ollama embed",
            retry_configs=None if self._retry else NO_RETRY,
        )
        if self._dimensions is None:
            self._dimensions = len(embedding)
        elif len(embedding) != self._dimensions:
            raise AnalysisError(
                f"Ollama model {self._model_name} returned {len(embedding)} "
                f"dimensions, expected {self._dimensions}"
            )
        return embedding

    def _embed_single(self, text: str) -> list[float]:
        """Call the Ollama embed endpoint for a single text (blocking)."""
        url = f"{self._base_url}/api/embed"
        payload = json.dumps({"model": self._model_name, "input": text}).encode("utf-8")
        req = urllib.request.Request(
            url, data=payload, headers={"Content-Type": "application/json"}
        )
        with urllib.request.urlopen(req, timeout=self._timeout_s) as resp:  # noqa: S310
            data = json.loads(resp.read().decode("utf-8"))
        embeddings = data.get("embeddings", [])
        if embeddings and embeddings[0]:
            return [float(v) for v in embeddings[0]]
        raise AnalysisError(f"Ollama returned no embeddings for model {self._model_name}")

    @property
    def dimensions(self) -> int:
        """Configured size, else the size of the first vector received (0 before)."""
        return self._dimensions or 0

    @property
    def provider_name(self) -> str:
        return "ollama"

    @property
    def model_name(self) -> str:
        return self._model_name
