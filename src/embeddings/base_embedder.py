# src/embeddings/base_embedder.py — v2
"""Abstract text embeddings interface.

Embedders turn an image description into the vector the matcher compares.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseEmbedder(ABC):
    """Unified interface for all embedding providers."""

    @abstractmethod
    async def embed_query(self, text: str) -> list[float]:
        """Embed a single text.

        Raises:
            AnalysisError: Service failure or empty response.
        """

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Output vector dimensions."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier."""

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Model identifier."""
