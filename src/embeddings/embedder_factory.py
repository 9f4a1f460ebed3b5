# src/embeddings/embedder_factory.py — v2
"""Factory: instantiate embedding provider from configuration."""

from __future__ import annotations

import importlib
import logging

from imagematch.config.settings import Settings
from imagematch.embeddings.base_embedder import BaseEmbedder

logger = logging.getLogger(__name__)

_PROVIDER_REGISTRY: dict[str, str] = {
    "openai": "imagematch.embeddings.openai_embedder.OpenAIEmbedder",
    "ollama": "imagematch.embeddings.ollama_embedder.OllamaEmbedder",
}


class UnsupportedEmbeddingProviderError(ValueError):
    """Raised when an embedding provider is not registered."""


def create_embedder(settings: Settings | None = None) -> BaseEmbedder:
    """Instantiate the configured embedding provider.

    Args:
        settings: Application settings. Uses EMBEDDING_PROVIDER and EMBEDDING_MODEL.

    Returns:
        Configured BaseEmbedder instance.
    """
    settings = settings or Settings()
    provider = settings.embedding_provider
    if provider not in _PROVIDER_REGISTRY:
        raise UnsupportedEmbeddingProviderError(
            f"Unsupported embedding provider: {provider!r}. "
            f"Available: {', '.join(sorted(_PROVIDER_REGISTRY))}"
        )

    cls = _import_class(_PROVIDER_REGISTRY[provider])

    kwargs: dict = {"retry": settings.retry_enabled}
    if provider == "openai":
        kwargs["model"] = settings.embedding_model
        kwargs["dimensions"] = settings.embedding_dimensions
        kwargs["api_key"] = settings.openai_api_key
    elif provider == "ollama":
        kwargs["model"] = settings.embedding_ollama_model
        kwargs["base_url"] = settings.ollama_base_url

    logger.debug("Creating embedder: provider=%s", provider)
    return cls(**kwargs)


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
