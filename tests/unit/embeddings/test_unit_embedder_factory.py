# tests/unit/embeddings/test_unit_embedder_factory.py — v2
"""Tests for embeddings/embedder_factory.py."""

from __future__ import annotations

import pytest

from imagematch.config.settings import Settings
from imagematch.embeddings.embedder_factory import (
    UnsupportedEmbeddingProviderError,
    create_embedder,
)
from imagematch.embeddings.ollama_embedder import OllamaEmbedder
from imagematch.embeddings.openai_embedder import OpenAIEmbedder


class TestCreateEmbedder:
    def test_openai(self):
        s = Settings(_env_file=None, embedding_model="text-embedding-3-small", embedding_dimensions=1536)
        e = create_embedder(s)
        assert isinstance(e, OpenAIEmbedder)
        assert e.model_name == "text-embedding-3-small"
        assert e.dimensions == 1536

    def test_ollama(self):
        s = Settings(_env_file=None, embedding_provider="ollama", embedding_ollama_model="mxbai-embed-large")
        e = create_embedder(s)
        assert isinstance(e, OllamaEmbedder)
        assert e.model_name == "mxbai-embed-large"

    def test_unknown(self):
        s = Settings(_env_file=None, embedding_provider="nope")
        with pytest.raises(UnsupportedEmbeddingProviderError):
            create_embedder(s)

    def test_ollama_ignores_openai_dimensions(self):
        s = Settings(_env_file=None, embedding_provider="ollama", embedding_dimensions=3072)
        assert create_embedder(s).dimensions == 0
