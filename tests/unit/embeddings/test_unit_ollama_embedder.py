# tests/unit/embeddings/test_unit_ollama_embedder.py — v2
"""Tests for embeddings/ollama_embedder.py — urllib mocked."""

from __future__ import annotations

import io
import json
import urllib.error
from unittest.mock import patch

import pytest

from imagematch.analysis.base_analyzer import AnalysisError
from imagematch.embeddings.ollama_embedder import OllamaEmbedder


class _FakeResponse(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


def _payload(data: dict) -> _FakeResponse:
    return _FakeResponse(json.dumps(data).encode("utf-8"))


class TestOllamaEmbedder:
    @pytest.mark.asyncio
    async def test_embed_query(self):
        embedder = OllamaEmbedder(base_url="http://ollama:11434/", retry=False)
        with patch(
            "imagematch.embeddings.ollama_embedder.urllib.request.urlopen",
            return_value=_payload({"embeddings": [[1, 2, 3]]}),
        ) as urlopen:
            result = await embedder.embed_query("silver ring")
        assert result == [1.0, 2.0, 3.0]
        request = urlopen.call_args.args[0]
        assert request.full_url == "http://ollama:11434/api/embed"
        assert json.loads(request.data) == {"model": "nomic-embed-text", "input": "silver ring"}

    @pytest.mark.asyncio
    async def test_no_embeddings_raises(self):
        embedder = OllamaEmbedder(retry=False)
        with patch(
            "imagematch.embeddings.ollama_embedder.urllib.request.urlopen",
            return_value=_payload({"embeddings": []}),
        ):
            with pytest.raises(AnalysisError, match="no embeddings"):
                await embedder.embed_query("x")

    @pytest.mark.asyncio
    async def test_connection_error_wrapped(self):
        embedder = OllamaEmbedder(retry=False)
        with patch(
            "imagematch.embeddings.ollama_embedder.urllib.request.urlopen",
            side_effect=urllib.error.URLError("refused"),
        ):
            with pytest.raises(AnalysisError) as exc_info:
                await embedder.embed_query("x")
        assert isinstance(exc_info.value.__cause__, urllib.error.URLError)

    @pytest.mark.asyncio
    async def test_adopts_first_vector_size(self):
        embedder = OllamaEmbedder(retry=False)
        assert embedder.dimensions == 0
        with patch(
            "imagematch.embeddings.ollama_embedder.urllib.request.urlopen",
            side_effect=[_payload({"embeddings": [[1, 2]]}), _payload({"embeddings": [[1, 2, 3]]})],
        ):
            await embedder.embed_query("a")
            assert embedder.dimensions == 2
            with pytest.raises(AnalysisError, match="returned 3 dimensions, expected 2"):
                await embedder.embed_query("b")
