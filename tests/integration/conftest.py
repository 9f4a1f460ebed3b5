# tests/integration/conftest.py — v8
"""Shared fixtures for integration tests.

The fake services below stand in for the vision and embedding APIs while
every local component (Pillow, sqlite3, the filesystem) runs for real. The
analyzer reads the dominant colour of the optimized JPEG, and the embedder
turns that colour into an RGB vector, so images of the same colour land
close together in embedding space.
"""

from __future__ import annotations

import io
import re

import pytest
from PIL import Image

from imagematch.analysis.base_analyzer import BaseImageAnalyzer
from imagematch.analysis.models import ImageInput
from imagematch.embeddings.base_embedder import BaseEmbedder

_COLOR_RE = re.compile(r"colour (\d+) (\d+) (\d+)")


class ColourAnalyzer(BaseImageAnalyzer):
    """Describes an image by the colour of its centre pixel."""

    def __init__(self) -> None:
        self.calls = 0

    async def describe(self, image: ImageInput) -> str:
        self.calls += 1
        img = Image.open(io.BytesIO(image.data)).convert("RGB")
        r, g, b = img.getpixel((img.width // 2, img.height // 2))
        return f"product in colour {r} {g} {b}"

    @property
    def provider_name(self) -> str:
        return "colour"

    @property
    def model_name(self) -> str:
        return "centre-pixel"


class ColourEmbedder(BaseEmbedder):
    """Embeds a colour description as its RGB vector."""

    async def embed_query(self, text: str) -> list[float]:
        match = _COLOR_RE.search(text)
        assert match is not None, text
        return [float(v) for v in match.groups()]

    @property
    def dimensions(self) -> int:
        return 3

    @property
    def provider_name(self) -> str:
        return "colour"

    @property
    def model_name(self) -> str:
        return "rgb"


@pytest.fixture
def colour_analyzer() -> ColourAnalyzer:
    return ColourAnalyzer()


@pytest.fixture
def colour_embedder() -> ColourEmbedder:
    return ColourEmbedder()
