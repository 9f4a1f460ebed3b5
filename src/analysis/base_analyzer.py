# src/analysis/base_analyzer.py — v1
"""Abstract image analysis interface.

An analyzer turns one (already optimized) image into a detailed textual
description. The description is what gets embedded, so analyzers should
describe the visual features that would be identical for two photos of the
same product.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from imagematch.analysis.models import ImageInput


class AnalysisError(Exception):
    """External analysis or embedding service failed for one image.

    Covers transport errors, timeouts and empty or malformed responses. The
    underlying cause is chained with ``raise ... from``.
    """


class BaseImageAnalyzer(ABC):
    """Unified interface for vision description providers."""

    @abstractmethod
    async def describe(self, image: ImageInput) -> str:
        """Return a non-empty description of the image.

        Raises:
            AnalysisError: Service failure or empty response.
        """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (openai, ...)."""

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Model identifier."""
