# src/analysis/analyzer_factory.py — v1
"""Factory: instantiate the image analyzer from configuration."""

from __future__ import annotations

import importlib
import logging

from imagematch.analysis.base_analyzer import BaseImageAnalyzer
from imagematch.config.settings import Settings

logger = logging.getLogger(__name__)

# Registry of provider name → analyzer class path (lazy import).
_PROVIDER_REGISTRY: dict[str, str] = {
    "openai": "imagematch.analysis.openai_analyzer.OpenAIImageAnalyzer",
}


class UnsupportedAnalyzerError(ValueError):
    """Raised when an analysis provider is not registered."""


def create_analyzer(settings: Settings | None = None) -> BaseImageAnalyzer:
    """Instantiate the configured analysis provider.

    Args:
        settings: Application settings (ANALYSIS_PROVIDER, ANALYSIS_MODEL).

    Raises:
        UnsupportedAnalyzerError: If the provider is not registered.
    """
    settings = settings or Settings()
    provider = settings.analysis_provider
    if provider not in _PROVIDER_REGISTRY:
        raise UnsupportedAnalyzerError(
            f"Unsupported analysis provider: {provider!r}. "
            f"Available: {', '.join(sorted(_PROVIDER_REGISTRY))}"
        )

    cls = _import_class(_PROVIDER_REGISTRY[provider])
    kwargs: dict = {
        "model": settings.analysis_model,
        "max_tokens": settings.analysis_max_tokens,
        "retry": settings.retry_enabled,
    }
    if provider == "openai":
        kwargs["api_key"] = settings.openai_api_key

    logger.debug("Creating analyzer: provider=%s, model=%s", provider, settings.analysis_model)
    return cls(**kwargs)


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
