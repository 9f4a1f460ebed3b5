# src/__init__.py — v1
"""imagematch: embedding-based product image matching."""

from imagematch.version import __version__

__all__ = ["__version__"]
