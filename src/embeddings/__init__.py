# src/embeddings/__init__.py — v1
"""Text embedding providers."""
