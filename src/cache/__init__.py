# src/cache/__init__.py — v1
"""Content-addressed embedding cache."""
