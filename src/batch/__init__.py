# src/batch/__init__.py — v1
"""Directory scanning."""
