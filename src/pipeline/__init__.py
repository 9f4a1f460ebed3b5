# src/pipeline/__init__.py — v1
"""Embedding provider and run orchestration."""
