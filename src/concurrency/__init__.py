# src/concurrency/__init__.py — v1
"""Throttling of external service calls."""
