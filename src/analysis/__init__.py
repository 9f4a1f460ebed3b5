# src/analysis/__init__.py — v1
"""Image optimization and description services."""
