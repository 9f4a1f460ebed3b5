# src/matching/__init__.py — v1
"""Similarity matching of join images against base images."""
