# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides isolated settings, on-disk sample images and a fixed clock.
No network access — external services are mocked in each test module.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

import pytest
from PIL import Image

from imagematch.config.settings import Settings


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings isolated from any local .env, with a throwaway cache root."""
    return Settings(
        _env_file=None,
        cache_root=tmp_path / "cache",
        request_delay_s=0.0,
        retry_enabled=False,
    )


@pytest.fixture
def make_image(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a solid-colour image file and returning its path."""

    def _make(
        name: str,
        color: tuple[int, int, int] = (200, 30, 30),
        size: tuple[int, int] = (64, 48),
        root: Path | None = None,
        mode: str = "RGB",
    ) -> Path:
        path = (root or tmp_path / "images") / name
        path.parent.mkdir(parents=True, exist_ok=True)
        fill: tuple[int, ...] = color if mode == "RGB" else (*color, 128)
        Image.new(mode, size, fill).save(path)
        return path

    return _make


class FixedClock:
    """Mutable clock for cache age tests."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))
