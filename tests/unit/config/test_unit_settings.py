# tests/unit/config/test_unit_settings.py — v2
"""Tests for config/settings.py — typed Settings and validation rules."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from imagematch.config.settings import ConfigurationError, Settings, load_settings


class TestSettingsDefaults:
    def test_default_throttling(self):
        s = Settings(_env_file=None)
        assert s.max_concurrent_requests == 3
        assert s.request_delay_s == 1.0
        assert s.task_timeout_s is None

    def test_default_matching(self):
        s = Settings(_env_file=None)
        assert s.match_top_n == 5
        assert s.match_min_similarity == 0.75
        assert s.match_max_per_base is None

    def test_default_cache(self):
        s = Settings(_env_file=None)
        assert s.cache_enabled is True
        assert s.cache_backend == "sqlite"
        assert s.cache_max_age_days is None

    def test_default_models(self):
        s = Settings(_env_file=None)
        assert s.embedding_model == "text-embedding-3-large"
        assert s.max_image_size == 1024
        assert s.image_quality == 70


class TestSettingsValidation:
    def test_zero_concurrency_rejected(self):
        with pytest.raises(ValidationError, match="max_concurrent_requests"):
            Settings(_env_file=None, max_concurrent_requests=0)

    def test_zero_top_n_rejected(self):
        with pytest.raises(ValidationError, match="match_top_n"):
            Settings(_env_file=None, match_top_n=0)

    def test_zero_embedding_dimensions_rejected(self):
        with pytest.raises(ValidationError, match="embedding_dimensions"):
            Settings(_env_file=None, embedding_dimensions=0)

    def test_negative_delay_rejected(self):
        with pytest.raises(ValidationError, match="request_delay_s"):
            Settings(_env_file=None, request_delay_s=-0.5)

    def test_min_similarity_out_of_range(self):
        with pytest.raises(ValidationError, match="match_min_similarity"):
            Settings(_env_file=None, match_min_similarity=1.5)

    def test_negative_similarity_allowed(self):
        s = Settings(_env_file=None, match_min_similarity=-0.2)
        assert s.match_min_similarity == -0.2

    def test_non_positive_timeout(self):
        with pytest.raises(ConfigurationError, match="TASK_TIMEOUT_S"):
            Settings(_env_file=None, task_timeout_s=0)

    def test_negative_max_age(self):
        with pytest.raises(ConfigurationError, match="CACHE_MAX_AGE_DAYS"):
            Settings(_env_file=None, cache_max_age_days=-1)

    def test_max_per_base_zero(self):
        with pytest.raises(ConfigurationError, match="MATCH_MAX_PER_BASE"):
            Settings(_env_file=None, match_max_per_base=0)

    def test_quality_out_of_range(self):
        with pytest.raises(ConfigurationError, match="IMAGE_QUALITY"):
            Settings(_env_file=None, image_quality=100)

    def test_errors_are_collected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            Settings(_env_file=None, image_quality=0, max_image_size=8)
        assert "IMAGE_QUALITY" in str(exc_info.value)
        assert "MAX_IMAGE_SIZE" in str(exc_info.value)

    def test_unknown_backend(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, cache_backend="redis")


class TestSettingsHelpers:
    def test_extensions_normalised(self):
        s = Settings(_env_file=None, image_extensions="JPG, .png,,webp ")
        assert s.image_extensions_list == [".jpg", ".png", ".webp"]

    def test_cache_db_path(self, tmp_path):
        s = Settings(_env_file=None, cache_root=tmp_path)
        assert s.cache_db_path == tmp_path / "imagematch_cache.db"

    def test_cache_root_expands_user(self):
        s = Settings(_env_file=None)
        assert "~" not in str(s.cache_db_path)
        assert s.cache_db_path.name == "imagematch_cache.db"


class TestLoadSettings:
    def test_overrides_applied(self):
        s = load_settings(_env_file=None, match_top_n=1, cache_backend="json")
        assert s.match_top_n == 1
        assert s.cache_backend == "json"

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("MATCH_MIN_SIMILARITY", "0.9")
        monkeypatch.setenv("CACHE_ROOT", "/tmp/imagematch-test")
        s = load_settings(_env_file=None)
        assert s.match_min_similarity == 0.9
        assert s.cache_root == Path("/tmp/imagematch-test")
