# tests/unit/test_main.py — v2
"""Tests for main.py — CLI entry point."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from imagematch.main import _build_parser, _overrides_from_args, main
from imagematch.matching.models import MatchCandidate, MatchOutcome, MatchResult
from imagematch.pipeline.models import CollectionSummary, FileFailure, PipelineReport


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CACHE_ROOT", str(tmp_path / "cache"))


def _report(tmp_path: Path) -> PipelineReport:
    summary = dict(root=tmp_path, files_found=2, embedded=2, cache_hits=1, computed=1, deduplicated=0, failed=0)
    return PipelineReport(
        run_id="20260301_120000_abcd1234",
        started_at=datetime(2026, 3, 1, tzinfo=timezone.utc),
        duration_seconds=1.5,
        base=CollectionSummary(name="base", **summary),
        join=CollectionSummary(name="join", **summary),
        outcome=MatchOutcome(
            results=[MatchResult(base_id="ring.jpg", matches=[MatchCandidate(join_id="p1.jpg", similarity=0.93)])],
            unmatched_join=["p2.jpg"],
            unmatched_base=["necklace.jpg"],
            top_n=5,
            min_similarity=0.75,
        ),
        failures=[FileFailure(identifier="bad.jpg", path=tmp_path / "bad.jpg", error_kind="io_error", message="truncated")],
    )


class TestBuildParser:
    def test_version_flag(self):
        with pytest.raises(SystemExit) as exc_info:
            _build_parser().parse_args(["--version"])
        assert exc_info.value.code == 0

    def test_match_subcommand(self):
        args = _build_parser().parse_args(
            ["match", "base", "join", "--top-n", "1", "--min-similarity", "0.9", "--report", "out.json"]
        )
        assert args.command == "match"
        assert args.base_dir == Path("base")
        assert args.top_n == 1
        assert args.min_similarity == 0.9
        assert args.report == Path("out.json")

    def test_cache_evict(self):
        args = _build_parser().parse_args(["cache", "evict", "--days", "30"])
        assert args.cache_command == "evict"
        assert args.days == 30.0

    def test_evict_requires_days(self):
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["cache", "evict"])


class TestOverrides:
    def test_only_given_flags(self):
        args = _build_parser().parse_args(["match", "b", "j", "--top-n", "2", "--no-cache"])
        assert _overrides_from_args(args) == {"match_top_n": 2, "cache_enabled": False}

    def test_cache_command_has_no_overrides(self):
        args = _build_parser().parse_args(["cache", "stats"])
        assert _overrides_from_args(args) == {}


class TestMain:
    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out.lower()

    def test_invalid_configuration(self, capsys):
        assert main(["match", "b", "j", "--min-similarity", "3"]) == 2
        assert "Invalid configuration" in capsys.readouterr().err

    def test_match_missing_directory(self, tmp_path):
        assert main(["match", str(tmp_path / "nope"), str(tmp_path)]) == 1

    def test_match_writes_report(self, tmp_path, capsys):
        base = tmp_path / "base"
        join = tmp_path / "join"
        base.mkdir()
        join.mkdir()
        report_path = tmp_path / "reports" / "run.json"

        with patch("imagematch.pipeline.orchestrator.MatchPipeline.run", new=AsyncMock(return_value=_report(tmp_path))):
            code = main(["match", str(base), str(join), "--report", str(report_path)])

        assert code == 0
        data = json.loads(report_path.read_text())
        assert data["outcome"]["results"][0]["base_id"] == "ring.jpg"
        assert data["failures"][0]["error_kind"] == "io_error"
        out = capsys.readouterr().out
        assert "ring.jpg" in out
        assert "93.0%" in out
        assert "FAILED bad.jpg" in out

    def test_pipeline_error_returns_one(self, tmp_path):
        (tmp_path / "b").mkdir()
        (tmp_path / "j").mkdir()
        with patch(
            "imagematch.pipeline.orchestrator.MatchPipeline.run",
            new=AsyncMock(side_effect=RuntimeError("boom")),
        ):
            assert main(["match", str(tmp_path / "b"), str(tmp_path / "j")]) == 1

    def test_cache_stats_and_evict(self, tmp_path, capsys):
        assert main(["cache", "stats"]) == 0
        out = capsys.readouterr().out
        assert "sqlite" in out
        assert "Entries:   0" in out

        assert main(["cache", "evict", "--days", "30"]) == 0
        assert "Removed 0 entries" in capsys.readouterr().out
