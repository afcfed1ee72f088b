"""Tests for report generation."""

import dataclasses
import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from dod_gate.core.check import CheckCategory, CheckResult, CheckSeverity, CheckStatus
from dod_gate.core.executor import ExecutionResult
from dod_gate.core.metrics import RunMetrics
from dod_gate.core.scoring import ScoringEngine
from dod_gate.reporters import JSONReporter, MarkdownReporter, ReportData, get_reporter

BUILD = CheckCategory.BUILD_CORRECTNESS
TEST = CheckCategory.TEST_TRUTH


@pytest.fixture
def report_data(make_profile):
    results = [
        CheckResult("BUILD_CHECK", BUILD, CheckSeverity.FATAL, CheckStatus.PASS, "All Python sources compile"),
        CheckResult(
            "TEST_UNIT", TEST, CheckSeverity.FATAL, CheckStatus.FAIL, "Test suite failed (exit code 1)",
            evidence="\n".join(f"line {i}" for i in range(30)),
            duration=2.5,
            remediation=("Run `python -m pytest` locally",),
        ),
    ]
    profile = make_profile(required={"BUILD_CHECK", "TEST_UNIT"})
    engine = ScoringEngine()
    scorecard = engine.score(results, profile)
    return ReportData(
        project_name="demo",
        project_path="/work/demo",
        profile_name="test",
        mode="fast",
        scorecard=scorecard,
        check_results=results,
        content_hash="ab" * 32,
        suggestions=engine.get_improvement_suggestions(scorecard),
        warnings=["Evidence for X dropped: bundle exceeds 10 bytes"],
        generated_at=datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc),
    )


class TestJSONReporter:
    """Tests for JSONReporter class."""

    def test_structure(self, report_data):
        """Test top-level keys and summary values."""
        report = json.loads(JSONReporter().generate(report_data))

        assert set(report) == {
            "report_info", "summary", "categories", "checks", "suggestions", "warnings", "metadata",
            "metrics",
        }
        assert report["report_info"]["content_hash"] == "ab" * 32
        assert report["summary"]["verdict"] == "not_ready"
        assert report["summary"]["readiness_score"] == 50.0
        assert report["summary"]["counts"] == {"pass": 1, "fail": 1, "warn": 0, "skip": 0}
        assert [c["id"] for c in report["checks"]] == ["BUILD_CHECK", "TEST_UNIT"]
        assert report["checks"][1]["duration_ms"] == 2500
        assert report["metrics"] is None

    def test_evidence_optional(self, report_data):
        """Test that evidence can be left out."""
        report = json.loads(JSONReporter(include_evidence=False).generate(report_data))

        assert "evidence" not in report["checks"][1]

    def test_metrics(self, report_data):
        """Test that run metrics are included when present."""
        metrics = RunMetrics.from_execution(
            ExecutionResult(check_results=report_data.check_results, total_duration_ms=2600)
        )
        data = dataclasses.replace(report_data, metrics=metrics)

        report = json.loads(JSONReporter().generate(data))

        assert report["metrics"]["slowest_check"] == {"id": "TEST_UNIT", "duration_ms": 2500}
        assert report["metrics"]["success_rate"] == 0.5


class TestMarkdownReporter:
    """Tests for MarkdownReporter class."""

    def test_content(self, report_data):
        """Test verdict, disqualifiers, tables and remediation."""
        text = MarkdownReporter().generate(report_data).decode("utf-8")

        assert text.startswith("# Definition of Done Report")
        assert "## ❌ Not Ready" in text
        assert "### Disqualifiers" in text
        assert "Required fatal check TEST_UNIT failed" in text
        assert "| 2 | 1 | 1 | 0 | 0 |" in text
        assert "### Test Truth" in text
        assert "1. Run `python -m pytest` locally" in text
        assert "Evidence for X dropped" in text
        assert "`" + "ab" * 32 + "`" in text

    def test_evidence_truncated(self, report_data):
        """Test that long evidence is cut to the configured line count."""
        text = MarkdownReporter(evidence_lines=5).generate(report_data).decode("utf-8")

        assert "  line 4" in text
        assert "  line 5" not in text
        assert "... 25 more line(s)" in text

    def test_metrics_section(self, report_data):
        """Test that the metrics section appears only when metrics are given."""
        assert "## Metrics" not in MarkdownReporter().generate(report_data).decode("utf-8")

        metrics = RunMetrics.from_execution(
            ExecutionResult(check_results=report_data.check_results, total_duration_ms=2600)
        )
        text = MarkdownReporter().generate(dataclasses.replace(report_data, metrics=metrics)).decode("utf-8")

        assert "## Metrics" in text
        assert "- **Slowest check:** TEST_UNIT (2500 ms)" in text
        assert "- **Success rate:** 50.0%" in text
        assert "- **Slowest category:** Test Truth (2500 ms)" in text


class TestReporterSaving:
    """Tests for saving reports."""

    def test_generated_filename(self, report_data, tmp_path):
        """Test default file naming."""
        path = JSONReporter(output_dir=str(tmp_path)).save(report_data)

        assert path.endswith("dod_report_demo_20260301_093000.json")
        assert json.loads(Path(path).read_text(encoding="utf-8"))["report_info"]["project_name"] == "demo"

    def test_custom_filename(self, report_data, tmp_path):
        """Test saving under a given name into a new directory."""
        path = MarkdownReporter(output_dir=str(tmp_path / "nested")).save(report_data, filename="report.md")

        assert path == str(tmp_path / "nested" / "report.md")

    def test_get_reporter(self, tmp_path):
        """Test lookup by format name."""
        assert isinstance(get_reporter("json", str(tmp_path)), JSONReporter)
        assert get_reporter("markdown").extension == "md"
        with pytest.raises(ValueError, match="Unsupported"):
            get_reporter("pdf")
