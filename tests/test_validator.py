"""End-to-end tests for DodValidator."""

import asyncio
import json
import time

import pytest

from dod_gate.core.check import (
    Check,
    CheckCategory,
    CheckOutcome,
    CheckSeverity,
    CheckStatus,
    ValidationMode,
)
from dod_gate.core.errors import BundleWriteError, ConfigurationError
from dod_gate.core.profile import Concurrency
from dod_gate.core.receipt import ReceiptBuilder
from dod_gate.core.registry import CheckRegistry
from dod_gate.core.scoring import Verdict
from dod_gate.validator import DodValidator


@pytest.fixture
def registry(make_check):
    return CheckRegistry.from_checks([
        make_check("A", evidence=b"a ok"),
        make_check("B", status=CheckStatus.FAIL, evidence=b"b broke", remediation=("fix B",)),
        make_check("C", deps={"B"}),
        make_check("T", category=CheckCategory.TEST_TRUTH, status=CheckStatus.WARN, delay=0.01),
    ])


class TestDodValidator:
    """Tests for DodValidator class."""

    def test_not_ready_run(self, registry, make_profile, tmp_path):
        """Test pass, fatal failure and dependent skip in one category."""
        profile = make_profile(required={"A", "B", "C"}, weights={CheckCategory.BUILD_CORRECTNESS: 1.0}, min_score=70)

        result = DodValidator(registry, profile).validate(tmp_path)

        assert result.verdict == Verdict.NOT_READY
        assert not result.is_ready
        assert result.readiness_score == pytest.approx(33.333, abs=0.01)
        assert result.execution.get("C").status == CheckStatus.SKIP
        assert result.receipt.verdict == "not_ready"
        assert result.receipt.summary["skipped"] == 1
        assert result.artifacts is None

    def test_ready_run(self, registry, make_profile, tmp_path):
        """Test a run with only passes and warnings."""
        profile = make_profile(required={"A"}, optional={"T"})

        result = DodValidator(registry, profile).validate(tmp_path, mode=ValidationMode.STRICT)

        assert result.is_ready
        assert result.readiness_score == pytest.approx(75.0)
        assert result.receipt.mode == "strict"

    def test_workspace_must_be_directory(self, registry, make_profile, tmp_path):
        """Test that a missing workspace is a configuration error."""
        validator = DodValidator(registry, make_profile(required={"A"}))

        with pytest.raises(ConfigurationError):
            validator.validate(tmp_path / "missing")

    def test_profile_checked_up_front(self, registry, make_profile):
        """Test that construction validates the profile."""
        with pytest.raises(ConfigurationError):
            DodValidator(registry, make_profile(required={"A", "NOPE"}))

    def test_hash_independent_of_concurrency(self, registry, make_profile, tmp_path):
        """Test that serial and parallel runs produce the same content hash."""
        required = {"A", "B", "C", "T"}
        serial = DodValidator(
            registry, make_profile(required=required, concurrency=Concurrency.serial())
        ).validate(tmp_path)
        parallel = DodValidator(
            registry, make_profile(required=required, concurrency=Concurrency.parallel(4))
        ).validate(tmp_path)

        assert serial.receipt.content_hash == parallel.receipt.content_hash

    def test_validate_and_save(self, registry, make_profile, tmp_path):
        """Test that receipt, bundle and report are written and verify."""
        workspace = tmp_path / "ws"
        workspace.mkdir()
        profile = make_profile(required={"A", "B", "C"})

        result = DodValidator(registry, profile).validate_and_save(workspace, tmp_path / "out")

        paths = result.artifacts
        assert paths.receipt_path.is_file()
        assert paths.bundle_path.is_file()
        assert paths.report_path.name == "report.md"
        assert "fix B" in paths.report_path.read_text(encoding="utf-8")

        builder = ReceiptBuilder()
        receipt = builder.load(paths.receipt_path)
        assert builder.verify(receipt)
        assert builder.verify_bundle(receipt, paths.bundle_path)
        assert json.loads(paths.receipt_path.read_text())["content_hash"] == result.receipt.content_hash

    def test_save_failure(self, registry, make_profile, tmp_path):
        """Test that an unwritable output directory raises BundleWriteError."""
        blocker = tmp_path / "file"
        blocker.write_text("x")
        validator = DodValidator(registry, make_profile(required={"A"}))
        result = validator.validate(tmp_path)

        with pytest.raises(BundleWriteError):
            validator.save(result, blocker)

    def test_report_data(self, registry, make_profile, tmp_path):
        """Test the data handed to reporters."""
        result = DodValidator(registry, make_profile(required={"A", "B", "C"})).validate(tmp_path)

        data = result.report_data()

        assert data.project_path == str(tmp_path.resolve())
        assert data.content_hash == result.receipt.content_hash
        assert [r.id for r in data.remediation_items] == ["B"]
        assert data.suggestions[0]["category"] == "build_correctness"

    def test_report_data_carries_metrics(self, registry, make_profile, tmp_path):
        """Test that run metrics reach the reporters."""
        result = DodValidator(
            registry, make_profile(required={"A", "B", "C"}, optional={"T"})
        ).validate(tmp_path)

        metrics = result.report_data().metrics

        assert metrics.checks_executed == 4
        assert metrics.checks_skipped == 1
        assert metrics.success_rate == pytest.approx(0.25)
        assert metrics.failure_rate == pytest.approx(0.25)
        assert "C" not in metrics.check_durations


class TestTimeouts:
    """Tests for timeout handling across a whole run."""

    def test_timed_out_thread_does_not_hold_up_the_run(self, make_profile, tmp_path):
        """Test that validate returns without waiting for a worker thread to finish."""
        async def sleep_in_thread(context):
            await asyncio.to_thread(time.sleep, 3)
            return CheckOutcome.passed("woke up")

        registry = CheckRegistry.from_checks([
            Check("SLOW", CheckCategory.BUILD_CORRECTNESS, CheckSeverity.FATAL, sleep_in_thread),
        ])
        validator = DodValidator(registry, make_profile(required={"SLOW"}, default_timeout=0.1))

        start = time.monotonic()
        result = validator.validate(tmp_path)
        elapsed = time.monotonic() - start

        assert elapsed < 1.0
        slow = result.execution.get("SLOW")
        assert slow.status == CheckStatus.FAIL
        assert slow.message == "timed out after 0.1s"

    def test_timed_out_check_has_remediation(self, make_check, make_profile, tmp_path):
        """Test that a timeout lands in the report's remediation items."""
        registry = CheckRegistry.from_checks([make_check("HANG", delay=10)])
        validator = DodValidator(registry, make_profile(required={"HANG"}, default_timeout=0.05))

        data = validator.validate(tmp_path).report_data()

        assert [r.id for r in data.remediation_items] == ["HANG"]
        assert "build_correctness timeout" in data.remediation_items[0].remediation[0]

    @pytest.mark.parametrize("timeout", [-1, 0, float("nan"), float("inf")])
    def test_invalid_timeout_override(self, make_check, make_profile, tmp_path, timeout):
        """Test that a non-positive or non-finite override is refused before running."""
        calls = []
        registry = CheckRegistry.from_checks([make_check("A", calls=calls)])
        validator = DodValidator(registry, make_profile(required={"A"}))

        with pytest.raises(ConfigurationError, match="Timeout override"):
            validator.validate(tmp_path, timeout_override=timeout)
        assert calls == []

    def test_timeout_override_applies(self, make_check, make_profile, tmp_path):
        """Test that a valid override replaces the profile timeout."""
        registry = CheckRegistry.from_checks([make_check("HANG", delay=10)])
        validator = DodValidator(registry, make_profile(required={"HANG"}, default_timeout=60))

        result = validator.validate(tmp_path, timeout_override=0.05)

        assert result.execution.get("HANG").message == "timed out after 0.05s"
