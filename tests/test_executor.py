"""Tests for the check executor."""

import asyncio
import time

import pytest

from dod_gate.core.check import (
    Check,
    CheckCategory,
    CheckOutcome,
    CheckSeverity,
    CheckStatus,
    RunContext,
)
from dod_gate.core.errors import UnknownCheckError
from dod_gate.core.executor import CheckExecutor
from dod_gate.core.profile import Concurrency
from dod_gate.core.registry import CheckRegistry


@pytest.fixture
def context(tmp_path):
    return RunContext(workspace_root=tmp_path, profile_name="test")


def run(executor, context, **kwargs):
    return asyncio.run(executor.execute(context, **kwargs))


class TestPlanning:
    """Tests for dependency level planning."""

    def test_levels(self, make_check, make_profile):
        """Test Kahn levels in registration order."""
        registry = CheckRegistry.from_checks([
            make_check("A"),
            make_check("C", deps={"A"}),
            make_check("B", deps={"A"}),
            make_check("D", deps={"B", "C"}),
        ])
        executor = CheckExecutor(registry, make_profile(required={"A", "B", "C", "D"}))

        assert executor.plan() == [["A"], ["C", "B"], ["D"]]

    def test_inactive_dependency_counts_as_satisfied(self, make_check, make_profile):
        """Test that dependencies outside the active set do not hold a check back."""
        registry = CheckRegistry.from_checks([
            make_check("X"),
            make_check("B", deps={"X"}),
        ])
        executor = CheckExecutor(registry, make_profile(required={"B"}))

        assert executor.plan() == [["B"]]

    def test_unknown_check_rejected_before_running(self, make_check, make_profile):
        """Test that configuration errors surface at construction."""
        calls = []
        registry = CheckRegistry.from_checks([make_check("A", calls=calls)])

        with pytest.raises(UnknownCheckError):
            CheckExecutor(registry, make_profile(required={"A", "GHOST"}))
        assert calls == []


class TestExecution:
    """Tests for CheckExecutor.execute."""

    def test_one_result_per_active_check(self, make_check, make_profile, context):
        """Test totality and registration-order results."""
        registry = CheckRegistry.from_checks([
            make_check("SLOW", delay=0.05),
            make_check("FAST"),
            make_check("UNUSED"),
            make_check("T", category=CheckCategory.TEST_TRUTH, status=CheckStatus.WARN),
        ])
        executor = CheckExecutor(registry, make_profile(required={"SLOW", "FAST"}, optional={"T"}))

        result = run(executor, context)

        assert [r.id for r in result.check_results] == ["SLOW", "FAST", "T"]
        assert result.get("T").status == CheckStatus.WARN
        assert result.get("UNUSED") is None
        assert result.count(CheckStatus.PASS) == 2
        assert result.started_at is not None and result.completed_at is not None

    def test_serial_runs_in_registration_order(self, make_check, make_profile, context):
        """Test that serial mode runs checks one after another in order."""
        calls = []
        registry = CheckRegistry.from_checks([
            make_check("C", delay=0.03, calls=calls),
            make_check("A", delay=0.01, calls=calls),
            make_check("B", calls=calls),
        ])
        executor = CheckExecutor(
            registry, make_profile(required={"A", "B", "C"}, concurrency=Concurrency.serial())
        )

        run(executor, context)

        assert calls == ["C", "A", "B"]

    def test_parallel_bound(self, make_profile, context):
        """Test that no more than n checks run at once."""
        state = {"running": 0, "peak": 0}

        def tracked(check_id):
            async def run_check(ctx):
                state["running"] += 1
                state["peak"] = max(state["peak"], state["running"])
                await asyncio.sleep(0.02)
                state["running"] -= 1
                return CheckOutcome.passed(check_id)
            return Check(check_id, CheckCategory.BUILD_CORRECTNESS, CheckSeverity.FATAL, run_check)

        ids = ["C1", "C2", "C3", "C4", "C5"]
        registry = CheckRegistry.from_checks([tracked(i) for i in ids])
        executor = CheckExecutor(
            registry, make_profile(required=set(ids), concurrency=Concurrency.parallel(2))
        )

        result = run(executor, context)

        assert state["peak"] == 2
        assert all(r.status == CheckStatus.PASS for r in result.check_results)

    def test_timeout_becomes_fail(self, make_check, make_profile, context):
        """Test that a slow check fails with a timeout message without stalling the run."""
        registry = CheckRegistry.from_checks([
            make_check("HANG", delay=10),
            make_check("OK"),
        ])
        executor = CheckExecutor(
            registry, make_profile(required={"HANG", "OK"}, default_timeout=0.05)
        )

        start = time.monotonic()
        result = run(executor, context)

        assert time.monotonic() - start < 5
        hang = result.get("HANG")
        assert hang.status == CheckStatus.FAIL
        assert hang.message == "timed out after 0.05s"
        assert hang.remediation == ("Increase the build_correctness timeout or optimize HANG",)
        assert result.get("OK").status == CheckStatus.PASS

    def test_category_timeout(self, make_check, make_profile, context):
        """Test that the category timeout applies over the default."""
        registry = CheckRegistry.from_checks([
            make_check("T", category=CheckCategory.TEST_TRUTH, delay=10),
        ])
        executor = CheckExecutor(registry, make_profile(
            required={"T"}, default_timeout=60, timeouts={CheckCategory.TEST_TRUTH: 0.05},
        ))

        result = run(executor, context)

        assert result.get("T").message == "timed out after 0.05s"

    def test_timeout_override(self, make_check, make_profile, tmp_path):
        """Test that the context override replaces profile timeouts."""
        registry = CheckRegistry.from_checks([make_check("HANG", delay=10)])
        executor = CheckExecutor(registry, make_profile(required={"HANG"}, default_timeout=60))
        context = RunContext(tmp_path, "test", per_check_timeout_override=0.05)

        result = run(executor, context)

        assert result.get("HANG").message == "timed out after 0.05s"

    def test_exception_becomes_fail(self, make_check, make_profile, context):
        """Test that a raising check fails without affecting siblings."""
        registry = CheckRegistry.from_checks([
            make_check("BOOM", error=RuntimeError("boom")),
            make_check("OK"),
            make_check("AFTER", deps={"OK"}),
        ])
        executor = CheckExecutor(registry, make_profile(required={"BOOM", "OK", "AFTER"}))

        result = run(executor, context)

        assert result.get("BOOM").status == CheckStatus.FAIL
        assert result.get("BOOM").message == "check raised RuntimeError: boom"
        assert result.get("OK").status == CheckStatus.PASS
        assert result.get("AFTER").status == CheckStatus.PASS

    def test_wrong_return_type_becomes_fail(self, make_profile, context):
        """Test that a check returning something else fails."""
        async def sloppy(ctx):
            return "all good"

        registry = CheckRegistry.from_checks([
            Check("SLOPPY", CheckCategory.BUILD_CORRECTNESS, CheckSeverity.FATAL, sloppy),
        ])
        executor = CheckExecutor(registry, make_profile(required={"SLOPPY"}))

        result = run(executor, context)

        assert result.get("SLOPPY").status == CheckStatus.FAIL
        assert "expected CheckOutcome" in result.get("SLOPPY").message

    def test_progress_callback(self, make_check, make_profile, context):
        """Test that progress is reported once per check."""
        registry = CheckRegistry.from_checks([
            make_check("A", status=CheckStatus.FAIL),
            make_check("B", deps={"A"}),
            make_check("C"),
        ])
        executor = CheckExecutor(registry, make_profile(required={"A", "B", "C"}))
        updates = []

        run(executor, context, progress_callback=lambda done, total, cid: updates.append((done, total, cid)))

        assert len(updates) == 3
        assert updates[-1][:2] == (3, 3)
        assert {u[2] for u in updates} == {"A", "B", "C"}

    def test_execute_one(self, make_check, make_profile, context):
        """Test running a single check by ID."""
        registry = CheckRegistry.from_checks([
            make_check("A"),
            make_check("B", status=CheckStatus.WARN, deps={"A"}),
        ])
        executor = CheckExecutor(registry, make_profile(required={"A"}))

        result = asyncio.run(executor.execute_one("B", context))
        assert result.status == CheckStatus.WARN

        with pytest.raises(UnknownCheckError):
            asyncio.run(executor.execute_one("GHOST", context))


class TestDependencyPropagation:
    """Tests for skipping dependents of fatal failures."""

    def test_dependents_of_fatal_failure_skip(self, make_check, make_profile, context):
        """Test that dependents are skipped and never invoked, transitively."""
        calls = []
        registry = CheckRegistry.from_checks([
            make_check("A", status=CheckStatus.FAIL, calls=calls),
            make_check("B", deps={"A"}, calls=calls),
            make_check("C", deps={"B"}, calls=calls),
        ])
        executor = CheckExecutor(registry, make_profile(required={"A", "B", "C"}))

        result = run(executor, context)

        assert calls == ["A"]
        assert result.get("B").status == CheckStatus.SKIP
        assert "A" in result.get("B").message
        assert result.get("C").status == CheckStatus.SKIP
        assert "B" in result.get("C").message
        assert "root failure: A" in result.get("C").message

    def test_warning_failure_does_not_propagate(self, make_check, make_profile, context):
        """Test that a non-fatal failure lets dependents run."""
        registry = CheckRegistry.from_checks([
            make_check("LINT", status=CheckStatus.FAIL, severity=CheckSeverity.WARNING),
            make_check("NEXT", deps={"LINT"}),
        ])
        executor = CheckExecutor(registry, make_profile(required={"LINT", "NEXT"}))

        result = run(executor, context)

        assert result.get("NEXT").status == CheckStatus.PASS

    def test_self_skip_does_not_propagate(self, make_check, make_profile, context):
        """Test that a check skipping itself does not block dependents."""
        registry = CheckRegistry.from_checks([
            make_check("TOOL", status=CheckStatus.SKIP),
            make_check("NEXT", deps={"TOOL"}),
        ])
        executor = CheckExecutor(registry, make_profile(required={"TOOL", "NEXT"}))

        result = run(executor, context)

        assert result.get("NEXT").status == CheckStatus.PASS


class TestFailFast:
    """Tests for fail-fast behaviour."""

    def _registry(self, make_check):
        return CheckRegistry.from_checks([
            make_check("A", status=CheckStatus.FAIL),
            make_check("P"),
            make_check("Q", deps={"P"}),
            make_check("R", deps={"Q"}),
        ])

    def test_later_levels_skipped(self, make_check, make_profile, context):
        """Test that levels after a required fatal failure are skipped."""
        executor = CheckExecutor(
            self._registry(make_check),
            make_profile(required={"A", "P", "Q", "R"}, fail_fast=True),
        )

        result = run(executor, context)

        assert result.aborted
        assert result.aborted_by == "A"
        assert result.get("P").status == CheckStatus.PASS
        for cid in ("Q", "R"):
            assert result.get(cid).status == CheckStatus.SKIP
            assert "upstream fail-fast" in result.get(cid).message
        assert len(result.check_results) == 4

    def test_completed_levels_match_normal_run(self, make_check, make_profile, context):
        """Test that fail-fast shortens but never changes completed levels."""
        required = {"A", "P", "Q", "R"}
        fast = run(CheckExecutor(
            self._registry(make_check), make_profile(required=required, fail_fast=True)
        ), context)
        full = run(CheckExecutor(
            self._registry(make_check), make_profile(required=required, fail_fast=False)
        ), context)

        assert not full.aborted
        assert full.get("R").status == CheckStatus.PASS
        for cid in ("A", "P"):
            assert fast.get(cid).status == full.get(cid).status
            assert fast.get(cid).message == full.get(cid).message

    def test_optional_failure_does_not_trigger(self, make_check, make_profile, context):
        """Test that only required fatal failures stop the run."""
        executor = CheckExecutor(
            self._registry(make_check),
            make_profile(required={"P", "Q", "R"}, optional={"A"}, fail_fast=True),
        )

        result = run(executor, context)

        assert not result.aborted
        assert result.get("R").status == CheckStatus.PASS
