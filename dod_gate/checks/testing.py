"""Test truth check: the workspace's own test suite passes."""

import importlib.util
import sys

from ..core.check import (
    Check,
    CheckCategory,
    CheckOutcome,
    CheckSeverity,
    RunContext,
    ValidationMode,
)
from .base import run_command

# pytest exit code when nothing was collected
NO_TESTS_COLLECTED = 5


async def check_tests(context: RunContext) -> CheckOutcome:
    """Run pytest in the workspace."""
    if importlib.util.find_spec("pytest") is None:
        return CheckOutcome.skipped("pytest is not installed")

    command = [sys.executable, "-m", "pytest", "-q", "-p", "no:cacheprovider"]
    if context.mode == ValidationMode.FAST:
        command.append("-x")

    result = await run_command(command, cwd=context.workspace_root)
    if result.ok:
        return CheckOutcome.passed("Test suite passed", evidence=result.output)
    if result.returncode == NO_TESTS_COLLECTED:
        return CheckOutcome.warned(
            "No tests were collected",
            evidence=result.output,
            remediation=["Add tests under tests/ so the gate has something to run"],
        )
    return CheckOutcome.failed(
        f"Test suite failed (exit code {result.returncode})",
        evidence=result.output,
        remediation=["Run `python -m pytest` locally and fix the failing tests"],
    )


TEST_CHECK = Check(
    id="TEST_UNIT",
    category=CheckCategory.TEST_TRUTH,
    severity=CheckSeverity.FATAL,
    run=check_tests,
    dependencies=frozenset({"BUILD_CHECK"}),
    description="pytest suite passes",
)
