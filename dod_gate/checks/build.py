"""Build correctness checks: byte-compilation and lint."""

import re
import sys
import tempfile

from ..core.check import Check, CheckCategory, CheckOutcome, CheckSeverity, RunContext
from .base import EXCLUDED_DIRS, run_command, tool_available

COMPILE_EXCLUDE = r"[\\/](%s)([\\/]|$)" % "|".join(re.escape(d) for d in sorted(EXCLUDED_DIRS))


async def check_build(context: RunContext) -> CheckOutcome:
    """Byte-compile every Python file in the workspace."""
    # Bytecode goes to a throwaway prefix so the workspace is left untouched.
    with tempfile.TemporaryDirectory(prefix="dod-pycache-") as cache_dir:
        result = await run_command(
            [sys.executable, "-m", "compileall", "-q", "-x", COMPILE_EXCLUDE, "."],
            cwd=context.workspace_root,
            env={"PYTHONPYCACHEPREFIX": cache_dir},
        )

    if result.ok:
        return CheckOutcome.passed("All Python sources compile", evidence=result.output)
    return CheckOutcome.failed(
        "Python sources failed to compile",
        evidence=result.output,
        remediation=["Fix the syntax errors listed in the evidence"],
    )


async def check_lint(context: RunContext) -> CheckOutcome:
    """Run ruff over the workspace."""
    if not tool_available("ruff"):
        return CheckOutcome.skipped("ruff is not installed")

    result = await run_command(["ruff", "check", "--no-cache", "."], cwd=context.workspace_root)
    if result.ok:
        return CheckOutcome.passed("ruff reported no problems", evidence=result.output)
    return CheckOutcome.failed(
        "ruff reported problems",
        evidence=result.output,
        remediation=["Run `ruff check --fix .` and address the remaining findings"],
    )


BUILD_CHECK = Check(
    id="BUILD_CHECK",
    category=CheckCategory.BUILD_CORRECTNESS,
    severity=CheckSeverity.FATAL,
    run=check_build,
    dependencies=frozenset({"G0_WORKSPACE"}),
    description="Python sources byte-compile",
)

LINT_CHECK = Check(
    id="BUILD_LINT",
    category=CheckCategory.BUILD_CORRECTNESS,
    severity=CheckSeverity.WARNING,
    run=check_lint,
    dependencies=frozenset({"BUILD_CHECK"}),
    description="ruff finds no lint problems",
)
