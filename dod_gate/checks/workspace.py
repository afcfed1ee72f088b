"""Workspace integrity check."""

import os

from ..core.check import Check, CheckCategory, CheckOutcome, CheckSeverity, RunContext
from .base import EXCLUDED_DIRS, run_command, tool_available


def _top_level(porcelain_line: str) -> str:
    """First path component of a `git status --porcelain` entry."""
    path = porcelain_line[3:].split(" -> ")[-1].strip('"')
    return path.split("/", 1)[0]


async def check_workspace(context: RunContext) -> CheckOutcome:
    """Workspace must be a readable directory; a dirty git tree only warns."""
    root = context.workspace_root
    if not root.is_dir():
        return CheckOutcome.failed(
            f"Workspace {root} is not a directory",
            remediation=["Point the gate at the project root"],
        )
    if not os.access(root, os.R_OK | os.X_OK):
        return CheckOutcome.failed(
            f"Workspace {root} is not readable",
            remediation=[f"Fix permissions on {root}"],
        )

    if not (root / ".git").exists() or not tool_available("git"):
        return CheckOutcome.passed(f"Workspace {root} is readable (not a git checkout)")

    status = await run_command(["git", "status", "--porcelain"], cwd=root)
    if not status.ok:
        return CheckOutcome.warned(
            "Could not read git status",
            evidence=status.output,
            remediation=["Run `git status` in the workspace and fix the reported problem"],
        )

    changes = [
        line for line in status.stdout.splitlines()
        if line.strip() and _top_level(line) not in EXCLUDED_DIRS
    ]
    if changes:
        return CheckOutcome.warned(
            f"{len(changes)} uncommitted change(s) in the workspace",
            evidence="\n".join(changes),
            remediation=["Commit or stash local changes so the receipt matches a revision"],
        )
    return CheckOutcome.passed("Workspace is a clean git checkout")


WORKSPACE_CHECK = Check(
    id="G0_WORKSPACE",
    category=CheckCategory.WORKSPACE_INTEGRITY,
    severity=CheckSeverity.FATAL,
    run=check_workspace,
    description="Workspace is a readable directory with no uncommitted changes",
)
