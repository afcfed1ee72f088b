"""Deployment readiness check: packaging metadata is present."""

from ..core.check import Check, CheckCategory, CheckOutcome, CheckSeverity, RunContext

PACKAGING_FILES = ("pyproject.toml", "setup.py", "setup.cfg")
DEPENDENCY_FILES = ("requirements.txt", "poetry.lock", "uv.lock", "Pipfile.lock", "pyproject.toml")
OPTIONAL_ARTIFACTS = ("Dockerfile", "CHANGELOG.md", "LICENSE")


async def check_artifacts(context: RunContext) -> CheckOutcome:
    """Packaging metadata is required; dependency pins are expected."""
    root = context.workspace_root
    packaging = [name for name in PACKAGING_FILES if (root / name).is_file()]
    dependencies = [name for name in DEPENDENCY_FILES if (root / name).is_file()]
    extras = [name for name in OPTIONAL_ARTIFACTS if (root / name).exists()]
    evidence = "\n".join(
        f"{label}: {', '.join(names) or '-'}"
        for label, names in (
            ("packaging", packaging),
            ("dependencies", dependencies),
            ("other", extras),
        )
    )

    if not packaging:
        return CheckOutcome.failed(
            "No packaging metadata found",
            evidence=evidence,
            remediation=["Add a pyproject.toml or setup.py describing the distribution"],
        )
    if not dependencies:
        return CheckOutcome.warned(
            "No dependency manifest found",
            evidence=evidence,
            remediation=["Declare dependencies in requirements.txt or a lock file"],
        )
    return CheckOutcome.passed(f"Packaging metadata found ({', '.join(packaging)})", evidence=evidence)


ARTIFACTS_CHECK = Check(
    id="H1_ARTIFACTS",
    category=CheckCategory.DEPLOYMENT_READINESS,
    severity=CheckSeverity.WARNING,
    run=check_artifacts,
    description="Packaging and dependency metadata are present",
)
