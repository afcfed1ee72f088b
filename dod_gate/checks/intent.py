"""Intent alignment check: the workspace documents why it exists."""

from pathlib import Path
from typing import List

from ..core.check import Check, CheckCategory, CheckOutcome, CheckSeverity, RunContext

README_NAMES = ("README.md", "README.rst", "README.txt", "README")
INTENT_GLOBS = (
    "docs/PRD*.md",
    "docs/prd/*.md",
    "docs/adr/*.md",
    "docs/decisions/*.md",
    "PRD*.md",
    "ADR*.md",
)
MIN_README_BYTES = 200


def find_intent_docs(root: Path) -> List[str]:
    found = set()
    for pattern in INTENT_GLOBS:
        found.update(p.relative_to(root).as_posix() for p in root.glob(pattern) if p.is_file())
    return sorted(found)


async def check_intent(context: RunContext) -> CheckOutcome:
    """README plus a PRD or ADR passes; a README alone warns."""
    root = context.workspace_root
    readme = next((root / name for name in README_NAMES if (root / name).is_file()), None)
    if readme is None:
        return CheckOutcome.failed(
            "No README found",
            remediation=["Add a README.md explaining what the project does and why"],
        )

    docs = find_intent_docs(root)
    evidence = "\n".join([readme.name] + docs)
    if readme.stat().st_size < MIN_README_BYTES:
        return CheckOutcome.warned(
            f"{readme.name} is shorter than {MIN_README_BYTES} bytes",
            evidence=evidence,
            remediation=["Describe purpose, usage and scope in the README"],
        )
    if not docs:
        return CheckOutcome.warned(
            "No PRD or ADR found",
            evidence=evidence,
            remediation=["Record product intent in docs/PRD.md or decisions in docs/adr/"],
        )
    return CheckOutcome.passed(f"README and {len(docs)} intent document(s) found", evidence=evidence)


INTENT_CHECK = Check(
    id="WHY_INTENT",
    category=CheckCategory.INTENT_ALIGNMENT,
    severity=CheckSeverity.INFO,
    run=check_intent,
    description="README and product/decision records are present",
)
