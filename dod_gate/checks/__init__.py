"""Built-in checks for Python workspaces."""

from typing import List

from ..core.check import Check
from ..core.registry import CheckRegistry
from .build import BUILD_CHECK, LINT_CHECK
from .deployment import ARTIFACTS_CHECK
from .intent import INTENT_CHECK
from .safety import SECRETS_CHECK
from .testing import TEST_CHECK
from .workspace import WORKSPACE_CHECK

BUILTIN_CHECKS: List[Check] = [
    WORKSPACE_CHECK,
    BUILD_CHECK,
    LINT_CHECK,
    TEST_CHECK,
    SECRETS_CHECK,
    INTENT_CHECK,
    ARTIFACTS_CHECK,
]


def create_registry() -> CheckRegistry:
    """Build a registry holding every built-in check."""
    return CheckRegistry.from_checks(BUILTIN_CHECKS)


__all__ = [
    "BUILTIN_CHECKS",
    "create_registry",
]
