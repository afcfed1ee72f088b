"""Profile Module - Declarative configuration for a validation run."""

import math
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Optional, Set

from .check import CheckCategory
from .errors import ConfigurationError, InvalidWeightError, UnknownCheckError
from .registry import CheckRegistry


class ConcurrencyMode(Enum):
    """How checks within one dependency level are scheduled."""
    SERIAL = "serial"
    PARALLEL = "parallel"
    AUTO = "auto"


@dataclass(frozen=True)
class Concurrency:
    """Concurrency setting: Serial, Parallel(n) or Auto."""
    mode: ConcurrencyMode = ConcurrencyMode.AUTO
    workers: Optional[int] = None

    @classmethod
    def serial(cls) -> "Concurrency":
        return cls(ConcurrencyMode.SERIAL)

    @classmethod
    def parallel(cls, workers: int) -> "Concurrency":
        return cls(ConcurrencyMode.PARALLEL, workers)

    @classmethod
    def auto(cls) -> "Concurrency":
        return cls(ConcurrencyMode.AUTO)

    def resolve_workers(self) -> int:
        """Get the number of checks that may run at once."""
        if self.mode == ConcurrencyMode.SERIAL:
            return 1
        if self.mode == ConcurrencyMode.PARALLEL:
            return int(self.workers or 1)
        return os.cpu_count() or 1

    def __str__(self) -> str:
        if self.mode == ConcurrencyMode.PARALLEL:
            return f"parallel({self.workers})"
        return self.mode.value


@dataclass(frozen=True)
class Thresholds:
    """Verdict thresholds."""
    min_readiness_score: float = 70.0
    max_warnings: int = 20
    require_all_tests_pass: bool = False
    fail_fast: bool = False


@dataclass(frozen=True)
class Profile:
    """Which checks run, how they are weighted, timed and scheduled.

    Profiles are supplied from outside the engine and never mutated by it.
    Weights need not sum to 1; the scoring engine normalizes them over the
    categories that actually have active checks. Categories missing from
    ``category_weights`` weigh 0: they still gate the verdict through
    required Fatal checks but add nothing to the score.
    """
    name: str
    required_checks: FrozenSet[str] = frozenset()
    optional_checks: FrozenSet[str] = frozenset()
    category_weights: Dict[CheckCategory, float] = field(default_factory=dict)
    timeouts: Dict[CheckCategory, float] = field(default_factory=dict)  # seconds
    default_timeout: float = 60.0  # seconds
    concurrency: Concurrency = field(default_factory=Concurrency)
    thresholds: Thresholds = field(default_factory=Thresholds)
    description: str = ""

    def __post_init__(self):
        object.__setattr__(self, "required_checks", frozenset(self.required_checks))
        object.__setattr__(self, "optional_checks", frozenset(self.optional_checks))
        object.__setattr__(self, "category_weights", dict(self.category_weights))
        object.__setattr__(self, "timeouts", dict(self.timeouts))

    @property
    def active_checks(self) -> FrozenSet[str]:
        """Required and optional check IDs together."""
        return self.required_checks | self.optional_checks

    def is_required(self, check_id: str) -> bool:
        return check_id in self.required_checks

    def weight_for(self, category: CheckCategory) -> float:
        return float(self.category_weights.get(category, 0.0))

    def timeout_for(self, category: CheckCategory) -> float:
        """Get the timeout in seconds for checks of a category."""
        return float(self.timeouts.get(category, self.default_timeout))

    def validate(self, registry: CheckRegistry) -> None:
        """Validate the profile against a registry before a run starts.

        Args:
            registry: Registry the profile's check IDs must resolve against

        Raises:
            ConfigurationError: Naming the offending check ID or category
        """
        overlap = self.required_checks & self.optional_checks
        if overlap:
            raise ConfigurationError(
                f"Profile '{self.name}' lists check(s) as both required and optional: "
                f"{', '.join(sorted(overlap))}"
            )

        unknown = {cid for cid in self.active_checks if cid not in registry}
        if unknown:
            raise UnknownCheckError(unknown, source=f"profile '{self.name}'")

        if not self.active_checks:
            raise ConfigurationError(f"Profile '{self.name}' selects no checks")

        for category, weight in self.category_weights.items():
            if not _is_finite_number(weight) or weight < 0:
                raise InvalidWeightError(category.value, weight)

        thresholds = self.thresholds
        if not _is_finite_number(thresholds.min_readiness_score) or not (
            0.0 <= thresholds.min_readiness_score <= 100.0
        ):
            raise ConfigurationError(
                f"Profile '{self.name}': min_readiness_score must be between 0 and 100, "
                f"got {thresholds.min_readiness_score!r}"
            )
        if thresholds.max_warnings < 0:
            raise ConfigurationError(
                f"Profile '{self.name}': max_warnings must be >= 0, got {thresholds.max_warnings}"
            )

        if not _is_finite_number(self.default_timeout) or self.default_timeout <= 0:
            raise ConfigurationError(
                f"Profile '{self.name}': default timeout must be positive, got {self.default_timeout!r}"
            )
        for category, timeout in self.timeouts.items():
            if not _is_finite_number(timeout) or timeout <= 0:
                raise ConfigurationError(
                    f"Profile '{self.name}': timeout for category '{category.value}' "
                    f"must be positive, got {timeout!r}"
                )

        if self.concurrency.mode == ConcurrencyMode.PARALLEL and (
            self.concurrency.workers is None or self.concurrency.workers < 1
        ):
            raise ConfigurationError(
                f"Profile '{self.name}': parallel concurrency needs at least 1 worker, "
                f"got {self.concurrency.workers!r}"
            )

        active_categories: Set[CheckCategory] = {
            registry.get(cid).category for cid in self.active_checks
        }
        if sum(self.weight_for(c) for c in active_categories) <= 0:
            raise ConfigurationError(
                f"Profile '{self.name}': categories of the selected checks "
                f"({', '.join(sorted(c.value for c in active_categories))}) all have zero weight"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "description": self.description,
            "required_checks": sorted(self.required_checks),
            "optional_checks": sorted(self.optional_checks),
            "category_weights": {c.value: w for c, w in sorted(
                self.category_weights.items(), key=lambda item: item[0].value
            )},
            "timeouts": {
                "default": self.default_timeout,
                **{c.value: t for c, t in sorted(self.timeouts.items(), key=lambda item: item[0].value)},
            },
            "concurrency": str(self.concurrency),
            "thresholds": {
                "min_readiness_score": self.thresholds.min_readiness_score,
                "max_warnings": self.thresholds.max_warnings,
                "require_all_tests_pass": self.thresholds.require_all_tests_pass,
                "fail_fast": self.thresholds.fail_fast,
            },
        }


def _is_finite_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


# Build 25%, tests 25%, pipeline 20%, registry 15%, safety 10%, intent 5%.
# Workspace integrity and deployment readiness gate only.
DEFAULT_CATEGORY_WEIGHTS: Dict[CheckCategory, float] = {
    CheckCategory.BUILD_CORRECTNESS: 0.25,
    CheckCategory.TEST_TRUTH: 0.25,
    CheckCategory.GGEN_PIPELINE: 0.20,
    CheckCategory.TOOL_REGISTRY: 0.15,
    CheckCategory.SAFETY_INVARIANTS: 0.10,
    CheckCategory.INTENT_ALIGNMENT: 0.05,
    CheckCategory.WORKSPACE_INTEGRITY: 0.0,
    CheckCategory.DEPLOYMENT_READINESS: 0.0,
}


def default_profile(
    required: Iterable[str] = ("G0_WORKSPACE", "BUILD_CHECK", "TEST_UNIT", "G8_SECRETS"),
    optional: Iterable[str] = ("BUILD_LINT", "WHY_INTENT", "H1_ARTIFACTS"),
) -> Profile:
    """Default development profile with lenient thresholds."""
    return Profile(
        name="default",
        description="Default development profile with lenient thresholds",
        required_checks=frozenset(required),
        optional_checks=frozenset(optional),
        category_weights=dict(DEFAULT_CATEGORY_WEIGHTS),
        timeouts={
            CheckCategory.BUILD_CORRECTNESS: 600.0,
            CheckCategory.TEST_TRUTH: 900.0,
            CheckCategory.GGEN_PIPELINE: 300.0,
        },
        default_timeout=60.0,
        concurrency=Concurrency.auto(),
        thresholds=Thresholds(
            min_readiness_score=70.0,
            max_warnings=20,
            require_all_tests_pass=False,
            fail_fast=False,
        ),
    )


def strict_profile(
    required: Iterable[str] = (
        "G0_WORKSPACE", "BUILD_CHECK", "BUILD_LINT", "TEST_UNIT",
        "G8_SECRETS", "WHY_INTENT", "H1_ARTIFACTS",
    ),
    optional: Iterable[str] = (),
) -> Profile:
    """Enterprise profile with strict thresholds."""
    return Profile(
        name="strict",
        description="Production profile with strict thresholds",
        required_checks=frozenset(required),
        optional_checks=frozenset(optional),
        category_weights=dict(DEFAULT_CATEGORY_WEIGHTS),
        timeouts={
            CheckCategory.BUILD_CORRECTNESS: 600.0,
            CheckCategory.TEST_TRUTH: 1800.0,
            CheckCategory.GGEN_PIPELINE: 600.0,
        },
        default_timeout=120.0,
        concurrency=Concurrency.auto(),
        thresholds=Thresholds(
            min_readiness_score=90.0,
            max_warnings=5,
            require_all_tests_pass=True,
            fail_fast=True,
        ),
    )
