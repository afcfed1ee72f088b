"""Check Module - Defines the check contract and the data models it produces."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Iterable, Optional, Tuple, Union


class CheckCategory(Enum):
    """Closed set of categories a check can belong to."""
    WORKSPACE_INTEGRITY = "workspace_integrity"
    INTENT_ALIGNMENT = "intent_alignment"
    TOOL_REGISTRY = "tool_registry"
    BUILD_CORRECTNESS = "build_correctness"
    TEST_TRUTH = "test_truth"
    GGEN_PIPELINE = "ggen_pipeline"
    SAFETY_INVARIANTS = "safety_invariants"
    DEPLOYMENT_READINESS = "deployment_readiness"

    @property
    def title(self) -> str:
        """Get display title for the category."""
        return self.value.replace("_", " ").title()

    @classmethod
    def parse(cls, name: str) -> "CheckCategory":
        """Parse a category from its value, enum name or PascalCase name.

        Args:
            name: e.g. "test_truth", "TEST_TRUTH" or "TestTruth"

        Returns:
            Matching CheckCategory

        Raises:
            ValueError: If the name matches no category
        """
        key = str(name).strip()
        for category in cls:
            pascal = "".join(part.title() for part in category.value.split("_"))
            if key in (category.value, category.name, pascal):
                return category
        raise ValueError(f"Unknown check category: {name!r}")


class CheckSeverity(Enum):
    """How a failing check affects the verdict."""
    FATAL = "fatal"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Get numeric rank for severity (higher is more severe)."""
        ranks = {
            CheckSeverity.FATAL: 2,
            CheckSeverity.WARNING: 1,
            CheckSeverity.INFO: 0,
        }
        return ranks[self]

    @property
    def color(self) -> str:
        """Get color code for severity."""
        colors = {
            CheckSeverity.FATAL: "red",
            CheckSeverity.WARNING: "yellow",
            CheckSeverity.INFO: "blue",
        }
        return colors[self]


class CheckStatus(Enum):
    """Outcome status of a single check."""
    PASS = "pass"
    FAIL = "fail"
    WARN = "warn"
    SKIP = "skip"

    @property
    def credit(self) -> float:
        """Get the score credit a check earns for this status."""
        credits = {
            CheckStatus.PASS: 1.0,
            CheckStatus.WARN: 0.5,
            CheckStatus.FAIL: 0.0,
            CheckStatus.SKIP: 0.0,
        }
        return credits[self]

    @property
    def rank(self) -> int:
        """Get evidence priority for this status (higher is kept longer)."""
        ranks = {
            CheckStatus.PASS: 0,
            CheckStatus.SKIP: 1,
            CheckStatus.WARN: 2,
            CheckStatus.FAIL: 3,
        }
        return ranks[self]

    @property
    def color(self) -> str:
        """Get color code for status."""
        colors = {
            CheckStatus.PASS: "green",
            CheckStatus.FAIL: "red",
            CheckStatus.WARN: "yellow",
            CheckStatus.SKIP: "dim",
        }
        return colors[self]


class ValidationMode(Enum):
    """How thorough a run is; recorded in the receipt and visible to checks."""
    FAST = "fast"
    STRICT = "strict"
    PARANOID = "paranoid"


def _to_bytes(evidence: Union[bytes, str, None]) -> bytes:
    if evidence is None:
        return b""
    if isinstance(evidence, str):
        return evidence.encode("utf-8")
    return bytes(evidence)


@dataclass(frozen=True)
class RunContext:
    """Read-only context handed to every check during a run."""
    workspace_root: Path
    profile_name: str
    mode: ValidationMode = ValidationMode.FAST
    per_check_timeout_override: Optional[float] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "workspace_root", Path(self.workspace_root))


@dataclass(frozen=True)
class CheckOutcome:
    """What a check's run callable returns."""
    status: CheckStatus
    message: str
    evidence: bytes = b""
    remediation: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "evidence", _to_bytes(self.evidence))
        object.__setattr__(self, "remediation", tuple(self.remediation))

    @classmethod
    def passed(cls, message: str, evidence: Union[bytes, str, None] = None) -> "CheckOutcome":
        return cls(CheckStatus.PASS, message, _to_bytes(evidence))

    @classmethod
    def failed(
        cls,
        message: str,
        evidence: Union[bytes, str, None] = None,
        remediation: Iterable[str] = (),
    ) -> "CheckOutcome":
        return cls(CheckStatus.FAIL, message, _to_bytes(evidence), tuple(remediation))

    @classmethod
    def warned(
        cls,
        message: str,
        evidence: Union[bytes, str, None] = None,
        remediation: Iterable[str] = (),
    ) -> "CheckOutcome":
        return cls(CheckStatus.WARN, message, _to_bytes(evidence), tuple(remediation))

    @classmethod
    def skipped(cls, message: str) -> "CheckOutcome":
        return cls(CheckStatus.SKIP, message)


CheckRunner = Callable[[RunContext], Awaitable[CheckOutcome]]


@dataclass(frozen=True)
class Check:
    """A single named, categorized unit of validation work.

    Checks are metadata plus one async callable. They never see the engine
    or each other, only the RunContext they are given.
    """
    id: str
    category: CheckCategory
    severity: CheckSeverity
    run: CheckRunner = field(compare=False, repr=False)
    dependencies: FrozenSet[str] = frozenset()
    description: str = ""

    def __post_init__(self):
        if not self.id or not isinstance(self.id, str):
            raise ValueError("Check id must be a non-empty string")
        object.__setattr__(self, "dependencies", frozenset(self.dependencies))

    def to_dict(self) -> Dict[str, Any]:
        """Convert check metadata to dictionary."""
        return {
            "id": self.id,
            "category": self.category.value,
            "severity": self.severity.value,
            "dependencies": sorted(self.dependencies),
            "description": self.description,
        }


@dataclass(frozen=True)
class CheckResult:
    """Result of one check in one run; produced exactly once per active check."""
    id: str
    category: CheckCategory
    severity: CheckSeverity
    status: CheckStatus
    message: str
    evidence: bytes = b""
    duration: float = 0.0  # seconds
    remediation: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "evidence", _to_bytes(self.evidence))
        object.__setattr__(self, "remediation", tuple(self.remediation))

    @classmethod
    def from_outcome(cls, check: Check, outcome: CheckOutcome, duration: float) -> "CheckResult":
        """Bind a check's outcome to its metadata."""
        return cls(
            id=check.id,
            category=check.category,
            severity=check.severity,
            status=outcome.status,
            message=outcome.message,
            evidence=outcome.evidence,
            duration=duration,
            remediation=outcome.remediation,
        )

    @classmethod
    def failure(
        cls,
        check: Check,
        message: str,
        duration: float = 0.0,
        remediation: Tuple[str, ...] = (),
    ) -> "CheckResult":
        return cls(
            check.id, check.category, check.severity, CheckStatus.FAIL, message,
            duration=duration, remediation=tuple(remediation),
        )

    @classmethod
    def skip(cls, check: Check, message: str) -> "CheckResult":
        return cls(check.id, check.category, check.severity, CheckStatus.SKIP, message)

    @property
    def is_fatal_failure(self) -> bool:
        """True when this is a Fail of a Fatal-severity check."""
        return self.status == CheckStatus.FAIL and self.severity == CheckSeverity.FATAL

    @property
    def evidence_text(self) -> str:
        """Evidence decoded for display."""
        return self.evidence.decode("utf-8", errors="replace")

    @property
    def duration_ms(self) -> int:
        return int(round(self.duration * 1000))

    def to_dict(self, include_evidence: bool = True) -> Dict[str, Any]:
        """Convert result to dictionary."""
        data = {
            "id": self.id,
            "category": self.category.value,
            "severity": self.severity.value,
            "status": self.status.value,
            "message": self.message,
            "remediation": list(self.remediation),
            "duration_ms": self.duration_ms,
        }
        if include_evidence:
            data["evidence"] = self.evidence_text
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CheckResult":
        """Create result from dictionary."""
        return cls(
            id=data["id"],
            category=CheckCategory(data["category"]),
            severity=CheckSeverity(data["severity"]),
            status=CheckStatus(data["status"]),
            message=data.get("message", ""),
            evidence=data.get("evidence", ""),
            duration=data.get("duration_ms", 0) / 1000.0,
            remediation=tuple(data.get("remediation", [])),
        )
