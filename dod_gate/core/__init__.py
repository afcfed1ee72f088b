"""Core engine for the Definition of Done gate."""

from .check import (
    Check,
    CheckCategory,
    CheckOutcome,
    CheckResult,
    CheckSeverity,
    CheckStatus,
    RunContext,
    ValidationMode,
)
from .errors import (
    BundleWriteError,
    ConfigurationError,
    CyclicDependencyError,
    DodError,
    DuplicateCheckError,
    InvalidWeightError,
    RegistrationError,
    UnknownCheckError,
)
from .registry import CheckRegistry
from .profile import Concurrency, ConcurrencyMode, Profile, Thresholds
from .executor import CheckExecutor, ExecutionResult
from .metrics import RunMetrics
from .scoring import CategoryScore, ScoreCard, ScoringEngine, Verdict
from .receipt import EvidenceBundle, Receipt, ReceiptBuilder

__all__ = [
    "Check",
    "CheckCategory",
    "CheckOutcome",
    "CheckResult",
    "CheckSeverity",
    "CheckStatus",
    "RunContext",
    "ValidationMode",
    "DodError",
    "ConfigurationError",
    "RegistrationError",
    "DuplicateCheckError",
    "CyclicDependencyError",
    "UnknownCheckError",
    "InvalidWeightError",
    "BundleWriteError",
    "CheckRegistry",
    "Concurrency",
    "ConcurrencyMode",
    "Profile",
    "Thresholds",
    "CheckExecutor",
    "ExecutionResult",
    "RunMetrics",
    "CategoryScore",
    "ScoreCard",
    "ScoringEngine",
    "Verdict",
    "EvidenceBundle",
    "Receipt",
    "ReceiptBuilder",
]
