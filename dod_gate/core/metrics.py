"""Metrics Module - Timing and outcome statistics for one run."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .check import CheckCategory, CheckStatus
from .executor import ExecutionResult


@dataclass
class RunMetrics:
    """Per-run statistics derived from an ExecutionResult.

    Durations are in milliseconds. Skipped checks never ran, so they count
    toward the rates but not toward the timing figures.
    """
    total_duration_ms: int = 0
    checks_executed: int = 0
    checks_passed: int = 0
    checks_failed: int = 0
    checks_warned: int = 0
    checks_skipped: int = 0
    evidence_size_bytes: int = 0
    check_durations: Dict[str, int] = field(default_factory=dict)
    category_durations: Dict[CheckCategory, int] = field(default_factory=dict)

    @classmethod
    def from_execution(cls, execution: ExecutionResult) -> "RunMetrics":
        """Compute metrics from an execution result."""
        metrics = cls(
            total_duration_ms=execution.total_duration_ms,
            checks_executed=execution.check_count,
            checks_passed=execution.count(CheckStatus.PASS),
            checks_failed=execution.count(CheckStatus.FAIL),
            checks_warned=execution.count(CheckStatus.WARN),
            checks_skipped=execution.count(CheckStatus.SKIP),
        )
        for result in execution.check_results:
            metrics.evidence_size_bytes += len(result.evidence)
            if result.status == CheckStatus.SKIP:
                continue
            metrics.check_durations[result.id] = result.duration_ms
            metrics.category_durations[result.category] = (
                metrics.category_durations.get(result.category, 0) + result.duration_ms
            )
        return metrics

    @property
    def average_duration_ms(self) -> float:
        """Mean duration of the checks that ran."""
        if not self.check_durations:
            return 0.0
        return sum(self.check_durations.values()) / len(self.check_durations)

    @property
    def slowest_check(self) -> Optional[Tuple[str, int]]:
        # max() keeps the first of equal entries, so ties go to registration order
        if not self.check_durations:
            return None
        return max(self.check_durations.items(), key=lambda item: item[1])

    @property
    def fastest_check(self) -> Optional[Tuple[str, int]]:
        if not self.check_durations:
            return None
        return min(self.check_durations.items(), key=lambda item: item[1])

    @property
    def slowest_category(self) -> Optional[Tuple[CheckCategory, int]]:
        if not self.category_durations:
            return None
        return max(self.category_durations.items(), key=lambda item: item[1])

    @property
    def success_rate(self) -> float:
        """Share of checks that passed, 0.0 to 1.0."""
        if self.checks_executed == 0:
            return 0.0
        return self.checks_passed / self.checks_executed

    @property
    def failure_rate(self) -> float:
        """Share of checks that failed, 0.0 to 1.0."""
        if self.checks_executed == 0:
            return 0.0
        return self.checks_failed / self.checks_executed

    def format_summary(self) -> str:
        """Format the metrics as a plain-text summary."""
        lines: List[str] = [
            "Run Metrics",
            "===========",
            f"Total Duration: {self.total_duration_ms / 1000:.2f}s",
            f"Checks Executed: {self.checks_executed}",
            f"  - Passed: {self.checks_passed}",
            f"  - Failed: {self.checks_failed}",
            f"  - Warned: {self.checks_warned}",
            f"  - Skipped: {self.checks_skipped}",
            f"Success Rate: {self.success_rate * 100:.1f}%",
            f"Failure Rate: {self.failure_rate * 100:.1f}%",
            f"Evidence Size: {self.evidence_size_bytes} bytes",
        ]
        if self.slowest_check:
            check_id, duration = self.slowest_check
            lines.append(f"Slowest Check: {check_id} ({duration / 1000:.2f}s)")
        if self.fastest_check:
            check_id, duration = self.fastest_check
            lines.append(f"Fastest Check: {check_id} ({duration / 1000:.2f}s)")
        if self.slowest_category:
            category, duration = self.slowest_category
            lines.append(f"Slowest Category: {category.title} ({duration / 1000:.2f}s)")
        lines.append(f"Average Check Duration: {self.average_duration_ms / 1000:.2f}s")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        slowest = self.slowest_check
        fastest = self.fastest_check
        slowest_category = self.slowest_category
        return {
            "total_duration_ms": self.total_duration_ms,
            "checks_executed": self.checks_executed,
            "counts": {
                "pass": self.checks_passed,
                "fail": self.checks_failed,
                "warn": self.checks_warned,
                "skip": self.checks_skipped,
            },
            "average_duration_ms": round(self.average_duration_ms, 3),
            "slowest_check": {"id": slowest[0], "duration_ms": slowest[1]} if slowest else None,
            "fastest_check": {"id": fastest[0], "duration_ms": fastest[1]} if fastest else None,
            "slowest_category": (
                {"category": slowest_category[0].value, "duration_ms": slowest_category[1]}
                if slowest_category else None
            ),
            "success_rate": round(self.success_rate, 4),
            "failure_rate": round(self.failure_rate, 4),
            "evidence_size_bytes": self.evidence_size_bytes,
            "category_durations_ms": {
                category.value: duration for category, duration in self.category_durations.items()
            },
        }
