"""Scoring Module - Turns check results into category scores, a readiness score and a verdict."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Sequence

from .check import CheckCategory, CheckResult, CheckSeverity, CheckStatus
from .profile import Profile

logger = logging.getLogger(__name__)


class Verdict(Enum):
    """Final outcome of a run."""
    READY = "ready"
    NOT_READY = "not_ready"

    @property
    def label(self) -> str:
        return "Ready" if self == Verdict.READY else "Not Ready"

    @property
    def color(self) -> str:
        return "green" if self == Verdict.READY else "red"


def letter_grade(score: float) -> str:
    """Get letter grade for a 0-100 score."""
    if score >= 90:
        return "A"
    elif score >= 80:
        return "B"
    elif score >= 70:
        return "C"
    elif score >= 60:
        return "D"
    else:
        return "F"


@dataclass
class CategoryScore:
    """Score for a single category."""
    category: CheckCategory
    weight: float  # effective, normalized over present categories
    raw_score: float  # 0-1
    weighted_contribution: float  # readiness points
    configured_weight: float = 0.0
    passed: int = 0
    failed: int = 0
    warned: int = 0
    skipped: int = 0
    check_ids: List[str] = field(default_factory=list)
    failing_checks: List[str] = field(default_factory=list)

    @property
    def score(self) -> float:
        """Raw score on a 0-100 scale."""
        return self.raw_score * 100.0

    @property
    def grade(self) -> str:
        return letter_grade(self.score)

    @property
    def check_count(self) -> int:
        return len(self.check_ids)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "category": self.category.value,
            "weight": round(self.weight, 6),
            "configured_weight": self.configured_weight,
            "raw_score": round(self.raw_score, 6),
            "weighted_contribution": round(self.weighted_contribution, 4),
            "grade": self.grade,
            "counts": {
                "pass": self.passed,
                "fail": self.failed,
                "warn": self.warned,
                "skip": self.skipped,
            },
            "checks": list(self.check_ids),
        }


@dataclass
class ScoreCard:
    """Readiness score, verdict and the reasons behind it."""
    readiness_score: float  # 0-100
    verdict: Verdict
    category_scores: List[CategoryScore] = field(default_factory=list)
    disqualifiers: List[str] = field(default_factory=list)
    warnings_count: int = 0
    max_warnings: int = 0
    min_readiness_score: float = 0.0

    @property
    def is_ready(self) -> bool:
        return self.verdict == Verdict.READY

    @property
    def warning_budget_exceeded(self) -> bool:
        """True when more checks warned than the profile tolerates (advisory)."""
        return self.warnings_count > self.max_warnings

    @property
    def grade(self) -> str:
        return letter_grade(self.readiness_score)

    @property
    def status(self) -> str:
        """Get overall status text."""
        if self.is_ready:
            return f"Ready - Grade {self.grade}"
        if self.disqualifiers:
            return f"Not Ready - {len(self.disqualifiers)} Disqualifier(s)"
        return f"Not Ready - Score Below {self.min_readiness_score:g}"

    def get(self, category: CheckCategory) -> "CategoryScore":
        for category_score in self.category_scores:
            if category_score.category == category:
                return category_score
        raise KeyError(category.value)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "readiness_score": round(self.readiness_score, 2),
            "verdict": self.verdict.value,
            "grade": self.grade,
            "status": self.status,
            "min_readiness_score": self.min_readiness_score,
            "disqualifiers": list(self.disqualifiers),
            "warnings_count": self.warnings_count,
            "max_warnings": self.max_warnings,
            "warning_budget_exceeded": self.warning_budget_exceeded,
            "category_scores": [cs.to_dict() for cs in self.category_scores],
        }


class ScoringEngine:
    """Pure scoring of check results against a profile.

    Every check counts equally inside its category: Pass earns 1, Warn 0.5,
    Fail and Skip 0. Severity does not change the score, it only decides
    which failures disqualify.
    """

    def score(self, results: Sequence[CheckResult], profile: Profile) -> ScoreCard:
        """Score a run.

        Args:
            results: One result per active check
            profile: Profile the run used

        Returns:
            ScoreCard with category scores, readiness score and verdict
        """
        by_category: Dict[CheckCategory, List[CheckResult]] = {}
        for result in results:
            by_category.setdefault(result.category, []).append(result)

        present = [c for c in CheckCategory if c in by_category]
        total_weight = sum(profile.weight_for(c) for c in present)

        category_scores: List[CategoryScore] = []
        for category in present:
            category_results = by_category[category]
            raw = sum(r.status.credit for r in category_results) / len(category_results)
            effective = profile.weight_for(category) / total_weight if total_weight > 0 else 0.0
            category_scores.append(CategoryScore(
                category=category,
                weight=effective,
                raw_score=raw,
                weighted_contribution=raw * effective * 100.0,
                configured_weight=profile.weight_for(category),
                passed=sum(1 for r in category_results if r.status == CheckStatus.PASS),
                failed=sum(1 for r in category_results if r.status == CheckStatus.FAIL),
                warned=sum(1 for r in category_results if r.status == CheckStatus.WARN),
                skipped=sum(1 for r in category_results if r.status == CheckStatus.SKIP),
                check_ids=[r.id for r in category_results],
                failing_checks=[r.id for r in category_results if r.status != CheckStatus.PASS],
            ))

        if total_weight <= 0:
            logger.warning("Profile '%s' gives every scored category zero weight", profile.name)
        readiness = sum(cs.weighted_contribution for cs in category_scores)
        readiness = round(min(100.0, max(0.0, readiness)), 6)

        thresholds = profile.thresholds
        disqualifiers = self._disqualifiers(results, profile)
        if readiness < thresholds.min_readiness_score:
            disqualifiers.insert(
                0,
                f"Readiness score {readiness:.1f} is below the minimum "
                f"{thresholds.min_readiness_score:g}",
            )

        verdict = Verdict.NOT_READY if disqualifiers else Verdict.READY
        return ScoreCard(
            readiness_score=readiness,
            verdict=verdict,
            category_scores=category_scores,
            disqualifiers=disqualifiers,
            warnings_count=sum(1 for r in results if r.status == CheckStatus.WARN),
            max_warnings=thresholds.max_warnings,
            min_readiness_score=thresholds.min_readiness_score,
        )

    def _disqualifiers(self, results: Sequence[CheckResult], profile: Profile) -> List[str]:
        """Hard rules evaluated independently of the score."""
        reasons = []
        for result in results:
            if not profile.is_required(result.id):
                continue
            if result.severity == CheckSeverity.FATAL and result.status in (
                CheckStatus.FAIL, CheckStatus.SKIP
            ):
                outcome = "failed" if result.status == CheckStatus.FAIL else "skipped"
                reasons.append(f"Required fatal check {result.id} {outcome}: {result.message}")
            elif (
                profile.thresholds.require_all_tests_pass
                and result.category == CheckCategory.TEST_TRUTH
                and result.status != CheckStatus.PASS
            ):
                reasons.append(
                    f"Required test check {result.id} did not pass ({result.status.value})"
                )
        return reasons

    def get_improvement_suggestions(self, scorecard: ScoreCard) -> List[Dict[str, Any]]:
        """Get prioritized suggestions for score improvement.

        Args:
            scorecard: Scored run

        Returns:
            One suggestion per category below 100, lowest score first
        """
        suggestions = []

        sorted_categories = sorted(
            scorecard.category_scores,
            key=lambda cs: (cs.raw_score, cs.category.value),
        )

        for cat_score in sorted_categories:
            if cat_score.raw_score >= 1.0:
                continue
            priority = "high" if cat_score.score < 60 else (
                "medium" if cat_score.score < 80 else "low"
            )

            suggestion = {
                "category": cat_score.category.value,
                "current_score": round(cat_score.score, 2),
                "priority": priority,
                "potential_improvement": round(
                    (1.0 - cat_score.raw_score) * cat_score.weight * 100.0, 2
                ),
                "failing_checks": list(cat_score.failing_checks),
                "focus_areas": [],
            }

            if cat_score.failed:
                suggestion["focus_areas"].append(f"Fix {cat_score.failed} failing check(s) first")
            if cat_score.skipped:
                suggestion["focus_areas"].append(f"Unblock {cat_score.skipped} skipped check(s)")
            if cat_score.warned:
                suggestion["focus_areas"].append(f"Review {cat_score.warned} warning(s)")

            suggestions.append(suggestion)

        return suggestions
