"""Markdown Reporter Module - Generate Markdown reports for PRs and CI summaries."""

from typing import List, Optional

from ..core.check import CheckCategory, CheckStatus
from .base_reporter import BaseReporter, ReportData

STATUS_ICONS = {
    CheckStatus.PASS: "✅",
    CheckStatus.FAIL: "❌",
    CheckStatus.WARN: "⚠️",
    CheckStatus.SKIP: "⏭️",
}


class MarkdownReporter(BaseReporter):
    """Generate reports in Markdown format."""

    def __init__(self, output_dir: Optional[str] = None, evidence_lines: int = 20):
        """Initialize the Markdown reporter.

        Args:
            output_dir: Directory to save reports
            evidence_lines: Evidence lines shown per failing check (0 hides evidence)
        """
        super().__init__(output_dir)
        self.evidence_lines = evidence_lines

    @property
    def format(self) -> str:
        return "markdown"

    @property
    def extension(self) -> str:
        return "md"

    def generate(self, report_data: ReportData) -> bytes:
        lines: List[str] = []
        lines.extend(self._header(report_data))
        lines.extend(self._summary(report_data))
        lines.extend(self._categories(report_data))
        lines.extend(self._checks(report_data))
        lines.extend(self._metrics(report_data))
        lines.extend(self._remediation(report_data))
        return ("\n".join(lines).rstrip() + "\n").encode("utf-8")

    def _header(self, data: ReportData) -> List[str]:
        scorecard = data.scorecard
        icon = "✅" if scorecard.is_ready else "❌"
        lines = [
            "# Definition of Done Report",
            "",
            f"## {icon} {scorecard.verdict.label}",
            "",
            f"- **Readiness score:** {scorecard.readiness_score:.1f} / 100 "
            f"(grade {scorecard.grade}, minimum {scorecard.min_readiness_score:g})",
            f"- **Project:** `{data.project_path}`",
            f"- **Profile:** {data.profile_name}",
            f"- **Mode:** {data.mode}",
            f"- **Generated:** {data.generated_at.strftime('%Y-%m-%d %H:%M:%S %Z').strip()}",
        ]
        if data.content_hash:
            lines.append(f"- **Receipt hash:** `{data.content_hash}`")
        lines.append("")

        if scorecard.disqualifiers:
            lines.append("### Disqualifiers")
            lines.append("")
            lines.extend(f"- {reason}" for reason in scorecard.disqualifiers)
            lines.append("")
        return lines

    def _summary(self, data: ReportData) -> List[str]:
        scorecard = data.scorecard
        lines = [
            "## Summary",
            "",
            "| Total | Pass | Fail | Warn | Skip |",
            "|------:|-----:|-----:|-----:|-----:|",
            f"| {len(data.check_results)} | {data.count(CheckStatus.PASS)} | "
            f"{data.count(CheckStatus.FAIL)} | {data.count(CheckStatus.WARN)} | "
            f"{data.count(CheckStatus.SKIP)} |",
            "",
        ]
        if scorecard.warning_budget_exceeded:
            lines.append(
                f"> {scorecard.warnings_count} warnings exceed the profile budget "
                f"of {scorecard.max_warnings}."
            )
            lines.append("")
        for warning in data.warnings:
            lines.append(f"> {warning}")
        if data.warnings:
            lines.append("")
        return lines

    def _categories(self, data: ReportData) -> List[str]:
        lines = [
            "## Categories",
            "",
            "| Category | Weight | Score | Grade | Contribution |",
            "|----------|-------:|------:|:-----:|-------------:|",
        ]
        for cs in data.scorecard.category_scores:
            lines.append(
                f"| {cs.category.title} | {cs.weight * 100:.1f}% | {cs.score:.1f} | "
                f"{cs.grade} | {cs.weighted_contribution:.1f} |"
            )
        lines.append("")
        return lines

    def _checks(self, data: ReportData) -> List[str]:
        lines = ["## Checks", ""]
        for category in CheckCategory:
            results = data.results_for(category)
            if not results:
                continue
            lines.append(f"### {category.title}")
            lines.append("")
            for result in results:
                lines.append(
                    f"- {STATUS_ICONS[result.status]} **{result.id}** "
                    f"({result.severity.value}, {result.duration_ms} ms): {result.message}"
                )
                if (
                    self.evidence_lines
                    and result.status in (CheckStatus.FAIL, CheckStatus.WARN)
                    and result.evidence
                ):
                    evidence = result.evidence_text.splitlines()
                    shown = evidence[: self.evidence_lines]
                    lines.append("")
                    lines.append("  ```")
                    lines.extend(f"  {line}" for line in shown)
                    if len(evidence) > len(shown):
                        lines.append(f"  ... {len(evidence) - len(shown)} more line(s)")
                    lines.append("  ```")
                    lines.append("")
            lines.append("")
        return lines

    def _metrics(self, data: ReportData) -> List[str]:
        metrics = data.metrics
        if metrics is None:
            return []
        lines = [
            "## Metrics",
            "",
            f"- **Total duration:** {metrics.total_duration_ms} ms",
            f"- **Average check duration:** {metrics.average_duration_ms:.0f} ms",
            f"- **Success rate:** {metrics.success_rate * 100:.1f}%",
            f"- **Failure rate:** {metrics.failure_rate * 100:.1f}%",
        ]
        if metrics.slowest_check:
            check_id, duration = metrics.slowest_check
            lines.append(f"- **Slowest check:** {check_id} ({duration} ms)")
        if metrics.fastest_check:
            check_id, duration = metrics.fastest_check
            lines.append(f"- **Fastest check:** {check_id} ({duration} ms)")
        if metrics.slowest_category:
            category, duration = metrics.slowest_category
            lines.append(f"- **Slowest category:** {category.title} ({duration} ms)")
        lines.append("")
        return lines

    def _remediation(self, data: ReportData) -> List[str]:
        items = data.remediation_items
        if not items:
            return []
        lines = ["## Remediation", ""]
        for result in items:
            lines.append(f"### {result.id}")
            lines.append("")
            lines.extend(f"{i}. {step}" for i, step in enumerate(result.remediation, 1))
            lines.append("")
        return lines
