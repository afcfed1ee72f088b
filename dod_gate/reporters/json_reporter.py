"""JSON Reporter Module - Generate JSON format reports."""

import json
from typing import Any, Dict, Optional

from ..core.check import CheckStatus
from .base_reporter import BaseReporter, ReportData


class JSONReporter(BaseReporter):
    """Generate reports in JSON format."""

    def __init__(
        self,
        output_dir: Optional[str] = None,
        indent: int = 2,
        include_evidence: bool = True,
    ):
        """Initialize the JSON reporter.

        Args:
            output_dir: Directory to save reports
            indent: JSON indentation level
            include_evidence: Include evidence text for every check
        """
        super().__init__(output_dir)
        self.indent = indent
        self.include_evidence = include_evidence

    @property
    def format(self) -> str:
        return "json"

    @property
    def extension(self) -> str:
        return "json"

    def generate(self, report_data: ReportData) -> bytes:
        """Generate JSON report.

        Args:
            report_data: Data to include in the report

        Returns:
            JSON content as bytes
        """
        report_dict = self._build_report_structure(report_data)
        json_str = json.dumps(report_dict, indent=self.indent, ensure_ascii=False)
        return json_str.encode("utf-8")

    def _build_report_structure(self, report_data: ReportData) -> Dict[str, Any]:
        """Build the JSON report structure.

        Schema:
        {
          "report_info": { project, profile, mode, generated_at, content_hash },
          "summary": { verdict, readiness_score, grade, counts, disqualifiers, ... },
          "categories": [ { category, weight, raw_score, ... } ],
          "checks": [ { id, status, message, evidence, ... } ],
          "suggestions": [ ... ],
          "metrics": { average_duration_ms, slowest_check, success_rate, ... } or null
        }

        Args:
            report_data: Report data

        Returns:
            Dictionary for JSON serialization
        """
        scorecard = report_data.scorecard
        return {
            "report_info": {
                "project_name": report_data.project_name,
                "project_path": report_data.project_path,
                "profile": report_data.profile_name,
                "mode": report_data.mode,
                "generated_at": report_data.generated_at.isoformat(),
                "content_hash": report_data.content_hash,
            },
            "summary": {
                "verdict": scorecard.verdict.value,
                "readiness_score": round(scorecard.readiness_score, 2),
                "min_readiness_score": scorecard.min_readiness_score,
                "grade": scorecard.grade,
                "status": scorecard.status,
                "counts": {
                    status.value: report_data.count(status) for status in CheckStatus
                },
                "disqualifiers": list(scorecard.disqualifiers),
                "warnings_count": scorecard.warnings_count,
                "warning_budget_exceeded": scorecard.warning_budget_exceeded,
            },
            "categories": [cs.to_dict() for cs in scorecard.category_scores],
            "checks": [
                r.to_dict(include_evidence=self.include_evidence)
                for r in report_data.check_results
            ],
            "suggestions": list(report_data.suggestions),
            "warnings": list(report_data.warnings),
            "metadata": dict(report_data.metadata),
            "metrics": report_data.metrics.to_dict() if report_data.metrics else None,
        }
