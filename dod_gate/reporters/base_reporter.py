"""Base Reporter Module - Abstract base class for report generators."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..core.check import CheckCategory, CheckResult, CheckStatus
from ..core.metrics import RunMetrics
from ..core.scoring import ScoreCard


@dataclass
class ReportData:
    """Data structure containing all information for a report."""
    project_name: str
    project_path: str
    profile_name: str
    mode: str
    scorecard: ScoreCard
    check_results: List[CheckResult]
    content_hash: str = ""
    suggestions: List[Dict[str, Any]] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Dict[str, Any] = field(default_factory=dict)
    metrics: Optional[RunMetrics] = None

    def count(self, status: CheckStatus) -> int:
        return sum(1 for r in self.check_results if r.status == status)

    def results_for(self, category: CheckCategory) -> List[CheckResult]:
        """Get results of one category in run order."""
        return [r for r in self.check_results if r.category == category]

    @property
    def remediation_items(self) -> List[CheckResult]:
        """Non-passing results that carry remediation steps."""
        return [
            r for r in self.check_results
            if r.status != CheckStatus.PASS and r.remediation
        ]


class BaseReporter(ABC):
    """Abstract base class for report generators."""

    def __init__(self, output_dir: Optional[str] = None):
        """Initialize the reporter.

        Args:
            output_dir: Directory to save reports (default: current directory)
        """
        self.output_dir = Path(output_dir) if output_dir else Path.cwd()

    @property
    @abstractmethod
    def format(self) -> str:
        """Report format identifier (e.g., 'json', 'markdown')."""
        pass

    @property
    @abstractmethod
    def extension(self) -> str:
        """File extension for the report format."""
        pass

    @abstractmethod
    def generate(self, report_data: ReportData) -> bytes:
        """Generate the report content.

        Args:
            report_data: Data to include in the report

        Returns:
            Report content as bytes
        """
        pass

    def generate_filename(
        self,
        project_name: str,
        timestamp: Optional[datetime] = None,
    ) -> str:
        """Generate a filename for the report.

        Args:
            project_name: Name of the project
            timestamp: Timestamp for the report (default: now)

        Returns:
            Generated filename
        """
        ts = timestamp or datetime.now(timezone.utc)
        ts_str = ts.strftime("%Y%m%d_%H%M%S")
        safe_name = "".join(c if c.isalnum() else "_" for c in project_name)
        return f"dod_report_{safe_name}_{ts_str}.{self.extension}"

    def save(
        self,
        report_data: ReportData,
        filename: Optional[str] = None,
    ) -> str:
        """Generate and save the report to a file.

        Args:
            report_data: Data to include in the report
            filename: Custom filename (default: auto-generated)

        Returns:
            Path to the saved report
        """
        content = self.generate(report_data)

        if not filename:
            filename = self.generate_filename(
                report_data.project_name,
                report_data.generated_at,
            )

        self.output_dir.mkdir(parents=True, exist_ok=True)
        output_path = self.output_dir / filename

        with open(output_path, "wb") as f:
            f.write(content)

        return str(output_path)
