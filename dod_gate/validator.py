"""Validator Module - Runs one Definition of Done validation end to end."""

import asyncio
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Union

from .core.check import CheckResult, RunContext, ValidationMode
from .core.errors import BundleWriteError, ConfigurationError
from .core.executor import CheckExecutor, ExecutionResult, ProgressCallback
from .core.metrics import RunMetrics
from .core.profile import Profile
from .core.receipt import ArtifactPaths, EvidenceBundle, Receipt, ReceiptBuilder
from .core.registry import CheckRegistry
from .core.scoring import CategoryScore, ScoreCard, ScoringEngine, Verdict
from .reporters.base_reporter import ReportData
from .reporters.markdown_reporter import MarkdownReporter

logger = logging.getLogger(__name__)

REPORT_FILENAME = "report.md"

# Seconds cancelled leftovers get to unwind before the loop closes
SHUTDOWN_GRACE = 0.25


@dataclass
class ValidationResult:
    """Everything one run produced."""
    workspace_root: Path
    profile: Profile
    mode: ValidationMode
    scorecard: ScoreCard
    receipt: Receipt
    bundle: EvidenceBundle
    execution: ExecutionResult
    artifacts: Optional[ArtifactPaths] = None

    @property
    def verdict(self) -> Verdict:
        return self.scorecard.verdict

    @property
    def readiness_score(self) -> float:
        return self.scorecard.readiness_score

    @property
    def category_scores(self) -> List[CategoryScore]:
        return self.scorecard.category_scores

    @property
    def check_results(self) -> List[CheckResult]:
        return self.execution.check_results

    @property
    def is_ready(self) -> bool:
        return self.scorecard.is_ready

    @property
    def metrics(self) -> RunMetrics:
        return RunMetrics.from_execution(self.execution)

    def report_data(self) -> ReportData:
        """Collect what the reporters render."""
        return ReportData(
            project_name=self.workspace_root.name or str(self.workspace_root),
            project_path=str(self.workspace_root),
            profile_name=self.profile.name,
            mode=self.mode.value,
            scorecard=self.scorecard,
            check_results=list(self.check_results),
            content_hash=self.receipt.content_hash,
            suggestions=ScoringEngine().get_improvement_suggestions(self.scorecard),
            warnings=list(self.receipt.warnings),
            metadata={
                "total_duration_ms": self.execution.total_duration_ms,
                "aborted_by": self.execution.aborted_by,
            },
            metrics=self.metrics,
        )


def _abandon_pending_tasks(loop: asyncio.AbstractEventLoop) -> None:
    """Cancel leftover tasks and give them a short grace period to unwind.

    Tasks that ignore cancellation past the grace period are left to die
    with the loop.
    """
    pending = [task for task in asyncio.all_tasks(loop) if not task.done()]
    if not pending:
        return
    for task in pending:
        task.cancel()
    done, stuck = loop.run_until_complete(asyncio.wait(pending, timeout=SHUTDOWN_GRACE))
    for task in done:
        if not task.cancelled():
            task.exception()
    if stuck:
        logger.warning("Abandoning %d check task(s) that ignored cancellation", len(stuck))


class DodValidator:
    """Wires executor, scoring and receipt building for a single run."""

    def __init__(
        self,
        registry: CheckRegistry,
        profile: Profile,
        receipt_builder: Optional[ReceiptBuilder] = None,
    ):
        """Initialize the validator.

        Args:
            registry: Registry of available checks
            profile: Profile to run

        Raises:
            ConfigurationError: If the profile does not validate against the registry
        """
        self.executor = CheckExecutor(registry, profile)
        self.profile = profile
        self.scoring = ScoringEngine()
        self.receipt_builder = receipt_builder or ReceiptBuilder()

    async def validate_async(
        self,
        workspace_root: Union[str, Path],
        mode: ValidationMode = ValidationMode.FAST,
        timeout_override: Optional[float] = None,
        metadata: Optional[Dict[str, str]] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> ValidationResult:
        """Run every active check and score the run.

        Args:
            workspace_root: Directory to validate
            mode: Validation mode recorded in the receipt
            timeout_override: Seconds replacing every per-category timeout
            metadata: Extra read-only values for checks
            progress_callback: Called with (completed_count, total_count, check_id)

        Returns:
            ValidationResult

        Raises:
            ConfigurationError: If the workspace is not a directory
                or timeout_override is not a positive number
        """
        root = Path(workspace_root).resolve()
        if not root.is_dir():
            raise ConfigurationError(f"Workspace {root} is not a directory")
        if timeout_override is not None and not (
            math.isfinite(timeout_override) and timeout_override > 0
        ):
            raise ConfigurationError(
                f"Timeout override must be a positive number of seconds, got {timeout_override!r}"
            )

        context = RunContext(
            workspace_root=root,
            profile_name=self.profile.name,
            mode=mode,
            per_check_timeout_override=timeout_override,
            metadata=dict(metadata or {}),
        )
        logger.info("Validating %s with profile '%s' (%s)", root, self.profile.name, mode.value)

        execution = await self.executor.execute(context, progress_callback=progress_callback)
        scorecard = self.scoring.score(execution.check_results, self.profile)
        receipt, bundle = self.receipt_builder.build(
            execution.check_results,
            scorecard,
            profile_name=self.profile.name,
            mode=mode,
            timestamp=execution.completed_at,
        )

        logger.info(
            "Verdict: %s (score %.1f, hash %s)",
            scorecard.verdict.label, scorecard.readiness_score, receipt.content_hash[:12],
        )
        return ValidationResult(
            workspace_root=root,
            profile=self.profile,
            mode=mode,
            scorecard=scorecard,
            receipt=receipt,
            bundle=bundle,
            execution=execution,
        )

    def validate(
        self,
        workspace_root: Union[str, Path],
        mode: ValidationMode = ValidationMode.FAST,
        timeout_override: Optional[float] = None,
        metadata: Optional[Dict[str, str]] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> ValidationResult:
        """Synchronous wrapper around validate_async.

        Unlike asyncio.run, closing the loop does not wait for threads or
        tasks that timed-out checks left behind.
        """
        loop = asyncio.new_event_loop()
        pool = ThreadPoolExecutor(thread_name_prefix="dod-check")
        loop.set_default_executor(pool)
        try:
            asyncio.set_event_loop(loop)
            return loop.run_until_complete(self.validate_async(
                workspace_root,
                mode=mode,
                timeout_override=timeout_override,
                metadata=metadata,
                progress_callback=progress_callback,
            ))
        finally:
            try:
                _abandon_pending_tasks(loop)
                loop.run_until_complete(loop.shutdown_asyncgens())
            finally:
                asyncio.set_event_loop(None)
                pool.shutdown(wait=False)
                loop.close()

    def save(self, result: ValidationResult, output_dir: Union[str, Path]) -> ArtifactPaths:
        """Write receipt, evidence bundle and Markdown report.

        Raises:
            BundleWriteError: If any artifact cannot be written
        """
        paths = self.receipt_builder.save(result.receipt, result.bundle, output_dir)
        try:
            reporter = MarkdownReporter(output_dir=str(paths.directory))
            report_path = Path(reporter.save(result.report_data(), filename=REPORT_FILENAME))
        except OSError as e:
            raise BundleWriteError(f"Failed to write report to {paths.directory}: {e}") from e

        result.artifacts = ArtifactPaths(
            directory=paths.directory,
            receipt_path=paths.receipt_path,
            bundle_path=paths.bundle_path,
            report_path=report_path,
        )
        return result.artifacts

    def validate_and_save(
        self,
        workspace_root: Union[str, Path],
        output_dir: Union[str, Path],
        mode: ValidationMode = ValidationMode.FAST,
        timeout_override: Optional[float] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> ValidationResult:
        """Validate, then write the run's artifacts under output_dir."""
        result = self.validate(
            workspace_root,
            mode=mode,
            timeout_override=timeout_override,
            progress_callback=progress_callback,
        )
        self.save(result, output_dir)
        return result
