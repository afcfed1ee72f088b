"""Executor Module - Schedules checks by dependency level and runs them under timeouts."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .check import Check, CheckOutcome, CheckResult, CheckStatus, RunContext
from .errors import UnknownCheckError
from .profile import ConcurrencyMode, Profile
from .registry import CheckRegistry

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], None]

FAIL_FAST_MESSAGE = "upstream fail-fast"


@dataclass
class ExecutionResult:
    """Result of executing every active check of a profile."""
    check_results: List[CheckResult] = field(default_factory=list)
    levels: List[List[str]] = field(default_factory=list)
    total_duration_ms: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    aborted: bool = False
    aborted_by: Optional[str] = None

    def get(self, check_id: str) -> Optional[CheckResult]:
        """Get the result of one check, or None."""
        for result in self.check_results:
            if result.id == check_id:
                return result
        return None

    def count(self, status: CheckStatus) -> int:
        return sum(1 for r in self.check_results if r.status == status)

    @property
    def check_count(self) -> int:
        return len(self.check_results)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "check_results": [r.to_dict(include_evidence=False) for r in self.check_results],
            "levels": [list(level) for level in self.levels],
            "total_duration_ms": self.total_duration_ms,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "check_count": self.check_count,
            "aborted": self.aborted,
            "aborted_by": self.aborted_by,
        }


def _consume_outcome(task: "asyncio.Task") -> None:
    # A timed-out task finishes on its own; retrieve its exception so the loop stays quiet.
    if not task.cancelled():
        task.exception()


class CheckExecutor:
    """Runs the active checks of a profile level by level.

    Within a level checks run serially in registration order, or concurrently
    behind a semaphore sized by the profile's concurrency setting. Levels run
    strictly one after another.
    """

    def __init__(self, registry: CheckRegistry, profile: Profile):
        """Initialize the executor.

        Args:
            registry: Registry holding every check the profile names
            profile: Profile selecting and configuring the checks

        Raises:
            ConfigurationError: If the profile does not validate against the registry
        """
        profile.validate(registry)
        self.registry = registry
        self.profile = profile

    def active_ids(self) -> List[str]:
        """Get active check IDs in registration order."""
        active = self.profile.active_checks
        return [cid for cid in self.registry.ids() if cid in active]

    def plan(self) -> List[List[str]]:
        """Group active checks into dependency levels.

        Dependencies outside the active set count as satisfied. Each level is
        ordered by registration position.

        Returns:
            Levels of check IDs, first level runs first
        """
        order = self.active_ids()
        active = set(order)
        position = {cid: index for index, cid in enumerate(order)}

        in_degree: Dict[str, int] = {cid: 0 for cid in order}
        dependents: Dict[str, List[str]] = {cid: [] for cid in order}
        for cid in order:
            for dep in self.registry.get(cid).dependencies:
                if dep in active:
                    in_degree[cid] += 1
                    dependents[dep].append(cid)

        levels: List[List[str]] = []
        current = [cid for cid in order if in_degree[cid] == 0]
        while current:
            levels.append(current)
            following = []
            for cid in current:
                for dependent in dependents[cid]:
                    in_degree[dependent] -= 1
                    if in_degree[dependent] == 0:
                        following.append(dependent)
            current = sorted(following, key=position.__getitem__)

        return levels

    def timeout_for(self, check: Check, context: RunContext) -> float:
        """Get the timeout in seconds for a check in this run."""
        if context.per_check_timeout_override is not None:
            return float(context.per_check_timeout_override)
        return self.profile.timeout_for(check.category)

    async def execute(
        self,
        context: RunContext,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> ExecutionResult:
        """Execute every active check.

        Args:
            context: Read-only context handed to each check
            progress_callback: Optional callback called with (completed_count, total_count, check_id)
                              each time a check resolves, including skips

        Returns:
            ExecutionResult with exactly one CheckResult per active check
        """
        started_at = datetime.now(timezone.utc)
        start = time.monotonic()
        levels = self.plan()
        order = self.active_ids()
        slots: Dict[str, Optional[CheckResult]] = {cid: None for cid in order}
        root_failure: Dict[str, str] = {}
        result = ExecutionResult(started_at=started_at, levels=levels)

        workers = self.profile.concurrency.resolve_workers()
        semaphore = asyncio.Semaphore(workers)
        completed_count = 0
        total = len(order)

        logger.info(
            "Running %d check(s) for profile '%s' in %d level(s) (concurrency=%s)",
            total, self.profile.name, len(levels), self.profile.concurrency,
        )

        def record(check_result: CheckResult) -> None:
            nonlocal completed_count
            slots[check_result.id] = check_result
            completed_count += 1
            if progress_callback:
                progress_callback(completed_count, total, check_result.id)

        async def run_guarded(check: Check) -> None:
            async with semaphore:
                record(await self._run_check(check, context))

        for index, level in enumerate(levels):
            if result.aborted:
                for cid in level:
                    check = self.registry.get(cid)
                    record(CheckResult.skip(
                        check, f"{FAIL_FAST_MESSAGE}: {result.aborted_by} failed"
                    ))
                continue

            logger.debug("Level %d: %s", index, ", ".join(level))

            runnable: List[Check] = []
            for cid in level:
                check = self.registry.get(cid)
                blocked = self._blocked_reason(check, slots, root_failure)
                if blocked:
                    record(CheckResult.skip(check, blocked))
                else:
                    runnable.append(check)

            if self.profile.concurrency.mode == ConcurrencyMode.SERIAL:
                for check in runnable:
                    record(await self._run_check(check, context))
            else:
                await asyncio.gather(*(run_guarded(check) for check in runnable))

            if self.profile.thresholds.fail_fast:
                trigger = next(
                    (
                        cid for cid in level
                        if self.profile.is_required(cid) and slots[cid].is_fatal_failure
                    ),
                    None,
                )
                if trigger:
                    result.aborted = True
                    result.aborted_by = trigger
                    logger.warning("Fail-fast: required check %s failed, skipping later levels", trigger)

        result.check_results = [slots[cid] for cid in order]
        result.completed_at = datetime.now(timezone.utc)
        result.total_duration_ms = int((time.monotonic() - start) * 1000)

        logger.info(
            "Finished %d check(s) in %d ms: %d passed, %d failed, %d warned, %d skipped",
            total, result.total_duration_ms,
            result.count(CheckStatus.PASS), result.count(CheckStatus.FAIL),
            result.count(CheckStatus.WARN), result.count(CheckStatus.SKIP),
        )
        return result

    async def execute_one(self, check_id: str, context: RunContext) -> CheckResult:
        """Run a single registered check under the usual timeout and error rules.

        Dependencies are not consulted.

        Args:
            check_id: ID of the check to run
            context: Context handed to the check

        Returns:
            The check's result

        Raises:
            UnknownCheckError: If the ID is not registered
        """
        check = self.registry.get(check_id)
        if check is None:
            raise UnknownCheckError([check_id], source="execute_one")
        return await self._run_check(check, context)

    def _blocked_reason(
        self,
        check: Check,
        slots: Dict[str, Optional[CheckResult]],
        root_failure: Dict[str, str],
    ) -> Optional[str]:
        """Get the skip message if a dependency failed fatally or was skipped for that reason."""
        for dep in sorted(check.dependencies):
            dep_result = slots.get(dep)
            if dep_result is None:
                continue
            if dep_result.is_fatal_failure:
                root_failure[check.id] = dep
                return f"dependency {dep} failed (fatal)"
            if dep in root_failure:
                root = root_failure[dep]
                root_failure[check.id] = root
                return f"dependency {dep} was skipped (root failure: {root})"
        return None

    async def _run_check(self, check: Check, context: RunContext) -> CheckResult:
        """Run one check under its timeout and convert every outcome to a result."""
        timeout = self.timeout_for(check, context)
        start = time.monotonic()
        task = asyncio.ensure_future(self._invoke(check, context))
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout)
        except asyncio.CancelledError:
            task.cancel()
            raise
        duration = time.monotonic() - start

        if not done:
            task.cancel()
            task.add_done_callback(_consume_outcome)
            logger.warning("Check %s timed out after %gs", check.id, timeout)
            return CheckResult.failure(
                check,
                f"timed out after {timeout:g}s",
                duration,
                remediation=(
                    f"Increase the {check.category.value} timeout or optimize {check.id}",
                ),
            )

        if task.cancelled():
            logger.warning("Check %s was cancelled", check.id)
            return CheckResult.failure(check, "check was cancelled", duration)

        error = task.exception()
        if error is not None:
            logger.warning("Check %s raised %s: %s", check.id, type(error).__name__, error)
            return CheckResult.failure(
                check, f"check raised {type(error).__name__}: {error}", duration
            )

        outcome = task.result()
        if not isinstance(outcome, CheckOutcome):
            logger.warning("Check %s returned %s instead of CheckOutcome", check.id, type(outcome).__name__)
            return CheckResult.failure(
                check, f"check returned {type(outcome).__name__}, expected CheckOutcome", duration
            )

        logger.debug("Check %s: %s (%.3fs)", check.id, outcome.status.value, duration)
        return CheckResult.from_outcome(check, outcome, duration)

    @staticmethod
    async def _invoke(check: Check, context: RunContext) -> Any:
        return await check.run(context)
