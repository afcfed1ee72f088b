"""Registry Module - Catalog of the checks a validation run can select from."""

import logging
from collections import deque
from typing import Dict, Iterable, Iterator, List, Optional, Set

from .check import Check, CheckCategory
from .errors import CyclicDependencyError, DuplicateCheckError

logger = logging.getLogger(__name__)


class CheckRegistry:
    """Catalog mapping check IDs to checks.

    Built once before a run and only read afterwards, so executors can share
    it across concurrent tasks without locking. There is no process-wide
    instance; build one and pass it where it is needed.
    """

    def __init__(self):
        """Initialize an empty registry."""
        self._checks: Dict[str, Check] = {}

    @classmethod
    def from_checks(cls, checks: Iterable[Check]) -> "CheckRegistry":
        """Build a registry from checks, registering them in order.

        Args:
            checks: Checks to register

        Returns:
            Populated registry
        """
        registry = cls()
        for check in checks:
            registry.register(check)
        return registry

    def register(self, check: Check) -> None:
        """Register a check.

        Args:
            check: Check to add

        Raises:
            DuplicateCheckError: If the ID is already registered
            CyclicDependencyError: If the check's dependencies close a cycle
        """
        if check.id in self._checks:
            raise DuplicateCheckError(check.id)

        self._checks[check.id] = check
        cycle = self._find_cycle()
        if cycle:
            del self._checks[check.id]
            raise CyclicDependencyError(cycle)

        logger.debug("Registered check %s (%s)", check.id, check.category.value)

    def get(self, check_id: str) -> Optional[Check]:
        """Get a check by ID, or None if unknown."""
        return self._checks.get(check_id)

    def by_category(self, category: CheckCategory) -> Iterator[Check]:
        """Iterate checks of one category in registration order."""
        return (c for c in self._checks.values() if c.category == category)

    def ids(self) -> List[str]:
        """Get all check IDs in registration order."""
        return list(self._checks)

    def index_of(self, check_id: str) -> int:
        """Get the registration position of a check (deterministic tie-break)."""
        return self.ids().index(check_id)

    def __iter__(self) -> Iterator[Check]:
        return iter(list(self._checks.values()))

    def __len__(self) -> int:
        return len(self._checks)

    def __contains__(self, check_id: object) -> bool:
        return check_id in self._checks

    def _find_cycle(self) -> List[str]:
        """Topologically sort the whole registry and report a cycle if any.

        Dependencies on IDs that are not registered are ignored.

        Returns:
            Cycle path such as ["A", "B", "A"], or an empty list
        """
        in_degree: Dict[str, int] = {cid: 0 for cid in self._checks}
        dependents: Dict[str, List[str]] = {cid: [] for cid in self._checks}
        for check in self._checks.values():
            for dep in check.dependencies:
                if dep in self._checks:
                    in_degree[check.id] += 1
                    dependents[dep].append(check.id)

        queue = deque(cid for cid, degree in in_degree.items() if degree == 0)
        resolved = 0
        while queue:
            current = queue.popleft()
            resolved += 1
            for dependent in dependents[current]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    queue.append(dependent)

        if resolved == len(self._checks):
            return []

        remaining: Set[str] = {cid for cid, degree in in_degree.items() if degree > 0}
        return self._trace_cycle(remaining)

    def _trace_cycle(self, remaining: Set[str]) -> List[str]:
        """Walk dependency edges inside the unresolved set until a node repeats."""
        start = next(cid for cid in self._checks if cid in remaining)
        path: List[str] = []
        position: Dict[str, int] = {}
        current = start
        while current not in position:
            position[current] = len(path)
            path.append(current)
            current = next(
                dep for dep in sorted(self._checks[current].dependencies) if dep in remaining
            )
        return path[position[current]:] + [current]
