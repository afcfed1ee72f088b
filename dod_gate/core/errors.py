"""Errors Module - Exceptions raised by the validation engine."""

from typing import Iterable, List


class DodError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(DodError):
    """The registry or profile is invalid; raised before any check runs."""


class RegistrationError(ConfigurationError):
    """A check could not be added to the registry."""


class DuplicateCheckError(RegistrationError):
    """A check with the same ID is already registered."""

    def __init__(self, check_id: str):
        self.check_id = check_id
        super().__init__(f"Check '{check_id}' is already registered")


class CyclicDependencyError(RegistrationError):
    """Registering a check would introduce a dependency cycle."""

    def __init__(self, cycle: Iterable[str]):
        self.cycle: List[str] = list(cycle)
        super().__init__(f"Cyclic dependency: {' -> '.join(self.cycle)}")


class UnknownCheckError(ConfigurationError):
    """A profile or caller referenced check IDs the registry does not know."""

    def __init__(self, check_ids: Iterable[str], source: str = "profile"):
        self.check_ids: List[str] = sorted(check_ids)
        self.source = source
        super().__init__(
            f"Unknown check ID(s) referenced by {source}: {', '.join(self.check_ids)}"
        )


class InvalidWeightError(ConfigurationError):
    """A category weight is negative or not a finite number."""

    def __init__(self, category: str, weight: object):
        self.category = category
        self.weight = weight
        super().__init__(
            f"Invalid weight for category '{category}': {weight!r} "
            f"(must be a finite, non-negative number)"
        )


class BundleWriteError(DodError):
    """The receipt or evidence bundle could not be written.

    This is a failed run ("we don't know"), not a NotReady verdict.
    """
