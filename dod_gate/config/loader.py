"""Profile loading from YAML files."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from ..core.check import CheckCategory
from ..core.errors import ConfigurationError
from ..core.profile import Concurrency, ConcurrencyMode, Profile, Thresholds

logger = logging.getLogger(__name__)

BUILTIN_PROFILE_DIR = Path(__file__).resolve().parent.parent / "configs"

PROFILE_KEYS = {
    "name", "description", "required_checks", "optional_checks",
    "category_weights", "timeouts", "concurrency", "thresholds",
}
THRESHOLD_KEYS = {"min_readiness_score", "max_warnings", "require_all_tests_pass", "fail_fast"}


def list_builtin_profiles() -> List[str]:
    """Get names of the bundled profiles."""
    return sorted(p.stem for p in BUILTIN_PROFILE_DIR.glob("*.yaml"))


def load_builtin_profile(name: str) -> Profile:
    """Load a bundled profile by name.

    Raises:
        ConfigurationError: If no bundled profile has that name
    """
    path = BUILTIN_PROFILE_DIR / f"{name}.yaml"
    if not path.is_file():
        raise ConfigurationError(
            f"Unknown profile '{name}' (available: {', '.join(list_builtin_profiles())})"
        )
    return load_profile(path)


def load_profile(path: Union[str, Path]) -> Profile:
    """Load a profile from a YAML file.

    Args:
        path: Path to a .yaml/.yml profile

    Returns:
        Parsed profile (not yet validated against a registry)

    Raises:
        ConfigurationError: If the file is missing, not YAML, or not a profile
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"Profile file does not exist: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read profile {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Profile {path} must be a mapping, got {type(data).__name__}")

    data.setdefault("name", path.stem)
    logger.debug("Loaded profile '%s' from %s", data["name"], path)
    return profile_from_dict(data, source=str(path))


def profile_from_dict(data: Dict[str, Any], source: str = "<dict>") -> Profile:
    """Build a profile from parsed configuration.

    Args:
        data: Parsed profile mapping
        source: Where the data came from, for error messages

    Returns:
        Profile

    Raises:
        ConfigurationError: Naming the source and the offending key
    """
    unknown = set(data) - PROFILE_KEYS
    if unknown:
        raise ConfigurationError(f"{source}: unknown profile key(s): {', '.join(sorted(unknown))}")

    name = data.get("name")
    if not name or not isinstance(name, str):
        raise ConfigurationError(f"{source}: profile 'name' must be a non-empty string")

    timeouts = _mapping(data.get("timeouts"), "timeouts", source)
    default_timeout = timeouts.pop("default", 60.0)

    return Profile(
        name=name,
        description=str(data.get("description") or ""),
        required_checks=frozenset(_id_list(data.get("required_checks"), "required_checks", source)),
        optional_checks=frozenset(_id_list(data.get("optional_checks"), "optional_checks", source)),
        category_weights=_category_map(data.get("category_weights"), "category_weights", source),
        timeouts=_category_map(timeouts, "timeouts", source),
        default_timeout=default_timeout,
        concurrency=_concurrency(data.get("concurrency", "auto"), source),
        thresholds=_thresholds(data.get("thresholds"), source),
    )


def _mapping(value: Any, key: str, source: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"{source}: '{key}' must be a mapping")
    return dict(value)


def _id_list(value: Any, key: str, source: str) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) and v for v in value):
        raise ConfigurationError(f"{source}: '{key}' must be a list of check IDs")
    duplicates = sorted({v for v in value if value.count(v) > 1})
    if duplicates:
        raise ConfigurationError(f"{source}: '{key}' lists {', '.join(duplicates)} more than once")
    return list(value)


def _category_map(value: Any, key: str, source: str) -> Dict[CheckCategory, Any]:
    result: Dict[CheckCategory, Any] = {}
    for name, amount in _mapping(value, key, source).items():
        try:
            category = CheckCategory.parse(name)
        except ValueError as e:
            raise ConfigurationError(f"{source}: {key}: {e}") from e
        result[category] = amount
    return result


def _concurrency(value: Any, source: str) -> Concurrency:
    """Parse 'serial', 'auto', 'parallel' with workers, or an integer."""
    if isinstance(value, bool):
        raise ConfigurationError(f"{source}: invalid concurrency {value!r}")
    if isinstance(value, int):
        return Concurrency.parallel(value)
    if isinstance(value, str):
        value = {"mode": value}
    if not isinstance(value, dict):
        raise ConfigurationError(f"{source}: invalid concurrency {value!r}")

    try:
        mode = ConcurrencyMode(str(value.get("mode", "auto")).lower())
    except ValueError as e:
        raise ConfigurationError(
            f"{source}: concurrency mode must be serial, parallel or auto, got {value.get('mode')!r}"
        ) from e

    workers = value.get("workers")
    if mode == ConcurrencyMode.PARALLEL:
        if not isinstance(workers, int) or isinstance(workers, bool):
            raise ConfigurationError(f"{source}: parallel concurrency needs an integer 'workers'")
        return Concurrency.parallel(workers)
    return Concurrency(mode)


def _thresholds(value: Any, source: str) -> Thresholds:
    data = _mapping(value, "thresholds", source)
    unknown = set(data) - THRESHOLD_KEYS
    if unknown:
        raise ConfigurationError(f"{source}: unknown threshold key(s): {', '.join(sorted(unknown))}")

    defaults = Thresholds()
    for flag in ("require_all_tests_pass", "fail_fast"):
        if flag in data and not isinstance(data[flag], bool):
            raise ConfigurationError(f"{source}: thresholds.{flag} must be true or false")
    max_warnings = data.get("max_warnings", defaults.max_warnings)
    if not isinstance(max_warnings, int) or isinstance(max_warnings, bool):
        raise ConfigurationError(f"{source}: thresholds.max_warnings must be an integer")

    return Thresholds(
        min_readiness_score=data.get("min_readiness_score", defaults.min_readiness_score),
        max_warnings=max_warnings,
        require_all_tests_pass=data.get("require_all_tests_pass", defaults.require_all_tests_pass),
        fail_fast=data.get("fail_fast", defaults.fail_fast),
    )
