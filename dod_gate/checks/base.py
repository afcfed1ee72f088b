"""Helpers shared by the built-in checks."""

import asyncio
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

logger = logging.getLogger(__name__)

# Directories never walked or compiled by the built-in checks
EXCLUDED_DIRS = {
    '.git', 'node_modules', 'venv', '.venv', 'env',
    '__pycache__', '.pytest_cache', '.mypy_cache', '.ruff_cache', '.tox', '.nox',
    'dist', 'build', '.eggs', 'vendor', 'third_party',
    'htmlcov', '.hypothesis', 'site-packages',
    'dod_reports',
}


@dataclass
class CommandResult:
    """Outcome of an external command."""
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """stdout and stderr combined, for evidence."""
        parts = [p for p in (self.stdout.strip(), self.stderr.strip()) if p]
        return "\n".join(parts)


def tool_available(name: str) -> bool:
    """Check whether an executable is on PATH."""
    return shutil.which(name) is not None


async def run_command(
    command: List[str],
    cwd: Optional[Union[str, Path]] = None,
    env: Optional[Dict[str, str]] = None,
) -> CommandResult:
    """Run a command asynchronously.

    The process is killed if the awaiting task is cancelled, which is how
    the executor enforces check timeouts.

    Args:
        command: Command and arguments as list
        cwd: Working directory for the command
        env: Extra environment variables

    Returns:
        CommandResult; returncode -1 if the command could not be started
    """
    logger.debug("Running %s in %s", " ".join(command), cwd)
    try:
        process = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd else None,
            env={**os.environ, **env} if env else None,
        )
    except OSError as e:
        return CommandResult(-1, "", str(e))

    try:
        stdout, stderr = await process.communicate()
    except asyncio.CancelledError:
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
            # Reap the killed process so it does not linger as a zombie
            await asyncio.shield(process.wait())
        raise

    return CommandResult(
        process.returncode if process.returncode is not None else -1,
        stdout.decode("utf-8", errors="replace"),
        stderr.decode("utf-8", errors="replace"),
    )


def walk_files(root_path: Path) -> Iterator[Path]:
    """Walk files under root, skipping excluded directories.

    Yields:
        File paths
    """
    for item in sorted(root_path.rglob('*')):
        if not item.is_file():
            continue
        if any(excluded in item.relative_to(root_path).parts for excluded in EXCLUDED_DIRS):
            continue
        yield item
