"""Safety invariants check - Detects hardcoded secrets without external tools."""

import asyncio
import logging
import re
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Set, Tuple

from ..core.check import (
    Check,
    CheckCategory,
    CheckOutcome,
    CheckSeverity,
    RunContext,
    ValidationMode,
)
from .base import walk_files

logger = logging.getLogger(__name__)

# (pattern, rule id, blocking, description); non-blocking findings only warn
SECRET_PATTERNS: List[Tuple[str, str, bool, str]] = [
    # Passwords and secrets in config files and code
    (r'password\s*[=:]\s*["\']?([^"\'\s]{4,})["\']?', 'hardcoded-password', True, 'Hardcoded password'),
    (r'passwd\s*[=:]\s*["\']?([^"\'\s]{4,})["\']?', 'hardcoded-password', True, 'Hardcoded password'),
    (r'secret\s*[=:]\s*["\']?([^"\'\s]{4,})["\']?', 'hardcoded-secret', True, 'Hardcoded secret'),

    # API keys and tokens
    (r'api[_-]?key\s*[=:]\s*["\']?([a-zA-Z0-9_\-]{8,})["\']?', 'api-key', True, 'API key'),
    (r'token\s*[=:]\s*["\']?([a-zA-Z0-9_\-]{16,})["\']?', 'auth-token', False, 'Authentication token'),
    (r'bearer\s+([a-zA-Z0-9_\-\.]{20,})', 'bearer-token', True, 'Bearer token'),

    # Cloud credentials
    (r'AKIA[0-9A-Z]{16}', 'aws-access-key', True, 'AWS access key ID'),
    (r'aws[_-]?secret[_-]?access[_-]?key\s*[=:]\s*["\']?([a-zA-Z0-9/+=]{40})["\']?', 'aws-secret-key', True, 'AWS secret access key'),

    # Connection strings with credentials
    (r'(?:mysql|postgresql|postgres|mongodb|redis)://[^"\'\s:]+:([^@"\'\s]+)@', 'database-url', True, 'Database URL with credentials'),

    # Private keys
    (r'-----BEGIN\s+(?:RSA\s+|EC\s+|PGP\s+|OPENSSH\s+)?PRIVATE\s+KEY-----', 'private-key', True, 'Private key'),

    # Hosted service tokens
    (r'gh[pousr]_[a-zA-Z0-9]{36}', 'github-token', True, 'GitHub token'),
    (r'glpat-[a-zA-Z0-9\-]{20,}', 'gitlab-pat', True, 'GitLab personal access token'),
    (r'xox[baprs]-[0-9]{10,13}-[0-9]{10,13}[a-zA-Z0-9-]*', 'slack-token', True, 'Slack token'),
    (r'eyJ[a-zA-Z0-9_-]*\.eyJ[a-zA-Z0-9_-]*\.[a-zA-Z0-9_-]*', 'jwt-token', False, 'JWT'),
]

# Files that commonly contain secrets; always scanned
HIGH_PRIORITY_FILES = {
    'secrets.yaml', 'secrets.yml', 'secret.yaml', 'secret.yml',
    'credentials.yaml', 'credentials.yml', 'credentials.json',
    '.env', '.env.local', '.env.production', '.env.development',
    'config.yaml', 'config.yml', 'settings.yaml', 'settings.yml', 'settings.json',
    'docker-compose.yml', 'docker-compose.yaml',
    'values.yaml', 'values.yml',
}

# Scanned too in strict and paranoid modes
SCANNABLE_EXTENSIONS = {
    '.yaml', '.yml', '.json', '.ini', '.toml', '.cfg', '.conf', '.env', '.properties',
}

# Scanned too in paranoid mode
SOURCE_EXTENSIONS = {'.py', '.sh', '.js', '.ts'}

# Known placeholder values
SAFE_VALUES = {
    'password', 'changeme', 'changeit', 'secret', 'mysecret',
    'example', 'your-password', 'your-secret', 'xxx', 'yyy',
    'placeholder', 'replace-me', 'todo', 'fixme', '***', 'none', 'null',
}

PLACEHOLDER_PATTERNS = [
    r'^\$\{.*\}$',  # ${VAR}
    r'^\$\(.*\)$',  # $(VAR)
    r'^<.*>$',      # <placeholder>
    r'^\{\{.*\}\}$',  # {{template}}
    r'^env[.:]',
    r'^vault:',
    r'^\*+$',
    r'^x+$',
]

ENV_REFERENCE_PATTERNS = [
    r'os\.getenv\s*\(',
    r'os\.environ',
    r'getenv\s*\(',
    r'process\.env\.',
]

MAX_FILE_BYTES = 1024 * 1024


@dataclass(frozen=True)
class SecretFinding:
    """One detected secret."""
    path: str
    line_number: int
    rule_id: str
    description: str
    masked_value: str
    blocking: bool

    def __str__(self) -> str:
        return f"{self.path}:{self.line_number}: {self.rule_id} ({self.description}) {self.masked_value}"


def mask_secret(value: str) -> str:
    """Mask a secret for display."""
    if len(value) > 6:
        return value[:3] + '*' * (len(value) - 6) + value[-3:]
    return '*' * len(value)


def is_safe_value(value: str) -> bool:
    """Check if a matched value is a placeholder or an environment lookup."""
    value_lower = value.lower().strip().strip(',;')
    if value_lower in SAFE_VALUES:
        return True
    if any(re.match(p, value_lower) for p in PLACEHOLDER_PATTERNS):
        return True
    return any(re.search(p, value_lower) for p in ENV_REFERENCE_PATTERNS)


def _wanted_extensions(mode: ValidationMode) -> Set[str]:
    if mode == ValidationMode.PARANOID:
        return SCANNABLE_EXTENSIONS | SOURCE_EXTENSIONS
    if mode == ValidationMode.STRICT:
        return set(SCANNABLE_EXTENSIONS)
    return set()


def scan_file(file_path: Path, root: Path) -> List[SecretFinding]:
    """Scan a single file for secrets.

    Args:
        file_path: File to scan
        root: Workspace root, for relative paths in findings

    Returns:
        Findings in line order
    """
    findings: List[SecretFinding] = []
    try:
        if file_path.stat().st_size > MAX_FILE_BYTES:
            return findings
        content = file_path.read_text(encoding='utf-8', errors='ignore')
    except OSError:
        return findings

    relative = file_path.relative_to(root).as_posix()
    for line_num, line in enumerate(content.splitlines(), 1):
        stripped = line.strip()
        if stripped.startswith(('#', '//', '--')):
            continue

        for pattern, rule_id, blocking, description in SECRET_PATTERNS:
            for match in re.finditer(pattern, line, re.IGNORECASE):
                secret_value = match.group(1) if match.groups() else match.group(0)
                if len(secret_value) < 4 or is_safe_value(secret_value):
                    continue
                findings.append(SecretFinding(
                    path=relative,
                    line_number=line_num,
                    rule_id=rule_id,
                    description=description,
                    masked_value=mask_secret(secret_value),
                    blocking=blocking,
                ))
    return findings


def scan_workspace(
    root: Path,
    mode: ValidationMode,
    stop: Optional[threading.Event] = None,
) -> List[SecretFinding]:
    """Scan the files of a workspace that the mode selects.

    The scan ends early, with the findings so far, once stop is set.
    """
    extensions = _wanted_extensions(mode)
    findings: List[SecretFinding] = []
    for file_path in walk_files(root):
        if stop is not None and stop.is_set():
            logger.debug("Secret scan of %s stopped", root)
            break
        name = file_path.name.lower()
        if name in HIGH_PRIORITY_FILES or file_path.suffix.lower() in extensions:
            findings.extend(scan_file(file_path, root))
    return findings


async def check_secrets(context: RunContext) -> CheckOutcome:
    """Fail on blocking secrets; warn on lower-confidence ones."""
    root = context.workspace_root
    stop = threading.Event()
    try:
        findings = await asyncio.to_thread(scan_workspace, root, context.mode, stop)
    except asyncio.CancelledError:
        stop.set()
        raise
    if not findings:
        return CheckOutcome.passed("No hardcoded secrets detected")

    evidence = "\n".join(str(f) for f in findings)
    remediation = [
        "Rotate every exposed credential",
        "Move secrets to environment variables or a secret manager",
        "Remove secrets from git history with git-filter-repo",
    ]
    blocking = [f for f in findings if f.blocking]
    if blocking:
        return CheckOutcome.failed(
            f"{len(blocking)} hardcoded secret(s) detected",
            evidence=evidence,
            remediation=remediation,
        )
    return CheckOutcome.warned(
        f"{len(findings)} possible secret(s) detected",
        evidence=evidence,
        remediation=remediation[1:],
    )


SECRETS_CHECK = Check(
    id="G8_SECRETS",
    category=CheckCategory.SAFETY_INVARIANTS,
    severity=CheckSeverity.FATAL,
    run=check_secrets,
    description="No hardcoded secrets in configuration or source",
)
