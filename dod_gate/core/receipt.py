"""Receipt Module - Deterministic, hashed record of a run plus its evidence bundle."""

import gzip
import hashlib
import io
import json
import logging
import tarfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .check import CheckResult, CheckStatus, ValidationMode
from .errors import BundleWriteError
from .scoring import ScoreCard

logger = logging.getLogger(__name__)

RECEIPT_VERSION = "1.0.0"
DEFAULT_MAX_EVIDENCE_BYTES = 1024
DEFAULT_MAX_BUNDLE_BYTES = 10 * 1024 * 1024

RECEIPT_FILENAME = "receipt.json"
BUNDLE_FILENAME = "evidence.tar.gz"
MANIFEST_FILENAME = "manifest.json"

# Receipt entry fields that enter the content hash; wall-clock fields stay out.
HASHED_FIELDS = (
    "id",
    "category",
    "severity",
    "status",
    "message",
    "remediation",
    "evidence_sha256",
    "evidence_bytes",
)


def canonical_json(value: Any) -> bytes:
    """Serialize with sorted keys, compact separators, UTF-8."""
    return json.dumps(
        value, sort_keys=True, separators=(",", ":"), ensure_ascii=False
    ).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def _safe_name(check_id: str) -> str:
    return "".join(c if c.isalnum() or c in "-_." else "_" for c in check_id)


@dataclass(frozen=True)
class EvidenceEntry:
    """Evidence of one check as stored in the bundle."""
    check_id: str
    status: CheckStatus
    data: bytes  # possibly truncated
    original_size: int
    evidence_sha256: str  # of the full, untruncated evidence

    @property
    def truncated(self) -> bool:
        return len(self.data) < self.original_size

    @property
    def path(self) -> str:
        return f"evidence/{_safe_name(self.check_id)}.txt"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "check_id": self.check_id,
            "status": self.status.value,
            "path": self.path,
            "size_bytes": len(self.data),
            "original_size_bytes": self.original_size,
            "sha256": sha256_hex(self.data),
            "evidence_sha256": self.evidence_sha256,
            "truncated": self.truncated,
        }


@dataclass
class EvidenceBundle:
    """Size-capped collection of per-check evidence."""
    entries: List[EvidenceEntry] = field(default_factory=list)
    dropped: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    max_evidence_bytes: int = DEFAULT_MAX_EVIDENCE_BYTES
    max_bundle_bytes: int = DEFAULT_MAX_BUNDLE_BYTES

    @property
    def total_bytes(self) -> int:
        """Evidence bytes held by the bundle."""
        return sum(len(e.data) for e in self.entries)

    def get(self, check_id: str) -> Optional[EvidenceEntry]:
        for entry in self.entries:
            if entry.check_id == check_id:
                return entry
        return None

    def manifest(self) -> Dict[str, Any]:
        """Build the manifest stored next to the evidence files."""
        return {
            "version": RECEIPT_VERSION,
            "max_evidence_bytes": self.max_evidence_bytes,
            "max_bundle_bytes": self.max_bundle_bytes,
            "total_bytes": self.total_bytes,
            "entries": [e.to_dict() for e in self.entries],
            "dropped": list(self.dropped),
            "warnings": list(self.warnings),
        }

    def to_archive(self) -> bytes:
        """Render the bundle as a tar.gz archive.

        Members are sorted by name and carry fixed metadata, so identical
        bundles give identical bytes.
        """
        members: Dict[str, bytes] = {e.path: e.data for e in self.entries}
        members[MANIFEST_FILENAME] = json.dumps(
            self.manifest(), indent=2, sort_keys=True, ensure_ascii=False
        ).encode("utf-8")

        buffer = io.BytesIO()
        with gzip.GzipFile(fileobj=buffer, mode="wb", mtime=0, filename="") as gz:
            with tarfile.open(fileobj=gz, mode="w", format=tarfile.PAX_FORMAT) as tar:
                for name in sorted(members):
                    data = members[name]
                    info = tarfile.TarInfo(name)
                    info.size = len(data)
                    info.mtime = 0
                    info.mode = 0o644
                    info.uid = info.gid = 0
                    info.uname = info.gname = ""
                    tar.addfile(info, io.BytesIO(data))
        return buffer.getvalue()


@dataclass(frozen=True)
class Receipt:
    """Write-once record of a completed run."""
    version: str
    timestamp: str
    profile_name: str
    mode: str
    verdict: str
    readiness_score: float
    content_hash: str
    check_results: Tuple[Dict[str, Any], ...] = ()
    evidence_bundle_ref: Optional[Dict[str, Any]] = None
    summary: Dict[str, Any] = field(default_factory=dict)
    warnings: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "check_results", tuple(self.check_results))
        object.__setattr__(self, "warnings", tuple(self.warnings))

    @property
    def is_ready(self) -> bool:
        return self.verdict == "ready"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "version": self.version,
            "timestamp": self.timestamp,
            "profile_name": self.profile_name,
            "mode": self.mode,
            "verdict": self.verdict,
            "readiness_score": self.readiness_score,
            "content_hash": self.content_hash,
            "summary": dict(self.summary),
            "warnings": list(self.warnings),
            "check_results": [dict(entry) for entry in self.check_results],
            "evidence_bundle_ref": dict(self.evidence_bundle_ref) if self.evidence_bundle_ref else None,
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Receipt":
        """Create receipt from dictionary.

        Raises:
            ValueError: If a required field is missing
        """
        try:
            return cls(
                version=data["version"],
                timestamp=data["timestamp"],
                profile_name=data["profile_name"],
                mode=data["mode"],
                verdict=data["verdict"],
                readiness_score=data["readiness_score"],
                content_hash=data["content_hash"],
                check_results=tuple(data.get("check_results", [])),
                evidence_bundle_ref=data.get("evidence_bundle_ref"),
                summary=data.get("summary", {}),
                warnings=tuple(data.get("warnings", [])),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed receipt: missing or invalid field {e}") from e


@dataclass(frozen=True)
class ArtifactPaths:
    """Where a saved run's artifacts live."""
    directory: Path
    receipt_path: Path
    bundle_path: Path
    report_path: Optional[Path] = None


class ReceiptBuilder:
    """Builds receipts and evidence bundles.

    Building is a pure transform of check results; writing to disk is the
    separate save step.
    """

    def __init__(
        self,
        max_evidence_bytes: int = DEFAULT_MAX_EVIDENCE_BYTES,
        max_bundle_bytes: int = DEFAULT_MAX_BUNDLE_BYTES,
    ):
        """Initialize the builder.

        Args:
            max_evidence_bytes: Per-check evidence cap
            max_bundle_bytes: Cap on all evidence in the bundle
        """
        if max_evidence_bytes < 0 or max_bundle_bytes < 0:
            raise ValueError("Evidence limits must be non-negative")
        self.max_evidence_bytes = max_evidence_bytes
        self.max_bundle_bytes = max_bundle_bytes

    @staticmethod
    def receipt_entry(result: CheckResult) -> Dict[str, Any]:
        """Receipt form of a check result."""
        return {
            "id": result.id,
            "category": result.category.value,
            "severity": result.severity.value,
            "status": result.status.value,
            "message": result.message,
            "remediation": list(result.remediation),
            "evidence_sha256": sha256_hex(result.evidence),
            "evidence_bytes": len(result.evidence),
            "duration_ms": result.duration_ms,
        }

    @staticmethod
    def compute_content_hash(
        profile_name: str,
        mode: str,
        entries: Sequence[Dict[str, Any]],
    ) -> str:
        """Hash the canonical form of a run.

        Args:
            profile_name: Profile the run used
            mode: Validation mode value
            entries: Receipt check entries, in any order

        Returns:
            Hex SHA-256 digest
        """
        hashed = [
            {key: entry.get(key) for key in HASHED_FIELDS}
            for entry in sorted(entries, key=lambda e: e["id"])
        ]
        payload = {
            "profile_name": profile_name,
            "mode": mode,
            "check_results": hashed,
        }
        return sha256_hex(canonical_json(payload))

    def bundle_evidence(self, results: Sequence[CheckResult]) -> EvidenceBundle:
        """Truncate and cap evidence into a bundle.

        Over the total cap, the lowest-priority evidence is dropped first:
        Pass, then Skip, Warn, Fail; within a status Info, then Warning,
        Fatal; ties by check ID.
        """
        bundle = EvidenceBundle(
            max_evidence_bytes=self.max_evidence_bytes,
            max_bundle_bytes=self.max_bundle_bytes,
        )

        keyed = []
        for result in sorted(results, key=lambda r: r.id):
            if not result.evidence:
                continue
            entry = EvidenceEntry(
                check_id=result.id,
                status=result.status,
                data=result.evidence[: self.max_evidence_bytes],
                original_size=len(result.evidence),
                evidence_sha256=sha256_hex(result.evidence),
            )
            keyed.append(((result.status.rank, result.severity.rank, result.id), entry))

        total = sum(len(entry.data) for _, entry in keyed)
        dropped = set()
        for _, entry in sorted(keyed, key=lambda item: item[0]):
            if total <= self.max_bundle_bytes:
                break
            total -= len(entry.data)
            dropped.add(entry.check_id)
            bundle.dropped.append(entry.check_id)
            bundle.warnings.append(
                f"Evidence for {entry.check_id} dropped: bundle exceeds {self.max_bundle_bytes} bytes"
            )
            logger.warning("Evidence for %s dropped from bundle (cap %d bytes)", entry.check_id, self.max_bundle_bytes)

        bundle.entries = [entry for _, entry in keyed if entry.check_id not in dropped]
        return bundle

    def build(
        self,
        results: Sequence[CheckResult],
        scorecard: ScoreCard,
        profile_name: str,
        mode: ValidationMode = ValidationMode.FAST,
        timestamp: Optional[datetime] = None,
    ) -> Tuple[Receipt, EvidenceBundle]:
        """Build the receipt and evidence bundle for a run.

        Args:
            results: One result per active check
            scorecard: Scored run
            profile_name: Profile the run used
            mode: Validation mode of the run
            timestamp: Completion time (default: now, UTC)

        Returns:
            (receipt, bundle)
        """
        entries = [self.receipt_entry(r) for r in sorted(results, key=lambda r: r.id)]
        content_hash = self.compute_content_hash(profile_name, mode.value, entries)
        bundle = self.bundle_evidence(results)
        archive = bundle.to_archive()

        ts = timestamp or datetime.now(timezone.utc)
        receipt = Receipt(
            version=RECEIPT_VERSION,
            timestamp=ts.isoformat(),
            profile_name=profile_name,
            mode=mode.value,
            verdict=scorecard.verdict.value,
            readiness_score=round(scorecard.readiness_score, 2),
            content_hash=content_hash,
            check_results=tuple(entries),
            evidence_bundle_ref={
                "path": BUNDLE_FILENAME,
                "sha256": sha256_hex(archive),
                "size_bytes": len(archive),
                "entries": len(bundle.entries),
                "truncated": sorted(e.check_id for e in bundle.entries if e.truncated),
                "dropped": list(bundle.dropped),
            },
            summary={
                "total": len(results),
                "passed": sum(1 for r in results if r.status == CheckStatus.PASS),
                "failed": sum(1 for r in results if r.status == CheckStatus.FAIL),
                "warned": sum(1 for r in results if r.status == CheckStatus.WARN),
                "skipped": sum(1 for r in results if r.status == CheckStatus.SKIP),
                "disqualifiers": list(scorecard.disqualifiers),
                "warning_budget_exceeded": scorecard.warning_budget_exceeded,
            },
            warnings=tuple(bundle.warnings),
        )
        logger.debug("Built receipt %s for profile '%s'", content_hash[:12], profile_name)
        return receipt, bundle

    def verify(self, receipt: Receipt) -> bool:
        """Recompute the content hash from the receipt's own entries."""
        expected = self.compute_content_hash(
            receipt.profile_name, receipt.mode, receipt.check_results
        )
        return expected == receipt.content_hash

    def verify_bundle(self, receipt: Receipt, bundle_path: Union[str, Path]) -> bool:
        """Check an archive on disk against the receipt's bundle reference."""
        ref = receipt.evidence_bundle_ref
        if not ref:
            return False
        try:
            data = Path(bundle_path).read_bytes()
        except OSError:
            return False
        return sha256_hex(data) == ref.get("sha256")

    def save(
        self,
        receipt: Receipt,
        bundle: EvidenceBundle,
        output_dir: Union[str, Path],
    ) -> ArtifactPaths:
        """Write the receipt and bundle into a new timestamped directory.

        Args:
            receipt: Receipt to write
            bundle: Bundle the receipt references
            output_dir: Parent directory for run directories

        Returns:
            Paths of the written artifacts

        Raises:
            BundleWriteError: If anything cannot be written
        """
        try:
            directory = self._make_run_dir(Path(output_dir), receipt.timestamp)
            bundle_path = directory / BUNDLE_FILENAME
            bundle_path.write_bytes(bundle.to_archive())
            receipt_path = directory / RECEIPT_FILENAME
            receipt_path.write_text(receipt.to_json(), encoding="utf-8")
        except OSError as e:
            raise BundleWriteError(f"Failed to write receipt to {output_dir}: {e}") from e

        logger.info("Receipt written to %s", receipt_path)
        return ArtifactPaths(directory=directory, receipt_path=receipt_path, bundle_path=bundle_path)

    @staticmethod
    def load(path: Union[str, Path]) -> Receipt:
        """Read a receipt back from disk.

        Args:
            path: receipt.json, or a run directory containing one

        Raises:
            OSError: If the file cannot be read
            ValueError: If the file is not a receipt
        """
        path = Path(path)
        if path.is_dir():
            path = path / RECEIPT_FILENAME
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"{path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"{path} does not contain a receipt object")
        return Receipt.from_dict(data)

    @staticmethod
    def _make_run_dir(output_dir: Path, timestamp: str) -> Path:
        try:
            ts = datetime.fromisoformat(timestamp)
        except ValueError:
            ts = datetime.now(timezone.utc)
        base = ts.strftime("%Y%m%d_%H%M%S")
        output_dir.mkdir(parents=True, exist_ok=True)
        candidate = output_dir / base
        suffix = 1
        while candidate.exists():
            candidate = output_dir / f"{base}_{suffix}"
            suffix += 1
        candidate.mkdir()
        return candidate
