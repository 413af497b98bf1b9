"""
Audit log of compliance check runs.

Each run appends one JSON object per line, so the history of what was checked,
against which ruleset revision, and with what outcome stays reviewable.
"""

import json
import logging
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class RunCounts:
    """Outcome counts of a single check run."""
    artifacts: int = 0
    errors: int = 0
    warnings: int = 0
    info: int = 0
    suppressed: int = 0
    evaluation_warnings: int = 0


@dataclass
class AuditEntry:
    """A single audit log entry."""
    timestamp: str
    operation: str
    ruleset: dict[str, Any]
    counts: RunCounts
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "timestamp": self.timestamp,
            "operation": self.operation,
            "ruleset": self.ruleset,
            "counts": asdict(self.counts),
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AuditEntry":
        """Create from dictionary."""
        return cls(
            timestamp=data["timestamp"],
            operation=data["operation"],
            ruleset=data.get("ruleset", {}),
            counts=RunCounts(**data.get("counts", {})),
            metadata=data.get("metadata", {}),
        )


def log_run(
    log_path: Path,
    operation: str,
    ruleset: dict[str, Any],
    counts: RunCounts,
    metadata: dict[str, Any] | None = None,
) -> AuditEntry:
    """
    Append a run to the audit log.

    Args:
        log_path: Path to the JSON Lines log file (created if missing)
        operation: Name of the operation (e.g., "check")
        ruleset: Ruleset provenance (id, version, location, content_id)
        counts: Outcome counts
        metadata: Additional context (e.g., inventory path)

    Returns:
        The created audit entry
    """
    entry = AuditEntry(
        timestamp=datetime.now(timezone.utc).isoformat(),
        operation=operation,
        ruleset=ruleset,
        counts=counts,
        metadata=metadata or {},
    )

    log_path.parent.mkdir(parents=True, exist_ok=True)
    with log_path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(entry.to_dict()) + "\n")

    return entry


def _parse_line(lineno: int, line: str) -> AuditEntry | None:
    try:
        return AuditEntry.from_dict(json.loads(line))
    except (ValueError, KeyError, TypeError) as e:
        logger.debug("audit log line %d unreadable: %s", lineno, e)
        return None


def read_audit_log(log_path: Path, last_n: int | None = None) -> list[AuditEntry]:
    """Recorded runs, oldest first; unreadable lines are skipped.

    ``last_n`` keeps only the most recent runs. A missing log reads as empty.
    """
    try:
        text = log_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return []

    parsed = (_parse_line(n, line) for n, line in enumerate(text.splitlines(), start=1) if line.strip())
    entries = deque((e for e in parsed if e is not None), maxlen=last_n)
    return list(entries)


def format_audit_entry(entry: AuditEntry) -> str:
    """Format an audit entry for human-readable display."""
    ruleset = entry.ruleset
    lines = [
        f"[{entry.timestamp}] {entry.operation} {ruleset.get('ruleset_id', '?')} v{ruleset.get('version', '?')}",
    ]

    c = entry.counts
    lines.append(f"  Artifacts: {c.artifacts}")
    found = [f"{n} {label}" for n, label in ((c.errors, "errors"), (c.warnings, "warnings"), (c.info, "info")) if n]
    if found:
        lines.append(f"  Violations: {', '.join(found)}")
    if c.suppressed:
        lines.append(f"  Suppressed: {c.suppressed}")
    if c.evaluation_warnings:
        lines.append(f"  Evaluation warnings: {c.evaluation_warnings}")

    for key, value in entry.metadata.items():
        lines.append(f"  {key}: {value}")

    return "\n".join(lines)
