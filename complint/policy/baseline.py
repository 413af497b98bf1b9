"""
Baselines: violation hashes accepted as known and suppressed from reports.

A baseline is keyed purely by violation hash; rule id and message are stored
for humans reviewing the file and are not used when matching.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from .engine import PolicyViolation
from .errors import ConfigurationError

BASELINE_VERSION = 1


@dataclass(frozen=True)
class BaselineEntry:
    hash: str
    rule: str | None = None
    message: str | None = None

    def to_dict(self) -> dict:
        return {"hash": self.hash, "rule": self.rule, "message": self.message}


@dataclass(frozen=True)
class Baseline:
    entries: tuple[BaselineEntry, ...] = ()
    hashes: frozenset[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "hashes", frozenset(e.hash for e in self.entries))

    def __len__(self) -> int:
        return len(self.hashes)

    def __contains__(self, violation_hash: object) -> bool:
        return violation_hash in self.hashes

    @classmethod
    def from_violations(cls, violations: Iterable[PolicyViolation]) -> "Baseline":
        entries = {
            v.violation_hash: BaselineEntry(hash=v.violation_hash, rule=v.rule_id, message=v.message)
            for v in violations
        }
        return cls(entries=tuple(entries[h] for h in sorted(entries)))

    def apply(self, violations: Iterable[PolicyViolation]) -> tuple[list[PolicyViolation], list[PolicyViolation]]:
        """Split violations into (kept, suppressed)."""
        kept: list[PolicyViolation] = []
        suppressed: list[PolicyViolation] = []
        for v in violations:
            (suppressed if v.violation_hash in self.hashes else kept).append(v)
        return kept, suppressed

    def to_dict(self) -> dict:
        return {"version": BASELINE_VERSION, "suppressed": [e.to_dict() for e in self.entries]}

    def write(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2) + "\n", encoding="utf-8")


def load_baseline(path: Path) -> Baseline:
    """
    Load a baseline file.

    Raises:
        ConfigurationError: If the file is unreadable or malformed
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"cannot read baseline: {e}", location=str(path)) from e

    if not isinstance(data, dict) or not isinstance(data.get("suppressed", []), list):
        raise ConfigurationError("baseline must be an object with a 'suppressed' list", location=str(path))
    if data.get("version", BASELINE_VERSION) != BASELINE_VERSION:
        raise ConfigurationError(f"unsupported baseline version {data.get('version')!r}", location=str(path))

    entries: list[BaselineEntry] = []
    for index, raw in enumerate(data.get("suppressed", [])):
        if isinstance(raw, str):
            raw = {"hash": raw}
        if not isinstance(raw, dict) or not isinstance(raw.get("hash"), str) or not raw["hash"].strip():
            raise ConfigurationError(f"suppressed[{index}] has no hash", location=str(path))
        rule = raw.get("rule")
        message = raw.get("message")
        entries.append(
            BaselineEntry(
                hash=raw["hash"].strip(),
                rule=rule if isinstance(rule, str) else None,
                message=message if isinstance(message, str) else None,
            )
        )
    return Baseline(entries=tuple(entries))
