from __future__ import annotations

import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Any, Iterable

from ..models import Artifact, ArtifactCoordinates
from .conditions import evaluate_condition
from .errors import EvaluationWarning, HashingFailure
from .hashing import violation_hash
from .schema import Rule, RuleSet, Severity

logger = logging.getLogger(__name__)

SEVERITY_ORDER = {"error": 0, "warning": 1, "info": 2}


@dataclass(frozen=True)
class PolicyViolation:
    """One reported instance of a rule firing."""

    rule_id: str
    message: str
    severity: Severity
    artifact: ArtifactCoordinates
    violation_hash: str
    values: tuple[str, ...] = ()
    failing_artifacts: tuple[ArtifactCoordinates, ...] = ()
    rule_name: str | None = None

    def __str__(self) -> str:
        return f"{self.severity.upper()}: [{self.rule_id}] {self.artifact} - {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule": self.rule_id,
            "name": self.rule_name,
            "severity": self.severity,
            "message": self.message,
            "hash": self.violation_hash,
            "artifact": str(self.artifact),
            "values": list(self.values),
            "failing_artifacts": [str(c) for c in self.failing_artifacts],
        }


@dataclass(frozen=True)
class EvaluationReport:
    violations: tuple[PolicyViolation, ...] = ()
    warnings: tuple[EvaluationWarning, ...] = ()
    dropped: int = 0  # candidates lost to hashing failures


@dataclass
class _Partition:
    """Candidates produced by one rule; merged single-threaded afterwards."""

    candidates: list[PolicyViolation] = field(default_factory=list)
    warnings: list[EvaluationWarning] = field(default_factory=list)
    dropped: int = 0


def _evaluate_rule(rule: Rule, artifacts: list[Artifact]) -> _Partition:
    part = _Partition()
    for artifact in artifacts:
        try:
            match = evaluate_condition(rule.predicate, artifact)
            if match is None:
                continue
            message = rule.render(artifact, match)
        except Exception as e:
            warning = EvaluationWarning(rule_id=rule.id, artifact=artifact.coordinates, error=str(e))
            logger.warning("Rule %s skipped for %s: %s", rule.id, artifact.coordinates, e)
            part.warnings.append(warning)
            continue

        qualifier = str(artifact.coordinates) if rule.dedup == "artifact" else None
        try:
            digest = violation_hash(rule.id, match.identity, qualifier)
        except HashingFailure as e:
            logger.error("Dropping violation of %s for %s: %s", rule.id, artifact.coordinates, e)
            part.dropped += 1
            continue

        part.candidates.append(
            PolicyViolation(
                rule_id=rule.id,
                message=message,
                severity=rule.severity,
                artifact=artifact.coordinates,
                violation_hash=digest,
                values=match.values,
                failing_artifacts=(artifact.coordinates,),
                rule_name=rule.name,
            )
        )
    return part


def _merge(partitions: list[_Partition]) -> EvaluationReport:
    by_hash: dict[str, list[PolicyViolation]] = defaultdict(list)
    warnings: list[EvaluationWarning] = []
    dropped = 0
    for part in partitions:
        for candidate in part.candidates:
            by_hash[candidate.violation_hash].append(candidate)
        warnings.extend(part.warnings)
        dropped += part.dropped

    violations: list[PolicyViolation] = []
    for candidates in by_hash.values():
        # Retain the candidate of the lowest artifact so input order never leaks into the result.
        kept = min(candidates, key=lambda v: (v.artifact, v.message))
        failing = tuple(sorted({c.artifact for c in candidates}))
        violations.append(replace(kept, failing_artifacts=failing))

    violations.sort(key=lambda v: (SEVERITY_ORDER.get(v.severity, 99), v.rule_id, v.violation_hash))
    return EvaluationReport(violations=tuple(violations), warnings=tuple(warnings), dropped=dropped)


class PolicyEngine:
    """
    Evaluates every rule of a ruleset against every artifact.

    The engine keeps no state between calls; one instance (and its ruleset)
    may be shared by concurrent callers.
    """

    def __init__(self, ruleset: RuleSet, *, max_workers: int | None = None):
        self.ruleset = ruleset
        self.max_workers = max_workers

    def evaluate(self, artifacts: Iterable[Artifact]) -> list[PolicyViolation]:
        """Return the deduplicated violations. Treat the result as unordered."""
        return list(self.evaluate_with_diagnostics(artifacts).violations)

    def evaluate_with_diagnostics(self, artifacts: Iterable[Artifact]) -> EvaluationReport:
        """
        Evaluate the full rule x artifact cross product.

        A failing (rule, artifact) pair becomes an EvaluationWarning and never
        aborts the run. Candidates are deduplicated by violation hash.
        """
        items = list(artifacts)
        rules = list(self.ruleset.rules)

        if self.max_workers and self.max_workers > 1 and len(rules) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                partitions = list(pool.map(lambda rule: _evaluate_rule(rule, items), rules))
        else:
            partitions = [_evaluate_rule(rule, items) for rule in rules]

        report = _merge(partitions)
        logger.debug(
            "Evaluated %d rule(s) x %d artifact(s): %d violation(s), %d warning(s)",
            len(rules),
            len(items),
            len(report.violations),
            len(report.warnings),
        )
        return report
