"""Check command implementation."""

import json
from collections import Counter
from pathlib import Path

from rich.console import Console
from rich.table import Table
from rich.text import Text

from ..audit_log import RunCounts, log_run
from ..inventory import InventoryError, load_inventory
from ..policy import ConfigurationError, EvaluationReport, PolicyEngine, PolicyViolation, RuleSet, configure
from ..policy.baseline import Baseline, load_baseline

EXIT_OK = 0
EXIT_VIOLATIONS = 1
EXIT_CONFIG = 2

SEVERITY_STYLES = {"error": ("ERROR", "bold red"), "warning": ("WARN", "yellow"), "info": ("INFO", "dim")}


def _ruleset_meta(ruleset: RuleSet) -> dict:
    return {
        "ruleset_id": ruleset.ruleset_id,
        "version": ruleset.version,
        "path": ruleset.source.location if ruleset.source else None,
        "content_id": ruleset.source.content_id if ruleset.source else None,
    }


def run_check(
    ruleset_path: Path,
    inventory_path: Path,
    *,
    baseline_path: Path | None = None,
    write_baseline_path: Path | None = None,
    output_json: bool = False,
    fail_on: str = "error",
    workers: int | None = None,
    audit_log_path: Path | None = None,
) -> int:
    """Evaluate an artifact inventory against a ruleset.

    Args:
        ruleset_path: Path to the ruleset TOML
        inventory_path: Path to the JSON/YAML artifact inventory
        baseline_path: Suppress violations whose hash is listed in this baseline
        write_baseline_path: Write all current violations to a new baseline file
        output_json: Output results as JSON instead of human-readable
        fail_on: Exit with error if this level or higher remains ("error" or "warning")
        workers: Evaluate rules on this many threads
        audit_log_path: Append a run record to this JSON Lines log

    Returns:
        Exit code (0 = clean, 1 = violations found, 2 = unusable input)
    """
    console = Console(stderr=True)

    try:
        ruleset = configure(ruleset_path)
        baseline = load_baseline(baseline_path) if baseline_path else Baseline()
        artifacts = load_inventory(inventory_path)
    except (ConfigurationError, InventoryError) as e:
        console.print(f"✗ {e}", style="bold red", markup=False)
        return EXIT_CONFIG

    if not output_json:
        console.print(
            f"Checking {len(artifacts)} artifact(s) against {ruleset.ruleset_id} v{ruleset.version} "
            f"({len(ruleset)} rule(s))...",
            style="dim",
        )

    report = PolicyEngine(ruleset, max_workers=workers).evaluate_with_diagnostics(artifacts)
    kept, suppressed = baseline.apply(report.violations)

    if write_baseline_path is not None:
        Baseline.from_violations(report.violations).write(write_baseline_path)
        if not output_json:
            console.print(f"Wrote baseline with {len(report.violations)} hash(es) to {write_baseline_path}", style="dim")

    counts = Counter(v.severity for v in kept)

    if audit_log_path is not None:
        log_run(
            audit_log_path,
            "check",
            _ruleset_meta(ruleset),
            RunCounts(
                artifacts=len(artifacts),
                errors=counts["error"],
                warnings=counts["warning"],
                info=counts["info"],
                suppressed=len(suppressed),
                evaluation_warnings=len(report.warnings),
            ),
            metadata={"inventory": str(inventory_path)},
        )

    if output_json:
        _output_json(kept, suppressed, report, ruleset, len(artifacts))
    else:
        _print_human_output(Console(), kept, suppressed, report)

    if fail_on == "warning":
        if counts["error"] > 0 or counts["warning"] > 0:
            return EXIT_VIOLATIONS
    elif counts["error"] > 0:
        return EXIT_VIOLATIONS
    return EXIT_OK


def _output_json(
    kept: list[PolicyViolation],
    suppressed: list[PolicyViolation],
    report: EvaluationReport,
    ruleset: RuleSet,
    artifact_count: int,
) -> None:
    counts = Counter(v.severity for v in kept)
    output = {
        "violations": [v.to_dict() for v in kept],
        "suppressed": [v.to_dict() for v in suppressed],
        "warnings": [
            {"rule": w.rule_id, "artifact": str(w.artifact), "error": w.error} for w in report.warnings
        ],
        "ruleset": _ruleset_meta(ruleset),
        "summary": {
            "artifacts": artifact_count,
            "errors": counts["error"],
            "warnings": counts["warning"],
            "info": counts["info"],
            "suppressed": len(suppressed),
            "evaluation_warnings": len(report.warnings),
        },
    }
    print(json.dumps(output, indent=2))


def _print_human_output(
    console: Console,
    kept: list[PolicyViolation],
    suppressed: list[PolicyViolation],
    report: EvaluationReport,
) -> None:
    if kept:
        table = Table(title="Policy violations")
        table.add_column("Severity")
        table.add_column("Rule", style="bold")
        table.add_column("Message")
        table.add_column("Artifacts", justify="right")
        table.add_column("Hash", style="dim")
        for v in kept:
            label, style = SEVERITY_STYLES.get(v.severity, (v.severity.upper(), ""))
            table.add_row(f"[{style}]{label}[/]", Text(v.rule_id), Text(v.message), str(len(v.failing_artifacts)), v.violation_hash)
        console.print(table)
    else:
        console.print("✓ No policy violations", style="bold green")

    if report.warnings:
        console.print(f"\n⚠ {len(report.warnings)} rule evaluation(s) skipped:", style="yellow")
        for w in report.warnings:
            console.print(f"  [{w.rule_id}] {w.artifact} - {w.error}", style="yellow", markup=False)

    counts = Counter(v.severity for v in kept)
    console.print(
        f"\n{counts['error']} error(s), {counts['warning']} warning(s), {counts['info']} info(s)"
        + (f", {len(suppressed)} suppressed by baseline" if suppressed else ""),
        style="dim",
    )
