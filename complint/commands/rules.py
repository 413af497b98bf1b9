"""Ruleset inspection and run history commands."""

from pathlib import Path

from rich.console import Console
from rich.table import Table
from rich.text import Text

from ..audit_log import format_audit_entry, read_audit_log
from ..policy import ConfigurationError, configure
from ..policy.conditions import condition_name
from .check import EXIT_CONFIG, EXIT_OK


def run_rules(ruleset_path: Path) -> int:
    """List the rules configured in a ruleset."""
    console = Console()
    try:
        ruleset = configure(ruleset_path)
    except ConfigurationError as e:
        Console(stderr=True).print(f"✗ {e}", style="bold red", markup=False)
        return EXIT_CONFIG

    table = Table(title=f"{ruleset.ruleset_id} v{ruleset.version}")
    table.add_column("Rule", style="bold")
    table.add_column("Severity")
    table.add_column("Predicate")
    table.add_column("Dedup", style="dim")
    table.add_column("Name")
    for rule in ruleset:
        table.add_row(Text(rule.id), rule.severity, condition_name(rule.predicate), rule.dedup, Text(rule.name or ""))
    console.print(table)
    if ruleset.description:
        console.print(ruleset.description, style="dim")
    return EXIT_OK


def run_explain(ruleset_path: Path, rule_id: str) -> int:
    """Show everything configured for one rule."""
    console = Console()
    try:
        ruleset = configure(ruleset_path)
    except ConfigurationError as e:
        Console(stderr=True).print(f"✗ {e}", style="bold red", markup=False)
        return EXIT_CONFIG

    rule = ruleset.get(rule_id)
    if rule is None:
        console.print(f"Unknown rule: {rule_id}", style="bold red", markup=False)
        console.print(f"Available: {', '.join(ruleset.ids)}", style="dim", markup=False)
        return 1

    console.print(f"\n{rule.id}", style="bold", markup=False)
    if rule.name:
        console.print(f"  {rule.name}", markup=False)
    console.print(f"  Severity:  {rule.severity}")
    console.print(f"  Predicate: {condition_name(rule.predicate)}")
    console.print(f"  Params:    {rule.predicate}", markup=False)
    console.print(f"  Dedup:     {rule.dedup}")
    if rule.message:
        console.print(f"  Message:   {rule.message}", markup=False)
    if rule.description:
        console.print(f"\n  {rule.description}", markup=False)
    console.print()
    return EXIT_OK


def run_history(log_path: Path, last_n: int | None = None) -> int:
    """Print recorded check runs."""
    console = Console()
    entries = read_audit_log(log_path, last_n=last_n)
    if not entries:
        console.print("No recorded runs.", style="dim")
        return EXIT_OK
    for entry in entries:
        console.print(format_audit_entry(entry), markup=False)
    return EXIT_OK
