"""CLI entrypoint for complint."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__

_existing_file = click.Path(exists=True, dir_okay=False, path_type=Path)


@click.group()
@click.version_option(__version__, prog_name="complint")
@click.option("--verbose", "-V", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """complint - Audit software artifacts against compliance rulesets.

    Rulesets are TOML documents; artifact inventories are JSON or YAML.
    """
    ctx.ensure_object(dict)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@cli.command()
@click.argument("ruleset", type=_existing_file)
@click.argument("inventory", type=_existing_file)
@click.option(
    "--baseline",
    "baseline_path",
    type=_existing_file,
    default=None,
    help="Suppress violations whose hash is listed in this baseline file",
)
@click.option(
    "--write-baseline",
    "write_baseline_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write all current violation hashes to a baseline file",
)
@click.option(
    "--fail-on",
    type=click.Choice(["error", "warning"]),
    default="error",
    help="Exit with error if this level or higher found",
)
@click.option("--json", "output_json", is_flag=True, help="Output results as JSON")
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=None,
    help="Evaluate rules on this many threads",
)
@click.option(
    "--audit-log",
    "audit_log_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Append a record of this run to a JSON Lines log",
)
def check(
    ruleset: Path,
    inventory: Path,
    baseline_path: Path | None,
    write_baseline_path: Path | None,
    fail_on: str,
    output_json: bool,
    workers: int | None,
    audit_log_path: Path | None,
) -> None:
    """Check an artifact inventory against a ruleset.

    Examples:

        complint check rules.toml artifacts.yaml

        complint check rules.toml artifacts.json --baseline baseline.json --json
    """
    from .commands.check import run_check

    exit_code = run_check(
        ruleset,
        inventory,
        baseline_path=baseline_path,
        write_baseline_path=write_baseline_path,
        output_json=output_json,
        fail_on=fail_on,
        workers=workers,
        audit_log_path=audit_log_path,
    )
    sys.exit(exit_code)


@cli.command()
@click.argument("ruleset", type=_existing_file)
def rules(ruleset: Path) -> None:
    """List the rules of a ruleset (validates it on the way)."""
    from .commands.rules import run_rules

    sys.exit(run_rules(ruleset))


@cli.command()
@click.argument("ruleset", type=_existing_file)
@click.argument("rule_id")
def explain(ruleset: Path, rule_id: str) -> None:
    """Explain a single rule of a ruleset."""
    from .commands.rules import run_explain

    sys.exit(run_explain(ruleset, rule_id))


@cli.command()
@click.argument("log", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--last", "last_n", type=click.IntRange(min=1), default=None, help="Show only the last N runs")
def history(log: Path, last_n: int | None) -> None:
    """Show check runs recorded with --audit-log."""
    from .commands.rules import run_history

    sys.exit(run_history(log, last_n))


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
