from __future__ import annotations

import hashlib
import tomllib
from importlib import resources
from pathlib import Path
from typing import Any

from .conditions import build_condition
from .errors import ConfigurationError
from .schema import DEDUP_MODES, SEVERITIES, Rule, RuleSet, RulesetSource, validate_template


def _coerce_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _optional_str(raw: dict[str, Any], key: str) -> str | None:
    value = raw.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigurationError(f"{key!r} must be a string")
    return value.strip() or None


def _choice(value: Any, choices: tuple[str, ...], what: str) -> str:
    text = str(value).strip().lower()
    if text not in choices:
        raise ConfigurationError(f"unsupported {what} {value!r} (expected one of: {', '.join(choices)})")
    return text


def _parse_rule(raw: dict[str, Any], defaults: dict[str, Any]) -> Rule:
    rule_id = raw.get("id")
    if not isinstance(rule_id, str) or not rule_id.strip():
        raise ConfigurationError("every rule requires a non-empty string 'id'")
    rule_id = rule_id.strip()

    try:
        pred_raw = raw.get("predicate")
        if not isinstance(pred_raw, dict):
            raise ConfigurationError("missing 'predicate' table")
        pred_name = pred_raw.get("name")
        if not isinstance(pred_name, str) or not pred_name.strip():
            raise ConfigurationError("predicate requires a 'name'")
        unknown = sorted(set(pred_raw) - {"name", "params"})
        if unknown:
            raise ConfigurationError(f"unknown predicate keys: {', '.join(unknown)}")
        params = pred_raw.get("params", {})
        if not isinstance(params, dict):
            raise ConfigurationError("predicate 'params' must be a table")
        condition = build_condition(pred_name.strip(), params)

        severity = _choice(raw.get("severity", defaults["severity"]), SEVERITIES, "severity")
        dedup = _choice(raw.get("dedup", defaults["dedup"]), DEDUP_MODES, "dedup mode")

        message = _optional_str(raw, "message")
        if message is not None:
            validate_template(message)

        return Rule(
            id=rule_id,
            predicate=condition,
            severity=severity,  # type: ignore[arg-type]
            message=message,
            name=_optional_str(raw, "name"),
            description=_optional_str(raw, "description"),
            dedup=dedup,  # type: ignore[arg-type]
        )
    except ConfigurationError as e:
        raise ConfigurationError(f"rule {rule_id!r}: {e}") from e


def load_ruleset_text(text: str, location: str = "<string>") -> RuleSet:
    """
    Parse a ruleset TOML document.

    Validation is eager: every predicate, template and id is checked here so
    evaluation never meets an unparseable rule. Nothing is returned on error.
    """
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"invalid TOML: {e}", location=location) from e

    try:
        ruleset_id = str(data.get("ruleset_id", "")).strip()
        if not ruleset_id:
            raise ConfigurationError("ruleset_id is required")

        version = data.get("version")
        if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
            raise ConfigurationError("version must be a positive integer")

        defaults_raw = _coerce_dict(data.get("defaults"))
        defaults = {
            "severity": defaults_raw.get("severity", "error"),
            "dedup": defaults_raw.get("dedup", "value"),
        }

        raw_rules = data.get("rules", [])
        if not isinstance(raw_rules, list):
            raise ConfigurationError("'rules' must be an array of tables")

        rules: list[Rule] = []
        seen: set[str] = set()
        for index, raw in enumerate(raw_rules):
            if not isinstance(raw, dict):
                raise ConfigurationError(f"rules[{index}] is not a table")
            rule = _parse_rule(raw, defaults)
            if rule.id in seen:
                raise ConfigurationError(f"duplicate rule id {rule.id!r}")
            seen.add(rule.id)
            rules.append(rule)

        description = data.get("description")
    except ConfigurationError as e:
        if e.location:
            raise
        raise ConfigurationError(str(e), location=location) from e

    return RuleSet(
        ruleset_id=ruleset_id,
        version=version,
        rules=tuple(rules),
        description=description if isinstance(description, str) else None,
        source=RulesetSource(
            location=location,
            content_id=hashlib.sha256(text.encode("utf-8")).hexdigest(),
        ),
    )


def configure(source: str | Path) -> RuleSet:
    """Load a ruleset from a TOML file."""
    path = Path(source)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"cannot read ruleset: {e}", location=str(path)) from e
    return load_ruleset_text(text, location=str(path))


def load_bundled_ruleset(name: str = "default") -> RuleSet:
    """Load a ruleset shipped with the package (complint/rulesets/<name>.toml)."""
    resource = resources.files("complint.rulesets").joinpath(f"{name}.toml")
    if not resource.is_file():
        raise ConfigurationError(f"no bundled ruleset named {name!r}")
    return load_ruleset_text(resource.read_text(encoding="utf-8"), location=f"bundled:{name}")
