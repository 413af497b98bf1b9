from __future__ import annotations

import string
from dataclasses import dataclass, field
from typing import Iterator, Literal

from ..models import Artifact
from .conditions import Condition, Match
from .errors import ConfigurationError

Severity = Literal["error", "warning", "info"]
Dedup = Literal["value", "artifact"]

SEVERITIES: tuple[str, ...] = ("error", "warning", "info")
DEDUP_MODES: tuple[str, ...] = ("value", "artifact")

# Placeholders a message template may reference.
TEMPLATE_FIELDS = frozenset({"rule", "artifact", "name", "version", "source", "licenses", "values", "value"})

DEFAULT_MESSAGE = "{rule}: {artifact}"


def validate_template(template: str) -> None:
    """Reject malformed templates or templates using unknown placeholders."""
    try:
        parsed = list(string.Formatter().parse(template))
    except ValueError as e:
        raise ConfigurationError(f"malformed message template {template!r}: {e}") from e

    for _literal, field_name, _spec, conversion in parsed:
        if field_name is None:
            continue
        if field_name == "" or field_name.isdigit():
            raise ConfigurationError(f"message template {template!r} uses a positional placeholder")
        if field_name not in TEMPLATE_FIELDS:
            known = ", ".join(sorted(TEMPLATE_FIELDS))
            raise ConfigurationError(f"message template uses unknown placeholder {{{field_name}}} (known: {known})")
        if conversion not in (None, "r", "s", "a"):
            raise ConfigurationError(f"message template {template!r} uses unknown conversion !{conversion}")

    # Format specs only fail when applied, so render once with placeholder values.
    try:
        template.format_map({name: "x" for name in TEMPLATE_FIELDS})
    except (ValueError, KeyError, IndexError) as e:
        raise ConfigurationError(f"malformed message template {template!r}: {e}") from e


@dataclass(frozen=True)
class Rule:
    id: str
    predicate: Condition
    severity: Severity = "error"
    message: str | None = None
    name: str | None = None
    description: str | None = None
    dedup: Dedup = "value"

    def render(self, artifact: Artifact, match: Match) -> str:
        values = ", ".join(match.values)
        fields = {
            "rule": self.id,
            "artifact": str(artifact.coordinates),
            "name": artifact.name,
            "version": artifact.version,
            "source": artifact.source,
            "licenses": ", ".join(sorted(artifact.licenses or ())),
            "values": values,
            "value": match.values[0] if match.values else "",
        }
        if self.message is not None:
            return self.message.format_map(fields)
        msg = DEFAULT_MESSAGE.format_map(fields)
        return f"{msg} ({values})" if values else msg


@dataclass(frozen=True)
class RulesetSource:
    """Provenance of a ruleset (diagnostics only)."""

    location: str
    content_id: str | None = None


@dataclass(frozen=True)
class RuleSet:
    ruleset_id: str
    version: int
    rules: tuple[Rule, ...] = ()
    description: str | None = None
    source: RulesetSource | None = None
    _by_id: dict[str, Rule] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        rules = tuple(self.rules)
        by_id: dict[str, Rule] = {}
        for rule in rules:
            if rule.id in by_id:
                location = self.source.location if self.source else None
                raise ConfigurationError(f"duplicate rule id {rule.id!r}", location=location)
            by_id[rule.id] = rule
        object.__setattr__(self, "rules", rules)
        object.__setattr__(self, "_by_id", by_id)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._by_id

    @property
    def ids(self) -> tuple[str, ...]:
        return tuple(r.id for r in self.rules)

    def get(self, rule_id: str) -> Rule | None:
        return self._by_id.get(rule_id)
