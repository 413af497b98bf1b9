"""Closed vocabulary of rule conditions (conditions as data, evaluation as code).

Every supported condition kind is a frozen dataclass carrying its own typed
parameters. ``build_condition`` turns a ``predicate`` table from a ruleset
document into one of these; ``evaluate_condition`` dispatches on the kind.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Union

from ..models import Artifact
from .errors import ConfigurationError, MissingAttributeError

TRUE_FLAGS = frozenset({"true", "yes", "y", "1", "on"})
FALSE_FLAGS = frozenset({"false", "no", "n", "0", "off", ""})


@dataclass(frozen=True)
class Match:
    """Outcome of a violating condition.

    ``values`` keeps the artifact's own spelling for messages; ``identity`` is the
    canonical form fed into the violation hash (defaults to ``values``).
    """

    values: tuple[str, ...] = ()
    identity: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.identity:
            object.__setattr__(self, "identity", self.values)


@dataclass(frozen=True)
class LicenseIn:
    """Artifact declares one of the listed licenses."""

    licenses: frozenset[str]


@dataclass(frozen=True)
class LicenseNotAllowed:
    """Artifact declares a license outside the allow-list."""

    allowed: frozenset[str]


@dataclass(frozen=True)
class LicenseMissing:
    """Artifact declares no license at all."""


@dataclass(frozen=True)
class CopyrightMissing:
    """Artifact carries no copyright statement."""


@dataclass(frozen=True)
class CopyrightMatches:
    pattern: re.Pattern


@dataclass(frozen=True)
class SourceNotAllowed:
    allowed: frozenset[str]


@dataclass(frozen=True)
class MetadataFlagSet:
    key: str
    required: bool = False


@dataclass(frozen=True)
class MetadataValueIn:
    key: str
    values: frozenset[str]
    required: bool = False


Condition = Union[
    LicenseIn,
    LicenseNotAllowed,
    LicenseMissing,
    CopyrightMissing,
    CopyrightMatches,
    SourceNotAllowed,
    MetadataFlagSet,
    MetadataValueIn,
]


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _check_params(name: str, params: dict[str, Any], allowed: set[str]) -> None:
    unknown = sorted(set(params) - allowed)
    if unknown:
        raise ConfigurationError(f"predicate {name!r} does not accept params: {', '.join(unknown)}")


def _str_param(name: str, params: dict[str, Any], key: str) -> str:
    value = params.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(f"predicate {name!r} requires a non-empty string param {key!r}")
    return value.strip()


def _str_list_param(name: str, params: dict[str, Any], key: str) -> frozenset[str]:
    value = params.get(key)
    if not isinstance(value, list) or not value or not all(isinstance(v, str) and v.strip() for v in value):
        raise ConfigurationError(f"predicate {name!r} requires a non-empty list of strings {key!r}")
    return frozenset(v.strip().casefold() for v in value)


def _bool_param(name: str, params: dict[str, Any], key: str) -> bool:
    value = params.get(key, False)
    if not isinstance(value, bool):
        raise ConfigurationError(f"predicate {name!r} param {key!r} must be a boolean")
    return value


def _parse_license_in(name: str, params: dict[str, Any]) -> Condition:
    _check_params(name, params, {"licenses"})
    return LicenseIn(licenses=_str_list_param(name, params, "licenses"))


def _parse_license_not_allowed(name: str, params: dict[str, Any]) -> Condition:
    _check_params(name, params, {"allowed"})
    return LicenseNotAllowed(allowed=_str_list_param(name, params, "allowed"))


def _parse_license_missing(name: str, params: dict[str, Any]) -> Condition:
    _check_params(name, params, set())
    return LicenseMissing()


def _parse_copyright_missing(name: str, params: dict[str, Any]) -> Condition:
    _check_params(name, params, set())
    return CopyrightMissing()


def _parse_copyright_matches(name: str, params: dict[str, Any]) -> Condition:
    _check_params(name, params, {"pattern"})
    raw = _str_param(name, params, "pattern")
    try:
        pattern = re.compile(raw, flags=re.IGNORECASE)
    except re.error as e:
        raise ConfigurationError(f"predicate {name!r} has an invalid pattern {raw!r}: {e}") from e
    return CopyrightMatches(pattern=pattern)


def _parse_source_not_allowed(name: str, params: dict[str, Any]) -> Condition:
    _check_params(name, params, {"allowed"})
    return SourceNotAllowed(allowed=_str_list_param(name, params, "allowed"))


def _parse_metadata_flag_set(name: str, params: dict[str, Any]) -> Condition:
    _check_params(name, params, {"key", "required"})
    return MetadataFlagSet(key=_str_param(name, params, "key"), required=_bool_param(name, params, "required"))


def _parse_metadata_value_in(name: str, params: dict[str, Any]) -> Condition:
    _check_params(name, params, {"key", "values", "required"})
    return MetadataValueIn(
        key=_str_param(name, params, "key"),
        values=_str_list_param(name, params, "values"),
        required=_bool_param(name, params, "required"),
    )


CONDITION_PARSERS: dict[str, Callable[[str, dict[str, Any]], Condition]] = {
    "license_in": _parse_license_in,
    "license_not_allowed": _parse_license_not_allowed,
    "license_missing": _parse_license_missing,
    "copyright_missing": _parse_copyright_missing,
    "copyright_matches": _parse_copyright_matches,
    "source_not_allowed": _parse_source_not_allowed,
    "metadata_flag_set": _parse_metadata_flag_set,
    "metadata_value_in": _parse_metadata_value_in,
}


def build_condition(name: str, params: dict[str, Any] | None = None) -> Condition:
    """Build a condition from its predicate name and params, or raise ConfigurationError."""
    parser = CONDITION_PARSERS.get(name)
    if parser is None:
        supported = ", ".join(sorted(CONDITION_PARSERS))
        raise ConfigurationError(f"unsupported predicate {name!r} (supported: {supported})")
    return parser(name, dict(params or {}))


def condition_name(condition: Condition) -> str:
    """Inverse of ``build_condition`` for display purposes."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", type(condition).__name__).lower()


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


def _licenses(artifact: Artifact) -> frozenset[str]:
    if artifact.licenses is None:
        raise MissingAttributeError("licenses")
    return artifact.licenses


def _copyrights(artifact: Artifact) -> frozenset[str]:
    if artifact.copyrights is None:
        raise MissingAttributeError("copyrights")
    return artifact.copyrights


def _metadata(artifact: Artifact, key: str, required: bool) -> str | None:
    value = artifact.metadata.get(key)
    if value is None and required:
        raise MissingAttributeError(f"metadata.{key}")
    return value


def _hit(values: list[str], fold: bool = False) -> Match | None:
    if not values:
        return None
    identity = sorted({v.casefold() for v in values}) if fold else sorted(set(values))
    return Match(values=tuple(sorted(set(values))), identity=tuple(identity))


def evaluate_condition(condition: Condition, artifact: Artifact) -> Match | None:
    """Evaluate one condition against one artifact.

    Returns a Match when the artifact violates the condition, None otherwise.
    Raises MissingAttributeError/ValueError when the artifact cannot be judged.
    """
    if isinstance(condition, LicenseIn):
        return _hit([lic for lic in _licenses(artifact) if lic.casefold() in condition.licenses], fold=True)

    if isinstance(condition, LicenseNotAllowed):
        return _hit([lic for lic in _licenses(artifact) if lic.casefold() not in condition.allowed], fold=True)

    if isinstance(condition, LicenseMissing):
        return None if _licenses(artifact) else Match()

    if isinstance(condition, CopyrightMissing):
        return None if _copyrights(artifact) else Match()

    if isinstance(condition, CopyrightMatches):
        return _hit([c for c in _copyrights(artifact) if condition.pattern.search(c)])

    if isinstance(condition, SourceNotAllowed):
        if not artifact.source:
            raise MissingAttributeError("source")
        return None if artifact.source.casefold() in condition.allowed else Match(
            values=(artifact.source,), identity=(artifact.source.casefold(),)
        )

    if isinstance(condition, MetadataFlagSet):
        value = _metadata(artifact, condition.key, condition.required)
        if value is None:
            return None
        flag = value.strip().lower()
        if flag in TRUE_FLAGS:
            return Match(values=(condition.key,))
        if flag in FALSE_FLAGS:
            return None
        raise ValueError(f"metadata.{condition.key} is not a boolean flag: {value!r}")

    if isinstance(condition, MetadataValueIn):
        value = _metadata(artifact, condition.key, condition.required)
        if value is None or value.strip().casefold() not in condition.values:
            return None
        return Match(
            values=(f"{condition.key}={value.strip()}",),
            identity=(f"{condition.key}={value.strip().casefold()}",),
        )

    raise TypeError(f"unsupported condition type: {type(condition).__name__}")
