"""Error taxonomy for ruleset loading and policy evaluation."""

from __future__ import annotations

from dataclasses import dataclass

from ..models import ArtifactCoordinates


class ConfigurationError(ValueError):
    """A ruleset (or baseline) could not be loaded. Fatal at startup."""

    def __init__(self, message: str, *, location: str | None = None):
        self.location = location
        if location:
            message = f"{location}: {message}"
        super().__init__(message)


class MissingAttributeError(LookupError):
    """A condition needs an artifact attribute that was never resolved."""

    def __init__(self, attribute: str):
        self.attribute = attribute
        super().__init__(f"artifact attribute not resolved: {attribute}")


class HashingFailure(RuntimeError):
    """A violation hash could not be computed for a candidate violation."""


@dataclass(frozen=True)
class EvaluationWarning:
    """Non-fatal diagnostic: one rule could not be evaluated against one artifact."""

    rule_id: str
    artifact: ArtifactCoordinates
    error: str

    def __str__(self) -> str:
        return f"WARNING: [{self.rule_id}] {self.artifact} - {self.error}"
