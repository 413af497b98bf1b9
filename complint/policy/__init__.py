"""Policy engine: declarative rulesets evaluated against artifacts."""

from .engine import EvaluationReport, PolicyEngine, PolicyViolation
from .errors import ConfigurationError, EvaluationWarning, HashingFailure, MissingAttributeError
from .hashing import violation_hash
from .load import configure, load_bundled_ruleset, load_ruleset_text
from .schema import Rule, RuleSet

__all__ = [
    "ConfigurationError",
    "EvaluationReport",
    "EvaluationWarning",
    "HashingFailure",
    "MissingAttributeError",
    "PolicyEngine",
    "PolicyViolation",
    "Rule",
    "RuleSet",
    "configure",
    "load_bundled_ruleset",
    "load_ruleset_text",
    "violation_hash",
]
