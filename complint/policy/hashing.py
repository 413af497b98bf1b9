"""
Violation identity.

A violation hash identifies "this rule fired for this semantic problem". It is
computed from the rule id and the violation-defining values only, so the same
problem hashes identically across runs, input orderings and artifacts that
share the offending values. Baselines key suppressions on it.

It is a dedup key, not a security boundary: MD5 is fine here.
"""

from __future__ import annotations

import base64
import hashlib
from typing import Iterable

from .errors import HashingFailure

_DELIMITER = "|"


def _escape(value: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected str, got {type(value).__name__}")
    return value.replace("\\", "\\\\").replace(_DELIMITER, "\\" + _DELIMITER)


def canonical_form(rule_id: str, values: Iterable[str], qualifier: str | None = None) -> str:
    """Order-independent serialization of the hash inputs."""
    parts = [_escape(rule_id)]
    if qualifier is not None:
        parts.append("@" + _escape(qualifier))
    parts.extend("=" + _escape(v) for v in sorted(set(values)))
    return _DELIMITER.join(parts)


def violation_hash(rule_id: str, values: Iterable[str] = (), qualifier: str | None = None) -> str:
    """
    Compute the 16-byte violation digest, base64 encoded (24 characters).

    Args:
        rule_id: Id of the rule that fired
        values: Violation-defining values (order and duplicates are irrelevant)
        qualifier: Extra identity, e.g. artifact coordinates for per-artifact dedup

    Raises:
        HashingFailure: If the inputs cannot be serialized
    """
    try:
        canonical = canonical_form(rule_id, values, qualifier)
        digest = hashlib.md5(canonical.encode("utf-8"), usedforsecurity=False).digest()
    except (TypeError, UnicodeEncodeError) as e:
        raise HashingFailure(f"cannot hash violation of rule {rule_id!r}: {e}") from e
    return base64.b64encode(digest).decode("ascii")
