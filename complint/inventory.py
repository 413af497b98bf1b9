"""
Artifact inventory loader.

Reads the artifact collection produced by a resolver (JSON or YAML):

    artifacts:
      - name: commons-io
        version: "2.11.0"
        source: maven
        licenses: [Apache-2.0]
        copyrights: ["Copyright 2002-2021 The Apache Software Foundation"]
        metadata: {vulnerable: "false"}

A bare list of artifact mappings is accepted too. A missing ``licenses`` or
``copyrights`` key means the attribute was not resolved.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from .models import Artifact


class InventoryError(ValueError):
    """The artifact inventory could not be read."""


def _string_list(raw: dict[str, Any], key: str, where: str) -> list[str] | None:
    if key not in raw or raw[key] is None:
        return None
    value = raw[key]
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise InventoryError(f"{where}: {key!r} must be a list of strings")
    return [str(v) for v in value if v is not None]


def parse_artifact(raw: Any, where: str = "artifact") -> Artifact:
    if not isinstance(raw, dict):
        raise InventoryError(f"{where}: expected a mapping")

    name = raw.get("name")
    if name is None or not str(name).strip():
        raise InventoryError(f"{where}: 'name' is required")

    metadata = raw.get("metadata") or {}
    if not isinstance(metadata, dict):
        raise InventoryError(f"{where}: 'metadata' must be a mapping")

    return Artifact.create(
        str(name).strip(),
        str(raw.get("version") or "").strip(),
        str(raw.get("source") or "").strip(),
        licenses=_string_list(raw, "licenses", where),
        copyrights=_string_list(raw, "copyrights", where),
        metadata={str(k): "" if v is None else str(v) for k, v in metadata.items()},
    )


def parse_inventory(data: Any) -> list[Artifact]:
    if isinstance(data, dict):
        data = data.get("artifacts")
    if not isinstance(data, list):
        raise InventoryError("inventory must be a list of artifacts or a mapping with an 'artifacts' list")
    return [parse_artifact(raw, where=f"artifacts[{i}]") for i, raw in enumerate(data)]


def load_inventory(path: Path) -> list[Artifact]:
    """Load artifacts from a JSON or YAML inventory file."""
    try:
        text = Path(path).read_text(encoding="utf-8")
        data = yaml.safe_load(text)
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        raise InventoryError(f"{path}: cannot read inventory: {e}") from e
    try:
        return parse_inventory(data)
    except InventoryError as e:
        raise InventoryError(f"{path}: {e}") from e
