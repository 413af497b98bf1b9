"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from complint.models import Artifact
from complint.policy import PolicyEngine, RuleSet, load_ruleset_text

CORE_RULESET = """
ruleset_id = "ruleset/test"
version = 1
description = "Test ruleset"

[[rules]]
id = "no-gpl"
name = "No GPL"
message = "{artifact} uses forbidden license {values}"
predicate = { name = "license_in", params = { licenses = ["GPL-3.0", "AGPL-3.0"] } }

[[rules]]
id = "no-copyright"
severity = "warning"
dedup = "artifact"
predicate = { name = "copyright_missing" }

[[rules]]
id = "vulnerable"
dedup = "artifact"
message = "{name} {version} has a known vulnerability"
predicate = { name = "metadata_flag_set", params = { key = "vulnerable", required = true } }
"""


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


@pytest.fixture
def core_ruleset() -> RuleSet:
    """The ruleset used across engine tests."""
    return load_ruleset_text(CORE_RULESET, location="test")


@pytest.fixture
def engine(core_ruleset: RuleSet) -> PolicyEngine:
    return PolicyEngine(core_ruleset)


@pytest.fixture
def ruleset_path(tmp_path: Path) -> Path:
    """The core ruleset written to disk."""
    path = tmp_path / "ruleset.toml"
    _write(path, CORE_RULESET)
    return path


@pytest.fixture
def artifacts() -> list[Artifact]:
    return [
        Artifact.create("alpha", "1.0", "maven", licenses=["GPL-3.0"], copyrights=["(c) Alpha"], metadata={"vulnerable": "false"}),
        Artifact.create("beta", "2.0", "maven", licenses=["MIT"], copyrights=["(c) Beta"], metadata={"vulnerable": "no"}),
        Artifact.create("gamma", "0.3", "npm", licenses=["GPL-3.0"], copyrights=[], metadata={"vulnerable": "true"}),
    ]
