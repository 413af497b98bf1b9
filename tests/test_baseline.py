from __future__ import annotations

import json
from pathlib import Path

import pytest

from complint.models import Artifact
from complint.policy import ConfigurationError, PolicyEngine, RuleSet
from complint.policy.baseline import Baseline, load_baseline


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def test_baseline_round_trip_suppresses_known_violations(
    tmp_path: Path, core_ruleset: RuleSet, artifacts: list[Artifact]
) -> None:
    engine = PolicyEngine(core_ruleset)
    known = engine.evaluate(artifacts)
    path = tmp_path / "baseline.json"

    Baseline.from_violations(known).write(path)
    baseline = load_baseline(path)

    assert len(baseline) == len(known)
    kept, suppressed = baseline.apply(engine.evaluate(artifacts))
    assert kept == []
    assert len(suppressed) == len(known)


def test_new_violation_is_not_suppressed(core_ruleset: RuleSet, artifacts: list[Artifact]) -> None:
    engine = PolicyEngine(core_ruleset)
    baseline = Baseline.from_violations(engine.evaluate(artifacts))

    newcomer = Artifact.create("delta", licenses=["AGPL-3.0"], copyrights=["(c) D"], metadata={"vulnerable": "no"})
    kept, suppressed = baseline.apply(engine.evaluate([*artifacts, newcomer]))

    assert [v.values for v in kept] == [("AGPL-3.0",)]
    assert len(suppressed) == 3


def test_suppression_survives_a_different_offending_artifact(core_ruleset: RuleSet) -> None:
    engine = PolicyEngine(core_ruleset)
    first = engine.evaluate([Artifact.create("a", licenses=["GPL-3.0"], copyrights=["(c)"], metadata={"vulnerable": "0"})])
    baseline = Baseline.from_violations(first)

    later = engine.evaluate([Artifact.create("z", licenses=["GPL-3.0"], copyrights=["(c)"], metadata={"vulnerable": "0"})])

    kept, _ = baseline.apply(later)
    assert kept == []


def test_baseline_file_layout(tmp_path: Path, core_ruleset: RuleSet, artifacts: list[Artifact]) -> None:
    path = tmp_path / "nested" / "baseline.json"
    Baseline.from_violations(PolicyEngine(core_ruleset).evaluate(artifacts)).write(path)

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["version"] == 1
    hashes = [entry["hash"] for entry in data["suppressed"]]
    assert hashes == sorted(hashes)
    assert {entry["rule"] for entry in data["suppressed"]} == {"no-gpl", "no-copyright", "vulnerable"}


def test_plain_hash_entries_are_accepted(tmp_path: Path) -> None:
    path = tmp_path / "baseline.json"
    _write(path, json.dumps({"suppressed": ["tABY3+Vz370VMhS2aAIyiw=="]}))

    assert "tABY3+Vz370VMhS2aAIyiw==" in load_baseline(path)


@pytest.mark.parametrize(
    "content",
    [
        "not json",
        json.dumps([]),
        json.dumps({"suppressed": {}}),
        json.dumps({"version": 2, "suppressed": []}),
        json.dumps({"suppressed": [{"rule": "no-hash"}]}),
    ],
)
def test_malformed_baselines_are_rejected(tmp_path: Path, content: str) -> None:
    path = tmp_path / "baseline.json"
    _write(path, content)

    with pytest.raises(ConfigurationError):
        load_baseline(path)
