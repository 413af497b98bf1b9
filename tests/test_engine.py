from __future__ import annotations

import logging
import random

import pytest

from complint.models import Artifact, ArtifactCoordinates
from complint.policy import PolicyEngine, RuleSet, load_ruleset_text, violation_hash
from complint.policy.engine import PolicyViolation

NO_GPL = """
ruleset_id = "ruleset/no-gpl"
version = 1

[[rules]]
id = "no-gpl"
predicate = { name = "license_in", params = { licenses = ["GPL-3.0", "AGPL-3.0"] } }
"""


def _no_gpl_engine(**kwargs) -> PolicyEngine:
    return PolicyEngine(load_ruleset_text(NO_GPL), **kwargs)


def _hashes(violations: list[PolicyViolation]) -> set[str]:
    return {v.violation_hash for v in violations}


def test_same_offending_license_collapses_to_one_violation() -> None:
    artifacts = [
        Artifact.create("A", licenses=["GPL-3.0"]),
        Artifact.create("B", licenses=["MIT"]),
        Artifact.create("C", licenses=["GPL-3.0"]),
    ]

    result = _no_gpl_engine().evaluate(artifacts)

    assert len(result) == 1
    assert result[0].rule_id == "no-gpl"
    assert result[0].violation_hash == violation_hash("no-gpl", ["gpl-3.0"])
    assert [c.name for c in result[0].failing_artifacts] == ["A", "C"]


def test_case_variants_of_a_license_collapse_to_one_violation() -> None:
    artifacts = [
        Artifact.create("A", licenses=["GPL-3.0"]),
        Artifact.create("C", licenses=["gpl-3.0"]),
    ]

    result = _no_gpl_engine().evaluate(artifacts)

    assert len(result) == 1
    assert result[0].violation_hash == violation_hash("no-gpl", ["gpl-3.0"])
    assert result[0].values == ("GPL-3.0",)
    assert [c.name for c in result[0].failing_artifacts] == ["A", "C"]


def test_distinct_offending_licenses_are_distinct_violations() -> None:
    artifacts = [
        Artifact.create("A", licenses=["GPL-3.0"]),
        Artifact.create("D", licenses=["AGPL-3.0"]),
    ]

    result = _no_gpl_engine().evaluate(artifacts)

    assert len(result) == 2
    assert len(_hashes(result)) == 2
    assert {v.values for v in result} == {("GPL-3.0",), ("AGPL-3.0",)}


def test_non_violating_artifact_is_never_referenced() -> None:
    artifacts = [Artifact.create("A", licenses=["GPL-3.0"]), Artifact.create("B", licenses=["MIT"])]

    result = _no_gpl_engine().evaluate(artifacts)

    for v in result:
        assert ArtifactCoordinates("B") not in v.failing_artifacts
        assert v.artifact != ArtifactCoordinates("B")


def test_result_does_not_depend_on_input_order(artifacts: list[Artifact], engine: PolicyEngine) -> None:
    first = engine.evaluate(artifacts)
    shuffled = list(artifacts)
    random.Random(7).shuffle(shuffled)
    second = engine.evaluate(reversed(shuffled))

    assert first == second


def test_evaluation_is_idempotent(artifacts: list[Artifact], engine: PolicyEngine) -> None:
    assert _hashes(engine.evaluate(artifacts)) == _hashes(engine.evaluate(list(artifacts)))


def test_parallel_evaluation_matches_sequential(artifacts: list[Artifact], core_ruleset: RuleSet) -> None:
    sequential = PolicyEngine(core_ruleset).evaluate(artifacts)
    parallel = PolicyEngine(core_ruleset, max_workers=4).evaluate(artifacts)

    assert parallel == sequential


def test_full_cross_product(artifacts: list[Artifact], engine: PolicyEngine) -> None:
    result = engine.evaluate(artifacts)

    assert [v.rule_id for v in result] == ["no-gpl", "vulnerable", "no-copyright"]
    by_rule = {v.rule_id: v for v in result}
    assert by_rule["no-gpl"].message == "maven:alpha@1.0 uses forbidden license GPL-3.0"
    assert by_rule["no-gpl"].severity == "error"
    assert by_rule["vulnerable"].message == "gamma 0.3 has a known vulnerability"
    assert by_rule["no-copyright"].severity == "warning"
    assert by_rule["no-copyright"].message == "no-copyright: npm:gamma@0.3"


def test_artifact_dedup_keeps_one_violation_per_artifact(core_ruleset: RuleSet) -> None:
    artifacts = [
        Artifact.create("one", copyrights=[], metadata={"vulnerable": "no"}),
        Artifact.create("two", copyrights=[], metadata={"vulnerable": "no"}),
    ]

    result = PolicyEngine(core_ruleset).evaluate(artifacts)

    missing = [v for v in result if v.rule_id == "no-copyright"]
    assert len(missing) == 2
    assert len(_hashes(missing)) == 2


def test_missing_attribute_warns_for_that_pair_only(
    artifacts: list[Artifact], engine: PolicyEngine, caplog: pytest.LogCaptureFixture
) -> None:
    broken = Artifact.create("delta", "1.0", licenses=["AGPL-3.0"], copyrights=["(c) Delta"])  # no "vulnerable" key

    with caplog.at_level(logging.WARNING, logger="complint.policy.engine"):
        report = engine.evaluate_with_diagnostics([*artifacts, broken])

    assert len(report.warnings) == 1
    warning = report.warnings[0]
    assert warning.rule_id == "vulnerable"
    assert warning.artifact == broken.coordinates
    assert "metadata.vulnerable" in warning.error
    assert "delta" in caplog.text

    # Other rules still see the broken artifact, other artifacts are unaffected.
    rule_ids = sorted(v.rule_id for v in report.violations)
    assert rule_ids == ["no-copyright", "no-gpl", "no-gpl", "vulnerable"]
    agpl = [v for v in report.violations if v.values == ("AGPL-3.0",)]
    assert agpl[0].artifact == broken.coordinates


def test_unresolved_licenses_warn_without_aborting() -> None:
    artifacts = [Artifact.create("A", licenses=None), Artifact.create("C", licenses=["GPL-3.0"])]

    report = _no_gpl_engine().evaluate_with_diagnostics(artifacts)

    assert [w.artifact.name for w in report.warnings] == ["A"]
    assert len(report.violations) == 1
    assert report.violations[0].artifact.name == "C"


def test_malformed_flag_value_is_a_warning(core_ruleset: RuleSet) -> None:
    artifact = Artifact.create("odd", copyrights=["(c) Odd"], metadata={"vulnerable": "maybe"})

    report = PolicyEngine(core_ruleset).evaluate_with_diagnostics([artifact])

    assert len(report.warnings) == 1
    assert "not a boolean flag" in report.warnings[0].error
    assert report.violations == ()


def test_hashing_failure_drops_only_that_candidate(monkeypatch: pytest.MonkeyPatch) -> None:
    from complint.policy import engine as engine_module
    from complint.policy.errors import HashingFailure

    real_hash = engine_module.violation_hash

    def flaky_hash(rule_id, values, qualifier=None):
        if "AGPL-3.0" in values:
            raise HashingFailure("boom")
        return real_hash(rule_id, values, qualifier)

    monkeypatch.setattr(engine_module, "violation_hash", flaky_hash)
    artifacts = [Artifact.create("A", licenses=["GPL-3.0"]), Artifact.create("D", licenses=["AGPL-3.0"])]

    report = _no_gpl_engine().evaluate_with_diagnostics(artifacts)

    assert report.dropped == 1
    assert [v.values for v in report.violations] == [("GPL-3.0",)]


def test_empty_inputs() -> None:
    assert _no_gpl_engine().evaluate([]) == []
    empty = PolicyEngine(RuleSet(ruleset_id="empty", version=1))
    assert empty.evaluate([Artifact.create("A", licenses=["GPL-3.0"])]) == []


def test_engine_accepts_generators() -> None:
    result = _no_gpl_engine().evaluate(Artifact.create(n, licenses=["GPL-3.0"]) for n in "XYZ")
    assert len(result) == 1
    assert len(result[0].failing_artifacts) == 3
