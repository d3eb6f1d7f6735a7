"""
HPLM Ruleset Pack Tests

Tests that verify:
1. The bundled pack loads and validates
2. Literal forms ({enum}, {fact}, lists) convert to model values
3. Schema, semantic and version errors are reported, never partially loaded
4. Versions default to a content hash
"""
from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from hplm.exceptions import RulesetLoadError, RulesetVersionMismatch, ValidationError
from hplm.models import EnumTag, FactRef, RequireAction, RuleKind, ScalarType, SetFact, Veto
from hplm.packs import (
    SCHEMA_VERSION,
    RulesetPackLoader,
    bundled_ruleset_path,
    check_schema_version,
    load_ruleset,
    load_ruleset_from_string,
    ruleset_content_hash,
)


MINIMAL_PACK = """
schema_version: "1.0.0"
id: minimal
version: "1"
facts:
  tier: integer
  max_tier: integer
  status: enum
rules:
  - id: D1
    priority: 10
    kind: derivation
    when: {op: eq, field: status, value: {enum: Pilot}}
    then:
      - set_fact: {key: max_tier, value: 2}
      - require_action: REVIEW
  - id: G1
    priority: 20
    kind: gate
    when: {op: gt, field: tier, value: {fact: max_tier}}
    then:
      - veto: too complex
"""


def pack_dict(**overrides) -> dict:
    data = yaml.safe_load(MINIMAL_PACK)
    data.update(overrides)
    return data


class TestBundledPack:
    """The shipped cross-border guardrail pack."""

    def test_loads(self, bundled_ruleset):
        assert bundled_ruleset.id == "cross-border-guardrail"
        assert bundled_ruleset.version == "2026.1"
        assert len(bundled_ruleset.gate_rules) == 2

    def test_path_exists(self):
        assert bundled_ruleset_path().exists()

    def test_gate_compares_two_facts(self, bundled_ruleset):
        gate = bundled_ruleset.get_rule("R3-COMPLEXITY-CEILING")
        assert gate.kind is RuleKind.GATE
        assert gate.condition.predicate.value == FactRef("max_complexity_tier")

    def test_enum_set_fact(self, bundled_ruleset):
        rule = bundled_ruleset.get_rule("MB1-MBRIDGE-STATUS")
        assert rule.actions == (SetFact("regulatory_status", EnumTag("Unregulated_Pilot")),)

    def test_declared_fact_types(self, bundled_ruleset):
        assert bundled_ruleset.fact_types["regulatory_status"] is ScalarType.ENUM
        assert bundled_ruleset.fact_types["us_person"] is ScalarType.BOOLEAN


class TestLoading:
    """Tests for converting packs to models."""

    def test_from_yaml_string(self):
        ruleset = load_ruleset_from_string(MINIMAL_PACK)
        assert ruleset.rule_ids == ["D1", "G1"]
        d1 = ruleset.get_rule("D1")
        assert d1.condition.predicate.value == EnumTag("Pilot")
        assert d1.actions == (SetFact("max_tier", 2), RequireAction("REVIEW"))
        assert ruleset.get_rule("G1").actions == (Veto("too complex"),)

    def test_from_json_string(self):
        ruleset = load_ruleset_from_string(json.dumps(pack_dict()), format="json")
        assert ruleset.version == "1"

    def test_from_file(self, tmp_path: Path):
        path = tmp_path / "pack.yaml"
        path.write_text(MINIMAL_PACK)
        loader = RulesetPackLoader()
        ruleset = loader.load(path)
        assert loader.get_ruleset("minimal") is ruleset
        assert loader.list_rulesets() == ["minimal"]

    def test_json_file(self, tmp_path: Path):
        path = tmp_path / "pack.json"
        path.write_text(json.dumps(pack_dict()))
        assert load_ruleset(path).id == "minimal"

    def test_in_list_becomes_tuple(self):
        data = pack_dict(rules=[{
            "id": "D1", "priority": 1, "kind": "derivation",
            "when": {"op": "in", "field": "country", "value": ["DE", "FR"]},
            "then": [{"require_action": "TREATY"}],
        }])
        ruleset = RulesetPackLoader().load_data(data)
        assert ruleset.rules[0].condition.predicate.value == ("DE", "FR")

    def test_version_defaults_to_content_hash(self):
        data = pack_dict()
        del data["version"]
        first = RulesetPackLoader().load_data(data)
        assert first.version.startswith("sha256:")

        data["rules"][1]["then"][0]["veto"] = "different reason"
        second = RulesetPackLoader().load_data(data)
        assert second.version != first.version

    def test_content_hash_stable(self):
        assert ruleset_content_hash(load_ruleset_from_string(MINIMAL_PACK)) == \
            ruleset_content_hash(load_ruleset_from_string(MINIMAL_PACK))


class TestLoadErrors:
    """Tests for rejected packs."""

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(RulesetLoadError):
            load_ruleset(tmp_path / "missing.yaml")

    def test_bad_yaml(self):
        with pytest.raises(RulesetLoadError):
            load_ruleset_from_string("rules: [unclosed")

    def test_not_a_mapping(self):
        with pytest.raises(RulesetLoadError):
            load_ruleset_from_string("- just\n- a list\n")

    def test_schema_version_mismatch(self):
        with pytest.raises(RulesetVersionMismatch):
            RulesetPackLoader().load_data(pack_dict(schema_version="2.0.0"))

    def test_schema_version_check_can_be_relaxed(self):
        ruleset = RulesetPackLoader(strict_version=False).load_data(pack_dict(schema_version="2.0.0"))
        assert ruleset.id == "minimal"

    def test_check_schema_version(self):
        assert check_schema_version({"schema_version": SCHEMA_VERSION})
        assert check_schema_version({"schema_version": "1.9.0"})
        assert not check_schema_version({"schema_version": "0.1.0"})

    def test_unknown_field_rejected(self):
        data = pack_dict()
        data["rules"][0]["weight"] = 3
        with pytest.raises(ValidationError) as exc_info:
            RulesetPackLoader().load_data(data)
        assert exc_info.value.details["errors"]

    def test_action_needs_exactly_one_variant(self):
        data = pack_dict()
        data["rules"][0]["then"] = [{"require_action": "A", "veto": "B"}]
        with pytest.raises(ValidationError):
            RulesetPackLoader().load_data(data)

    def test_comparison_without_value(self):
        data = pack_dict()
        data["rules"][0]["when"] = {"op": "eq", "field": "status"}
        with pytest.raises(ValidationError):
            RulesetPackLoader().load_data(data)

    def test_string_priority_rejected(self):
        data = pack_dict()
        data["rules"][0]["priority"] = "10"
        with pytest.raises(ValidationError):
            RulesetPackLoader().load_data(data)

    def test_gate_cannot_set_fact(self):
        data = pack_dict()
        data["rules"][1]["then"] = [{"set_fact": {"key": "x", "value": 1}}]
        with pytest.raises(ValidationError) as exc_info:
            RulesetPackLoader().load_data(data)
        assert any("gate rule cannot carry SetFact" in e for e in exc_info.value.details["errors"])

    def test_fact_ref_not_allowed_in_set_fact(self):
        data = pack_dict()
        data["rules"][0]["then"] = [{"set_fact": {"key": "max_tier", "value": {"fact": "tier"}}}]
        with pytest.raises(ValidationError) as exc_info:
            RulesetPackLoader().load_data(data)
        assert any("Rule 'D1'" in e for e in exc_info.value.details["errors"])

    def test_float_literal_rejected(self):
        data = pack_dict()
        data["rules"][1]["when"] = {"op": "gt", "field": "tier", "value": 2.5}
        with pytest.raises(ValidationError):
            RulesetPackLoader().load_data(data)

    def test_undeclared_fact_type_value(self):
        with pytest.raises(ValidationError):
            RulesetPackLoader().load_data(pack_dict(facts={"tier": "decimal"}))
