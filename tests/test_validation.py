"""
Tests for ruleset validation

Every problem is collected and reported in one ValidationError raised
when the Ruleset is constructed.
"""
import pytest

from hplm.exceptions import ValidationError
from hplm.models import (
    EQ,
    GT,
    IN,
    NE,
    EnumTag,
    FactRef,
    RequireAction,
    RuleKind,
    ScalarType,
    SetFact,
    Veto,
)
from hplm.validation import collect_ruleset_errors

from tests.conftest import make_gate, make_rule, make_ruleset


def errors_for(*rules, fact_types=None) -> list[str]:
    """Build a ruleset expecting failure and return its error list."""
    with pytest.raises(ValidationError) as exc_info:
        make_ruleset(*rules, fact_types=fact_types)
    return exc_info.value.details["errors"]


class TestRuleShape:
    """Tests for ids, priorities and actions."""

    def test_valid_ruleset_has_no_errors(self, em_bond_ruleset):
        assert collect_ruleset_errors(em_bond_ruleset) == []

    def test_duplicate_ids(self):
        errors = errors_for(
            make_rule("R1", EQ("a", 1), SetFact("b", 1)),
            make_rule("R1", EQ("a", 2), SetFact("c", 1)),
        )
        assert any("Duplicate rule id: 'R1'" in e for e in errors)

    def test_empty_id(self):
        errors = errors_for(make_rule("", EQ("a", 1), SetFact("b", 1)))
        assert any("non-empty string" in e for e in errors)

    def test_bool_priority_rejected(self):
        errors = errors_for(make_rule("R1", EQ("a", 1), SetFact("b", 1), priority=True))
        assert any("priority must be an integer" in e for e in errors)

    def test_string_priority_rejected_before_sorting(self):
        errors = errors_for(
            make_rule("R1", EQ("a", 1), SetFact("b", 1), priority="high"),
            make_rule("R2", EQ("a", 1), SetFact("c", 1), priority=1),
        )
        assert any("priority must be an integer" in e for e in errors)

    def test_no_actions(self):
        errors = errors_for(make_rule("R1", EQ("a", 1)))
        assert any("has no actions" in e for e in errors)

    def test_gate_with_set_fact(self):
        """Gates can only veto."""
        errors = errors_for(
            make_rule("G1", EQ("a", 1), SetFact("b", 1), kind=RuleKind.GATE),
        )
        assert any("gate rule cannot carry SetFact" in e for e in errors)

    def test_derivation_with_veto(self):
        errors = errors_for(make_rule("R1", EQ("a", 1), Veto("no")))
        assert any("derivation rule cannot carry Veto" in e for e in errors)

    def test_empty_veto_reason(self):
        errors = errors_for(make_gate("G1", EQ("a", 1), ""))
        assert any("Veto reason" in e for e in errors)

    def test_empty_require_action_tag(self):
        errors = errors_for(make_rule("R1", EQ("a", 1), RequireAction("")))
        assert any("RequireAction tag" in e for e in errors)

    def test_collects_all_errors(self):
        errors = errors_for(
            make_rule("R1", EQ("a", 1), Veto("no")),
            make_rule("R2", EQ("a", 1)),
        )
        assert len(errors) == 2


class TestTypeChecks:
    """Tests for literal and fact type agreement."""

    def test_set_fact_float(self):
        errors = errors_for(make_rule("R1", EQ("a", 1), SetFact("b", 1.5)))
        assert any("unsupported type float" in e for e in errors)

    def test_set_fact_conflicts_with_declaration(self):
        errors = errors_for(
            make_rule("R1", EQ("a", 1), SetFact("tier", "three")),
            fact_types={"tier": ScalarType.INTEGER},
        )
        assert any("its declaration makes it integer" in e for e in errors)

    def test_two_set_facts_conflict(self):
        errors = errors_for(
            make_rule("R1", EQ("a", 1), SetFact("flag", True), priority=1),
            make_rule("R2", EQ("a", 2), SetFact("flag", 1), priority=2),
        )
        assert any("rule 'R1' makes it boolean" in e for e in errors)

    def test_literal_type_mismatch(self):
        errors = errors_for(
            make_rule("R1", EQ("tier", "3"), SetFact("b", 1)),
            fact_types={"tier": ScalarType.INTEGER},
        )
        assert any("literal is string but fact is integer" in e for e in errors)

    def test_literal_checked_against_set_fact_binding(self):
        errors = errors_for(
            make_rule("R1", EQ("a", 1), SetFact("max_complexity_tier", 2), priority=1),
            make_gate("G1", EQ("max_complexity_tier", True), "no"),
        )
        assert any("literal is boolean but fact is integer" in e for e in errors)

    def test_ordering_on_boolean(self):
        errors = errors_for(make_gate("G1", GT("flag", False), "no"))
        assert any("boolean values have no ordering" in e for e in errors)

    def test_ordering_on_enum_fact_ref(self):
        errors = errors_for(
            make_gate("G1", GT("status", FactRef("other")), "no"),
            fact_types={"status": ScalarType.ENUM},
        )
        assert any("enum values have no ordering" in e for e in errors)

    def test_fact_ref_type_mismatch(self):
        errors = errors_for(
            make_gate("G1", GT("tier", FactRef("name")), "no"),
            fact_types={"tier": ScalarType.INTEGER, "name": ScalarType.STRING},
        )
        assert any("compares integer fact with string fact" in e for e in errors)

    def test_in_requires_non_empty_list(self):
        errors = errors_for(make_gate("G1", IN("country", []), "no"))
        assert any("IN requires a non-empty list" in e for e in errors)

    def test_list_only_valid_with_in(self):
        errors = errors_for(make_gate("G1", EQ("country", ("US", "CA")), "no"))
        assert any("only valid with IN" in e for e in errors)

    def test_enum_literal_accepted(self):
        ruleset = make_ruleset(
            make_gate("G1", NE("status", EnumTag("Regulated")), "no"),
            fact_types={"status": ScalarType.ENUM},
        )
        assert ruleset.rule_ids == ["G1"]

    def test_error_carries_ruleset_version(self):
        with pytest.raises(ValidationError) as exc_info:
            make_ruleset(make_rule("R1", EQ("a", 1)), version="v9")
        assert exc_info.value.details["ruleset_version"] == "v9"
        assert exc_info.value.code == "HPLM_RULESET_VALIDATION_ERROR"
