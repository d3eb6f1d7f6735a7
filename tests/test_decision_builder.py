"""
Tests for the decision builder

decide() reads only the trace: outcome, veto reason, required actions and
the causal chain of contributing rules.
"""
from hplm.engine import Evaluator, decide
from hplm.models import (
    EQ,
    EvaluationTrace,
    Outcome,
    RequireAction,
    RuleKind,
    SetFact,
    TraceEntry,
    TriBool,
    Veto,
)

from tests.conftest import make_facts, make_gate, make_rule, make_ruleset


def run(ruleset, **facts):
    return decide(Evaluator().evaluate(ruleset, make_facts(**facts)).trace)


class TestApproved:
    """Tests for APPROVED decisions."""

    def test_empty_trace_is_approved(self):
        decision = decide(EvaluationTrace())
        assert decision.outcome is Outcome.APPROVED
        assert decision.required_actions == ()
        assert decision.veto_reason is None
        assert decision.contributing_rule_ids == ()

    def test_required_actions_deduplicated_in_order(self):
        ruleset = make_ruleset(
            make_rule("R1", EQ("a", 1), RequireAction("TAX_FORM"), RequireAction("KYC"), priority=1),
            make_rule("R2", EQ("a", 1), RequireAction("KYC"), RequireAction("OFAC"), priority=2),
        )
        decision = run(ruleset, a=1)
        assert decision.outcome is Outcome.APPROVED
        assert decision.required_actions == ("TAX_FORM", "KYC", "OFAC")

    def test_contributing_rules_on_approval(self):
        """Fired derivations are the causal chain of an approval too."""
        ruleset = make_ruleset(
            make_rule("R1", EQ("a", 1), SetFact("b", 2), priority=1),
            make_rule("R2", EQ("a", 9), RequireAction("NEVER"), priority=2),
        )
        decision = run(ruleset, a=1)
        assert decision.contributing_rule_ids == ("R1",)

    def test_unknown_gate_approves(self):
        ruleset = make_ruleset(make_gate("G1", EQ("missing", True), "blocked"))
        assert run(ruleset).outcome is Outcome.APPROVED


class TestRejected:
    """Tests for REJECTED decisions."""

    def test_veto_reason_from_fired_gate(self, em_bond_ruleset, em_bond_facts):
        decision = decide(Evaluator().evaluate(em_bond_ruleset, em_bond_facts).trace)
        assert decision.outcome is Outcome.REJECTED
        assert "exceeds" in decision.veto_reason

    def test_required_actions_empty_when_rejected(self, em_bond_ruleset, em_bond_facts):
        decision = decide(Evaluator().evaluate(em_bond_ruleset, em_bond_facts).trace)
        assert decision.required_actions == ()

    def test_causal_chain_in_first_firing_order(self, em_bond_ruleset, em_bond_facts):
        decision = decide(Evaluator().evaluate(em_bond_ruleset, em_bond_facts).trace)
        assert decision.contributing_rule_ids == (
            "R0-PRODUCT-TIER", "R1-TAX-TREATY", "R2-CEILING", "R3-COMPLEXITY-GATE",
        )

    def test_highest_priority_gate_wins(self):
        ruleset = make_ruleset(
            make_gate("G-LOW", EQ("a", 1), "low priority reason", priority=200),
            make_gate("G-HIGH", EQ("a", 1), "high priority reason", priority=100),
        )
        decision = run(ruleset, a=1)
        assert decision.veto_reason == "high priority reason"
        assert decision.contributing_rule_ids == ("G-HIGH", "G-LOW")

    def test_priority_tie_broken_by_id(self):
        ruleset = make_ruleset(
            make_gate("G-B", EQ("a", 1), "reason b", priority=100),
            make_gate("G-A", EQ("a", 1), "reason a", priority=100),
        )
        assert run(ruleset, a=1).veto_reason == "reason a"

    def test_decide_uses_trace_only(self):
        """A hand-built trace decides the same way as an evaluated one."""
        trace = EvaluationTrace(
            entries=(
                TraceEntry(
                    pass_number=1, rule_id="R2", kind=RuleKind.DERIVATION, priority=20,
                    condition_result=TriBool.TRUE, fired=True,
                    effects_applied=(SetFact("max_complexity_tier", 2),),
                ),
                TraceEntry(
                    pass_number=3, rule_id="R3", kind=RuleKind.GATE, priority=30,
                    condition_result=TriBool.TRUE, fired=True,
                    effects_applied=(Veto("complexity_tier 3 exceeds max_complexity_tier 2"),),
                ),
            ),
            passes=2,
        )
        decision = decide(trace)
        assert decision.is_rejected
        assert decision.contributing_rule_ids == ("R2", "R3")

    def test_decide_is_deterministic(self, em_bond_ruleset, em_bond_facts):
        trace = Evaluator().evaluate(em_bond_ruleset, em_bond_facts).trace
        assert decide(trace) == decide(trace)
