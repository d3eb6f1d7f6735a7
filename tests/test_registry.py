"""
Tests for the ruleset registry and the evaluation pipeline
"""
import threading

import pytest

from hplm.engine import GuardrailPipeline, RulesetRegistry, evaluate_case, verify_record
from hplm.exceptions import CycleDetected
from hplm.models import EQ, Outcome, RequireAction, SetFact

from tests.conftest import make_facts, make_rule, make_ruleset


def ruleset_v(version: str, tag: str = "CHECK"):
    return make_ruleset(make_rule("R1", EQ("a", 1), RequireAction(tag)), version=version)


class TestRulesetRegistry:
    """Tests for activation and lookup."""

    def test_empty_registry(self):
        registry = RulesetRegistry()
        assert registry.is_loaded is False
        with pytest.raises(LookupError):
            registry.current()

    def test_activate_returns_previous(self):
        registry = RulesetRegistry(ruleset_v("v1"))
        previous = registry.activate(ruleset_v("v2"))
        assert previous.version == "v1"
        assert registry.current().version == "v2"

    def test_history_kept_for_replay(self):
        registry = RulesetRegistry(ruleset_v("v1"))
        registry.activate(ruleset_v("v2"))
        assert registry.versions == ["v1", "v2"]
        assert registry.get("v1").version == "v1"
        assert registry.get("v3") is None

    def test_in_flight_reference_unchanged(self):
        """A ruleset taken before a swap is the one the evaluation keeps using."""
        registry = RulesetRegistry(ruleset_v("v1", tag="OLD"))
        taken = registry.current()
        registry.activate(ruleset_v("v2", tag="NEW"))
        outcome = evaluate_case(taken, make_facts(a=1))
        assert outcome.decision.required_actions == ("OLD",)
        assert outcome.record.ruleset_version == "v1"

    def test_concurrent_activation(self):
        registry = RulesetRegistry()
        rulesets = [ruleset_v(f"v{i}") for i in range(20)]
        threads = [threading.Thread(target=registry.activate, args=(r,)) for r in rulesets]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert sorted(registry.versions) == sorted(r.version for r in rulesets)
        assert registry.current().version in registry.versions


class TestPipeline:
    """Tests for GuardrailPipeline."""

    def test_run(self, pipeline, em_bond_ruleset, em_bond_facts):
        outcome = pipeline.run(em_bond_ruleset, em_bond_facts)
        assert outcome.decision.outcome is Outcome.REJECTED
        assert outcome.record.decision == outcome.decision
        assert outcome.record.timestamp == "2026-10-18T09:30:00.000Z"
        assert verify_record(outcome.record)

    def test_cycle_propagates(self, pipeline):
        ruleset = make_ruleset(
            make_rule("FLIP", EQ("x", True), SetFact("x", False), priority=1),
            make_rule("FLOP", EQ("x", False), SetFact("x", True), priority=2),
        )
        with pytest.raises(CycleDetected):
            pipeline.run(ruleset, make_facts(x=True))

    def test_concurrent_runs_share_ruleset(self, em_bond_ruleset, em_bond_facts):
        pipeline = GuardrailPipeline()
        hashes = []
        lock = threading.Lock()

        def worker():
            outcome = pipeline.run(em_bond_ruleset, em_bond_facts)
            with lock:
                hashes.append(outcome.record.trace.to_dict())

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(hashes) == 8
        assert all(h == hashes[0] for h in hashes)
