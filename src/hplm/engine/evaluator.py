"""
HPLM Evaluation Engine

Deterministic forward chaining to fixpoint, then a single gate check.

Algorithm:
1. working = input facts
2. For pass 1..max_passes, evaluate every DERIVATION rule in
   (priority, id) order against `working`, recording a trace entry for
   each. When a premise is TRUE its actions apply: SetFact updates
   `working` (a pass "changes" when any value differs from before),
   RequireAction is recorded as an applied effect.
   Stop at the first pass with no change.
3. No stable pass within max_passes -> CycleDetected.
4. Evaluate every GATE rule once, in order, against the fixpoint facts.
   Gates never touch facts and never re-trigger derivations.

Core Principle: evaluation is a pure function of (ruleset, facts).
No I/O, no clock, no randomness, no shared mutable state.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..exceptions import CycleDetected, InvalidFactValueError
from ..models import (
    Action,
    EvaluationResult,
    EvaluationTrace,
    FactOverwrite,
    FactSet,
    RequireAction,
    Rule,
    Ruleset,
    SetFact,
    TraceEntry,
    TriBool,
    Veto,
    same_kind,
    scalar_type_of,
)
from .condition_evaluator import ConditionEvaluator

logger = logging.getLogger(__name__)

DEFAULT_MAX_PASSES = 10


@dataclass(frozen=True)
class Evaluator:
    """
    Runs a Ruleset against a FactSet.

    `max_passes` is fixed at construction (from settings), never taken
    from request input. An Evaluator holds no per-run state, so one
    instance may serve concurrent evaluations.

    Usage:
        evaluator = Evaluator(max_passes=10)
        result = evaluator.evaluate(ruleset, facts)
        decision = decide(result.trace)
    """
    max_passes: int = DEFAULT_MAX_PASSES
    condition_evaluator: ConditionEvaluator = field(default_factory=ConditionEvaluator)

    def __post_init__(self) -> None:
        if isinstance(self.max_passes, bool) or not isinstance(self.max_passes, int) or self.max_passes < 1:
            raise ValueError(f"max_passes must be a positive integer, got {self.max_passes!r}")

    def evaluate(self, ruleset: Ruleset, facts: FactSet) -> EvaluationResult:
        """
        Evaluate a ruleset against input facts.

        Args:
            ruleset: A validated, immutable ruleset
            facts: Input snapshot (never modified)

        Returns:
            EvaluationResult with the full trace and fixpoint facts

        Raises:
            InvalidFactValueError: If an input fact contradicts its declared type
            CycleDetected: If derivations do not stabilise within max_passes
        """
        self._check_declared_types(ruleset, facts)

        entries: list[TraceEntry] = []
        overwrites: list[FactOverwrite] = []
        working = facts
        passes = 0
        changed_keys: list[str] = []
        stable = False

        for pass_number in range(1, self.max_passes + 1):
            passes = pass_number
            working, changed_keys = self._run_derivation_pass(
                ruleset, working, pass_number, entries, overwrites,
            )
            if not changed_keys:
                stable = True
                break
            logger.debug("Pass %d changed %s", pass_number, ", ".join(changed_keys))

        if not stable:
            logger.warning(
                "No fixpoint for ruleset %s after %d passes; still changing: %s",
                ruleset.version, self.max_passes, ", ".join(changed_keys),
            )
            raise CycleDetected(
                message=f"Derivation rules did not reach a fixpoint within {self.max_passes} passes",
                details={
                    "max_passes": self.max_passes,
                    "ruleset_version": ruleset.version,
                    "changing_keys": changed_keys,
                },
            )

        gate_pass = passes + 1
        for rule in ruleset.gate_rules:
            entries.append(self._evaluate_gate(rule, working, gate_pass))

        trace = EvaluationTrace(entries=tuple(entries), overwrites=tuple(overwrites), passes=passes)
        logger.debug(
            "Ruleset %s reached fixpoint at pass %d (%d trace entries)",
            ruleset.version, passes, len(entries),
        )
        return EvaluationResult(trace=trace, facts=working, ruleset_version=ruleset.version)

    @staticmethod
    def _check_declared_types(ruleset: Ruleset, facts: FactSet) -> None:
        # A mistyped fact would only ever compare UNKNOWN and silently disarm gates
        mismatched = {
            key: {"declared": declared.value, "provided": scalar_type_of(facts[key]).value}
            for key, declared in ruleset.fact_types.items()
            if key in facts and scalar_type_of(facts[key]) is not declared
        }
        if mismatched:
            raise InvalidFactValueError(
                message=f"Facts do not match their declared types: {', '.join(sorted(mismatched))}",
                details={"mismatched": mismatched, "ruleset_version": ruleset.version},
            )

    def _run_derivation_pass(
        self,
        ruleset: Ruleset,
        working: FactSet,
        pass_number: int,
        entries: list[TraceEntry],
        overwrites: list[FactOverwrite],
    ) -> tuple[FactSet, list[str]]:
        """One pass over every DERIVATION rule. Returns (facts, changed keys)."""
        changed_keys: list[str] = []

        for rule in ruleset.derivation_rules:
            outcome = self.condition_evaluator.evaluate(rule.condition, working)
            fired = outcome.value is TriBool.TRUE
            applied: tuple[Action, ...] = ()

            if fired:
                applied = rule.actions
                for action in rule.actions:
                    if not isinstance(action, SetFact):
                        continue
                    previous, found = working.lookup(action.key)
                    if found and same_kind(previous, action.value) and previous == action.value:
                        continue
                    if found:
                        overwrites.append(FactOverwrite(
                            pass_number=pass_number,
                            rule_id=rule.id,
                            key=action.key,
                            previous=previous,
                            value=action.value,
                        ))
                        logger.info(
                            "Rule %s overwrote fact %s: %r -> %r (pass %d)",
                            rule.id, action.key, previous, action.value, pass_number,
                        )
                    working = working.with_fact(action.key, action.value)
                    if action.key not in changed_keys:
                        changed_keys.append(action.key)

            entries.append(TraceEntry(
                pass_number=pass_number,
                rule_id=rule.id,
                kind=rule.kind,
                priority=rule.priority,
                condition_result=outcome.value,
                fired=fired,
                effects_applied=applied,
                missing_facts=tuple(outcome.missing_fact_keys),
            ))

        return working, changed_keys

    def _evaluate_gate(self, rule: Rule, working: FactSet, pass_number: int) -> TraceEntry:
        outcome = self.condition_evaluator.evaluate(rule.condition, working)
        fired = outcome.value is TriBool.TRUE
        if fired:
            logger.debug("Gate %s fired: %s", rule.id, outcome.explanation)
        return TraceEntry(
            pass_number=pass_number,
            rule_id=rule.id,
            kind=rule.kind,
            priority=rule.priority,
            condition_result=outcome.value,
            fired=fired,
            effects_applied=tuple(a for a in rule.actions if isinstance(a, Veto)) if fired else (),
            missing_facts=tuple(outcome.missing_fact_keys),
        )


def evaluate(ruleset: Ruleset, facts: FactSet, max_passes: int = DEFAULT_MAX_PASSES) -> EvaluationResult:
    """Evaluate with a temporary Evaluator."""
    return Evaluator(max_passes=max_passes).evaluate(ruleset, facts)


def required_action_tags(actions: tuple[Action, ...]) -> list[str]:
    """RequireAction tags among applied effects, in order."""
    return [action.tag for action in actions if isinstance(action, RequireAction)]
