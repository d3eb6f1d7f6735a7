"""
HPLM Decision Builder

Turns an EvaluationTrace into a Decision.

This is a pure function of the trace: no conditions are re-evaluated and
no rule definitions are consulted. Everything it needs (kind, priority,
fired flag, applied effects) is recorded on the trace entries.
"""
from __future__ import annotations

from ..models import Decision, EvaluationTrace, Outcome, RuleKind, TraceEntry, Veto
from .evaluator import required_action_tags


def decide(trace: EvaluationTrace) -> Decision:
    """
    Build the Decision for an evaluation trace.

    If any gate fired the outcome is REJECTED with the veto reason of the
    highest-priority fired gate (lowest priority value, ties by id) and the
    full causal chain of fired rules. Otherwise the outcome is APPROVED
    with the accumulated required-action tags.

    Args:
        trace: Trace produced by Evaluator.evaluate

    Returns:
        Decision
    """
    contributing = _first_firing_order(trace.fired_entries)
    fired_gates = [entry for entry in trace.fired_entries if entry.kind is RuleKind.GATE]

    if fired_gates:
        vetoing = min(fired_gates, key=lambda entry: (entry.priority, entry.rule_id))
        return Decision(
            outcome=Outcome.REJECTED,
            veto_reason=_veto_reason(vetoing),
            contributing_rule_ids=tuple(contributing),
        )

    required: list[str] = []
    for entry in trace.fired_entries:
        for tag in required_action_tags(entry.effects_applied):
            if tag not in required:
                required.append(tag)

    return Decision(
        outcome=Outcome.APPROVED,
        required_actions=tuple(required),
        contributing_rule_ids=tuple(contributing),
    )


def _first_firing_order(entries: list[TraceEntry]) -> list[str]:
    seen: list[str] = []
    for entry in entries:
        if entry.rule_id not in seen:
            seen.append(entry.rule_id)
    return seen


def _veto_reason(entry: TraceEntry) -> str:
    reasons = [action.reason for action in entry.effects_applied if isinstance(action, Veto)]
    return reasons[0] if reasons else f"Vetoed by {entry.rule_id}"
