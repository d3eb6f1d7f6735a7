"""
HPLM Engine

Condition evaluation, fixpoint evaluation, decision building and audit recording.

Usage:
    from hplm.engine import Evaluator, decide, AuditRecorder, verify_record

    result = Evaluator().evaluate(ruleset, facts)
    decision = decide(result.trace)
    record = AuditRecorder().record(ruleset.version, facts, result.trace, decision)
    assert verify_record(record)
"""
from __future__ import annotations

from .audit_recorder import (
    AuditRecorder,
    ReplayResult,
    compute_integrity_hash,
    replay_record,
    verify_record,
)
from .condition_evaluator import ConditionEvaluator, compare_values, evaluate_condition
from .decision_builder import decide
from .evaluator import DEFAULT_MAX_PASSES, Evaluator, evaluate
from .pipeline import CaseOutcome, GuardrailPipeline, evaluate_case
from .registry import RulesetRegistry

__all__ = [
    # Conditions
    "ConditionEvaluator",
    "compare_values",
    "evaluate_condition",
    # Evaluation
    "DEFAULT_MAX_PASSES",
    "Evaluator",
    "evaluate",
    # Decision
    "decide",
    # Audit
    "AuditRecorder",
    "ReplayResult",
    "compute_integrity_hash",
    "replay_record",
    "verify_record",
    # Orchestration
    "CaseOutcome",
    "GuardrailPipeline",
    "evaluate_case",
    "RulesetRegistry",
]
