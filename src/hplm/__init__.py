"""
HPLM - Deterministic Policy Guardrail Engine

Evaluates a typed fact set against a versioned ruleset, derives new facts
to a fixpoint, lets gate rules veto the outcome, and seals the whole run
into a hash-verifiable audit record.

Core Principle: "The same facts and the same ruleset always produce the
same decision, and the record proves it."

Key Features:
- Three-valued (Kleene) conditions: missing facts are UNKNOWN, never guessed
- Forward chaining to fixpoint with a bounded pass count (CycleDetected)
- Gate rules run once, after derivations, and can only veto
- Full causal chain of contributing rules on every decision
- Canonical JSON audit records with SHA-256 integrity hashes and replay
- Optional Ed25519 signatures over exported records

Quick Start:
    from hplm import FactSet, load_ruleset, evaluate_case, verify_record

    ruleset = load_ruleset("rulesets/cross_border_guardrail.yaml")
    facts = FactSet({"citizenship": "US", "product": "EM_HY_bond",
                     "prior_complex_derivatives_rejected": True})

    outcome = evaluate_case(ruleset, facts)
    print(outcome.decision.outcome, outcome.decision.veto_reason)
    assert verify_record(outcome.record.to_dict())

Version: 0.1.0
"""
from __future__ import annotations

__version__ = "0.1.0"

# =============================================================================
# Core Models (Re-exported for convenience)
# =============================================================================
from .models import (
    # Enums
    ActionType,
    ConditionOperator,
    Outcome,
    RuleKind,
    ScalarType,
    # Facts
    EnumTag,
    FactSet,
    # Conditions
    TriBool,
    FactRef,
    Predicate,
    Condition,
    AND,
    OR,
    NOT,
    PRED,
    EQ,
    NE,
    GT,
    GTE,
    LT,
    LTE,
    IN,
    # Rules
    SetFact,
    RequireAction,
    Veto,
    Rule,
    Ruleset,
    # Results
    TraceEntry,
    FactOverwrite,
    EvaluationTrace,
    EvaluationResult,
    Decision,
    AuditRecord,
)

# =============================================================================
# Engine
# =============================================================================
from .engine import (
    AuditRecorder,
    CaseOutcome,
    ConditionEvaluator,
    Evaluator,
    GuardrailPipeline,
    ReplayResult,
    RulesetRegistry,
    decide,
    evaluate,
    evaluate_case,
    replay_record,
    verify_record,
)

# =============================================================================
# Packs
# =============================================================================
from .packs import (
    RulesetPackLoader,
    bundled_ruleset_path,
    load_ruleset,
    load_ruleset_from_string,
)

# =============================================================================
# Exceptions
# =============================================================================
from .exceptions import (
    HPLMError,
    ConfigError,
    ValidationError,
    InvalidConditionError,
    RulesetLoadError,
    RulesetVersionMismatch,
    InvalidFactValueError,
    CycleDetected,
    AuditRecordError,
    SignatureInvalidError,
)

__all__ = [
    "__version__",
    # Enums
    "ActionType",
    "ConditionOperator",
    "Outcome",
    "RuleKind",
    "ScalarType",
    # Facts
    "EnumTag",
    "FactSet",
    # Conditions
    "TriBool",
    "FactRef",
    "Predicate",
    "Condition",
    "AND",
    "OR",
    "NOT",
    "PRED",
    "EQ",
    "NE",
    "GT",
    "GTE",
    "LT",
    "LTE",
    "IN",
    # Rules
    "SetFact",
    "RequireAction",
    "Veto",
    "Rule",
    "Ruleset",
    # Results
    "TraceEntry",
    "FactOverwrite",
    "EvaluationTrace",
    "EvaluationResult",
    "Decision",
    "AuditRecord",
    # Engine
    "AuditRecorder",
    "CaseOutcome",
    "ConditionEvaluator",
    "Evaluator",
    "GuardrailPipeline",
    "ReplayResult",
    "RulesetRegistry",
    "decide",
    "evaluate",
    "evaluate_case",
    "replay_record",
    "verify_record",
    # Packs
    "RulesetPackLoader",
    "bundled_ruleset_path",
    "load_ruleset",
    "load_ruleset_from_string",
    # Exceptions
    "HPLMError",
    "ConfigError",
    "ValidationError",
    "InvalidConditionError",
    "RulesetLoadError",
    "RulesetVersionMismatch",
    "InvalidFactValueError",
    "CycleDetected",
    "AuditRecordError",
    "SignatureInvalidError",
]
