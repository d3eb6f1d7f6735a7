"""
HPLM Models

Data model for facts, conditions, rules, traces, decisions and audit records.
"""
from __future__ import annotations

from .audit import AUDIT_FIELDS, AuditRecord
from .conditions import (
    AND,
    EQ,
    GT,
    GTE,
    IN,
    LT,
    LTE,
    NE,
    NOT,
    OR,
    PRED,
    Condition,
    ConditionOutcome,
    FactRef,
    Predicate,
    TriBool,
    operand_to_json,
)
from .decision import Decision
from .enums import (
    ActionType,
    ConditionOperator,
    Outcome,
    RuleKind,
    ScalarType,
)
from .facts import (
    EnumTag,
    FactSet,
    Scalar,
    ensure_scalar,
    same_kind,
    scalar_from_json,
    scalar_to_json,
    scalar_type_of,
)
from .rules import (
    ALLOWED_ACTIONS,
    Action,
    RequireAction,
    Rule,
    Ruleset,
    SetFact,
    Veto,
    action_from_dict,
)
from .trace import EvaluationResult, EvaluationTrace, FactOverwrite, TraceEntry

__all__ = [
    # Enums
    "ActionType",
    "ConditionOperator",
    "Outcome",
    "RuleKind",
    "ScalarType",
    # Facts
    "EnumTag",
    "FactSet",
    "Scalar",
    "ensure_scalar",
    "same_kind",
    "scalar_from_json",
    "scalar_to_json",
    "scalar_type_of",
    # Conditions
    "TriBool",
    "ConditionOutcome",
    "FactRef",
    "Predicate",
    "Condition",
    "operand_to_json",
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
    "Action",
    "SetFact",
    "RequireAction",
    "Veto",
    "ALLOWED_ACTIONS",
    "action_from_dict",
    "Rule",
    "Ruleset",
    # Trace and results
    "TraceEntry",
    "FactOverwrite",
    "EvaluationTrace",
    "EvaluationResult",
    "Decision",
    "AuditRecord",
    "AUDIT_FIELDS",
]
