"""
HPLM Enumerations

All enumeration types used throughout the guardrail engine.

All enums inherit from (str, Enum) for JSON serialization compatibility.
"""
from __future__ import annotations

from enum import Enum


# =============================================================================
# Condition Operators
# =============================================================================

class ConditionOperator(str, Enum):
    """Operators for condition trees."""
    # Logical
    AND = "and"
    OR = "or"
    NOT = "not"

    # Comparison
    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"

    @property
    def is_logical(self) -> bool:
        return self in LOGICAL_OPERATORS

    @property
    def is_ordering(self) -> bool:
        return self in ORDERING_OPERATORS


LOGICAL_OPERATORS = frozenset({ConditionOperator.AND, ConditionOperator.OR, ConditionOperator.NOT})
ORDERING_OPERATORS = frozenset({
    ConditionOperator.GT, ConditionOperator.GTE,
    ConditionOperator.LT, ConditionOperator.LTE,
})


# =============================================================================
# Fact Types
# =============================================================================

class ScalarType(str, Enum):
    """Declared type of a fact value."""
    STRING = "string"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    ENUM = "enum"


# =============================================================================
# Rules and Actions
# =============================================================================

class RuleKind(str, Enum):
    """
    Rule kind.

    DERIVATION rules add facts and requirements and run to fixpoint.
    GATE rules can only veto, and run once against the fixpoint facts.
    """
    DERIVATION = "derivation"
    GATE = "gate"


class ActionType(str, Enum):
    """Action variants a rule may carry."""
    SET_FACT = "set_fact"
    REQUIRE_ACTION = "require_action"
    VETO = "veto"


# =============================================================================
# Decision Outcome
# =============================================================================

class Outcome(str, Enum):
    """Final outcome of an evaluation."""
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
