"""
HPLM Composable Conditions

Provides three-valued logic (TriBool) and composable condition trees
for evaluating rule premises against a FactSet.

Key components:
- TriBool: Three-valued logic (TRUE, FALSE, UNKNOWN) with Kleene algebra
- FactRef: Right-hand side that names another fact
- Predicate: Leaf-level comparison against facts
- Condition: Composable AND/OR/NOT tree structure
- Helper functions: AND(), OR(), NOT(), EQ(), GT(), IN() ... for building conditions

Truth Tables (Kleene Logic):
    AND: False dominates, Unknown propagates
    OR: True dominates, Unknown propagates
    NOT: Unknown stays Unknown
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from ..exceptions import InvalidConditionError
from .enums import ConditionOperator
from .facts import EnumTag, Scalar, scalar_to_json


# =============================================================================
# Three-Valued Logic (TriBool)
# =============================================================================

class TriBool(Enum):
    """
    Three-valued Boolean logic (Kleene logic).

    UNKNOWN means a premise could not be determined because a referenced
    fact was missing. It never fires a rule, but the trace keeps it apart
    from FALSE so an auditor can tell "did not apply" from "could not tell".

    Truth Tables:

    AND:
        AND    | TRUE    FALSE   UNKNOWN
        -------|------------------------
        TRUE   | TRUE    FALSE   UNKNOWN
        FALSE  | FALSE   FALSE   FALSE
        UNKNOWN| UNKNOWN FALSE   UNKNOWN

    OR:
        OR     | TRUE    FALSE   UNKNOWN
        -------|------------------------
        TRUE   | TRUE    TRUE    TRUE
        FALSE  | TRUE    FALSE   UNKNOWN
        UNKNOWN| TRUE    UNKNOWN UNKNOWN
    """
    TRUE = "TRUE"
    FALSE = "FALSE"
    UNKNOWN = "UNKNOWN"

    def __and__(self, other: TriBool) -> TriBool:
        if not isinstance(other, TriBool):
            return NotImplemented
        if self is TriBool.FALSE or other is TriBool.FALSE:
            return TriBool.FALSE
        if self is TriBool.UNKNOWN or other is TriBool.UNKNOWN:
            return TriBool.UNKNOWN
        return TriBool.TRUE

    def __or__(self, other: TriBool) -> TriBool:
        if not isinstance(other, TriBool):
            return NotImplemented
        if self is TriBool.TRUE or other is TriBool.TRUE:
            return TriBool.TRUE
        if self is TriBool.UNKNOWN or other is TriBool.UNKNOWN:
            return TriBool.UNKNOWN
        return TriBool.FALSE

    def __invert__(self) -> TriBool:
        if self is TriBool.UNKNOWN:
            return TriBool.UNKNOWN
        return TriBool.FALSE if self is TriBool.TRUE else TriBool.TRUE

    def __bool__(self) -> bool:
        """
        Convert to bool for Python if statements.

        Raises ValueError for UNKNOWN to force explicit handling.
        """
        if self is TriBool.UNKNOWN:
            raise ValueError(
                "Cannot convert TriBool.UNKNOWN to bool. "
                "Handle UNKNOWN explicitly in your logic."
            )
        return self is TriBool.TRUE

    @classmethod
    def from_bool(cls, value: Optional[bool]) -> TriBool:
        """Convert Python bool/None to TriBool."""
        if value is None:
            return cls.UNKNOWN
        return cls.TRUE if value else cls.FALSE

    def is_true(self) -> bool:
        return self is TriBool.TRUE

    def is_unknown(self) -> bool:
        return self is TriBool.UNKNOWN


# =============================================================================
# Condition Outcome
# =============================================================================

@dataclass
class ConditionOutcome:
    """
    Result of evaluating a condition.

    Includes the TriBool value plus the fact keys that were missing
    (populated when the value is UNKNOWN somewhere in the tree).
    """
    value: TriBool
    explanation: str
    missing_fact_keys: list[str] = field(default_factory=list)

    @property
    def is_satisfied(self) -> bool:
        return self.value is TriBool.TRUE

    def __and__(self, other: ConditionOutcome) -> ConditionOutcome:
        return ConditionOutcome(
            value=self.value & other.value,
            explanation=f"({self.explanation}) AND ({other.explanation})",
            missing_fact_keys=_merge_keys(self.missing_fact_keys, other.missing_fact_keys),
        )

    def __or__(self, other: ConditionOutcome) -> ConditionOutcome:
        return ConditionOutcome(
            value=self.value | other.value,
            explanation=f"({self.explanation}) OR ({other.explanation})",
            missing_fact_keys=_merge_keys(self.missing_fact_keys, other.missing_fact_keys),
        )

    def __invert__(self) -> ConditionOutcome:
        return ConditionOutcome(
            value=~self.value,
            explanation=f"NOT ({self.explanation})",
            missing_fact_keys=list(self.missing_fact_keys),
        )


def _merge_keys(left: list[str], right: list[str]) -> list[str]:
    merged = list(left)
    for key in right:
        if key not in merged:
            merged.append(key)
    return merged


# =============================================================================
# Predicate (Leaf Condition)
# =============================================================================

@dataclass(frozen=True)
class FactRef:
    """Right-hand side of a comparison that names another fact."""
    key: str

    def __str__(self) -> str:
        return f"fact:{self.key}"


Operand = Union[Scalar, tuple, FactRef]


@dataclass(frozen=True)
class Predicate:
    """
    A leaf-level comparison in a condition tree.

    Attributes:
        field: Fact key on the left-hand side
        operator: Comparison operator (eq, ne, gt, lt, in, ...)
        value: Literal scalar, tuple of scalars (for IN), or FactRef
    """
    field: str
    operator: ConditionOperator
    value: Operand

    def __post_init__(self) -> None:
        if self.operator.is_logical:
            raise InvalidConditionError(
                message=f"Predicate cannot use logical operator '{self.operator.value}'",
                details={"field": self.field},
            )
        if not isinstance(self.field, str) or not self.field:
            raise InvalidConditionError(
                message="Predicate field must be a non-empty fact key",
                details={"field": repr(self.field)},
            )
        if isinstance(self.value, list):
            object.__setattr__(self, "value", tuple(self.value))

    @property
    def referenced_keys(self) -> tuple[str, ...]:
        if isinstance(self.value, FactRef):
            return (self.field, self.value.key)
        return (self.field,)

    def describe(self) -> str:
        return f"{self.field} {self.operator.value} {_operand_text(self.value)}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "op": self.operator.value,
            "field": self.field,
            "value": operand_to_json(self.value),
        }


def operand_to_json(value: Operand) -> Any:
    """JSON form of a predicate operand."""
    if isinstance(value, FactRef):
        return {"fact": value.key}
    if isinstance(value, tuple):
        return [scalar_to_json(v) for v in value]
    return scalar_to_json(value)


def _operand_text(value: Operand) -> str:
    if isinstance(value, tuple):
        return "[" + ", ".join(_operand_text(v) for v in value) + "]"
    if isinstance(value, (FactRef, EnumTag)):
        return str(value)
    return repr(value)


# =============================================================================
# Condition (Composable Tree)
# =============================================================================

@dataclass(frozen=True)
class Condition:
    """
    A composable condition that can be nested (AND/OR/NOT).

    For logical operators (AND, OR, NOT), use `children`.
    For comparison operators, use `predicate`.

    Examples:
        # Simple predicate
        Condition(
            op=ConditionOperator.EQ,
            predicate=Predicate("citizenship", ConditionOperator.EQ, "US"),
        )

        # AND composition
        Condition(op=ConditionOperator.AND, children=(condition1, condition2))
    """
    op: ConditionOperator
    children: tuple[Condition, ...] = ()
    predicate: Optional[Predicate] = None
    description: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate condition structure."""
        if isinstance(self.children, list):
            object.__setattr__(self, "children", tuple(self.children))

        if self.op.is_logical:
            if not self.children:
                raise InvalidConditionError(
                    message=f"Logical operator '{self.op.value}' requires children",
                )
            if self.predicate is not None:
                raise InvalidConditionError(
                    message=f"Logical operator '{self.op.value}' cannot have predicate",
                )
            if self.op is ConditionOperator.NOT and len(self.children) != 1:
                raise InvalidConditionError(message="NOT operator must have exactly one child")
        else:
            if self.predicate is None:
                raise InvalidConditionError(
                    message=f"Comparison operator '{self.op.value}' requires predicate",
                )
            if self.children:
                raise InvalidConditionError(
                    message=f"Comparison operator '{self.op.value}' cannot have children",
                )
            if self.predicate.operator is not self.op:
                raise InvalidConditionError(
                    message="Condition operator does not match its predicate operator",
                    details={"op": self.op.value, "predicate_op": self.predicate.operator.value},
                )

    @property
    def is_logical(self) -> bool:
        return self.op.is_logical

    def predicates(self) -> list[Predicate]:
        """All leaf predicates in tree order."""
        if self.predicate is not None:
            return [self.predicate]
        found: list[Predicate] = []
        for child in self.children:
            found.extend(child.predicates())
        return found

    def referenced_keys(self) -> set[str]:
        """Every fact key the condition reads."""
        keys: set[str] = set()
        for predicate in self.predicates():
            keys.update(predicate.referenced_keys)
        return keys

    def to_dict(self) -> dict[str, Any]:
        if self.predicate is not None:
            return self.predicate.to_dict()
        return {
            "op": self.op.value,
            "children": [child.to_dict() for child in self.children],
        }


# =============================================================================
# Helper Functions for Building Conditions
# =============================================================================

def AND(*conditions: Condition) -> Condition:
    """
    Create an AND condition from multiple child conditions.

    Example:
        condition = AND(
            EQ("citizenship", "US"),
            IN("account_domicile", ["Germany", "France"]),
        )
    """
    return Condition(op=ConditionOperator.AND, children=tuple(conditions))


def OR(*conditions: Condition) -> Condition:
    """Create an OR condition from multiple child conditions."""
    return Condition(op=ConditionOperator.OR, children=tuple(conditions))


def NOT(condition: Condition) -> Condition:
    """Create a NOT condition (negation)."""
    return Condition(op=ConditionOperator.NOT, children=(condition,))


def PRED(field: str, operator: ConditionOperator, value: Operand) -> Condition:
    """
    Create a predicate condition (leaf).

    Example:
        condition = PRED("product_complexity_tier", ConditionOperator.GT, FactRef("max_complexity_tier"))
    """
    return Condition(op=operator, predicate=Predicate(field=field, operator=operator, value=value))


def EQ(field: str, value: Operand) -> Condition:
    """field == value"""
    return PRED(field, ConditionOperator.EQ, value)


def NE(field: str, value: Operand) -> Condition:
    """field != value"""
    return PRED(field, ConditionOperator.NE, value)


def GT(field: str, value: Operand) -> Condition:
    """field > value"""
    return PRED(field, ConditionOperator.GT, value)


def GTE(field: str, value: Operand) -> Condition:
    """field >= value"""
    return PRED(field, ConditionOperator.GTE, value)


def LT(field: str, value: Operand) -> Condition:
    """field < value"""
    return PRED(field, ConditionOperator.LT, value)


def LTE(field: str, value: Operand) -> Condition:
    """field <= value"""
    return PRED(field, ConditionOperator.LTE, value)


def IN(field: str, values: Union[list, tuple]) -> Condition:
    """field in [values]"""
    return PRED(field, ConditionOperator.IN, tuple(values))
