"""
HPLM Condition Evaluator

Evaluates composable conditions against a FactSet using three-valued logic.

Key features:
- TriBool evaluation (TRUE, FALSE, UNKNOWN)
- Fact-to-fact comparisons via FactRef
- Children evaluated in declared order for determinism
- Tracks missing facts for UNKNOWN results
"""
from __future__ import annotations

import logging
from typing import Any

from ..exceptions import InvalidConditionError
from ..models import (
    Condition,
    ConditionOperator,
    ConditionOutcome,
    EnumTag,
    FactRef,
    FactSet,
    Predicate,
    TriBool,
    same_kind,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Comparison Operators
# =============================================================================

def compare_values(
    actual: Any,
    operator: ConditionOperator,
    expected: Any,
) -> TriBool:
    """
    Compare two scalars using the specified operator.

    Values of different kinds (e.g. True and 1) do not compare; the result
    is UNKNOWN rather than a guess. Enum tags support only EQ, NE and IN.

    Args:
        actual: The fact value
        operator: Comparison operator
        expected: Literal scalar, tuple of scalars (IN) or the other fact's value

    Returns:
        TriBool result of the comparison
    """
    if operator is ConditionOperator.IN:
        if not isinstance(expected, tuple):
            return TriBool.UNKNOWN
        candidates = [item for item in expected if same_kind(actual, item)]
        if not candidates and expected:
            return TriBool.UNKNOWN
        return TriBool.from_bool(any(actual == item for item in candidates))

    if not same_kind(actual, expected):
        return TriBool.UNKNOWN

    if operator is ConditionOperator.EQ:
        return TriBool.from_bool(actual == expected)

    if operator is ConditionOperator.NE:
        return TriBool.from_bool(actual != expected)

    if isinstance(actual, (bool, EnumTag)):
        # No ordering on booleans or enum tags
        return TriBool.UNKNOWN

    if operator is ConditionOperator.GT:
        return TriBool.from_bool(actual > expected)
    if operator is ConditionOperator.GTE:
        return TriBool.from_bool(actual >= expected)
    if operator is ConditionOperator.LT:
        return TriBool.from_bool(actual < expected)
    if operator is ConditionOperator.LTE:
        return TriBool.from_bool(actual <= expected)

    return TriBool.UNKNOWN


# =============================================================================
# Condition Evaluator
# =============================================================================

class ConditionEvaluator:
    """
    Evaluates composable conditions against a FactSet.

    Stateless; one instance can be shared across threads.

    Usage:
        evaluator = ConditionEvaluator()
        outcome = evaluator.evaluate(condition, facts)

        if outcome.value is TriBool.TRUE:
            print("Condition satisfied")
        elif outcome.value is TriBool.UNKNOWN:
            print(f"Missing facts: {outcome.missing_fact_keys}")
    """

    def evaluate(self, condition: Condition, facts: FactSet) -> ConditionOutcome:
        """Evaluate a condition against a FactSet."""
        if condition.is_logical:
            return self._evaluate_logical(condition, facts)
        return self._evaluate_predicate(condition, facts)

    def _evaluate_logical(self, condition: Condition, facts: FactSet) -> ConditionOutcome:
        op = condition.op

        if op is ConditionOperator.AND:
            return self._evaluate_and(condition.children, facts)
        if op is ConditionOperator.OR:
            return self._evaluate_or(condition.children, facts)
        if op is ConditionOperator.NOT:
            return ~self.evaluate(condition.children[0], facts)

        raise InvalidConditionError(
            message=f"Unknown logical operator: {op}",
            details={"operator": op.value},
        )

    def _evaluate_and(
        self,
        children: tuple[Condition, ...],
        facts: FactSet,
    ) -> ConditionOutcome:
        """Kleene AND; short-circuits on FALSE."""
        result = ConditionOutcome(value=TriBool.TRUE, explanation="AND")
        for child in children:
            result = result & self.evaluate(child, facts)
            if result.value is TriBool.FALSE:
                break
        return result

    def _evaluate_or(
        self,
        children: tuple[Condition, ...],
        facts: FactSet,
    ) -> ConditionOutcome:
        """Kleene OR; short-circuits on TRUE."""
        result = ConditionOutcome(value=TriBool.FALSE, explanation="OR")
        for child in children:
            result = result | self.evaluate(child, facts)
            if result.value is TriBool.TRUE:
                break
        return result

    def _evaluate_predicate(self, condition: Condition, facts: FactSet) -> ConditionOutcome:
        predicate: Predicate = condition.predicate

        actual, found = facts.lookup(predicate.field)
        missing: list[str] = [] if found else [predicate.field]

        expected = predicate.value
        if isinstance(expected, FactRef):
            expected, ref_found = facts.lookup(expected.key)
            if not ref_found:
                missing.append(predicate.value.key)

        if missing:
            value = TriBool.UNKNOWN
            explanation = f"{predicate.describe()}: UNKNOWN (missing {', '.join(missing)})"
        else:
            value = compare_values(actual, predicate.operator, expected)
            if value is TriBool.UNKNOWN:
                explanation = f"{predicate.describe()}: UNKNOWN (incomparable {actual!r})"
            elif value is TriBool.TRUE:
                explanation = f"{predicate.describe()}: PASSED"
            else:
                explanation = f"{predicate.describe()}: FAILED (actual: {actual!r})"

        logger.debug(explanation)
        return ConditionOutcome(value=value, explanation=explanation, missing_fact_keys=missing)


# =============================================================================
# Convenience Functions
# =============================================================================

def evaluate_condition(condition: Condition, facts: FactSet) -> ConditionOutcome:
    """Evaluate a condition with a temporary evaluator."""
    return ConditionEvaluator().evaluate(condition, facts)
