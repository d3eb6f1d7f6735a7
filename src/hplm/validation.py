"""
HPLM Ruleset Validation

Static validity checks performed once, when a Ruleset is constructed.
Every problem is collected before a single ValidationError is raised, so
a policy author sees the whole list at once.

Checks:
- rule ids are non-empty and unique; priorities are integers
- GATE rules carry only Veto actions, DERIVATION rules only SetFact/RequireAction
- SetFact values are scalars and bind each key to a single type
- comparisons are well-formed: IN takes a non-empty list, ordering operators
  never compare booleans or enum tags, and literal types match the type a
  fact is declared with (or bound to by SetFact) where that is known
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from .exceptions import ValidationError
from .models.conditions import Condition, FactRef, Predicate
from .models.enums import ConditionOperator, RuleKind, ScalarType
from .models.facts import scalar_type_of
from .models.rules import ALLOWED_ACTIONS, RequireAction, Rule, SetFact, Veto

if TYPE_CHECKING:
    from .models.rules import Ruleset

logger = logging.getLogger(__name__)

UNORDERED_TYPES = frozenset({ScalarType.BOOLEAN, ScalarType.ENUM})


def validate_ruleset(ruleset: Ruleset) -> None:
    """
    Validate a ruleset, raising on the first call that finds any problem.

    Raises:
        ValidationError: With details["errors"] listing every problem found
    """
    errors = collect_ruleset_errors(ruleset)
    if errors:
        logger.warning(
            "Ruleset %s rejected with %d validation error(s)",
            ruleset.version, len(errors),
        )
        raise ValidationError(
            message=f"Ruleset validation failed: {len(errors)} error(s)",
            details={"errors": errors, "ruleset_version": ruleset.version},
        )


def collect_ruleset_errors(ruleset: Ruleset) -> list[str]:
    """Return every validation problem in a ruleset (empty if valid)."""
    errors: list[str] = []

    if not isinstance(ruleset.version, str) or not ruleset.version:
        errors.append("Ruleset version must be a non-empty string")

    for key, declared in ruleset.fact_types.items():
        if not isinstance(declared, ScalarType):
            errors.append(f"Fact type for '{key}' must be a ScalarType, got {declared!r}")

    rules = [rule for rule in ruleset.rules if _check_rule_shape(rule, errors)]

    seen_ids: set[str] = set()
    for rule in rules:
        if rule.id in seen_ids:
            errors.append(f"Duplicate rule id: '{rule.id}'")
        seen_ids.add(rule.id)

    known_types = _bind_fact_types(ruleset, rules, errors)

    for rule in rules:
        _check_actions(rule, errors)
        for predicate in rule.condition.predicates():
            _check_predicate(rule.id, predicate, known_types, errors)

    return errors


def _check_rule_shape(rule: object, errors: list[str]) -> bool:
    """Basic field types. Rules failing here are skipped by later checks."""
    if not isinstance(rule, Rule):
        errors.append(f"Ruleset entry is not a Rule: {rule!r}")
        return False

    ok = True
    if not isinstance(rule.id, str) or not rule.id:
        errors.append(f"Rule id must be a non-empty string, got {rule.id!r}")
        ok = False
    if isinstance(rule.priority, bool) or not isinstance(rule.priority, int):
        errors.append(f"Rule '{rule.id}': priority must be an integer, got {rule.priority!r}")
        ok = False
    if not isinstance(rule.kind, RuleKind):
        errors.append(f"Rule '{rule.id}': kind must be a RuleKind, got {rule.kind!r}")
        ok = False
    if not isinstance(rule.condition, Condition):
        errors.append(f"Rule '{rule.id}': condition must be a Condition")
        ok = False
    return ok


def _check_actions(rule: Rule, errors: list[str]) -> None:
    if not rule.actions:
        errors.append(f"Rule '{rule.id}': {rule.kind.value} rule has no actions")
        return

    allowed = ALLOWED_ACTIONS[rule.kind]
    for action in rule.actions:
        if not isinstance(action, allowed):
            errors.append(
                f"Rule '{rule.id}': {rule.kind.value} rule cannot carry "
                f"{type(action).__name__} action"
            )
        elif isinstance(action, Veto) and (not isinstance(action.reason, str) or not action.reason):
            errors.append(f"Rule '{rule.id}': Veto reason must be a non-empty string")
        elif isinstance(action, RequireAction) and (not isinstance(action.tag, str) or not action.tag):
            errors.append(f"Rule '{rule.id}': RequireAction tag must be a non-empty string")


def _bind_fact_types(
    ruleset: Ruleset,
    rules: list[Rule],
    errors: list[str],
) -> dict[str, ScalarType]:
    """
    Merge declared fact types with the types SetFact actions bind keys to.

    A key set by SetFact to two different types, or to a type other than
    its declared one, is an error.
    """
    known: dict[str, ScalarType] = {
        key: declared for key, declared in ruleset.fact_types.items()
        if isinstance(declared, ScalarType)
    }
    bound_by: dict[str, str] = {}

    for rule in rules:
        for action in rule.actions:
            if not isinstance(action, SetFact):
                continue
            if not isinstance(action.key, str) or not action.key:
                errors.append(f"Rule '{rule.id}': SetFact key must be a non-empty string")
                continue
            value_type = scalar_type_of(action.value)
            if value_type is None:
                errors.append(
                    f"Rule '{rule.id}': SetFact '{action.key}' value has unsupported "
                    f"type {type(action.value).__name__}"
                )
                continue

            existing = known.get(action.key)
            if existing is None:
                known[action.key] = value_type
                bound_by[action.key] = rule.id
            elif existing is not value_type:
                source = (
                    f"rule '{bound_by[action.key]}'" if action.key in bound_by
                    else "its declaration"
                )
                errors.append(
                    f"Rule '{rule.id}': SetFact '{action.key}' is {value_type.value} "
                    f"but {source} makes it {existing.value}"
                )
    return known


def _check_predicate(
    rule_id: str,
    predicate: Predicate,
    known_types: dict[str, ScalarType],
    errors: list[str],
) -> None:
    where = f"Rule '{rule_id}': comparison '{predicate.describe()}'"
    field_type = known_types.get(predicate.field)
    value = predicate.value

    if predicate.operator is ConditionOperator.IN:
        if not isinstance(value, tuple) or not value:
            errors.append(f"{where}: IN requires a non-empty list of literals")
            return
        for item in value:
            _check_literal(where, item, field_type, errors)
        return

    if isinstance(value, tuple):
        errors.append(f"{where}: list literal is only valid with IN")
        return

    if isinstance(value, FactRef):
        other_type = known_types.get(value.key)
        if field_type is not None and other_type is not None and field_type is not other_type:
            errors.append(
                f"{where}: compares {field_type.value} fact with {other_type.value} fact"
            )
        if predicate.operator.is_ordering:
            for side_type in (field_type, other_type):
                if side_type in UNORDERED_TYPES:
                    errors.append(f"{where}: {side_type.value} values have no ordering")
                    break
        return

    literal_type = _check_literal(where, value, field_type, errors)
    if predicate.operator.is_ordering and literal_type in UNORDERED_TYPES:
        errors.append(f"{where}: {literal_type.value} values have no ordering")


def _check_literal(
    where: str,
    value: object,
    field_type: Optional[ScalarType],
    errors: list[str],
) -> Optional[ScalarType]:
    literal_type = scalar_type_of(value)
    if literal_type is None:
        errors.append(f"{where}: literal {value!r} is not a supported scalar")
        return None
    if field_type is not None and literal_type is not field_type:
        errors.append(
            f"{where}: literal is {literal_type.value} but fact is {field_type.value}"
        )
    return literal_type
