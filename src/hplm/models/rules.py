"""
HPLM Rule Model

Declarative condition/action pairs and the versioned Ruleset that holds them.

A Ruleset is validated when it is constructed (see hplm.validation), so an
invalid ruleset never exists as an object and the engine can never run one.
It is frozen and safe to share read-only across concurrent evaluations.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

from .conditions import Condition
from .enums import ActionType, RuleKind, ScalarType
from .facts import Scalar, scalar_from_json, scalar_to_json


# =============================================================================
# Actions
# =============================================================================

@dataclass(frozen=True)
class SetFact:
    """DERIVATION action: set a fact on the working FactSet."""
    key: str
    value: Scalar

    @property
    def action_type(self) -> ActionType:
        return ActionType.SET_FACT

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.action_type.value, "key": self.key, "value": scalar_to_json(self.value)}


@dataclass(frozen=True)
class RequireAction:
    """DERIVATION action: add a required-action tag to the decision."""
    tag: str

    @property
    def action_type(self) -> ActionType:
        return ActionType.REQUIRE_ACTION

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.action_type.value, "tag": self.tag}


@dataclass(frozen=True)
class Veto:
    """GATE action: force rejection with a reason."""
    reason: str

    @property
    def action_type(self) -> ActionType:
        return ActionType.VETO

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.action_type.value, "reason": self.reason}


Action = Union[SetFact, RequireAction, Veto]

ALLOWED_ACTIONS: dict[RuleKind, tuple[type, ...]] = {
    RuleKind.DERIVATION: (SetFact, RequireAction),
    RuleKind.GATE: (Veto,),
}


def action_from_dict(data: Mapping[str, Any]) -> Action:
    """
    Rebuild an action from its to_dict() form.

    Raises:
        ValueError: If the action type is unknown or a field is missing
    """
    try:
        action_type = ActionType(data["type"])
        if action_type is ActionType.SET_FACT:
            return SetFact(key=data["key"], value=scalar_from_json(data["key"], data["value"]))
        if action_type is ActionType.REQUIRE_ACTION:
            return RequireAction(tag=data["tag"])
        return Veto(reason=data["reason"])
    except (KeyError, TypeError) as e:
        raise ValueError(f"Malformed action: {data!r}") from e


# =============================================================================
# Rule
# =============================================================================

@dataclass(frozen=True)
class Rule:
    """
    A condition/action pair.

    Attributes:
        id: Globally unique, stable across ruleset versions
        priority: Evaluation order, ascending; ties broken by id
        kind: DERIVATION or GATE
        condition: Premise evaluated against the working facts
        actions: Applied in order when the premise is TRUE
        description: Optional human-readable summary
    """
    id: str
    priority: int
    kind: RuleKind
    condition: Condition
    actions: tuple[Action, ...]
    description: Optional[str] = None

    def __post_init__(self) -> None:
        if isinstance(self.actions, list):
            object.__setattr__(self, "actions", tuple(self.actions))

    @property
    def sort_key(self) -> tuple[int, str]:
        return (self.priority, self.id)

    @property
    def is_gate(self) -> bool:
        return self.kind is RuleKind.GATE

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "priority": self.priority,
            "kind": self.kind.value,
            "condition": self.condition.to_dict(),
            "actions": [action.to_dict() for action in self.actions],
        }
        if self.description:
            data["description"] = self.description
        return data


# =============================================================================
# Ruleset
# =============================================================================

@dataclass(frozen=True)
class Ruleset:
    """
    An ordered, versioned, immutable collection of rules.

    `fact_types` optionally declares the ScalarType of fact keys so that
    comparisons can be type-checked at load time.

    Usage:
        ruleset = Ruleset(
            version="2026.1",
            rules=(rule_r1, rule_r2, gate_r3),
            fact_types={"max_complexity_tier": ScalarType.INTEGER},
        )
        for rule in ruleset.derivation_rules: ...

    Raises:
        ValidationError: If any rule is malformed (see validate_ruleset)
    """
    version: str
    rules: tuple[Rule, ...]
    fact_types: Mapping[str, ScalarType] = field(default_factory=dict)
    id: Optional[str] = None
    description: Optional[str] = None

    derivation_rules: tuple[Rule, ...] = field(init=False, repr=False, compare=False)
    gate_rules: tuple[Rule, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "rules", tuple(self.rules))
        object.__setattr__(self, "fact_types", MappingProxyType(dict(self.fact_types)))

        from ..validation import validate_ruleset
        validate_ruleset(self)

        object.__setattr__(self, "rules", tuple(sorted(self.rules, key=lambda r: r.sort_key)))
        object.__setattr__(
            self, "derivation_rules",
            tuple(r for r in self.rules if r.kind is RuleKind.DERIVATION),
        )
        object.__setattr__(
            self, "gate_rules",
            tuple(r for r in self.rules if r.kind is RuleKind.GATE),
        )

    def get_rule(self, rule_id: str) -> Optional[Rule]:
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        return None

    @property
    def rule_ids(self) -> list[str]:
        return [rule.id for rule in self.rules]

    def to_dict(self) -> dict[str, Any]:
        """Rule content in evaluation order, for hashing and export."""
        return {
            "id": self.id,
            "version": self.version,
            "fact_types": {key: self.fact_types[key].value for key in sorted(self.fact_types)},
            "rules": [rule.to_dict() for rule in self.rules],
        }
