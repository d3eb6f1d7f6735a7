"""
HPLM Evaluation Trace

The ordered log of one evaluation run: one TraceEntry per rule evaluated
per pass, plus every fact overwrite. The Decision Builder and the Audit
Recorder read only this structure, never the rules themselves.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from .conditions import TriBool
from .enums import RuleKind
from .facts import FactSet, Scalar, scalar_from_json, scalar_to_json
from .rules import Action, action_from_dict


@dataclass(frozen=True)
class TraceEntry:
    """
    One rule evaluated in one pass.

    Gate entries carry pass_number = last derivation pass + 1.
    """
    pass_number: int
    rule_id: str
    kind: RuleKind
    priority: int
    condition_result: TriBool
    fired: bool
    effects_applied: tuple[Action, ...] = ()
    missing_facts: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "pass_number": self.pass_number,
            "rule_id": self.rule_id,
            "kind": self.kind.value,
            "priority": self.priority,
            "condition_result": self.condition_result.value,
            "fired": self.fired,
            "effects_applied": [action.to_dict() for action in self.effects_applied],
            "missing_facts": list(self.missing_facts),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TraceEntry:
        return cls(
            pass_number=data["pass_number"],
            rule_id=data["rule_id"],
            kind=RuleKind(data["kind"]),
            priority=data["priority"],
            condition_result=TriBool(data["condition_result"]),
            fired=data["fired"],
            effects_applied=tuple(action_from_dict(a) for a in data["effects_applied"]),
            missing_facts=tuple(data["missing_facts"]),
        )


@dataclass(frozen=True)
class FactOverwrite:
    """A SetFact that replaced an existing, different value."""
    pass_number: int
    rule_id: str
    key: str
    previous: Scalar
    value: Scalar

    def to_dict(self) -> dict[str, Any]:
        return {
            "pass_number": self.pass_number,
            "rule_id": self.rule_id,
            "key": self.key,
            "previous": scalar_to_json(self.previous),
            "value": scalar_to_json(self.value),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FactOverwrite:
        return cls(
            pass_number=data["pass_number"],
            rule_id=data["rule_id"],
            key=data["key"],
            previous=scalar_from_json(data["key"], data["previous"]),
            value=scalar_from_json(data["key"], data["value"]),
        )


@dataclass(frozen=True)
class EvaluationTrace:
    """
    Ordered log of an evaluation run.

    Attributes:
        entries: One entry per rule per pass, derivations then gates
        overwrites: Fact overwrites in the order they happened
        passes: Derivation passes run, including the final stable pass
    """
    entries: tuple[TraceEntry, ...] = ()
    overwrites: tuple[FactOverwrite, ...] = ()
    passes: int = 0

    @property
    def fired_entries(self) -> list[TraceEntry]:
        return [entry for entry in self.entries if entry.fired]

    @property
    def gate_entries(self) -> list[TraceEntry]:
        return [entry for entry in self.entries if entry.kind is RuleKind.GATE]

    def unknown_rule_ids(self) -> list[str]:
        """Rules whose premise was UNKNOWN at least once, first-seen order."""
        seen: list[str] = []
        for entry in self.entries:
            if entry.condition_result is TriBool.UNKNOWN and entry.rule_id not in seen:
                seen.append(entry.rule_id)
        return seen

    def to_dict(self) -> dict[str, Any]:
        return {
            "passes": self.passes,
            "entries": [entry.to_dict() for entry in self.entries],
            "overwrites": [overwrite.to_dict() for overwrite in self.overwrites],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> EvaluationTrace:
        return cls(
            entries=tuple(TraceEntry.from_dict(e) for e in data["entries"]),
            overwrites=tuple(FactOverwrite.from_dict(o) for o in data["overwrites"]),
            passes=data["passes"],
        )


@dataclass(frozen=True)
class EvaluationResult:
    """Output of Evaluator.evaluate: the full trace and the fixpoint facts."""
    trace: EvaluationTrace
    facts: FactSet
    ruleset_version: Optional[str] = field(default=None, compare=False)
