"""
HPLM Decision

The user-facing outcome of one evaluation.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .enums import Outcome


@dataclass(frozen=True)
class Decision:
    """
    Final outcome built from an EvaluationTrace.

    Attributes:
        outcome: APPROVED or REJECTED
        required_actions: RequireAction tags (APPROVED only), first-seen order
        veto_reason: Reason of the highest-priority fired gate (REJECTED only)
        contributing_rule_ids: Every rule that fired, in first-firing order
    """
    outcome: Outcome
    required_actions: tuple[str, ...] = ()
    veto_reason: Optional[str] = None
    contributing_rule_ids: tuple[str, ...] = ()

    @property
    def is_rejected(self) -> bool:
        return self.outcome is Outcome.REJECTED

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "required_actions": list(self.required_actions),
            "veto_reason": self.veto_reason,
            "contributing_rule_ids": list(self.contributing_rule_ids),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Decision:
        return cls(
            outcome=Outcome(data["outcome"]),
            required_actions=tuple(data["required_actions"]),
            veto_reason=data["veto_reason"],
            contributing_rule_ids=tuple(data["contributing_rule_ids"]),
        )
