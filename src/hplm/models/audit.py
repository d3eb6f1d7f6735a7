"""
HPLM Audit Record

The immutable, hash-verifiable artifact of one evaluation.

The exported JSON shape (field names below) is the persisted artifact and
must stay stable so historical audit archives keep verifying:

    {
      "timestamp": "2026-10-18T09:30:00.000Z",
      "ruleset_version": "...",
      "input_facts": {...},
      "trace": {"passes": n, "entries": [...], "overwrites": [...]},
      "decision": {...},
      "integrity_hash": "<sha256 hex over the five fields above>"
    }
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Mapping

from ..canon import canonical_json
from ..exceptions import AuditRecordError, HPLMError
from .decision import Decision
from .facts import FactSet
from .trace import EvaluationTrace

AUDIT_FIELDS = ("timestamp", "ruleset_version", "input_facts", "trace", "decision")


@dataclass(frozen=True)
class AuditRecord:
    """One evaluation's inputs, trace and decision, sealed by integrity_hash."""
    timestamp: str
    ruleset_version: str
    input_facts: FactSet
    trace: EvaluationTrace
    decision: Decision
    integrity_hash: str

    def content_dict(self) -> dict[str, Any]:
        """Every field except integrity_hash: the hashed content."""
        return {
            "timestamp": self.timestamp,
            "ruleset_version": self.ruleset_version,
            "input_facts": self.input_facts.to_json(),
            "trace": self.trace.to_dict(),
            "decision": self.decision.to_dict(),
        }

    def to_dict(self) -> dict[str, Any]:
        data = self.content_dict()
        data["integrity_hash"] = self.integrity_hash
        return data

    def to_json(self, indent: int | None = None) -> str:
        """Canonical JSON by default; indented for human-readable export."""
        if indent is None:
            return canonical_json(self.to_dict())
        return json.dumps(self.to_dict(), sort_keys=True, indent=indent, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AuditRecord:
        """
        Rebuild a record from its exported form.

        The integrity hash is carried over as-is; use verify_record to check it.

        Raises:
            AuditRecordError: If a field is missing or malformed
        """
        missing = [name for name in (*AUDIT_FIELDS, "integrity_hash") if name not in data]
        if missing:
            raise AuditRecordError(
                message=f"Audit record is missing fields: {', '.join(missing)}",
                details={"missing": missing},
            )
        try:
            return cls(
                timestamp=data["timestamp"],
                ruleset_version=data["ruleset_version"],
                input_facts=FactSet.from_json(data["input_facts"]),
                trace=EvaluationTrace.from_dict(data["trace"]),
                decision=Decision.from_dict(data["decision"]),
                integrity_hash=data["integrity_hash"],
            )
        except (KeyError, TypeError, ValueError, HPLMError) as e:
            raise AuditRecordError(
                message=f"Malformed audit record: {e}",
                details={"error": str(e)},
            ) from e

    @classmethod
    def from_json(cls, text: str) -> AuditRecord:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise AuditRecordError(message=f"Audit record is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise AuditRecordError(message="Audit record must be a JSON object")
        return cls.from_dict(data)
