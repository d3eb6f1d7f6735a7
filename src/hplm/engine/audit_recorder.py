"""
HPLM Audit Recorder

Seals an evaluation into an AuditRecord and verifies records later.

The integrity hash is SHA-256 over the canonical JSON (sorted keys, no
whitespace, no floats) of every record field except the hash itself.
Verification recomputes it from the record's own fields, so any edit to
the exported JSON after sealing is detected.

Replay re-runs a record's input facts against a ruleset of the same
version and checks the trace and decision reproduce exactly.
"""
from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, Union

from ..canon import CanonicalEncodingError, canonical_json, content_hash, format_timestamp
from ..exceptions import CycleDetected, InvalidFactValueError
from ..models import AUDIT_FIELDS, AuditRecord, Decision, EvaluationTrace, FactSet, Ruleset
from .decision_builder import decide
from .evaluator import Evaluator

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def compute_integrity_hash(content: Mapping[str, Any]) -> str:
    """Hash the five content fields of an audit record."""
    return content_hash({name: content[name] for name in AUDIT_FIELDS})


@dataclass
class AuditRecorder:
    """
    Produces sealed AuditRecords.

    The clock is injectable so tests and replays can pin the timestamp.

    Usage:
        recorder = AuditRecorder()
        record = recorder.record(ruleset.version, facts, result.trace, decision)
        assert verify_record(record)
    """
    clock: Callable[[], datetime] = field(default=_utc_now)

    def record(
        self,
        ruleset_version: str,
        input_facts: FactSet,
        trace: EvaluationTrace,
        decision: Decision,
    ) -> AuditRecord:
        """
        Assemble and seal an audit record.

        Args:
            ruleset_version: Version of the ruleset that produced the trace
            input_facts: The caller's input snapshot (not the fixpoint facts)
            trace: Evaluation trace
            decision: Decision built from the trace

        Returns:
            Immutable AuditRecord with integrity_hash set
        """
        timestamp = format_timestamp(self.clock().astimezone(timezone.utc))
        unsealed = AuditRecord(
            timestamp=timestamp,
            ruleset_version=ruleset_version,
            input_facts=input_facts,
            trace=trace,
            decision=decision,
            integrity_hash="",
        )
        integrity_hash = compute_integrity_hash(unsealed.content_dict())
        record = AuditRecord(
            timestamp=timestamp,
            ruleset_version=ruleset_version,
            input_facts=input_facts,
            trace=trace,
            decision=decision,
            integrity_hash=integrity_hash,
        )
        logger.debug("Sealed audit record %s", integrity_hash[:16])
        return record


def verify_record(record: Union[AuditRecord, Mapping[str, Any]]) -> bool:
    """
    Check a record's integrity hash against its own fields.

    Accepts either an AuditRecord or its exported dict. The dict form is
    hashed as-is, without parsing, so tampering that parsing would
    normalise away is still caught.

    Returns:
        True if the stored hash matches the recomputed one, False otherwise
        (including when fields are missing or not canonically encodable)
    """
    if isinstance(record, AuditRecord):
        content = record.content_dict()
        stored = record.integrity_hash
    else:
        if any(name not in record for name in AUDIT_FIELDS):
            return False
        content = record
        stored = record.get("integrity_hash")

    if not isinstance(stored, str):
        return False

    try:
        recomputed = compute_integrity_hash(content)
    except (CanonicalEncodingError, ValueError):
        return False

    valid = hmac.compare_digest(recomputed, stored)
    if not valid:
        logger.warning("Audit record failed integrity check (stored %s)", stored[:16])
    return valid


# =============================================================================
# Replay
# =============================================================================

@dataclass
class ReplayResult:
    """Outcome of re-running a recorded evaluation."""
    matches: bool
    mismatches: list[str] = field(default_factory=list)
    decision: Optional[Decision] = None


def replay_record(
    record: AuditRecord,
    ruleset: Ruleset,
    evaluator: Optional[Evaluator] = None,
) -> ReplayResult:
    """
    Re-evaluate a record's input facts and compare with what it recorded.

    Mismatches (version, integrity, trace, decision, cycle) are reported
    in the result, never raised.
    """
    evaluator = evaluator or Evaluator()
    mismatches: list[str] = []

    if not verify_record(record):
        mismatches.append("Recorded integrity hash does not match record content")

    if record.ruleset_version != ruleset.version:
        mismatches.append(
            f"Ruleset version mismatch: record has {record.ruleset_version}, "
            f"replayed with {ruleset.version}"
        )

    try:
        result = evaluator.evaluate(ruleset, record.input_facts)
    except (CycleDetected, InvalidFactValueError) as e:
        mismatches.append(f"Replay failed: {e}")
        return ReplayResult(matches=False, mismatches=mismatches)

    decision = decide(result.trace)
    if canonical_json(result.trace.to_dict()) != canonical_json(record.trace.to_dict()):
        mismatches.append("Trace differs from recorded trace")
    if canonical_json(decision.to_dict()) != canonical_json(record.decision.to_dict()):
        mismatches.append(
            f"Decision differs: recorded {record.decision.outcome.value}, "
            f"replayed {decision.outcome.value}"
        )

    return ReplayResult(matches=not mismatches, mismatches=mismatches, decision=decision)
