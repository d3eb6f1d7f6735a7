"""
HPLM Evaluation Pipeline

Runs the three public calls in order for one case:
evaluate -> decide -> record.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from ..models import AuditRecord, Decision, EvaluationResult, FactSet, Ruleset
from .audit_recorder import AuditRecorder
from .decision_builder import decide
from .evaluator import Evaluator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CaseOutcome:
    """Everything one evaluation produced."""
    result: EvaluationResult
    decision: Decision
    record: AuditRecord


@dataclass
class GuardrailPipeline:
    """
    Evaluates a case end to end and seals the audit record.

    Usage:
        pipeline = GuardrailPipeline(evaluator=Evaluator(max_passes=settings.max_passes))
        outcome = pipeline.run(ruleset, facts)
        print(outcome.decision.outcome)

    Raises:
        CycleDetected: Propagated from the evaluator; no decision or record
            is produced for that case
    """
    evaluator: Evaluator = field(default_factory=Evaluator)
    recorder: AuditRecorder = field(default_factory=AuditRecorder)

    def run(self, ruleset: Ruleset, facts: FactSet) -> CaseOutcome:
        started = time.perf_counter()

        result = self.evaluator.evaluate(ruleset, facts)
        decision = decide(result.trace)
        record = self.recorder.record(ruleset.version, facts, result.trace, decision)

        logger.info(
            "Evaluated case: %s",
            decision.outcome.value,
            extra={
                "ruleset_version": ruleset.version,
                "outcome": decision.outcome.value,
                "passes": result.trace.passes,
                "integrity_hash_short": record.integrity_hash[:16],
                "duration_ms": round((time.perf_counter() - started) * 1000, 3),
            },
        )
        return CaseOutcome(result=result, decision=decision, record=record)


def evaluate_case(
    ruleset: Ruleset,
    facts: FactSet,
    evaluator: Optional[Evaluator] = None,
    recorder: Optional[AuditRecorder] = None,
) -> CaseOutcome:
    """Run a case through a temporary pipeline."""
    pipeline = GuardrailPipeline(
        evaluator=evaluator or Evaluator(),
        recorder=recorder or AuditRecorder(),
    )
    return pipeline.run(ruleset, facts)
