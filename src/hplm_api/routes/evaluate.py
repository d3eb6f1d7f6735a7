"""Fact set evaluation endpoint."""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException

from hplm.engine import GuardrailPipeline, RulesetRegistry
from hplm.exceptions import CycleDetected, InvalidFactValueError
from hplm.models import FactSet

from hplm_api.schemas.requests import EvaluateRequest
from hplm_api.schemas.responses import DecisionBody, EvaluateResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/evaluate", tags=["Evaluation"])

# Shared registry and pipeline
registry: Optional[RulesetRegistry] = None
pipeline: Optional[GuardrailPipeline] = None

MANUAL_REVIEW = "manual_review"


def set_registry(r: RulesetRegistry, p: GuardrailPipeline):
    global registry, pipeline
    registry = r
    pipeline = p


@router.post("", response_model=EvaluateResponse)
async def evaluate_facts(request: EvaluateRequest):
    """
    Evaluate a fact set against the active ruleset.

    Returns the decision and the sealed audit record. A fact set the engine
    cannot decide (invalid values, or derivations that never settle) gets a
    422 carrying the error and a manual review fallback; no decision is made.
    """
    if registry is None or pipeline is None or not registry.is_loaded:
        raise HTTPException(status_code=503, detail="No ruleset is active")

    ruleset = registry.current()

    try:
        facts = FactSet.from_json(request.facts)
    except InvalidFactValueError as e:
        raise HTTPException(
            status_code=422,
            detail={**e.to_dict(), "fallback": MANUAL_REVIEW},
        )

    try:
        outcome = pipeline.run(ruleset, facts)
    except (CycleDetected, InvalidFactValueError) as e:
        logger.error(
            "Evaluation aborted: %s",
            e.message,
            extra={"ruleset_version": ruleset.version},
        )
        raise HTTPException(
            status_code=422,
            detail={**e.to_dict(), "fallback": MANUAL_REVIEW},
        )

    decision = outcome.decision
    return EvaluateResponse(
        ruleset_version=ruleset.version,
        decision=DecisionBody(**decision.to_dict()),
        undetermined_rule_ids=outcome.result.trace.unknown_rule_ids(),
        audit_record=outcome.record.to_dict(),
    )
