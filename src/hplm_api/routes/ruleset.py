"""Ruleset information and health endpoints."""

from typing import Optional

from fastapi import APIRouter, HTTPException

from hplm.engine import RulesetRegistry
from hplm.packs import ruleset_content_hash

from hplm_api.schemas.responses import HealthResponse, RuleSummary, RulesetInfoResponse

router = APIRouter()

registry: Optional[RulesetRegistry] = None


def set_registry(r: RulesetRegistry):
    global registry
    registry = r


@router.get("/ruleset", response_model=RulesetInfoResponse, tags=["Ruleset"])
async def get_ruleset():
    """Active ruleset: id, version, content hash and rules in evaluation order."""
    if registry is None or not registry.is_loaded:
        raise HTTPException(status_code=503, detail="No ruleset is active")

    ruleset = registry.current()
    return RulesetInfoResponse(
        id=ruleset.id,
        version=ruleset.version,
        content_hash=ruleset_content_hash(ruleset),
        derivation_rule_count=len(ruleset.derivation_rules),
        gate_rule_count=len(ruleset.gate_rules),
        rules=[
            RuleSummary(
                id=rule.id,
                priority=rule.priority,
                kind=rule.kind.value,
                description=rule.description,
            )
            for rule in ruleset.rules
        ],
        known_versions=registry.versions,
    )


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health():
    """Health check endpoint."""
    loaded = registry is not None and registry.is_loaded
    return HealthResponse(
        healthy=True,
        ruleset_loaded=loaded,
        ruleset_version=registry.current().version if loaded else None,
    )
