"""Response schemas for the API."""

from typing import Any, Optional

from pydantic import BaseModel


class DecisionBody(BaseModel):
    """Decision summary."""
    outcome: str  # APPROVED|REJECTED
    required_actions: list[str]
    veto_reason: Optional[str] = None
    contributing_rule_ids: list[str]


class EvaluateResponse(BaseModel):
    """Decision plus the sealed audit record that backs it."""
    ruleset_version: str
    decision: DecisionBody
    undetermined_rule_ids: list[str]
    audit_record: dict[str, Any]


class VerifyResponse(BaseModel):
    """Result of recomputing a record's integrity hash."""
    valid: bool
    integrity_hash: Optional[str] = None
    recomputed_hash: Optional[str] = None
    reason: Optional[str] = None


class RuleSummary(BaseModel):
    id: str
    priority: int
    kind: str
    description: Optional[str] = None


class RulesetInfoResponse(BaseModel):
    """Active ruleset metadata."""
    id: Optional[str] = None
    version: str
    content_hash: str
    derivation_rule_count: int
    gate_rule_count: int
    rules: list[RuleSummary]
    known_versions: list[str]


class HealthResponse(BaseModel):
    """Liveness probe response."""
    healthy: bool
    ruleset_loaded: bool
    ruleset_version: Optional[str] = None
