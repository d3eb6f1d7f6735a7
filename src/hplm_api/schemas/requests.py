"""Request schemas for the API."""

from typing import Any

from pydantic import BaseModel, Field


class EvaluateRequest(BaseModel):
    """Request to evaluate a fact set against the active ruleset."""
    facts: dict[str, Any] = Field(
        ...,
        description="Typed fact set: strings, booleans, integers, or {\"enum\": tag}",
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "facts": {
                        "citizenship": "US",
                        "account_domicile": "Germany",
                        "product": "EM_HY_bond",
                        "prior_complex_derivatives_rejected": True,
                    }
                }
            ]
        }
    }


class VerifyRequest(BaseModel):
    """Request to verify an exported audit record."""
    record: dict[str, Any] = Field(..., description="Audit record exactly as exported")
