"""
HPLM Ruleset Pack Schemas

Pydantic models for validating ruleset pack YAML/JSON files.

These schemas define the authored file format. They map to the domain
models in hplm.models; the loader converts one into the other, and the
Ruleset constructor then runs the semantic checks (types, action kinds).

Literal forms inside a pack:
    "US", 3, true          plain scalars
    {enum: Regulated}      enum tag
    {fact: max_tier}       another fact (comparison right-hand side only)
    [a, b, c]              list of scalars (IN only)

Schema versioning:
- schema_version field tracks breaking changes
- Loaders check major-version compatibility
"""
from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, model_validator


# =============================================================================
# Schema Version
# =============================================================================

SCHEMA_VERSION = "1.0.0"


# =============================================================================
# Enums as Literals (for YAML validation)
# =============================================================================

ConditionOperatorValue = Literal[
    "and", "or", "not",
    "eq", "ne", "gt", "gte", "lt", "lte", "in",
]

RuleKindValue = Literal["derivation", "gate"]

ScalarTypeValue = Literal["string", "boolean", "integer", "enum"]


# =============================================================================
# Condition Schema
# =============================================================================

class ConditionSchema(BaseModel):
    """
    Schema for a composable condition.

    For logical operators (and, or, not), use children.
    For comparison operators, use field and value.
    """
    op: ConditionOperatorValue = Field(..., description="Operator")
    children: Optional[list["ConditionSchema"]] = Field(
        None, description="Child conditions for AND/OR/NOT"
    )
    field: Optional[str] = Field(None, description="Fact key for comparison")
    value: Any = Field(None, description="Literal, {enum: tag}, {fact: key} or list (IN)")
    description: Optional[str] = Field(None, description="Human-readable description")

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def validate_structure(self) -> "ConditionSchema":
        """Validate condition structure based on operator type."""
        if self.op in {"and", "or", "not"}:
            if not self.children:
                raise ValueError(f"Logical operator '{self.op}' requires 'children'")
            if self.op == "not" and len(self.children) != 1:
                raise ValueError("NOT operator must have exactly one child")
            if self.field is not None:
                raise ValueError(f"Logical operator '{self.op}' cannot have 'field'")
        else:
            if self.field is None:
                raise ValueError(f"Comparison operator '{self.op}' requires 'field'")
            if "value" not in self.model_fields_set:
                raise ValueError(f"Comparison operator '{self.op}' requires 'value'")
            if self.children:
                raise ValueError(f"Comparison operator '{self.op}' cannot have 'children'")
        return self


# =============================================================================
# Action Schemas
# =============================================================================

class SetFactSchema(BaseModel):
    """Schema for a set_fact action body."""
    key: str = Field(..., min_length=1, description="Fact key to set")
    value: Any = Field(..., description="Scalar or {enum: tag}")

    model_config = {"extra": "forbid"}


class ActionSchema(BaseModel):
    """
    Schema for one action. Exactly one of the variants must be given.

    Examples:
        - set_fact: {key: max_complexity_tier, value: 2}
        - require_action: CROSS_BORDER_TAX_TREATY_402B
        - veto: "product complexity_tier exceeds client max_complexity_tier"
    """
    set_fact: Optional[SetFactSchema] = None
    require_action: Optional[str] = Field(None, min_length=1)
    veto: Optional[str] = Field(None, min_length=1)

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def validate_single_variant(self) -> "ActionSchema":
        given = [
            name for name in ("set_fact", "require_action", "veto")
            if getattr(self, name) is not None
        ]
        if len(given) != 1:
            raise ValueError(
                "Action must have exactly one of set_fact, require_action, veto "
                f"(got {given or 'none'})"
            )
        return self


# =============================================================================
# Rule Schema
# =============================================================================

class RuleSchema(BaseModel):
    """Schema for a rule."""
    id: str = Field(..., min_length=1, description="Globally unique, stable rule id")
    priority: int = Field(..., strict=True, description="Ascending evaluation order")
    kind: RuleKindValue = Field(..., description="derivation or gate")
    description: Optional[str] = Field(None, description="Human-readable summary")
    when: ConditionSchema = Field(..., description="Premise")
    then: list[ActionSchema] = Field(..., min_length=1, description="Actions, in order")

    model_config = {"extra": "forbid"}


# =============================================================================
# Ruleset Pack Schema (Top-Level)
# =============================================================================

class RulesetPackSchema(BaseModel):
    """
    Top-level schema for a ruleset pack YAML/JSON file.

    `version` is optional; when omitted the loader derives it from a hash
    of the pack content so that every distinct ruleset has a distinct id
    in audit records.
    """
    schema_version: str = Field(SCHEMA_VERSION, description="Schema version for compatibility")
    id: str = Field(..., min_length=1, description="Ruleset identifier")
    version: Optional[str] = Field(None, min_length=1, description="Version recorded in audit records")
    description: Optional[str] = None
    facts: dict[str, ScalarTypeValue] = Field(
        default_factory=dict,
        description="Declared fact types"
    )
    rules: list[RuleSchema] = Field(default_factory=list, description="Rules")

    model_config = {"extra": "forbid"}


# =============================================================================
# Validation Helpers
# =============================================================================

def validate_ruleset_pack(data: dict[str, Any]) -> RulesetPackSchema:
    """
    Validate a ruleset pack dictionary against the schema.

    Raises:
        pydantic.ValidationError: If validation fails
    """
    return RulesetPackSchema.model_validate(data)


def check_schema_version(data: dict[str, Any]) -> bool:
    """True if the pack's schema major version matches ours."""
    pack_version = str(data.get("schema_version", SCHEMA_VERSION))
    return pack_version.split(".")[0] == SCHEMA_VERSION.split(".")[0]
