"""
HPLM Ruleset Packs

Schema validation and loading for ruleset packs.

Ruleset packs are YAML or JSON files that define the derivation and gate
rules of one compliance policy, plus the declared types of the facts they
read. The external policy store supplies these; the engine only needs a
validated Ruleset and its version.

Usage:
    from hplm.packs import load_ruleset, RulesetPackLoader

    ruleset = load_ruleset("path/to/guardrail.yaml")
"""
from __future__ import annotations

from .loader import (
    RulesetPackLoader,
    bundled_ruleset_path,
    load_ruleset,
    load_ruleset_from_string,
    ruleset_content_hash,
)
from .schema import (
    SCHEMA_VERSION,
    ActionSchema,
    ConditionSchema,
    RuleSchema,
    RulesetPackSchema,
    SetFactSchema,
    check_schema_version,
    validate_ruleset_pack,
)

__all__ = [
    # Version
    "SCHEMA_VERSION",
    # Loader
    "RulesetPackLoader",
    "load_ruleset",
    "load_ruleset_from_string",
    "bundled_ruleset_path",
    "ruleset_content_hash",
    # Validation
    "validate_ruleset_pack",
    "check_schema_version",
    # Schemas
    "RulesetPackSchema",
    "RuleSchema",
    "ConditionSchema",
    "ActionSchema",
    "SetFactSchema",
]
