"""
HPLM Ruleset Pack Loader

Loads and validates ruleset packs from YAML or JSON files.

Converts Pydantic schema models to HPLM domain models. Schema errors,
conversion errors and semantic errors all surface as one ValidationError
so a pack is rejected wholesale, never partially loaded.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import ValidationError as PydanticValidationError

from ..canon import CanonicalEncodingError, content_hash, content_hash_short
from ..exceptions import (
    HPLMError,
    RulesetLoadError,
    RulesetVersionMismatch,
    ValidationError,
)
from ..models import (
    Action,
    Condition,
    ConditionOperator,
    EnumTag,
    FactRef,
    Predicate,
    RequireAction,
    Rule,
    RuleKind,
    Ruleset,
    ScalarType,
    SetFact,
    Veto,
)
from .schema import (
    SCHEMA_VERSION,
    ActionSchema,
    ConditionSchema,
    RuleSchema,
    RulesetPackSchema,
    check_schema_version,
    validate_ruleset_pack,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Schema to Model Converters
# =============================================================================

def _convert_literal(raw: Any, allow_fact_ref: bool = False) -> Any:
    """Convert a pack literal to its model value."""
    if isinstance(raw, dict):
        if set(raw) == {"enum"}:
            return EnumTag(raw["enum"])
        if allow_fact_ref and set(raw) == {"fact"}:
            return FactRef(raw["fact"])
        raise ValueError(f"Unrecognised literal object: {raw!r}")
    if isinstance(raw, list):
        return tuple(_convert_literal(item) for item in raw)
    return raw


def _convert_condition(schema: ConditionSchema) -> Condition:
    """Convert ConditionSchema to Condition model."""
    op = ConditionOperator(schema.op)

    if op.is_logical:
        return Condition(
            op=op,
            children=tuple(_convert_condition(c) for c in schema.children or []),
            description=schema.description,
        )

    predicate = Predicate(
        field=schema.field or "",
        operator=op,
        value=_convert_literal(schema.value, allow_fact_ref=True),
    )
    return Condition(op=op, predicate=predicate, description=schema.description)


def _convert_action(schema: ActionSchema) -> Action:
    """Convert ActionSchema to its action model."""
    if schema.set_fact is not None:
        return SetFact(key=schema.set_fact.key, value=_convert_literal(schema.set_fact.value))
    if schema.require_action is not None:
        return RequireAction(tag=schema.require_action)
    return Veto(reason=schema.veto)


def _convert_rule(schema: RuleSchema) -> Rule:
    """Convert RuleSchema to Rule model."""
    return Rule(
        id=schema.id,
        priority=schema.priority,
        kind=RuleKind(schema.kind),
        condition=_convert_condition(schema.when),
        actions=tuple(_convert_action(a) for a in schema.then),
        description=schema.description,
    )


def _derive_version(data: dict[str, Any]) -> str:
    """Version for packs that do not declare one: a hash of their content."""
    content = {key: value for key, value in data.items() if key != "version"}
    return f"sha256:{content_hash_short(content, 16)}"


def _convert_ruleset_pack(schema: RulesetPackSchema, data: dict[str, Any]) -> Ruleset:
    """Convert RulesetPackSchema to Ruleset model (runs semantic validation)."""
    errors: list[str] = []
    rules: list[Rule] = []
    for rule_schema in schema.rules:
        try:
            rules.append(_convert_rule(rule_schema))
        except (ValueError, HPLMError) as e:
            message = e.message if isinstance(e, HPLMError) else str(e)
            errors.append(f"Rule '{rule_schema.id}': {message}")

    if errors:
        raise ValidationError(
            message=f"Ruleset validation failed: {len(errors)} error(s)",
            details={"errors": errors, "ruleset_id": schema.id},
        )

    try:
        version = schema.version or _derive_version(data)
    except CanonicalEncodingError as e:
        raise ValidationError(
            message="Ruleset pack contains values that cannot be canonically encoded",
            details={"errors": [str(e)], "ruleset_id": schema.id},
        ) from e

    return Ruleset(
        id=schema.id,
        version=version,
        description=schema.description,
        fact_types={key: ScalarType(value) for key, value in schema.facts.items()},
        rules=tuple(rules),
    )


def ruleset_content_hash(ruleset: Ruleset) -> str:
    """SHA-256 over the canonical form of a ruleset's content."""
    return content_hash(ruleset.to_dict())


# =============================================================================
# Ruleset Pack Loader
# =============================================================================

class RulesetPackLoader:
    """
    Loads ruleset packs from YAML or JSON files.

    Usage:
        loader = RulesetPackLoader()
        ruleset = loader.load("rulesets/cross_border_guardrail.yaml")
    """

    def __init__(self, strict_version: bool = True):
        """
        Initialize the loader.

        Args:
            strict_version: If True, reject packs with incompatible schema versions
        """
        self.strict_version = strict_version
        self._rulesets: dict[str, Ruleset] = {}

    def load(self, path: Union[str, Path]) -> Ruleset:
        """
        Load a ruleset pack from a file.

        Raises:
            RulesetLoadError: If the file cannot be read or parsed
            RulesetVersionMismatch: If the schema version is incompatible
            ValidationError: If the pack is malformed
        """
        path = Path(path)

        try:
            data = self._load_file(path)
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise RulesetLoadError(
                message=f"Failed to load ruleset pack: {e}",
                details={"path": str(path), "error": str(e)},
            ) from e

        ruleset = self.load_data(data, source=str(path))
        logger.info(
            "Loaded ruleset %s version %s from %s (%d rules)",
            ruleset.id, ruleset.version, path, len(ruleset.rules),
        )
        return ruleset

    def load_data(self, data: Any, source: str = "<data>") -> Ruleset:
        """Validate and convert an already-parsed pack."""
        if not isinstance(data, dict):
            raise RulesetLoadError(
                message="Ruleset pack must be a mapping at the top level",
                details={"source": source, "type": type(data).__name__},
            )

        if self.strict_version and not check_schema_version(data):
            pack_version = data.get("schema_version", "unknown")
            raise RulesetVersionMismatch(
                message=f"Schema version mismatch: pack has {pack_version}, expected {SCHEMA_VERSION}",
                details={"pack_version": pack_version, "expected_version": SCHEMA_VERSION},
            )

        try:
            schema = validate_ruleset_pack(data)
        except PydanticValidationError as e:
            raise ValidationError(
                message=f"Ruleset pack validation failed: {e.error_count()} error(s)",
                details={
                    "errors": [
                        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                        for err in e.errors()
                    ],
                    "source": source,
                },
            ) from e

        ruleset = _convert_ruleset_pack(schema, data)
        self._rulesets[schema.id] = ruleset
        return ruleset

    def _load_file(self, path: Path) -> Any:
        """Load data from YAML or JSON file."""
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() == ".json":
                return json.load(f)
            return yaml.safe_load(f)

    def get_ruleset(self, ruleset_id: str) -> Optional[Ruleset]:
        """Get the most recently loaded ruleset with this id."""
        return self._rulesets.get(ruleset_id)

    def list_rulesets(self) -> list[str]:
        return list(self._rulesets)


# =============================================================================
# Convenience Functions
# =============================================================================

def load_ruleset(path: Union[str, Path]) -> Ruleset:
    """Load a ruleset pack from a file with a temporary loader."""
    return RulesetPackLoader().load(path)


def load_ruleset_from_string(content: str, format: str = "yaml") -> Ruleset:
    """
    Load a ruleset pack from a string.

    Args:
        content: YAML or JSON string
        format: "yaml" or "json"
    """
    try:
        data = json.loads(content) if format.lower() == "json" else yaml.safe_load(content)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise RulesetLoadError(message=f"Failed to parse ruleset pack: {e}") from e
    return RulesetPackLoader().load_data(data, source=f"<{format} string>")


def bundled_ruleset_path(name: str = "cross_border_guardrail.yaml") -> Path:
    """Path to a ruleset pack shipped with the package."""
    return Path(__file__).resolve().parent.parent / "rulesets" / name
