"""
HPLM Exception Hierarchy

Domain-specific exceptions for the policy guardrail engine.
All exceptions include error codes for tracking and logging.

Exception codes follow the pattern: HPLM_<CATEGORY>_<SPECIFIC>

An UNKNOWN condition result (a rule referencing a fact that is not in the
fact set) is NOT an error and has no exception here. It is recorded in the
evaluation trace instead.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class HPLMError(Exception):
    """
    Base exception for all HPLM errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (HPLM_*)
        details: Additional context about the error
    """
    message: str
    code: str = "HPLM_INTERNAL_ERROR"
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Serialize exception for logging/API responses."""
        result: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Configuration Errors
# =============================================================================

@dataclass
class ConfigError(HPLMError):
    """Environment configuration is invalid."""
    code: str = "HPLM_CONFIG_ERROR"


# =============================================================================
# Ruleset Errors (fatal at load time)
# =============================================================================

@dataclass
class ValidationError(HPLMError):
    """Ruleset is malformed. Evaluation never starts against it."""
    code: str = "HPLM_RULESET_VALIDATION_ERROR"


@dataclass
class InvalidConditionError(ValidationError):
    """Condition tree structure is invalid."""
    code: str = "HPLM_INVALID_CONDITION"


@dataclass
class RulesetLoadError(HPLMError):
    """Failed to read or parse a ruleset pack file."""
    code: str = "HPLM_RULESET_LOAD_ERROR"


@dataclass
class RulesetVersionMismatch(HPLMError):
    """Ruleset pack schema version is not supported."""
    code: str = "HPLM_RULESET_VERSION_MISMATCH"


# =============================================================================
# Fact Errors
# =============================================================================

@dataclass
class InvalidFactValueError(HPLMError):
    """Fact value is not a supported scalar."""
    code: str = "HPLM_INVALID_FACT_VALUE"


# =============================================================================
# Evaluation Errors (fatal per evaluation)
# =============================================================================

@dataclass
class CycleDetected(HPLMError):
    """Derivation rules did not reach a fixpoint within the pass limit."""
    code: str = "HPLM_CYCLE_DETECTED"


# =============================================================================
# Audit Errors
# =============================================================================

@dataclass
class AuditRecordError(HPLMError):
    """Exported audit record cannot be parsed."""
    code: str = "HPLM_AUDIT_RECORD_ERROR"


@dataclass
class SignatureInvalidError(HPLMError):
    """Signing key or signature bytes are malformed."""
    code: str = "HPLM_SIGNATURE_INVALID"
