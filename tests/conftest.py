"""
Pytest configuration and fixtures for HPLM tests.

Provides helper factories and common fixtures matching actual model definitions.
"""
import logging
from datetime import datetime, timezone

import pytest

from hplm.engine import AuditRecorder, Evaluator, GuardrailPipeline
from hplm.logging_setup import ROOT_LOGGER
from hplm.models import (
    EQ,
    GT,
    IN,
    AND,
    EnumTag,
    FactRef,
    FactSet,
    RequireAction,
    Rule,
    RuleKind,
    Ruleset,
    ScalarType,
    SetFact,
    Veto,
)
from hplm.packs import bundled_ruleset_path, load_ruleset


FIXED_TIME = datetime(2026, 10, 18, 9, 30, 0, tzinfo=timezone.utc)

EM_BOND_FACTS = {
    "citizenship": "US",
    "account_domicile": "Germany",
    "product": "EM_HY_bond",
    "prior_complex_derivatives_rejected": True,
}

MBRIDGE_FACTS = {
    "citizenship": "US",
    "account_domicile": "Hong Kong",
    "transfer_platform": "mBridge_Pilot",
}


# =============================================================================
# Factory Helpers
# =============================================================================

def make_facts(**values) -> FactSet:
    """Create a FactSet from keyword arguments."""
    return FactSet(values)


def make_rule(
    id: str,
    condition,
    *actions,
    priority: int = 10,
    kind: RuleKind = RuleKind.DERIVATION,
    description: str = None,
) -> Rule:
    """Create a Rule with required fields."""
    return Rule(
        id=id,
        priority=priority,
        kind=kind,
        condition=condition,
        actions=tuple(actions),
        description=description,
    )


def make_gate(id: str, condition, reason: str, priority: int = 100) -> Rule:
    """Create a GATE rule carrying a single Veto."""
    return make_rule(id, condition, Veto(reason), priority=priority, kind=RuleKind.GATE)


def make_ruleset(*rules: Rule, version: str = "test-1", fact_types: dict = None) -> Ruleset:
    """Create a Ruleset from rules."""
    return Ruleset(version=version, rules=tuple(rules), fact_types=fact_types or {})


def make_em_bond_ruleset() -> Ruleset:
    """
    Minimal cross-border EM bond ruleset.

    R2 caps the client at tier 2 after a prior rejection; R3 vetoes a
    product whose tier exceeds that cap.
    """
    return make_ruleset(
        make_rule(
            "R0-PRODUCT-TIER", EQ("product", "EM_HY_bond"),
            SetFact("product_complexity_tier", 3),
            priority=5,
        ),
        make_rule(
            "R1-TAX-TREATY",
            AND(EQ("citizenship", "US"), IN("account_domicile", ["Germany", "France"])),
            RequireAction("CROSS_BORDER_TAX_TREATY_402B"),
            priority=10,
        ),
        make_rule(
            "R2-CEILING", EQ("prior_complex_derivatives_rejected", True),
            SetFact("max_complexity_tier", 2),
            priority=20,
        ),
        make_gate(
            "R3-COMPLEXITY-GATE",
            GT("product_complexity_tier", FactRef("max_complexity_tier")),
            "complexity_tier 3 exceeds max_complexity_tier 2",
            priority=30,
        ),
        version="em-bond-1",
        fact_types={
            "product_complexity_tier": ScalarType.INTEGER,
            "max_complexity_tier": ScalarType.INTEGER,
            "prior_complex_derivatives_rejected": ScalarType.BOOLEAN,
        },
    )


def make_enum(tag: str) -> EnumTag:
    return EnumTag(tag)


def fixed_clock() -> datetime:
    return FIXED_TIME


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def evaluator():
    """Create an evaluator with the default pass limit."""
    return Evaluator()


@pytest.fixture
def recorder():
    """Audit recorder with a pinned clock."""
    return AuditRecorder(clock=fixed_clock)


@pytest.fixture
def pipeline(recorder):
    return GuardrailPipeline(evaluator=Evaluator(), recorder=recorder)


@pytest.fixture
def em_bond_ruleset():
    return make_em_bond_ruleset()


@pytest.fixture
def em_bond_facts():
    return FactSet(EM_BOND_FACTS)


@pytest.fixture(scope="session")
def bundled_ruleset():
    """The cross-border guardrail pack shipped with the package."""
    return load_ruleset(bundled_ruleset_path())


@pytest.fixture(autouse=True)
def reset_hplm_logging():
    """Drop handlers installed by CLI or API runs so later tests log through caplog only."""
    yield
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        if getattr(handler, "_hplm_handler", False):
            logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
