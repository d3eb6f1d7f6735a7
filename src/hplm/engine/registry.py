"""
HPLM Ruleset Registry

Holds the active Ruleset and supports hot-reload.

Activation swaps an immutable reference under a lock. Callers take
`current()` once at the start of an evaluation, so in-flight evaluations
finish against the version they started with. Every activated version is
kept for replaying historical audit records.
"""
from __future__ import annotations

import logging
import threading
from typing import Optional

from ..models import Ruleset

logger = logging.getLogger(__name__)


class RulesetRegistry:
    """
    Thread-safe holder of the active ruleset.

    Usage:
        registry = RulesetRegistry()
        registry.activate(load_ruleset("rulesets/guardrail.yaml"))

        ruleset = registry.current()
        result = evaluator.evaluate(ruleset, facts)
    """

    def __init__(self, initial: Optional[Ruleset] = None):
        self._lock = threading.Lock()
        self._active: Optional[Ruleset] = None
        self._versions: dict[str, Ruleset] = {}
        if initial is not None:
            self.activate(initial)

    def activate(self, ruleset: Ruleset) -> Optional[Ruleset]:
        """
        Make `ruleset` the active one.

        Returns:
            The previously active ruleset, or None
        """
        with self._lock:
            previous = self._active
            self._versions[ruleset.version] = ruleset
            self._active = ruleset

        if previous is not None and previous.version != ruleset.version:
            logger.info("Activated ruleset %s (replacing %s)", ruleset.version, previous.version)
        else:
            logger.info("Activated ruleset %s", ruleset.version)
        return previous

    def current(self) -> Ruleset:
        """
        The active ruleset.

        Raises:
            LookupError: If no ruleset has been activated
        """
        active = self._active
        if active is None:
            raise LookupError("No ruleset is active")
        return active

    def get(self, version: str) -> Optional[Ruleset]:
        """A previously activated ruleset by version."""
        with self._lock:
            return self._versions.get(version)

    @property
    def versions(self) -> list[str]:
        with self._lock:
            return list(self._versions)

    @property
    def is_loaded(self) -> bool:
        return self._active is not None
