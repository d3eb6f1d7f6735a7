"""
HPLM Configuration

Settings read from the environment:

    HPLM_MAX_PASSES     derivation pass limit (default 10)
    HPLM_LOG_LEVEL      DEBUG, INFO, WARNING, ERROR (default INFO)
    HPLM_LOG_FORMAT     json or text (default json)
    HPLM_RULESET_PATH   ruleset pack to activate at startup (default: bundled pack)
    HPLM_DOCS_ENABLED   serve OpenAPI docs from the HTTP service (default true)

The pass limit is configuration, never request input.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .engine.evaluator import DEFAULT_MAX_PASSES
from .exceptions import ConfigError

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("json", "text")


@dataclass(frozen=True)
class Settings:
    max_passes: int = DEFAULT_MAX_PASSES
    log_level: str = "INFO"
    log_format: str = "json"
    ruleset_path: Optional[Path] = None
    docs_enabled: bool = True

    @property
    def log_level_number(self) -> int:
        return getattr(logging, self.log_level)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Settings:
        """
        Read settings from environment variables.

        Raises:
            ConfigError: If a variable is set to an invalid value
        """
        env = os.environ if environ is None else environ

        raw_passes = env.get("HPLM_MAX_PASSES", str(DEFAULT_MAX_PASSES))
        try:
            max_passes = int(raw_passes)
        except ValueError:
            raise ConfigError(
                message=f"HPLM_MAX_PASSES must be an integer, got {raw_passes!r}",
                details={"variable": "HPLM_MAX_PASSES", "value": raw_passes},
            ) from None
        if max_passes < 1:
            raise ConfigError(
                message=f"HPLM_MAX_PASSES must be at least 1, got {max_passes}",
                details={"variable": "HPLM_MAX_PASSES", "value": raw_passes},
            )

        log_level = env.get("HPLM_LOG_LEVEL", "INFO").upper()
        if log_level not in LOG_LEVELS:
            raise ConfigError(
                message=f"HPLM_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}",
                details={"variable": "HPLM_LOG_LEVEL", "value": log_level},
            )

        log_format = env.get("HPLM_LOG_FORMAT", "json").lower()
        if log_format not in LOG_FORMATS:
            raise ConfigError(
                message=f"HPLM_LOG_FORMAT must be one of {', '.join(LOG_FORMATS)}",
                details={"variable": "HPLM_LOG_FORMAT", "value": log_format},
            )

        raw_path = env.get("HPLM_RULESET_PATH")
        ruleset_path = Path(raw_path) if raw_path else None

        docs_enabled = env.get("HPLM_DOCS_ENABLED", "true").lower() == "true"

        return cls(
            max_passes=max_passes,
            log_level=log_level,
            log_format=log_format,
            ruleset_path=ruleset_path,
            docs_enabled=docs_enabled,
        )

    def resolved_ruleset_path(self) -> Path:
        """The configured ruleset pack, or the bundled one."""
        if self.ruleset_path is not None:
            return self.ruleset_path
        from .packs import bundled_ruleset_path
        return bundled_ruleset_path()
