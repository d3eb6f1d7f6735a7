"""
Tests for environment settings and structured logging
"""
import json
import logging
from pathlib import Path

import pytest

from hplm.config import Settings
from hplm.exceptions import ConfigError
from hplm.logging_setup import JSONFormatter, configure_logging
from hplm.packs import bundled_ruleset_path


class TestSettings:
    """Tests for Settings.from_env."""

    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.max_passes == 10
        assert settings.log_level == "INFO"
        assert settings.log_format == "json"
        assert settings.ruleset_path is None
        assert settings.docs_enabled is True
        assert settings.resolved_ruleset_path() == bundled_ruleset_path()

    def test_overrides(self):
        settings = Settings.from_env({
            "HPLM_MAX_PASSES": "25",
            "HPLM_LOG_LEVEL": "debug",
            "HPLM_LOG_FORMAT": "TEXT",
            "HPLM_RULESET_PATH": "/etc/hplm/guardrail.yaml",
            "HPLM_DOCS_ENABLED": "false",
        })
        assert settings.max_passes == 25
        assert settings.log_level == "DEBUG"
        assert settings.log_level_number == logging.DEBUG
        assert settings.log_format == "text"
        assert settings.resolved_ruleset_path() == Path("/etc/hplm/guardrail.yaml")
        assert settings.docs_enabled is False

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("HPLM_MAX_PASSES", "3")
        assert Settings.from_env().max_passes == 3

    @pytest.mark.parametrize("env", [
        {"HPLM_MAX_PASSES": "ten"},
        {"HPLM_MAX_PASSES": "0"},
        {"HPLM_LOG_LEVEL": "LOUD"},
        {"HPLM_LOG_FORMAT": "xml"},
    ])
    def test_invalid_values(self, env):
        with pytest.raises(ConfigError) as exc_info:
            Settings.from_env(env)
        assert exc_info.value.code == "HPLM_CONFIG_ERROR"
        assert exc_info.value.details["variable"] in env


class TestJSONFormatter:
    """Tests for structured log lines."""

    def make_record(self, **extra) -> logging.LogRecord:
        record = logging.LogRecord(
            name="hplm.engine.pipeline", level=logging.INFO, pathname=__file__,
            lineno=1, msg="Evaluated case: %s", args=("REJECTED",), exc_info=None,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_base_fields(self):
        line = json.loads(JSONFormatter().format(self.make_record()))
        assert line["level"] == "INFO"
        assert line["logger"] == "hplm.engine.pipeline"
        assert line["message"] == "Evaluated case: REJECTED"
        assert "timestamp" in line

    def test_known_extras_included(self):
        line = json.loads(JSONFormatter().format(self.make_record(
            ruleset_version="2026.1", outcome="REJECTED", passes=2, duration_ms=0.4,
        )))
        assert line["ruleset_version"] == "2026.1"
        assert line["outcome"] == "REJECTED"
        assert line["passes"] == 2

    def test_unknown_extras_ignored(self):
        line = json.loads(JSONFormatter().format(self.make_record(secret="x")))
        assert "secret" not in line


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_single_handler(self):
        logger = configure_logging("INFO", "json")
        configure_logging("DEBUG", "text")
        installed = [h for h in logger.handlers if getattr(h, "_hplm_handler", False)]
        assert len(installed) == 1
        assert logger.level == logging.DEBUG
        assert not isinstance(installed[0].formatter, JSONFormatter)
