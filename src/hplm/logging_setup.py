"""
HPLM Logging Setup

Structured JSON logging for the CLI and the HTTP service. Library modules
only call logging.getLogger(__name__); handlers are installed here, once,
on the "hplm" logger.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

ROOT_LOGGER = "hplm"

# Extra attributes copied into JSON log lines when present on a record
EXTRA_FIELDS = (
    "request_id",
    "ruleset_id",
    "ruleset_version",
    "outcome",
    "passes",
    "integrity_hash_short",
    "duration_ms",
)

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in EXTRA_FIELDS:
            if hasattr(record, name):
                log_entry[name] = getattr(record, name)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def configure_logging(level: str = "INFO", fmt: str = "json") -> logging.Logger:
    """
    Install a single stream handler on the "hplm" logger.

    Calling again replaces the handler rather than stacking another one.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper()))

    for handler in list(logger.handlers):
        if getattr(handler, "_hplm_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter() if fmt == "json" else logging.Formatter(TEXT_FORMAT))
    handler._hplm_handler = True
    logger.addHandler(handler)
    return logger
