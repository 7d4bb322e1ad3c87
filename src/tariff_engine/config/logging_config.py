"""
Logging setup for the tariff engine.

Engine modules log through ``logging.getLogger(__name__)`` and attach the
tariff they worked against with ``extra=``; the JSON formatter lifts those
attributes into top-level keys so estimates can be traced back to a tariff
version in aggregated logs.
"""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from .settings import Settings, get_settings

PACKAGE_LOGGER = "tariff_engine"

# Attributes engine modules pass through ``extra=``
CONTEXT_FIELDS = ("configuration_id", "configuration_version", "pricing_method", "deterministic_hash")

TEXT_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with the tariff context when present."""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_entry[name] = str(value)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, sort_keys=True)


def tariff_context(configuration) -> dict:
    """``extra=`` mapping naming the tariff a log record refers to."""
    return {
        "configuration_id": configuration.id,
        "configuration_version": configuration.version,
    }


def setup_logging(
    level: Optional[str] = None,
    json_output: Optional[bool] = None,
    settings: Optional[Settings] = None,
    stream=None,
) -> logging.Logger:
    """
    Attach a single handler to the package logger.

    Unset arguments come from settings (``TARIFF_ENGINE_LOG_LEVEL`` and
    ``TARIFF_ENGINE_JSON_LOGS``). Calling it again replaces the handler.
    """
    settings = settings or get_settings()
    level = level or settings.log_level
    json_output = settings.json_logs if json_output is None else json_output

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JSONFormatter() if json_output else logging.Formatter(TEXT_FORMAT))

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.handlers = [handler]
    return logger
