"""
Logging setup shared by the entry point and uvicorn.

The plugin's own logger follows LOG_LEVEL; uvicorn keeps INFO so request
and lifecycle lines stay visible, minus the orchestrator's liveness polls.
"""

import logging
import logging.config
from typing import Any, Dict, Iterable, Optional
from urllib.parse import urlsplit

PACKAGE_LOGGER = "pulumi_plugin"
QUIET_PATHS = ("/health",)

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"


class QuietPathFilter(logging.Filter):
    """Drop uvicorn access lines for polled endpoints such as /health."""

    def __init__(self, paths: Iterable[str] = QUIET_PATHS):
        super().__init__()
        self.paths = frozenset(paths)

    def _request_path(self, record: logging.LogRecord) -> Optional[str]:
        # uvicorn passes (client, method, path, http_version, status)
        args = record.args
        if isinstance(args, tuple) and len(args) >= 3 and isinstance(args[2], str):
            return urlsplit(args[2]).path

        parts = record.getMessage().split('"')
        if len(parts) >= 2:
            request_line = parts[1].split()
            if len(request_line) >= 2:
                return urlsplit(request_line[1]).path
        return None

    def filter(self, record: logging.LogRecord) -> bool:
        return self._request_path(record) not in self.paths


def _logger_entry(handler: str, level: str) -> Dict[str, Any]:
    return {"handlers": [handler], "level": level, "propagate": False}


def get_logging_config(log_level: str = "INFO") -> Dict[str, Any]:
    """Build a dictConfig mapping; also handed to uvicorn as log_config."""
    loggers = {name: _logger_entry("console", "INFO") for name in ("uvicorn", "uvicorn.error")}
    loggers["uvicorn.access"] = _logger_entry("access", "INFO")
    loggers[PACKAGE_LOGGER] = _logger_entry("console", log_level.upper())

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"quiet_paths": {"()": QuietPathFilter, "paths": QUIET_PATHS}},
        "formatters": {"plain": {"format": LOG_FORMAT}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "plain",
                "stream": "ext://sys.stderr",
            },
            "access": {
                "class": "logging.StreamHandler",
                "formatter": "plain",
                "stream": "ext://sys.stdout",
                "filters": ["quiet_paths"],
            },
        },
        "loggers": loggers,
        "root": {"level": "WARNING", "handlers": ["console"]},
    }


def configure_logging(log_level: str = "INFO") -> None:
    logging.config.dictConfig(get_logging_config(log_level))
