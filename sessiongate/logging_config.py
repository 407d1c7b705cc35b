"""
Logging setup for the service and uvicorn, with health-check traffic kept out of
the access log.
"""

import logging
import logging.config
import re
from typing import Any, Dict

HEALTH_PATHS = frozenset({"/healthz", "/health"})

# Request line inside a uvicorn access message: "GET /path?query HTTP/1.1"
_REQUEST_LINE = re.compile(r'"(?P<method>[A-Z]+) (?P<path>[^ ?"]+)')


class HealthCheckFilter(logging.Filter):
    """Drop uvicorn access lines for GET requests to the health endpoints."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name != "uvicorn.access":
            return True
        match = _REQUEST_LINE.search(record.getMessage())
        if match is None:
            return True
        return not (match["method"] == "GET" and match["path"] in HEALTH_PATHS)


def _stdout_handler(formatter: str, **extra: Any) -> Dict[str, Any]:
    return {
        "class": "logging.StreamHandler",
        "formatter": formatter,
        "stream": "ext://sys.stdout",
        **extra,
    }


def get_logging_config(level: str = "INFO") -> Dict[str, Any]:
    """
    Build a dictConfig for the service.

    The sessiongate logger follows ``level``; uvicorn stays at INFO.
    """
    uvicorn_logger = {"handlers": ["default"], "level": "INFO", "propagate": False}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"health_check_filter": {"()": HealthCheckFilter}},
        "formatters": {
            "default": {"format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"},
            "access": {"format": "%(message)s"},
        },
        "handlers": {
            "default": _stdout_handler("default"),
            "access": _stdout_handler("access", filters=["health_check_filter"]),
        },
        "loggers": {
            "uvicorn": dict(uvicorn_logger),
            "uvicorn.error": dict(uvicorn_logger),
            "uvicorn.access": {"handlers": ["access"], "level": "INFO", "propagate": False},
            "sessiongate": {"handlers": ["default"], "level": level, "propagate": False},
        },
        "root": {"level": "INFO", "handlers": ["default"]},
    }


def configure_logging(level: str = "INFO") -> None:
    logging.config.dictConfig(get_logging_config(level))
