"""Process logging for the grading backend.

``EXPO_LOG_LEVEL`` sets the root level. ``EXPO_TELEMETRY_LOG_LEVEL`` tunes the
``TELEMETRY {json}`` stream on its own (set it to WARNING to silence grading
events). ``EXPO_MIGRATION_LOG_LEVEL`` covers alembic, and ``EXPO_DEBUG_SQL=1``
turns on SQLAlchemy statement logging.
"""

import os
from logging.config import dictConfig
from typing import Any, Dict, Mapping, Optional

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
TELEMETRY_LOGGER = "expo_grading.telemetry"


def build_logging_config(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    env = os.environ if environ is None else environ
    level = env.get("EXPO_LOG_LEVEL", "INFO").upper()

    loggers: Dict[str, Dict[str, Any]] = {
        TELEMETRY_LOGGER: {"level": env.get("EXPO_TELEMETRY_LOG_LEVEL", level).upper()},
        "alembic": {"level": env.get("EXPO_MIGRATION_LOG_LEVEL", "INFO").upper()},
    }
    if env.get("EXPO_DEBUG_SQL", "0") == "1":
        loggers["sqlalchemy.engine"] = {"level": "INFO"}
        loggers["uvicorn.access"] = {"level": "DEBUG"}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": DEFAULT_LOG_FORMAT,
            },
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
            },
        },
        "loggers": loggers,
        "root": {
            "handlers": ["default"],
            "level": level,
        },
    }


def configure_logging(environ: Optional[Mapping[str, str]] = None) -> None:
    dictConfig(build_logging_config(environ))
