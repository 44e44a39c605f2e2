# src/sqlfault/core/logging/builder.py
"""
Logging builder: create and apply a dictConfig logging configuration from
Settings.

Loggers configured:
  - root: every handler, at LOG_LEVEL
  - "sqlfault": LOG_LEVEL, so the DEBUG "sqlfault.annotated" records from
    the operations show up when LOG_LEVEL=DEBUG
  - "sqlalchemy.engine": WARNING unless ENABLE_SQL_LOGGING (statement echo
    includes bound values)

Settings may be any object exposing the attributes used below; tests pass
small duck-typed stand-ins.
"""

from __future__ import annotations

from pathlib import Path
import logging
import logging.config

from .formatters import JsonFormatter, ColorFormatter
from .filters import RequestIdFilter, SQLAnnotationFilter
from .handlers import (
    get_console_handler,
    get_file_handler,
    get_error_file_handler,
    get_error_console_handler,
)
from ...config.settings import Settings
from ...utils.metadata import DISTRIBUTION_NAME

STANDARD_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(request_id)s | %(message)s"


def _writes_files(settings: Settings) -> bool:
    return (not settings.LOG_TO_STDOUT) and bool(settings.LOG_DIR)


def make_dict_config(settings: Settings) -> dict:
    """
    Build the dictConfig mapping:
      - formatters: "standard" (color in text mode, plain otherwise) and "json"
      - filters: "request_id", "sql_annotation"
      - handlers: console plus file/error_file, or console plus error_console
    """
    formatters = {
        "standard": {
            "()": ColorFormatter if settings.LOG_FORMAT == "text" else logging.Formatter,
            "format": STANDARD_FORMAT,
        },
        "json": {
            "()": JsonFormatter,
            "env": settings.ENV,
            "service": DISTRIBUTION_NAME,
        },
    }

    filters = {
        "request_id": {"()": RequestIdFilter},
        "sql_annotation": {"()": SQLAnnotationFilter},
    }

    handlers: dict[str, dict] = {"console": get_console_handler(settings)}

    if _writes_files(settings):
        handlers["file"] = get_file_handler(settings)
        handlers["error_file"] = get_error_file_handler(settings)
    else:
        handlers["error_console"] = get_error_console_handler(settings)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "filters": filters,
        "handlers": handlers,
        "loggers": {
            "": {
                "handlers": list(handlers.keys()),
                "level": settings.LOG_LEVEL,
            },
            "sqlfault": {
                "level": settings.LOG_LEVEL,
                "propagate": True,
            },
            # Statement echo logs bound values verbatim
            "sqlalchemy.engine": {
                "level": "INFO" if getattr(settings, "ENABLE_SQL_LOGGING", False) else "WARNING",
                "propagate": True,
            },
        },
    }


def setup_logging(settings: Settings) -> None:
    """
    Create LOG_DIR when logging to files, apply the dictConfig, and attach a
    RequestIdFilter to the root logger so %(request_id)s is always safe.
    """
    if _writes_files(settings):
        Path(settings.LOG_DIR).mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(make_dict_config(settings))
    logging.getLogger().addFilter(RequestIdFilter())


__all__ = ["STANDARD_FORMAT", "make_dict_config", "setup_logging"]
