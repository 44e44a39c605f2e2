"""
Custom logging formatters.

  - JsonFormatter: structured JSON lines for log collectors. Includes
    service/env/version/request_id and every ``extra`` field, which is where
    SQLAnnotationFilter puts ``sql``, ``sql_params`` and ``sql_context``.
  - ColorFormatter: compact ANSI-colored lines for local consoles. Appends
    the failing statement under the message when the record carries one.

builder.py picks between them from Settings.LOG_FORMAT.
"""

import json
import logging
from typing import Any
from logging import LogRecord
from ...utils.metadata import get_project_version, DISTRIBUTION_NAME

PROJECT_VERSION = get_project_version()

# Attributes every LogRecord has; anything else on the record came from `extra`
# or from a filter.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "asctime", "taskName"}


class JsonFormatter(logging.Formatter):
    """
    Structured JSON formatter.

    Construction:
      - env: environment name (e.g. "production"); optional.
      - service: logical service name (defaults to the distribution name).
      - datefmt: optional date format used by formatTime.

    Non-serializable extras are converted with str(); format() never raises
    on odd values.
    """

    def __init__(self, *, env: str | None = None, service: str = DISTRIBUTION_NAME, datefmt: str | None = None):
        super().__init__(datefmt=datefmt)
        self.env = env
        self.service = service

    def format(self, record: LogRecord) -> str:
        log_record: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "pathname": record.pathname,
            "lineno": record.lineno,
            "request_id": getattr(record, "request_id", "-"),
            "service": self.service,
            "env": self.env,
            "version": PROJECT_VERSION,
        }

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            log_record["stack_info"] = self.formatStack(record.stack_info)

        for k, v in record.__dict__.items():
            if k in log_record or k in _RESERVED_ATTRS or k.startswith("_"):
                continue
            try:
                json.dumps(v)
                log_record[k] = v
            except (TypeError, ValueError):
                log_record[k] = str(v)

        return json.dumps(log_record, ensure_ascii=False, default=str)


class ColorFormatter(logging.Formatter):
    """
    Development-friendly colored formatter:

        TIMESTAMP | LEVEL | LOGGER | REQUEST_ID | MESSAGE
            sql: INSERT INTO t VALUES (?) params: [42]
        Traceback ...
    """

    COLOR_CODES = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;41m",
        "RESET": "\033[0m",
    }

    def __init__(self, fmt: str | None = None, datefmt: str | None = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)

    def format(self, record: LogRecord) -> str:
        color = self.COLOR_CODES.get(record.levelname, "")
        reset = self.COLOR_CODES["RESET"]
        timestamp = self.formatTime(record, self.datefmt)

        base = (
            f"{timestamp} | {color}{record.levelname:<8}{reset} | "
            f"{record.name:<30} | "
            f"{getattr(record, 'request_id', '-'):<10} | "
            f"{record.getMessage()}"
        )

        sql = getattr(record, "sql", None)
        if sql is not None:
            base += f"\n    sql: {sql} params: {getattr(record, 'sql_params', [])}"

        if record.exc_info:
            base = base + "\n" + self.formatException(record.exc_info)

        return base


__all__ = ["JsonFormatter", "ColorFormatter", "PROJECT_VERSION"]
