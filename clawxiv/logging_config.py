"""
Logging configuration module.

Function:
Configures the standard `logging` package for the whole clawxiv service through
`logging.config.dictConfig`:
1. Formatters: a human readable `default`/`detailed` pair for development, an `access`
   formatter, and a `json` formatter emitting one Cloud Logging compatible object per line.
2. A filter that stamps every record with the current request's trace and request ids.
3. Handlers: console always; rotating app/error files only when LOG_DIR is set.
4. Per-library loggers (uvicorn, fastapi, httpx, psycopg, botocore) and the `clawxiv` root.

Interaction:
- `clawxiv.main` calls `setup_logging(settings)` before the app is created.
- `scripts/*` call it as well so that operator output matches the service.
"""

import datetime
import json
import logging
from logging.config import dictConfig
from pathlib import Path
from typing import Any, Dict, Optional

from clawxiv.core.config import Settings
from clawxiv.core.request_context import get_request_context

# Keys passed through `extra=` that become Cloud Logging labels.
LABEL_FIELDS = ("bot_id", "paper_id", "operation", "request_id")

# LogRecord attributes that are never copied into the JSON payload.
_RESERVED_ATTRS = set(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime", "trace_id", "request_id", "gcp_project_id"}


class RequestContextFilter(logging.Filter):
    """Adds `trace_id` and `request_id` attributes taken from the active request."""

    def __init__(self, name: str = "", gcp_project_id: str = "clawxiv") -> None:
        super().__init__(name)
        self.gcp_project_id = gcp_project_id

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = get_request_context()
        if not hasattr(record, "request_id"):
            record.request_id = ctx.request_id if ctx else "-"
        record.trace_id = ctx.trace_id if ctx else None
        record.gcp_project_id = self.gcp_project_id
        return True


class UTCFormatter(logging.Formatter):
    """Formats timestamps in UTC, ISO 8601."""

    def formatTime(
        self, record: logging.LogRecord, datefmt: Optional[str] = None
    ) -> str:
        dt = datetime.datetime.fromtimestamp(record.created, datetime.timezone.utc)
        if datefmt:
            return dt.strftime(datefmt)
        return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class JsonFormatter(UTCFormatter):
    """One JSON object per line in the shape Cloud Logging parses."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "severity": record.levelname,
            "message": record.getMessage(),
            "timestamp": self.formatTime(record),
            "logger": record.name,
        }
        trace_id = getattr(record, "trace_id", None)
        if trace_id:
            project = getattr(record, "gcp_project_id", None)
            entry["logging.googleapis.com/trace"] = (
                f"projects/{project}/traces/{trace_id}" if project else trace_id
            )

        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        entry.update(context)

        labels: Dict[str, str] = {}
        for field in LABEL_FIELDS:
            value = getattr(record, field, None)
            if value not in (None, "-"):
                labels[field] = str(value)
        if labels:
            entry["logging.googleapis.com/labels"] = labels

        if record.exc_info:
            entry["stack_trace"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def build_logging_config(settings: Settings) -> Dict[str, Any]:
    level = settings.effective_log_level
    console_formatter = "json" if settings.log_format == "json" else "detailed"

    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": console_formatter,
            "filters": ["request_context"],
            "level": "DEBUG",
            "stream": "ext://sys.stdout",
        },
    }
    app_handlers = ["console"]
    access_handlers = ["console"]

    if settings.log_dir:
        logs_dir = Path(settings.log_dir)
        logs_dir.mkdir(parents=True, exist_ok=True)
        file_defaults = {
            "class": "logging.handlers.RotatingFileHandler",
            "filters": ["request_context"],
            "maxBytes": 10 * 1024 * 1024,
            "backupCount": 5,
            "encoding": "utf-8",
        }
        handlers["app_file"] = {
            **file_defaults,
            "filename": str(logs_dir / "clawxiv.log"),
            "formatter": "detailed",
            "level": "DEBUG",
        }
        handlers["error_file"] = {
            **file_defaults,
            "filename": str(logs_dir / "clawxiv_error.log"),
            "formatter": "detailed",
            "level": "ERROR",
        }
        handlers["access_file"] = {
            **file_defaults,
            "filename": str(logs_dir / "access.log"),
            "formatter": "access",
            "level": "INFO",
        }
        app_handlers = ["console", "app_file", "error_file"]
        access_handlers = ["console", "access_file"]

    def lib(lib_level: str, lib_handlers: Optional[list] = None) -> Dict[str, Any]:
        return {
            "handlers": lib_handlers or app_handlers,
            "level": lib_level,
            "propagate": False,
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "request_context": {
                "()": RequestContextFilter,
                "gcp_project_id": settings.gcp_project_id,
            },
        },
        "formatters": {
            "default": {
                "()": UTCFormatter,
                "format": "[%(asctime)s] %(levelname)s %(name)s:%(lineno)d - %(message)s",
            },
            "detailed": {
                "()": UTCFormatter,
                "format": "[%(asctime)s] %(levelname)s [%(name)s:%(lineno)d] [req=%(request_id)s] %(message)s",
            },
            "access": {
                "()": UTCFormatter,
                "format": "[%(asctime)s] [ACCESS] %(message)s",
            },
            "json": {"()": JsonFormatter},
        },
        "handlers": handlers,
        "loggers": {
            "uvicorn": lib("INFO"),
            "uvicorn.error": lib("INFO"),
            "uvicorn.access": lib("INFO", access_handlers),
            "fastapi": lib("INFO"),
            "clawxiv": lib(level),
            "httpx": lib("WARNING"),
            "httpcore": lib("WARNING"),
            "psycopg": lib("WARNING"),
            "psycopg.pool": lib("INFO" if level == "DEBUG" else "WARNING"),
            "botocore": lib("WARNING"),
            "boto3": lib("WARNING"),
            "asyncio": lib("WARNING"),
        },
        "root": {"handlers": app_handlers, "level": "INFO"},
    }


def setup_logging(settings: Settings) -> None:
    """Applies the logging configuration derived from `settings`."""
    dictConfig(build_logging_config(settings))
    logger = logging.getLogger("clawxiv")
    logger.info(
        "Logging initialized (level=%s, format=%s, log_dir=%s)",
        settings.effective_log_level,
        settings.log_format,
        settings.log_dir or "-",
    )
