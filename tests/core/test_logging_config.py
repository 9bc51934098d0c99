import json
import logging
import sys
from pathlib import Path

from clawxiv.core.config import Settings
from clawxiv.core.request_context import (
    RequestContext,
    bind_request_context,
    reset_request_context,
)
from clawxiv.logging_config import (
    JsonFormatter,
    RequestContextFilter,
    build_logging_config,
)

TRACE = "0123456789abcdef0123456789abcdef"


def _record(msg: str = "hello", **extra: object) -> logging.LogRecord:
    record = logging.LogRecord("clawxiv.test", logging.INFO, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_filter_stamps_request_ids() -> None:
    token = bind_request_context(RequestContext(trace_id=TRACE, request_id="req00001"))
    try:
        record = _record()
        assert RequestContextFilter(gcp_project_id="proj").filter(record)
    finally:
        reset_request_context(token)
    assert record.request_id == "req00001"  # type: ignore[attr-defined]
    assert record.trace_id == TRACE  # type: ignore[attr-defined]
    assert record.gcp_project_id == "proj"  # type: ignore[attr-defined]


def test_filter_without_request() -> None:
    record = _record()
    RequestContextFilter().filter(record)
    assert record.request_id == "-"  # type: ignore[attr-defined]
    assert record.trace_id is None  # type: ignore[attr-defined]


def test_json_formatter_shape() -> None:
    record = _record("published", paper_id="clawxiv.2601.00001", operation="submit")
    record.trace_id = TRACE  # type: ignore[attr-defined]
    record.gcp_project_id = "proj"  # type: ignore[attr-defined]
    record.request_id = "req00001"  # type: ignore[attr-defined]

    entry = json.loads(JsonFormatter().format(record))

    assert entry["severity"] == "INFO"
    assert entry["message"] == "published"
    assert entry["logger"] == "clawxiv.test"
    assert entry["timestamp"].endswith("Z")
    assert entry["logging.googleapis.com/trace"] == f"projects/proj/traces/{TRACE}"
    assert entry["paper_id"] == "clawxiv.2601.00001"
    assert entry["logging.googleapis.com/labels"] == {
        "paper_id": "clawxiv.2601.00001",
        "operation": "submit",
        "request_id": "req00001",
    }
    assert "stack_trace" not in entry


def test_json_formatter_includes_stack_trace() -> None:
    try:
        raise ValueError("boom")
    except ValueError:
        record = logging.LogRecord(
            "clawxiv.test", logging.ERROR, __file__, 1, "failed", None, sys.exc_info()
        )
    entry = json.loads(JsonFormatter().format(record))
    assert "ValueError: boom" in entry["stack_trace"]
    assert entry["severity"] == "ERROR"


def test_build_config_console_only() -> None:
    config = build_logging_config(Settings(_env_file=None, log_dir=None))  # type: ignore[call-arg]
    assert set(config["handlers"]) == {"console"}
    assert config["handlers"]["console"]["formatter"] == "detailed"
    assert config["loggers"]["clawxiv"]["level"] == "INFO"


def test_build_config_json_and_debug() -> None:
    settings = Settings(_env_file=None, log_format="json", log_debug=True)  # type: ignore[call-arg]
    config = build_logging_config(settings)
    assert config["handlers"]["console"]["formatter"] == "json"
    assert config["loggers"]["clawxiv"]["level"] == "DEBUG"
    assert config["loggers"]["psycopg.pool"]["level"] == "INFO"


def test_build_config_with_log_dir(tmp_path: Path) -> None:
    log_dir = tmp_path / "logs"
    config = build_logging_config(Settings(_env_file=None, log_dir=str(log_dir)))  # type: ignore[call-arg]
    assert log_dir.is_dir()
    assert {"app_file", "error_file", "access_file"} <= set(config["handlers"])
    assert config["handlers"]["error_file"]["level"] == "ERROR"
    assert config["loggers"]["uvicorn.access"]["handlers"] == ["console", "access_file"]
