from __future__ import annotations

import json
import logging
import os
import threading
from collections.abc import MutableMapping
from pathlib import Path
from typing import Any

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars, merge_contextvars

LOG_DIR = Path("artifacts/logs")
FRAMEWORK_LOG = LOG_DIR / "framework.log"

# Below DEBUG, for very chatty polling output
TRACE = 5

_write_lock = threading.RLock()
_setup_lock = threading.Lock()
_configured = False

EventDict = MutableMapping[str, Any]


def _level_from_env() -> int:
    """MOBICORE_LOG_LEVEL: TRACE|DEBUG|INFO|WARNING|ERROR, INFO when unset or unknown."""
    raw = os.getenv("MOBICORE_LOG_LEVEL", "INFO").strip().upper()
    if raw == "TRACE":
        return TRACE
    level = logging.getLevelName(raw)
    return level if isinstance(level, int) else logging.INFO


def _file_safe(test_name: str) -> str:
    for ch in (os.sep, "/", " ", ":"):
        test_name = test_name.replace(ch, "_")
    return test_name


def _add_message(_logger: Any, _method: str, event_dict: EventDict) -> EventDict:
    # Log shippers index "message"; structlog calls it "event"
    event_dict.setdefault("message", event_dict.get("event"))
    return event_dict


def _drop_empty(_logger: Any, _method: str, event_dict: EventDict) -> EventDict:
    return {k: v for k, v in event_dict.items() if v is not None}


def _tee_to_files(_logger: Any, _method: str, event_dict: EventDict) -> EventDict:
    """
    Append every record to artifacts/logs/framework.log and, when a test
    is bound to the context, to artifacts/logs/test_<name>.log as well.
    """
    targets = [FRAMEWORK_LOG]
    test = event_dict.get("test")
    if isinstance(test, str) and test:
        targets.append(current_test_log_path(test))
    line = json.dumps(event_dict, ensure_ascii=False, default=str) + "\n"
    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        with _write_lock:
            for target in targets:
                with target.open("a", encoding="utf-8") as f:
                    f.write(line)
    except OSError:
        # Losing a log line must not fail the test run
        pass
    return event_dict


def current_test_log_path(test_name: str | None = None) -> Path:
    """Log file of the given test, or the framework log when no test is named."""
    if not test_name:
        return FRAMEWORK_LOG
    return LOG_DIR / f"test_{_file_safe(str(test_name))}.log"


def bind_context(
    *,
    settings: Any | None = None,
    handle: Any | None = None,
    test_name: str | None = None,
) -> None:
    """
    Add platform, device, session_id and test to every following record.

    Only what the given objects provide is bound, so binding a session keeps
    the test name and binding a test keeps the session.
    """
    values: dict[str, Any] = {}
    if settings is not None:
        platform = str(getattr(settings, "platform", "") or "").lower()
        if platform:
            values["platform"] = platform
        section = getattr(settings, platform, None) if platform in ("android", "ios") else None
        values["device"] = getattr(section, "device_name", None)
    if handle is not None:
        values["platform"] = getattr(getattr(handle, "platform", None), "value", None) or values.get("platform")
        values["session_id"] = getattr(handle, "session_id", None)
    if test_name is not None:
        values["test"] = test_name
    bind_contextvars(**{k: v for k, v in values.items() if v is not None})


def setup_logging() -> None:
    """
    Configure structlog once per process.

    Records are JSON lines on stdout with an ISO "timestamp", the log level,
    the calling module and the bound context, and are copied to the log
    files under artifacts/logs.
    """
    global _configured
    with _setup_lock:
        if _configured:
            return
        level = _level_from_env()
        structlog.configure(
            processors=[
                merge_contextvars,
                structlog.processors.add_log_level,
                structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
                structlog.processors.CallsiteParameterAdder(
                    [structlog.processors.CallsiteParameter.MODULE]
                ),
                _add_message,
                _drop_empty,
                _tee_to_files,
                structlog.processors.JSONRenderer(default=str),
            ],
            logger_factory=structlog.PrintLoggerFactory(),
            wrapper_class=structlog.make_filtering_bound_logger(level),
            cache_logger_on_first_use=True,
        )
        # Third-party libraries log through the stdlib root logger
        logging.getLogger().setLevel(level)
        _configured = True


def get_logger(name: str | None = None) -> Any:
    """Return a structlog logger, configuring logging on first use."""
    if not _configured:
        setup_logging()
    return structlog.get_logger(name or __name__)


__all__ = [
    "bind_context",
    "clear_contextvars",
    "current_test_log_path",
    "get_logger",
    "setup_logging",
]
