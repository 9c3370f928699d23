from __future__ import annotations

import json

import pytest
import structlog
from structlog.contextvars import clear_contextvars, get_contextvars

from mobicore.config.models import AndroidConfig, Settings
from mobicore.drivers.handle import DriverHandle
from mobicore.utils.logging import bind_context, current_test_log_path, setup_logging


def test_setup_logging_produces_json(capsys: pytest.CaptureFixture[str]) -> None:
    """Configure logging and verify that structlog outputs JSON via JSONRenderer."""
    setup_logging()
    log = structlog.get_logger()
    log.info("hello", foo=123)

    out = capsys.readouterr().out.strip().splitlines()[-1]
    data = json.loads(out)
    assert data["event"] == "hello"
    assert data["message"] == "hello"
    assert data["level"] in ("info", "INFO")
    assert "timestamp" in data
    assert data["foo"] == 123


def test_bind_context_merges_values(android_handle: DriverHandle) -> None:
    clear_contextvars()
    settings = Settings(platform="android", android=AndroidConfig(device_name="Pixel_7"))

    bind_context(test_name="test_login")
    bind_context(settings=settings)
    bind_context(handle=android_handle)

    ctx = get_contextvars()
    assert ctx["test"] == "test_login"
    assert ctx["platform"] == "android"
    assert ctx["device"] == "Pixel_7"
    assert ctx["session_id"] == "sess-1"
    clear_contextvars()


def test_current_test_log_path() -> None:
    assert current_test_log_path("test a/b").name == "test_test_a_b.log"
    assert current_test_log_path(None).name == "framework.log"
