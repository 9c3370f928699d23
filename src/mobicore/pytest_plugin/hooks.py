from __future__ import annotations

import os
from collections.abc import Generator
from typing import Any

import allure
import pytest

from mobicore.reporting.lifecycle import HookManager
from mobicore.reporting.manager import ReportManager
from mobicore.session.registry import registry
from mobicore.utils.logging import current_test_log_path, get_logger

RECORD_SCREEN_MARKER = "record_screen"

# Lines of the test log attached to the report on failure
LOG_TAIL_LINES = 200

_logger = get_logger(__name__)


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        f"{RECORD_SCREEN_MARKER}: record the device screen and save it as <test>_PASSED|_FAILED.mp4",
    )


@pytest.hookimpl(wrapper=True)
def pytest_runtest_call(item: pytest.Item) -> Generator[None, Any, Any]:
    """
    Run the test body inside the lifecycle hook manager when it is marked
    with `record_screen`. The test's own exception is re-raised unchanged.
    """
    if item.get_closest_marker(RECORD_SCREEN_MARKER) is None:
        return (yield)
    with HookManager.get_default().invocation(item.name, record=True):
        return (yield)


def pytest_runtest_makereport(item: Any, call: Any) -> None:
    """
    Pytest hook: called after each test phase (setup, call, teardown).

    When the main test phase (call) fails, saves a screenshot of the current
    session and attaches the tail of the test log to the Allure report.
    """
    if getattr(call, "when", None) != "call" or getattr(call, "excinfo", None) is None:
        return
    name = getattr(item, "name", "test")
    _save_failure_screenshot(name)
    _attach_log_tail(name)


def _save_failure_screenshot(test_name: str) -> None:
    if not registry.is_initialized():
        return
    try:
        driver = registry.get().driver
    except Exception as e:
        _logger.warning("No live session for failure screenshot", action="screenshot", error=str(e))
        return
    ReportManager.get_default().save_screenshot(driver, test_name)


def _attach_log_tail(test_name: str) -> None:
    path = current_test_log_path(test_name)
    if not os.path.exists(path):
        return
    try:
        with open(path, encoding="utf-8", errors="ignore") as f:
            content = "".join(f.readlines()[-LOG_TAIL_LINES:])
    except OSError as e:
        _logger.warning("Failed to read test log", action="attach", path=str(path), error=str(e))
        return
    if content:
        allure.attach(content, name="Recent logs", attachment_type=allure.attachment_type.TEXT)
