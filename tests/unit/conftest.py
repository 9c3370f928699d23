from __future__ import annotations

import base64
from collections.abc import Generator
from typing import Any

import pytest
from selenium.common.exceptions import NoSuchElementException

from mobicore.config.loader import reset_settings
from mobicore.drivers.handle import DriverHandle
from mobicore.platform import Platform
from mobicore.reporting.lifecycle import HookManager
from mobicore.reporting.manager import ReportManager

VIDEO_BYTES = b"\x00\x00\x00\x18ftypmp42"


class FakeEl:
    """Fake element with visibility, enabled state and a bounding box."""

    def __init__(
        self,
        visible: bool = True,
        enabled: bool = True,
        rect: dict[str, int] | None = None,
    ) -> None:
        self.visible = visible
        self.enabled = enabled
        self.rect = rect or {"x": 0, "y": 0, "width": 100, "height": 40}
        self.clicked = 0
        self.cleared = 0
        self.sent: list[str] = []
        self.fail_on: set[str] = set()

    def is_displayed(self) -> bool:
        return self.visible

    def is_enabled(self) -> bool:
        return self.enabled

    def click(self) -> None:
        if "click" in self.fail_on:
            raise RuntimeError("element click intercepted")
        self.clicked += 1

    def clear(self) -> None:
        self.cleared += 1

    def send_keys(self, s: str) -> None:
        if "send_keys" in self.fail_on:
            raise RuntimeError("element not interactable")
        self.sent.append(s)


class FakeDriver:
    """Minimal Appium driver stub: elements, W3C actions, recording and keyboard."""

    def __init__(self, session_id: str = "sess-1") -> None:
        self.session_id = session_id
        self.elements: dict[tuple[str, str], FakeEl] = {}
        self.executed: list[tuple[str, dict[str, Any]]] = []
        self.scripts: list[tuple[str, dict[str, Any]]] = []
        self.implicit_waits: list[float] = []
        self.quit_calls = 0
        self.quit_error: Exception | None = None
        self.recording_started = 0
        self.recording_payload: str | None = base64.b64encode(VIDEO_BYTES).decode()
        self.keyboard_shown = False
        self.keyboard_hidden = 0
        self.screenshot: bytes = b"\x89PNG fake"

    # elements
    def find_element(self, by: str, value: str) -> FakeEl:
        try:
            return self.elements[(by, value)]
        except KeyError:
            raise NoSuchElementException(f"no element {by}={value}") from None

    def add(self, locator: tuple[str, str], el: FakeEl | None = None) -> FakeEl:
        el = el or FakeEl()
        self.elements[locator] = el
        return el

    # session
    def implicitly_wait(self, seconds: float) -> None:
        self.implicit_waits.append(seconds)

    def quit(self) -> None:
        self.quit_calls += 1
        if self.quit_error is not None:
            raise self.quit_error

    def execute(self, command: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        self.executed.append((command, params or {}))
        return {"value": None}

    def execute_script(self, script: str, args: dict[str, Any]) -> Any:
        self.scripts.append((script, args))
        return {"ok": True}

    # artifacts
    def get_screenshot_as_png(self) -> bytes:
        return self.screenshot

    @property
    def page_source(self) -> str:
        return "<hierarchy/>"

    def start_recording_screen(self) -> None:
        self.recording_started += 1

    def stop_recording_screen(self) -> str | None:
        return self.recording_payload

    # keyboard
    def is_keyboard_shown(self) -> bool:
        return self.keyboard_shown

    def hide_keyboard(self) -> None:
        self.keyboard_hidden += 1
        self.keyboard_shown = False


@pytest.fixture()
def fake_driver() -> FakeDriver:
    return FakeDriver()


@pytest.fixture()
def android_handle(fake_driver: FakeDriver) -> DriverHandle:
    return DriverHandle(fake_driver, Platform.ANDROID, {"platformName": "Android"})  # type: ignore[arg-type]


@pytest.fixture(autouse=True)
def _isolate_globals() -> Generator[None, None, None]:
    """Each test starts without process-wide settings, report manager or hook manager."""
    reset_settings()
    ReportManager.set_default(None)
    HookManager.set_default(None)
    yield
    reset_settings()
    ReportManager.set_default(None)
    HookManager.set_default(None)
