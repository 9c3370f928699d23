from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import pytest
from conftest import FakeDriver

from mobicore.drivers.base import DriverFactory
from mobicore.drivers.factory import open_driver
from mobicore.drivers.handle import DriverHandle, HandleState
from mobicore.errors import NotInitializedError, SessionStartError, UnsupportedPlatformError
from mobicore.platform import Platform

ANDROID_CAPS: Mapping[str, Any] = {
    "platformName": "Android",
    "appium:automationName": "UiAutomator2",
    "appium:deviceName": "Pixel_7",
}


def test_driverfactory_is_abstract() -> None:
    """You cannot instantiate a variant without capabilities and handshake."""
    with pytest.raises(TypeError):
        DriverFactory()  # type: ignore[abstract]


def test_open_android_driver(monkeypatch: pytest.MonkeyPatch) -> None:
    """open_driver should configure UiAutomator2 options and call webdriver.Remote."""
    called: dict[str, Any] = {}
    drv = FakeDriver("abc-123")

    def fake_remote(command_executor: str, options: Any) -> Any:
        called["executor"] = command_executor
        called["options"] = options
        return drv

    monkeypatch.setattr("mobicore.drivers.android.webdriver.Remote", fake_remote)

    handle = open_driver(Platform.ANDROID, "http://127.0.0.1:4723/", ANDROID_CAPS, 10)

    assert called["executor"] == "http://127.0.0.1:4723"
    caps = called["options"].to_capabilities()
    assert caps["platformName"] == "Android"
    assert caps["appium:deviceName"] == "Pixel_7"
    assert drv.implicit_waits == [10]
    assert handle.state is HandleState.LIVE
    assert handle.session_id == "abc-123"
    assert handle.platform is Platform.ANDROID
    assert handle.capabilities["appium:deviceName"] == "Pixel_7"


def test_open_ios_driver_uses_xcuitest_options(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: dict[str, Any] = {}

    def fake_remote(command_executor: str, options: Any) -> Any:
        seen["options"] = type(options).__name__
        return FakeDriver()

    monkeypatch.setattr("mobicore.drivers.ios.webdriver.Remote", fake_remote)

    handle = open_driver("ios", "http://localhost:4723", {"platformName": "iOS"}, 5)
    assert seen["options"] == "XCUITestOptions"
    assert handle.platform is Platform.IOS


@pytest.mark.parametrize("endpoint", ["", "127.0.0.1:4723", "ftp://host:4723", "http://", "http://host:port"])
def test_malformed_endpoint_fails_before_handshake(
    monkeypatch: pytest.MonkeyPatch, endpoint: str
) -> None:
    def fake_remote(command_executor: str, options: Any) -> Any:
        raise AssertionError("handshake must not be attempted")

    monkeypatch.setattr("mobicore.drivers.android.webdriver.Remote", fake_remote)

    with pytest.raises(SessionStartError, match="Malformed Appium server URL"):
        open_driver(Platform.ANDROID, endpoint, ANDROID_CAPS, 10)


def test_handshake_failure_is_wrapped(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_remote(command_executor: str, options: Any) -> Any:
        raise ConnectionRefusedError("connection refused")

    monkeypatch.setattr("mobicore.drivers.android.webdriver.Remote", fake_remote)

    with pytest.raises(SessionStartError) as ei:
        open_driver(Platform.ANDROID, "http://127.0.0.1:4723", ANDROID_CAPS, 10)
    assert isinstance(ei.value.__cause__, ConnectionRefusedError)


def test_partially_opened_session_is_quit(monkeypatch: pytest.MonkeyPatch) -> None:
    """If the implicit wait cannot be set, the new session is closed before the error surfaces."""
    drv = FakeDriver()

    def broken_wait(seconds: float) -> None:
        raise RuntimeError("session died")

    drv.implicitly_wait = broken_wait  # type: ignore[method-assign]
    monkeypatch.setattr("mobicore.drivers.android.webdriver.Remote", lambda **_: drv)

    with pytest.raises(SessionStartError, match="implicit wait"):
        open_driver(Platform.ANDROID, "http://127.0.0.1:4723", ANDROID_CAPS, 10)
    assert drv.quit_calls == 1


def test_unknown_platform_is_rejected() -> None:
    with pytest.raises(UnsupportedPlatformError):
        open_driver("windows", "http://127.0.0.1:4723", {}, 10)


# ----------------- DriverHandle -----------------
def test_handle_quit_is_idempotent(fake_driver: FakeDriver) -> None:
    handle = DriverHandle(fake_driver, Platform.ANDROID)  # type: ignore[arg-type]

    handle.quit()
    handle.quit()

    assert fake_driver.quit_calls == 1
    assert handle.state is HandleState.CLOSED
    with pytest.raises(NotInitializedError):
        _ = handle.driver


def test_handle_quit_closes_even_when_remote_fails(fake_driver: FakeDriver) -> None:
    fake_driver.quit_error = ConnectionError("socket closed")
    handle = DriverHandle(fake_driver, Platform.ANDROID)  # type: ignore[arg-type]

    with pytest.raises(ConnectionError):
        handle.quit()
    assert handle.state is HandleState.CLOSED


def test_handle_execute_runs_mobile_command(android_handle: DriverHandle, fake_driver: FakeDriver) -> None:
    result = android_handle.execute("mobile: clickGesture", {"x": 10, "y": 20})

    assert result == {"ok": True}
    assert fake_driver.scripts == [("mobile: clickGesture", {"x": 10, "y": 20})]
