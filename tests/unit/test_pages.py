from __future__ import annotations

from pathlib import Path

import pytest
from conftest import FakeDriver, FakeEl

from mobicore.config.models import ReportingSettings
from mobicore.core.actions import MobileActions
from mobicore.core.locators import by_accessibility_id
from mobicore.core.waits import WaitEngine
from mobicore.drivers.handle import DriverHandle
from mobicore.errors import WaitTimeoutError
from mobicore.pages.base import Page, PageDescriptor, PageObject
from mobicore.reporting.manager import ReportManager

OUR_SERVICES = by_accessibility_id("Our services")


def _login_page(handle: DriverHandle, timeout: float = 0.2) -> Page:
    waits = WaitEngine(handle)
    waits.poll_interval = 0.02
    return Page(PageDescriptor.by_element("Login Page", OUR_SERVICES, timeout=timeout), handle, waits=waits)


def test_page_satisfies_protocol(android_handle: DriverHandle) -> None:
    page = _login_page(android_handle)
    assert isinstance(page, PageObject)
    assert page.page_name() == "Login Page"


def test_wait_for_load_when_element_visible(android_handle: DriverHandle, fake_driver: FakeDriver) -> None:
    fake_driver.add(OUR_SERVICES)
    _login_page(android_handle).wait_for_load()


def test_wait_for_load_times_out(android_handle: DriverHandle) -> None:
    with pytest.raises(WaitTimeoutError) as ei:
        _login_page(android_handle).wait_for_load()
    assert ei.value.description == "Login Page is loaded"


def test_is_displayed(android_handle: DriverHandle, fake_driver: FakeDriver) -> None:
    page = _login_page(android_handle)
    assert page.is_displayed() is False

    fake_driver.add(OUR_SERVICES, FakeEl(visible=False))
    assert page.is_displayed() is False

    fake_driver.elements[OUR_SERVICES].visible = True
    assert page.is_displayed() is True


def test_is_displayed_never_raises_on_dead_session(android_handle: DriverHandle) -> None:
    page = _login_page(android_handle)
    android_handle.quit()
    assert page.is_displayed() is False


def test_custom_readiness_predicate(android_handle: DriverHandle) -> None:
    descriptor = PageDescriptor(
        "Home Page", lambda _waits, drv: drv.page_source.startswith("<hierarchy"), timeout=0.2
    )
    assert Page(descriptor, android_handle).is_displayed() is True


def test_actions_share_handle_and_waits(
    android_handle: DriverHandle, tmp_path: Path
) -> None:
    ReportManager.set_default(
        ReportManager(ReportingSettings(allure_dir=str(tmp_path / "allure"), artifacts_root=str(tmp_path)))
    )
    page = _login_page(android_handle)

    actions = page.actions
    assert isinstance(actions, MobileActions)
    assert actions.handle is android_handle
    assert actions.waits is page.waits
    assert page.actions is actions
