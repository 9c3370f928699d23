from __future__ import annotations

from pathlib import Path

import allure
from selenium.webdriver.common.action_chains import ActionChains
from selenium.webdriver.common.actions.action_builder import ActionBuilder
from selenium.webdriver.common.actions.pointer_input import PointerInput
from selenium.webdriver.remote.webelement import WebElement

from ..config.models import InteractionSettings
from ..drivers.handle import DriverHandle
from ..errors import ActionFailedError, ConfigurationError, WaitTimeoutError
from ..platform import Platform
from ..reporting.manager import ReportManager
from ..utils.logging import get_logger
from .locators import Locator, pretty_locator
from .waits import WaitEngine


class MobileActions:
    """
    User-facing interactions built on the wait engine.

    Every action first waits for its element (clickable for clicks, visible
    for text entry and taps) and then acts. Failures name the logical
    element, e.g. "Login Button", rather than only its locator.
    """

    def __init__(
        self,
        handle: DriverHandle,
        waits: WaitEngine | None = None,
        report_manager: ReportManager | None = None,
        interaction: InteractionSettings | None = None,
    ) -> None:
        self.handle = handle
        self.waits = waits or WaitEngine(handle)
        self.report_manager = report_manager or ReportManager.get_default()
        self.interaction = interaction or InteractionSettings()
        self._log = get_logger(__name__)

    @property
    def driver(self):  # type: ignore[no-untyped-def]
        return self.handle.driver

    def click(self, target: Locator, name: str, *, timeout: float | None = None) -> None:
        """Wait for the element to be clickable and click it."""
        loc = pretty_locator(self.handle.platform, target)
        with allure.step(f"Click {name}"):
            self._log.info("Click on element", action="click", element=name, locator=loc)
            el = self._await(self.waits.wait_for_clickable, target, name, timeout, "click")
            self._interact(name, "click", el.click)

    def type_text(
        self,
        target: Locator,
        text: str,
        name: str,
        *,
        clear: bool = True,
        timeout: float | None = None,
    ) -> None:
        """Wait for the field to be visible, focus it, optionally clear it and type."""
        loc = pretty_locator(self.handle.platform, target)
        with allure.step(f"Enter text in {name}"):
            self._log.info("Text input", action="type", element=name, locator=loc, clear=clear)
            el = self._await(self.waits.wait_for_visible, target, name, timeout, "enter text in")

            def _type() -> None:
                el.click()
                if clear:
                    el.clear()
                el.send_keys(text)

            self._interact(name, "enter text in", _type)

    def tap_by_coordinates(
        self, target: Locator, name: str, *, timeout: float | None = None
    ) -> tuple[int, int]:
        """
        Tap the centre of the element's bounding box with a touch gesture.

        Used where a direct element click is known not to register on a given
        platform/widget combination.

        Returns:
            tuple[int, int]: The tapped point.
        """
        with allure.step(f"Tap {name} by coordinates"):
            el = self._await(self.waits.wait_for_visible, target, name, timeout, "tap")
            x, y = element_center(el)
            self._log.info("Tap by coordinates", action="tap", element=name, x=x, y=y)
            self._interact(name, "tap", lambda: self._tap(x, y))
            return x, y

    def tap_configured_point(self, name: str) -> tuple[int, int]:
        """
        Tap the screen point configured as `interaction.fallback_tap_point`.

        Raises:
            ConfigurationError: If no fallback point is configured.
        """
        point = self.interaction.fallback_tap_point
        if point is None:
            raise ConfigurationError(
                "Property 'interaction.fallback_tap_point' not found in configuration"
            )
        x, y = point
        with allure.step(f"Tap {name} at configured point ({x}, {y})"):
            self._log.info("Tap at configured point", action="tap", element=name, x=x, y=y)
            self._interact(name, "tap", lambda: self._tap(x, y))
        return x, y

    def close_keyboard(self) -> None:
        """Hide the Android soft keyboard if it is shown. Never fails the test."""
        if self.handle.platform is not Platform.ANDROID:
            return
        try:
            if self.driver.is_keyboard_shown():
                self.driver.hide_keyboard()
                self._log.info("Keyboard closed", action="hide_keyboard")
        except Exception as e:
            self._log.info("Keyboard was not open, nothing to close", action="hide_keyboard", error=str(e))

    def take_screenshot(self, test_name: str) -> Path | None:
        """Save `screenshots/<test_name>_<yyyyMMdd_HHmmss>.png`; None if it could not be taken."""
        return self.report_manager.save_screenshot(self.driver, test_name)

    # ---- Internals ----
    def _await(self, wait, target: Locator, name: str, timeout: float | None, action: str) -> WebElement:  # type: ignore[no-untyped-def]
        try:
            return wait(target, name, timeout=timeout)
        except WaitTimeoutError:
            self._log.error("Element not ready", action=action, element=name)
            self.report_manager.attach_artifacts_on_failure(self.driver)
            raise

    def _interact(self, name: str, action: str, perform) -> None:  # type: ignore[no-untyped-def]
        try:
            perform()
        except Exception as e:
            self._log.error(f"Failed to {action} element", action=action, element=name, error=str(e))
            self.report_manager.attach_artifacts_on_failure(self.driver)
            raise ActionFailedError(name, action, e) from e
        self.report_manager.attach_screenshot_if_allowed(self.driver, when="success")

    def _tap(self, x: int, y: int) -> None:
        """W3C touch sequence: move, pointer down, pause, pointer up."""
        finger = PointerInput("touch", "finger")
        actions = ActionChains(self.driver)
        actions.w3c_actions = ActionBuilder(self.driver, mouse=finger)
        a = actions.w3c_actions.pointer_action
        a.move_to_location(int(x), int(y))
        a.pointer_down()
        a.pause(self.interaction.tap_pause_ms / 1000.0)
        a.release()
        actions.perform()


def element_center(el: WebElement) -> tuple[int, int]:
    """Centre point of an element's bounding box."""
    rect = el.rect or {}
    x = int(rect.get("x", 0) + rect.get("width", 0) / 2)
    y = int(rect.get("y", 0) + rect.get("height", 0) / 2)
    return x, y
