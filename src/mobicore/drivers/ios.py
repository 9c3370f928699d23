from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from appium import webdriver
from appium.options.ios import XCUITestOptions

from ..config.models import IOSConfig
from ..platform import Platform
from ..utils.logging import get_logger
from .base import DriverFactory


class IOSDriverFactory(DriverFactory):
    """
    iOS variant: XCUITest sessions.

    Policy: system alerts are dismissed automatically
    (`appium:autoDismissAlerts`, on by default). The app is identified by
    its bundle id, its .app/.ipa path, or both.
    """

    platform = Platform.IOS
    platform_name = "iOS"
    automation_name = "XCUITest"
    mandatory_settings = (("device_name",), ("platform_version",), ("bundle_id", "app_path"))

    def __init__(self) -> None:
        self._log = get_logger(__name__)

    def platform_capabilities(self, section: IOSConfig) -> dict[str, Any]:
        caps: dict[str, Any] = {
            "appium:platformVersion": section.platform_version,
            "appium:deviceName": section.device_name,
            "appium:autoDismissAlerts": section.auto_dismiss_alerts,
            "appium:autoAcceptAlerts": section.auto_accept_alerts,
            "appium:newCommandTimeout": section.new_command_timeout,
            "appium:autoLaunch": section.auto_launch,
        }
        if section.bundle_id:
            caps["appium:bundleId"] = section.bundle_id
        if section.app_path:
            caps["appium:app"] = section.app_path
        if section.udid:
            caps["appium:udid"] = section.udid
        return caps

    def handshake(self, endpoint: str, capabilities: Mapping[str, Any]) -> webdriver.Remote:
        opts = XCUITestOptions()
        for k, v in capabilities.items():
            opts.set_capability(k, v)

        self._log.info("Creating iOS WebDriver", action="driver_start", executor=endpoint)
        drv = webdriver.Remote(command_executor=endpoint, options=opts)
        self._log.info(
            "iOS WebDriver created",
            action="driver_ready",
            session_id=getattr(drv, "session_id", None),
        )
        return drv
