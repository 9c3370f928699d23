from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from appium import webdriver
from appium.options.android import UiAutomator2Options

from ..config.models import AndroidConfig
from ..platform import Platform
from ..utils.logging import get_logger
from .base import DriverFactory


class AndroidDriverFactory(DriverFactory):
    """
    Android variant: UiAutomator2 sessions.

    Policy: runtime permissions are granted automatically
    (`appium:autoGrantPermissions`, on by default) so permission dialogs do
    not block the first screens of the app.
    """

    platform = Platform.ANDROID
    platform_name = "Android"
    automation_name = "UiAutomator2"
    mandatory_settings = (("device_name",), ("platform_version",), ("app_path",))

    def __init__(self) -> None:
        self._log = get_logger(__name__)

    def platform_capabilities(self, section: AndroidConfig) -> dict[str, Any]:
        caps: dict[str, Any] = {
            "appium:platformVersion": section.platform_version,
            "appium:deviceName": section.device_name,
            "appium:app": section.app_path,
            "appium:autoGrantPermissions": section.auto_grant_permissions,
            "appium:noReset": section.no_reset,
            "appium:newCommandTimeout": section.new_command_timeout,
            "appium:autoLaunch": section.auto_launch,
        }
        if section.udid:
            caps["appium:udid"] = section.udid
        if section.app_package:
            caps["appium:appPackage"] = section.app_package
        if section.app_activity:
            caps["appium:appActivity"] = section.app_activity
        return caps

    def handshake(self, endpoint: str, capabilities: Mapping[str, Any]) -> webdriver.Remote:
        opts = UiAutomator2Options()
        for k, v in capabilities.items():
            opts.set_capability(k, v)

        self._log.info("Creating Android WebDriver", action="driver_start", executor=endpoint)
        drv = webdriver.Remote(command_executor=endpoint, options=opts)
        self._log.info(
            "Android WebDriver created",
            action="driver_ready",
            session_id=getattr(drv, "session_id", None),
        )
        return drv
