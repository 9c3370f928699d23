from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, ClassVar

from appium.webdriver.webdriver import WebDriver

from ..config.models import AndroidConfig, IOSConfig, Settings
from ..errors import ConfigurationError
from ..platform import Platform

# Every capability set must carry these keys; the last group is satisfied by any one member.
COMMON_MANDATORY_CAPABILITIES: tuple[tuple[str, ...], ...] = (
    ("platformName",),
    ("appium:automationName",),
    ("appium:platformVersion",),
    ("appium:deviceName",),
    ("appium:app", "appium:bundleId"),
)


class DriverFactory(ABC):
    """
    Abstract base class for platform variants.

    A variant owns everything platform specific about starting a session:
    the settings keys it requires, the capability policy it applies and
    the handshake routine that opens the remote session.
    """

    platform: ClassVar[Platform]
    platform_name: ClassVar[str]
    automation_name: ClassVar[str]
    # Settings keys inside the platform section; each group needs at least one value.
    mandatory_settings: ClassVar[tuple[tuple[str, ...], ...]]
    mandatory_capabilities: ClassVar[tuple[tuple[str, ...], ...]] = COMMON_MANDATORY_CAPABILITIES

    def capabilities(self, settings: Settings) -> dict[str, Any]:
        """
        Build the base capabilities of this platform from settings.

        Raises:
            ConfigurationError: If a mandatory settings key is missing.
        """
        section = self.section(settings)
        for group in self.mandatory_settings:
            if not any(section is not None and getattr(section, key, None) for key in group):
                keys = " or ".join(f"{self.platform.value}.{key}" for key in group)
                raise ConfigurationError(f"Property '{keys}' not found in configuration")

        caps: dict[str, Any] = {
            "platformName": self.platform_name,
            "appium:automationName": self.automation_name,
        }
        caps.update(self.platform_capabilities(section))  # type: ignore[arg-type]
        return caps

    def section(self, settings: Settings) -> AndroidConfig | IOSConfig | None:
        """Return the platform-specific settings section."""
        return getattr(settings, self.platform.value, None)

    def check_mandatory(self, capabilities: Mapping[str, Any]) -> None:
        """Fail if the final capability set lacks a mandatory key."""
        for group in self.mandatory_capabilities:
            if not any(capabilities.get(key) not in (None, "") for key in group):
                raise ConfigurationError(
                    f"Capability '{' or '.join(group)}' is missing for {self.platform_name}"
                )

    @abstractmethod
    def platform_capabilities(self, section: Any) -> dict[str, Any]:
        """Return platform capabilities, including documented default policies."""
        ...

    @abstractmethod
    def handshake(self, endpoint: str, capabilities: Mapping[str, Any]) -> WebDriver:
        """
        Open a remote session on the endpoint.

        Args:
            endpoint (str): Appium server URL without a trailing slash.
            capabilities (Mapping[str, Any]): Complete capability set.

        Returns:
            WebDriver: Appium WebDriver bound to the new session.
        """
        ...
