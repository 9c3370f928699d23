"""Platform dispatch: capability building and session opening share one table."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any
from urllib.parse import urlparse

from ..config.models import Settings
from ..errors import SessionStartError
from ..platform import Platform
from ..utils.logging import get_logger
from .android import AndroidDriverFactory
from .base import DriverFactory
from .handle import DriverHandle
from .ios import IOSDriverFactory

CapabilitySet = Mapping[str, Any]

PLATFORM_VARIANTS: Mapping[Platform, DriverFactory] = MappingProxyType(
    {
        Platform.ANDROID: AndroidDriverFactory(),
        Platform.IOS: IOSDriverFactory(),
    }
)

_log = get_logger(__name__)


def variant_for(platform: Platform | str) -> DriverFactory:
    """
    Return the platform variant for a platform value.

    Raises:
        UnsupportedPlatformError: If the platform is not supported.
    """
    return PLATFORM_VARIANTS[Platform.parse(platform)]


def build_capabilities(platform: Platform | str, settings: Settings) -> CapabilitySet:
    """
    Build the immutable capability set for a platform.

    User "raw" capabilities from settings are merged last and may override
    the defaults, but the result must still contain every mandatory key.

    Raises:
        UnsupportedPlatformError: If the platform is not supported.
        ConfigurationError: If a mandatory key is missing.
    """
    variant = variant_for(platform)
    caps = variant.capabilities(settings)
    caps.update(settings.capabilities.raw)
    variant.check_mandatory(caps)
    return MappingProxyType(caps)


def open_driver(
    platform: Platform | str,
    endpoint: str,
    capabilities: CapabilitySet,
    implicit_wait: float,
) -> DriverHandle:
    """
    Open a remote session and return a live handle.

    The factory never retries; retry policy belongs to the caller.

    Raises:
        UnsupportedPlatformError: If the platform is not supported.
        SessionStartError: If the endpoint is malformed or the handshake fails.
    """
    variant = variant_for(platform)
    executor = _normalise_endpoint(endpoint)

    try:
        drv = variant.handshake(executor, capabilities)
    except Exception as e:
        _log.error(
            "Session handshake failed",
            action="driver_start",
            platform=variant.platform.value,
            executor=executor,
            error=str(e),
        )
        raise SessionStartError(
            f"Failed to initialize {variant.platform_name} driver at {executor}: {e}"
        ) from e

    try:
        drv.implicitly_wait(implicit_wait)
    except Exception as e:
        # Handshake succeeded: do not leak the half-configured session
        try:
            drv.quit()
        except Exception as quit_error:
            _log.warning(
                "Failed to close partially started session",
                action="driver_quit",
                error=str(quit_error),
            )
        raise SessionStartError(
            f"Failed to configure implicit wait on {variant.platform_name} session: {e}"
        ) from e

    return DriverHandle(drv, variant.platform, capabilities)


def _normalise_endpoint(endpoint: str) -> str:
    raw = str(endpoint or "").strip()
    parsed = urlparse(raw)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise SessionStartError(f"Malformed Appium server URL: '{endpoint}'")
    try:
        parsed.port  # noqa: B018 - raises ValueError on an invalid port
    except ValueError as e:
        raise SessionStartError(f"Malformed Appium server URL: '{endpoint}'") from e
    return raw.rstrip("/")
