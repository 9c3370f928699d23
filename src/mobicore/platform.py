from __future__ import annotations

from enum import Enum

from .errors import UnsupportedPlatformError


class Platform(str, Enum):
    """
    Enumeration for supported mobile platforms.

    Read once from configuration per run and used to dispatch capability
    building and session creation.
    """

    ANDROID = "android"
    IOS = "ios"

    @classmethod
    def parse(cls, value: Platform | str | None) -> Platform:
        """
        Convert a configuration value into a Platform.

        Raises:
            UnsupportedPlatformError: If the value is not one of the supported platforms.
        """
        if isinstance(value, Platform):
            return value
        raw = (value or "").strip().lower() if isinstance(value, str) else ""
        try:
            return cls(raw)
        except ValueError:
            supported = ", ".join(p.value for p in cls)
            raise UnsupportedPlatformError(
                f"Unsupported platform '{value}'. Supported: {supported}"
            ) from None
