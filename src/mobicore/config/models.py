from __future__ import annotations

from typing import cast

from pydantic import BaseModel, ConfigDict, Field, HttpUrl
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from ..errors import ConfigurationError


class _Frozen(BaseModel):
    """Settings sections are immutable once loaded."""

    model_config = ConfigDict(frozen=True)


class ReportingSettings(_Frozen):
    """Where artifacts go and which ones are attached to the allure report."""

    allure_dir: str = "artifacts/allure"  # allure results
    artifacts_root: str = "."  # root of the artifact sink
    videos_dir: str = "build/videos"  # relative to artifacts_root
    screenshots_dir: str = "screenshots"  # relative to artifacts_root
    screenshots_on_fail: bool = True
    screenshots_on_success: bool = False
    page_source_on_fail: bool = True
    page_source_on_success: bool = False
    screenshot_name: str = "screenshot"  # allure attachment names
    page_source_name: str = "page source"


class AppiumServer(_Frozen):
    """Remote automation endpoint."""

    url: HttpUrl = cast(HttpUrl, "http://127.0.0.1:4723/")
    implicit_wait: int = Field(default=10, ge=0)  # seconds, applied to every new session


class AndroidConfig(_Frozen):
    """
    UiAutomator2 target. device_name, platform_version and app_path are
    required to start a session; their absence is reported by key.
    """

    device_name: str | None = None
    platform_version: str | None = None
    app_path: str | None = None  # .apk
    udid: str | None = None  # physical device serial
    app_package: str | None = None
    app_activity: str | None = None
    no_reset: bool = False
    new_command_timeout: int = 100  # seconds
    auto_grant_permissions: bool = True
    auto_launch: bool = True


class IOSConfig(_Frozen):
    """
    XCUITest target. device_name and platform_version are required, plus
    bundle_id or app_path.
    """

    device_name: str | None = None
    platform_version: str | None = None
    app_path: str | None = None  # .app or .ipa
    bundle_id: str | None = None
    udid: str | None = None
    auto_accept_alerts: bool = False
    auto_dismiss_alerts: bool = True
    new_command_timeout: int = 100  # seconds
    auto_launch: bool = True


class Credentials(_Frozen):
    """Test account used by login flows."""

    username: str | None = None
    password: str | None = None


class WaitSettings(_Frozen):
    """Default timeouts of the wait engine (seconds)."""

    timeout: float = Field(default=20.0, gt=0)  # wait_until and page load
    poll_interval: float = Field(default=0.5, gt=0)  # fixed pause between attempts
    visible_timeout: float = Field(default=30.0, gt=0)
    clickable_timeout: float = Field(default=30.0, gt=0)


class InteractionSettings(_Frozen):
    """Gesture parameters for coordinate-based taps."""

    tap_pause_ms: int = Field(default=200, ge=0)  # hold between pointer down and up
    fallback_tap_point: tuple[int, int] | None = None  # used by tap_configured_point


class Capabilities(_Frozen):
    """Extra capabilities merged over the built ones."""

    raw: dict[str, str | int | bool] = Field(default_factory=dict)


class Settings(BaseSettings):
    """
    Run configuration.

    Environment variables (MOBICORE_ prefix, "__" between nested keys) win
    over values passed in, which normally come from the YAML file. The
    object is frozen: it is built once per run and read concurrently by
    workers. Overrides produce a copy (`model_copy(update=...)`).
    """

    model_config = SettingsConfigDict(
        env_prefix="MOBICORE_", env_nested_delimiter="__", frozen=True
    )

    platform: str = "android"  # validated when a session starts
    appium: AppiumServer = AppiumServer()
    android: AndroidConfig | None = None
    ios: IOSConfig | None = None
    credentials: Credentials = Credentials()
    waits: WaitSettings = WaitSettings()
    interaction: InteractionSettings = InteractionSettings()
    reporting: ReportingSettings = ReportingSettings()
    capabilities: Capabilities = Capabilities()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (env_settings, init_settings, dotenv_settings, file_secret_settings)

    def require_credentials(self) -> tuple[str, str]:
        """Return (username, password) or fail naming the missing key."""
        for key in ("username", "password"):
            if not getattr(self.credentials, key):
                raise ConfigurationError(f"Property 'credentials.{key}' not found in configuration")
        return cast(str, self.credentials.username), cast(str, self.credentials.password)
