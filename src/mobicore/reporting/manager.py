from __future__ import annotations

import threading
from datetime import datetime
from pathlib import Path
from typing import Any, ClassVar, Literal

import allure

from ..config.loader import get_settings
from ..config.models import ReportingSettings
from ..errors import ConfigurationError
from ..utils.logging import get_logger
from .sink import ArtifactSink, FileArtifactSink

# Screenshot file timestamp, e.g. 20250131_142501
SCREENSHOT_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"

Event = Literal["success", "failure"]


class ReportManager:
    """
    Collects diagnostics of a test: allure attachments of the current screen
    and view hierarchy, and screenshot files written through an artifact sink.

    Capturing never raises. A session that already died must not replace the
    failure being reported with a transport error.
    """

    _default: ClassVar[ReportManager | None] = None
    _default_lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(
        self,
        reporting: ReportingSettings | None = None,
        sink: ArtifactSink | None = None,
    ) -> None:
        self.settings = reporting or ReportingSettings()
        self.sink: ArtifactSink = sink or FileArtifactSink(self.settings.artifacts_root)
        self.allure_dir = Path(self.settings.allure_dir)
        self.allure_dir.mkdir(parents=True, exist_ok=True)
        self._log = get_logger(__name__)

    @classmethod
    def get_default(cls) -> ReportManager:
        """Process-wide manager; built from the loaded settings on first use."""
        if cls._default is None:
            with cls._default_lock:
                if cls._default is None:
                    try:
                        reporting = get_settings().reporting
                    except ConfigurationError:
                        reporting = ReportingSettings()
                    cls._default = ReportManager(reporting)
        return cls._default

    @classmethod
    def set_default(cls, manager: ReportManager | None) -> None:
        cls._default = manager

    def attach_screenshot(self, driver: Any, name: str = "screenshot") -> None:
        """Attach the current screen as PNG."""
        try:
            allure.attach(
                driver.get_screenshot_as_png(), name=name, attachment_type=allure.attachment_type.PNG
            )
        except Exception as e:
            self._log.warning("Screenshot attachment failed", action="attach", error=str(e))

    def attach_page_source(self, driver: Any, name: str = "page source") -> None:
        """Attach the view hierarchy as XML."""
        try:
            source = driver.page_source
            if source:
                allure.attach(source, name=name, attachment_type=allure.attachment_type.XML)
        except Exception as e:
            self._log.warning("Page source attachment failed", action="attach", error=str(e))

    def attach_screenshot_if_allowed(self, driver: Any, *, when: Event) -> None:
        enabled = (
            self.settings.screenshots_on_fail if when == "failure" else self.settings.screenshots_on_success
        )
        if enabled:
            self.attach_screenshot(driver, self.settings.screenshot_name)

    def attach_page_source_if_allowed(self, driver: Any, *, when: Event) -> None:
        enabled = (
            self.settings.page_source_on_fail if when == "failure" else self.settings.page_source_on_success
        )
        if enabled:
            self.attach_page_source(driver, self.settings.page_source_name)

    def attach_artifacts_on_failure(self, driver: Any) -> None:
        """Screenshot and page source of a failed step, as far as the policy allows."""
        self.attach_screenshot_if_allowed(driver, when="failure")
        self.attach_page_source_if_allowed(driver, when="failure")

    def save_screenshot(
        self, driver: Any, test_name: str, *, now: datetime | None = None
    ) -> Path | None:
        """
        Save a screenshot as `<screenshots_dir>/<test_name>_<yyyyMMdd_HHmmss>.png`.

        Returns:
            Path | None: Written file, or None when capture or write failed (the error is logged).
        """
        stamp = (now or datetime.now()).strftime(SCREENSHOT_TIMESTAMP_FORMAT)
        relative = f"{self.settings.screenshots_dir}/{safe_file_stem(test_name)}_{stamp}.png"
        try:
            path = self.sink.write(relative, driver.get_screenshot_as_png())
        except Exception as e:
            self._log.error("Failed to take screenshot", action="screenshot", error=str(e))
            return None
        self._log.info("Screenshot saved", action="screenshot", path=str(path))
        return path


def safe_file_stem(name: str) -> str:
    """Make a test name usable as a file name."""
    return "".join(c if c.isalnum() or c in "-_.[]" else "_" for c in name) or "test"
