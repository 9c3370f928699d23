from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType
from typing import Any

from appium.webdriver.webdriver import WebDriver

from ..errors import NotInitializedError
from ..platform import Platform
from ..utils.logging import get_logger


class HandleState(str, Enum):
    """Lifecycle of a remote session as seen by the framework."""

    ABSENT = "absent"
    LIVE = "live"
    QUITTING = "quitting"
    CLOSED = "closed"


class DriverHandle:
    """
    Opaque reference to one live remote automation session.

    Owns exactly one WebDriver. Calls through a handle must come from a
    single worker; the remote server does not multiplex commands on one session.
    """

    def __init__(
        self,
        driver: WebDriver,
        platform: Platform,
        capabilities: Mapping[str, Any] | None = None,
    ) -> None:
        self._driver = driver
        self.platform = platform
        self.capabilities: Mapping[str, Any] = MappingProxyType(dict(capabilities or {}))
        self.state = HandleState.LIVE
        self._log = get_logger(__name__)

    def __repr__(self) -> str:
        return (
            f"DriverHandle(platform={self.platform.value!r}, "
            f"session_id={self.session_id!r}, state={self.state.value!r})"
        )

    @property
    def session_id(self) -> str | None:
        return getattr(self._driver, "session_id", None)

    @property
    def is_live(self) -> bool:
        return self.state is HandleState.LIVE

    @property
    def driver(self) -> WebDriver:
        """The underlying WebDriver; only available while the session is live."""
        if self.state is not HandleState.LIVE:
            raise NotInitializedError(
                f"Driver handle for session {self.session_id} is {self.state.value}"
            )
        return self._driver

    def execute(self, command: str, args: Mapping[str, Any] | None = None) -> Any:
        """
        Run an Appium extension command (e.g. "mobile: clickGesture") on the session.

        Returns:
            Any: Command result as returned by the server.
        """
        return self.driver.execute_script(command, dict(args or {}))

    def quit(self) -> None:
        """
        Close the remote session. Safe to call more than once.

        Transport errors from the remote teardown propagate; the handle is
        closed either way.
        """
        if self.state in (HandleState.QUITTING, HandleState.CLOSED):
            return
        self.state = HandleState.QUITTING
        self._log.info("Quitting driver session", action="driver_quit", session_id=self.session_id)
        try:
            self._driver.quit()
        finally:
            self.state = HandleState.CLOSED
