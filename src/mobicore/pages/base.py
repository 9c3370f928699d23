from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from selenium.webdriver.remote.webdriver import WebDriver

from ..core.actions import MobileActions
from ..core.locators import Locator, resolve_locators
from ..core.waits import WaitEngine
from ..drivers.handle import DriverHandle
from ..session.registry import SessionRegistry
from ..session.registry import registry as default_registry
from ..utils.logging import get_logger

# Page load timeout (seconds)
DEFAULT_PAGE_TIMEOUT = 20.0


@runtime_checkable
class PageObject(Protocol):
    """Anything that can tell whether its screen is loaded."""

    def wait_for_load(self) -> None: ...

    def page_name(self) -> str: ...

    def is_displayed(self) -> bool: ...


@dataclass(frozen=True)
class PageDescriptor:
    """
    Identity of a screen: a human-readable name and a readiness check.

    `ready` receives the wait engine and the driver and must raise or return a
    falsy value while the screen is not loaded.
    """

    name: str
    ready: Callable[[WaitEngine, WebDriver], Any]
    timeout: float = DEFAULT_PAGE_TIMEOUT

    @staticmethod
    def by_element(name: str, target: Locator, timeout: float = DEFAULT_PAGE_TIMEOUT) -> PageDescriptor:
        """Screen is loaded once its identifying element is visible."""

        def _ready(waits: WaitEngine, drv: WebDriver) -> bool:
            for strategy, value in resolve_locators(waits.handle.platform, target):
                el = drv.find_element(strategy, value)
                if el.is_displayed():
                    return True
            return False

        return PageDescriptor(name=name, ready=_ready, timeout=timeout)


class Page:
    """
    A screen of the application under test.

    Pages are composed from a descriptor and a session rather than derived
    from a base class: concrete screens hold a `Page` and expose their own
    elements and flows on top of `page.actions`.
    """

    def __init__(
        self,
        descriptor: PageDescriptor,
        handle: DriverHandle | None = None,
        registry: SessionRegistry | None = None,
        waits: WaitEngine | None = None,
    ) -> None:
        self.descriptor = descriptor
        self._registry = registry or default_registry
        self._handle = handle
        self._waits = waits
        self._actions: MobileActions | None = None
        self._log = get_logger(__name__)

    @property
    def handle(self) -> DriverHandle:
        return self._handle if self._handle is not None else self._registry.get()

    @property
    def waits(self) -> WaitEngine:
        if self._waits is None:
            self._waits = WaitEngine(self._handle, registry=self._registry)
        return self._waits

    @property
    def actions(self) -> MobileActions:
        """Actions bound to the same session and wait engine as the page."""
        if self._actions is None:
            self._actions = MobileActions(self.handle, waits=self.waits)
        return self._actions

    def page_name(self) -> str:
        return self.descriptor.name

    def wait_for_load(self) -> None:
        """
        Block until the page is loaded.

        Raises:
            WaitTimeoutError: If the page did not load within the descriptor timeout.
        """
        waits = self.waits
        self._log.info("Waiting for page", action="page_load", page=self.page_name())
        waits.wait_until(
            lambda drv: self.descriptor.ready(waits, drv),
            timeout=self.descriptor.timeout,
            description=f"{self.page_name()} is loaded",
        )

    def is_displayed(self) -> bool:
        """True if the page loaded in time; any failure reads as not displayed."""
        try:
            self.wait_for_load()
        except Exception as e:
            self._log.info(
                "Page is not displayed", action="page_load", page=self.page_name(), error=str(e)
            )
            return False
        return True

    def __repr__(self) -> str:
        return f"Page({self.page_name()!r})"
