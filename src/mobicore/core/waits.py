from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from selenium.common.exceptions import TimeoutException
from selenium.webdriver.remote.webdriver import WebDriver
from selenium.webdriver.remote.webelement import WebElement
from selenium.webdriver.support import expected_conditions as ec
from selenium.webdriver.support.ui import WebDriverWait

from ..config.models import WaitSettings
from ..drivers.handle import DriverHandle
from ..errors import WaitTimeoutError
from ..session.registry import SessionRegistry
from ..session.registry import registry as default_registry
from ..utils.logging import get_logger
from .locators import Locator, StrategyValue, pretty_locator, resolve_locators

# ---- Default values (seconds) ----
DEFAULT_TIMEOUT = 20.0
DEFAULT_POLL_INTERVAL = 0.5
DEFAULT_VISIBLE_TIMEOUT = 30.0
DEFAULT_CLICKABLE_TIMEOUT = 30.0

T = TypeVar("T")

_log = get_logger(__name__)


class WaitEngine:
    """
    Polls conditions against a session until they hold or time out.

    The engine is the only way asynchronous UI updates are reconciled with
    assertions: an action's effect is never assumed to be visible immediately.
    Polling uses a fixed interval and sleeps between attempts. There is no
    retry beyond the polling itself and no cancellation mid-wait.
    """

    def __init__(
        self,
        handle: DriverHandle | None = None,
        *,
        registry: SessionRegistry | None = None,
        settings: WaitSettings | None = None,
    ) -> None:
        """
        Args:
            handle (DriverHandle | None): Session to poll. When omitted, the handle of the
                calling context is looked up in the registry on every wait.
            registry (SessionRegistry | None): Registry to look handles up in.
            settings (WaitSettings | None): Default timeouts; module defaults otherwise.
        """
        self._handle = handle
        self._registry = registry or default_registry
        s = settings or WaitSettings(
            timeout=DEFAULT_TIMEOUT,
            poll_interval=DEFAULT_POLL_INTERVAL,
            visible_timeout=DEFAULT_VISIBLE_TIMEOUT,
            clickable_timeout=DEFAULT_CLICKABLE_TIMEOUT,
        )
        self.timeout = s.timeout
        self.poll_interval = s.poll_interval
        self.visible_timeout = s.visible_timeout
        self.clickable_timeout = s.clickable_timeout

    @property
    def handle(self) -> DriverHandle:
        return self._handle if self._handle is not None else self._registry.get()

    def wait_until(
        self,
        predicate: Callable[[WebDriver], T],
        timeout: float | None = None,
        poll_interval: float | None = None,
        *,
        description: str | None = None,
    ) -> T:
        """
        Evaluate `predicate(driver)` until it returns a truthy value.

        A predicate that raises or returns a falsy value counts as a failed
        attempt; the last failure is kept for diagnostics.

        Returns:
            T: The first truthy value returned by the predicate.

        Raises:
            WaitTimeoutError: If the timeout elapses first.
            NotInitializedError: If the calling context has no session.
        """
        return self._wait(self.handle, predicate, timeout, poll_interval, description)

    def wait_for_visible(
        self,
        target: Locator,
        name: str | None = None,
        *,
        timeout: float | None = None,
        poll_interval: float | None = None,
    ) -> WebElement:
        """Wait until the element is present and displayed, and return it."""
        handle = self.handle
        locators = resolve_locators(handle.platform, target)
        label = name or pretty_locator(handle.platform, target)
        return self._wait(
            handle,
            _first_matching(locators, ec.visibility_of_element_located),
            self.visible_timeout if timeout is None else timeout,
            poll_interval,
            f"{label} is visible",
        )

    def wait_for_clickable(
        self,
        target: Locator,
        name: str | None = None,
        *,
        timeout: float | None = None,
        poll_interval: float | None = None,
    ) -> WebElement:
        """Wait until the element is displayed and enabled, and return it."""
        handle = self.handle
        locators = resolve_locators(handle.platform, target)
        label = name or pretty_locator(handle.platform, target)
        return self._wait(
            handle,
            _first_matching(locators, ec.element_to_be_clickable),
            self.clickable_timeout if timeout is None else timeout,
            poll_interval,
            f"{label} is clickable",
        )

    def wait_for_visible_or_none(
        self,
        target: Locator,
        name: str | None = None,
        *,
        timeout: float | None = None,
        poll_interval: float | None = None,
    ) -> WebElement | None:
        """
        Same as wait_for_visible, but returns None instead of raising on timeout.

        Useful for optional elements whose absence is non-critical.
        """
        try:
            return self.wait_for_visible(
                target, name, timeout=timeout, poll_interval=poll_interval
            )
        except WaitTimeoutError:
            return None

    # ---- Internals ----
    def _wait(
        self,
        handle: DriverHandle,
        predicate: Callable[[WebDriver], T],
        timeout: float | None,
        poll_interval: float | None,
        description: str | None,
    ) -> T:
        timeout = self.timeout if timeout is None else float(timeout)
        poll = self.poll_interval if poll_interval is None else float(poll_interval)
        if timeout < 0:
            raise ValueError(f"Timeout must be >= 0, got {timeout}")
        if poll <= 0:
            raise ValueError(f"Poll interval must be > 0, got {poll}")
        desc = description or getattr(predicate, "__name__", "condition")

        last_failure: BaseException | str | None = None

        def _attempt(drv: WebDriver) -> Any:
            nonlocal last_failure
            try:
                value = predicate(drv)
            except Exception as e:
                last_failure = e
                return False
            if not value:
                last_failure = f"condition returned {value!r}"
            return value

        _log.debug("Waiting", action="wait", condition=desc, timeout=timeout, poll_interval=poll)
        started = time.monotonic()
        try:
            return WebDriverWait(handle.driver, timeout, poll_frequency=poll).until(_attempt)
        except TimeoutException as e:
            elapsed = time.monotonic() - started
            _log.error(
                "Wait timed out",
                action="wait",
                condition=desc,
                timeout=timeout,
                elapsed=round(elapsed, 3),
                last_error=str(last_failure),
            )
            cause = last_failure if isinstance(last_failure, BaseException) else e
            raise WaitTimeoutError(desc, timeout, elapsed, last_failure) from cause


# ---- Internal helper functions ----
def _first_matching(
    locators: Sequence[StrategyValue],
    condition: Callable[[StrategyValue], Callable[[WebDriver], Any]],
) -> Callable[[WebDriver], WebElement | bool]:
    """
    Build a predicate that returns the first element satisfying the condition
    among alternative locators. When none does, the last lookup error is raised
    so the wait can report it.
    """
    checks = [condition(loc) for loc in locators]

    def _predicate(drv: WebDriver) -> WebElement | bool:
        last_exc: Exception | None = None
        for check in checks:
            try:
                el = check(drv)
            except Exception as e:
                last_exc = e
                continue
            if el:
                return el
        if last_exc is not None:
            raise last_exc
        return False

    return _predicate
