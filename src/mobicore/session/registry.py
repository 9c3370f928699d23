from __future__ import annotations

import asyncio
import itertools
import threading
import weakref
from collections.abc import Callable, Hashable
from typing import Any, Protocol

from ..config.loader import get_settings
from ..config.models import Settings
from ..drivers.factory import CapabilitySet, build_capabilities, open_driver
from ..drivers.handle import DriverHandle, HandleState
from ..errors import AlreadyInitializedError, NotInitializedError
from ..platform import Platform
from ..utils.logging import bind_context, get_logger


class DriverOpener(Protocol):
    def __call__(
        self,
        platform: Platform | str,
        endpoint: str,
        capabilities: CapabilitySet,
        implicit_wait: float,
    ) -> DriverHandle: ...


# Thread idents and id(task) are reused once a thread or task is gone;
# context tokens come from a counter and never repeat
_tokens = itertools.count(1)
_thread_tokens = threading.local()
_task_tokens: weakref.WeakKeyDictionary[asyncio.Task[Any], int] = weakref.WeakKeyDictionary()


def thread_context_id() -> Hashable:
    """Execution context of the calling thread; a new thread never gets an old id."""
    token = getattr(_thread_tokens, "token", None)
    if token is None:
        token = _thread_tokens.token = next(_tokens)
    return ("thread", token)


def task_context_id() -> Hashable:
    """Execution context of the running asyncio task, or of the thread outside a loop."""
    try:
        task = asyncio.current_task()
    except RuntimeError:
        task = None
    if task is None:
        return thread_context_id()
    token = _task_tokens.get(task)
    if token is None:
        token = _task_tokens.setdefault(task, next(_tokens))
    return ("task", token)


class SessionRegistry:
    """
    Binds at most one live driver handle to each execution context.

    Sessions are never shared or pooled across contexts. Each context only
    touches its own key, and the single insertion point uses an atomic
    dict.setdefault, so unrelated workers are never serialized by a lock.
    """

    def __init__(
        self,
        *,
        settings_provider: Callable[[], Settings] = get_settings,
        opener: DriverOpener = open_driver,
        context_id: Callable[[], Hashable] = thread_context_id,
    ) -> None:
        self._entries: dict[Hashable, DriverHandle] = {}
        self._settings_provider = settings_provider
        self._opener = opener
        self._context_id = context_id
        self._log = get_logger(__name__)

    # ------------------------
    # Public API
    # ------------------------
    def initialize(self, settings: Settings | None = None) -> DriverHandle:
        """
        Start a session for the current execution context.

        Args:
            settings (Settings | None): Settings to use; the process-wide settings by default.

        Returns:
            DriverHandle: The live handle now bound to this context.

        Raises:
            AlreadyInitializedError: If this context already has a live session.
            UnsupportedPlatformError: If the configured platform is unknown (before any network call).
            ConfigurationError: If mandatory settings are missing.
            SessionStartError: If the remote handshake fails.
        """
        ctx = self._context_id()
        existing = self._entries.get(ctx)
        if existing is not None:
            if existing.is_live:
                raise AlreadyInitializedError(
                    f"Driver already initialized for this context (session {existing.session_id}). "
                    "Call quit() first."
                )
            # Handle was quit directly, not through the registry
            self._entries.pop(ctx, None)

        s = settings or self._settings_provider()
        platform = Platform.parse(s.platform)
        self._log.info("Initializing driver", action="session_init", platform=platform.value)

        caps = build_capabilities(platform, s)
        handle = self._opener(platform, str(s.appium.url), caps, s.appium.implicit_wait)

        if self._entries.setdefault(ctx, handle) is not handle:
            handle.quit()
            raise AlreadyInitializedError("Driver was initialized concurrently for this context")

        bind_context(settings=s, handle=handle)
        self._log.info(
            "Driver initialized",
            action="session_init",
            platform=platform.value,
            session_id=handle.session_id,
        )
        return handle

    def get(self) -> DriverHandle:
        """
        Return the live handle of the current execution context.

        Raises:
            NotInitializedError: If initialize() was not called in this context.
        """
        handle = self._entries.get(self._context_id())
        if handle is None or not handle.is_live:
            raise NotInitializedError("Driver not initialized! Call initialize() first.")
        return handle

    def quit(self) -> None:
        """
        Tear down the session of the current execution context.

        A no-op when there is no session. Remote teardown failures are logged
        and not raised, so this is safe in any cleanup path.
        """
        ctx = self._context_id()
        handle = self._entries.get(ctx)
        if handle is None:
            return
        self._log.info("Quitting driver", action="session_quit", session_id=handle.session_id)
        try:
            handle.quit()
        except Exception as e:
            self._log.warning(
                "Remote session teardown failed",
                action="session_quit",
                session_id=handle.session_id,
                error=str(e),
            )
        finally:
            self._entries.pop(ctx, None)

    def is_initialized(self) -> bool:
        """Whether the current execution context has a live session."""
        handle = self._entries.get(self._context_id())
        return handle is not None and handle.is_live

    def state(self) -> HandleState:
        """State of the current context's handle; ABSENT without one."""
        handle = self._entries.get(self._context_id())
        return HandleState.ABSENT if handle is None else handle.state

    def current_platform(self) -> Platform:
        """Platform of the current context's session."""
        return self.get().platform

    def active_contexts(self) -> int:
        """Number of execution contexts holding a live session."""
        return sum(1 for h in list(self._entries.values()) if h.is_live)


# Process-wide registry used by the pytest plugin, pages and hooks
registry = SessionRegistry()
