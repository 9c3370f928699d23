from __future__ import annotations

from collections.abc import Generator, Iterator
from contextlib import contextmanager

import allure
import pytest

from ..config.loader import load_settings, set_settings
from ..config.models import Settings
from ..core.actions import MobileActions
from ..core.waits import WaitEngine
from ..drivers.handle import DriverHandle
from ..reporting.lifecycle import HookManager
from ..reporting.manager import ReportManager
from ..reporting.sink import FileArtifactSink
from ..reporting.video import ScreenRecordingHook
from ..session.registry import SessionRegistry, registry
from ..utils.logging import bind_context, clear_contextvars, setup_logging


@pytest.fixture(scope="session")
def settings(pytestconfig: pytest.Config) -> Settings:
    """
    Settings of the run, from `--config` (or MOBICORE_CONFIG) with the
    optional `--platform` override applied. They also become the instance
    returned by get_settings().
    """
    with allure.step("Load configuration"):
        s = load_settings(pytestconfig.getoption("--config"))
        platform: str | None = pytestconfig.getoption("--platform")
        if platform:
            s = s.model_copy(update={"platform": platform})

        set_settings(s)
        return s


@pytest.fixture(scope="session")
def report_manager(settings: Settings) -> ReportManager:
    """Report manager of the run, also installed as the process-wide default."""
    manager = ReportManager(settings.reporting)
    ReportManager.set_default(manager)
    return manager


@pytest.fixture(scope="session")
def session_registry() -> SessionRegistry:
    """The process-wide session registry; each worker thread gets its own entry."""
    return registry


@pytest.fixture(scope="session")
def hook_manager(settings: Settings, session_registry: SessionRegistry) -> HookManager:
    """Lifecycle hook manager with screen recording, used by the `record_screen` marker."""
    reporting = settings.reporting
    manager = HookManager(
        [
            ScreenRecordingHook(
                handle_provider=session_registry.get,
                sink=FileArtifactSink(reporting.artifacts_root),
                videos_dir=reporting.videos_dir,
            )
        ]
    )
    HookManager.set_default(manager)
    return manager


@contextmanager
def session_scope(
    session_registry: SessionRegistry, settings: Settings, name: str
) -> Iterator[DriverHandle]:
    """
    Yield the session of the current context for `name`.

    A session already opened by a wider scope is reused and left for that
    scope to quit; otherwise one is started here and quit on exit.
    """
    if session_registry.is_initialized():
        handle = session_registry.get()
        bind_context(handle=handle, test_name=name)
        yield handle
        return

    with allure.step(f"Start session: {settings.platform}"):
        handle = session_registry.initialize(settings)
    bind_context(handle=handle, test_name=name)
    try:
        yield handle
    finally:
        with allure.step("Quit session"):
            session_registry.quit()


@pytest.fixture(scope="class")
def class_driver_session(
    settings: Settings,
    session_registry: SessionRegistry,
    report_manager: ReportManager,
    hook_manager: HookManager,
    request: pytest.FixtureRequest,
) -> Generator[DriverHandle, None, None]:
    """
    One session shared by all tests of a class, quit after the last one.

    Use with `@pytest.mark.usefixtures("class_driver_session")`; driver_session,
    waits and actions inside the class then reuse it.
    """
    with session_scope(session_registry, settings, request.node.name) as handle:
        yield handle


@pytest.fixture(scope="function")
def driver_session(
    settings: Settings,
    session_registry: SessionRegistry,
    report_manager: ReportManager,
    hook_manager: HookManager,
    request: pytest.FixtureRequest,
) -> Generator[DriverHandle, None, None]:
    """
    Session of the current test: started for the test and quit afterwards,
    unless class_driver_session already holds one.

    Session start errors (unsupported platform, missing configuration,
    unreachable server) fail the test setup immediately.
    """
    with session_scope(session_registry, settings, request.node.name) as handle:
        yield handle


@pytest.fixture(scope="function")
def waits(driver_session: DriverHandle, settings: Settings) -> WaitEngine:
    """Wait engine bound to the test session with configured default timeouts."""
    return WaitEngine(driver_session, settings=settings.waits)


@pytest.fixture(scope="function")
def actions(
    driver_session: DriverHandle,
    waits: WaitEngine,
    report_manager: ReportManager,
    settings: Settings,
) -> MobileActions:
    """
    Create MobileActions helper for element interactions in the test session.
    """
    with allure.step("Create MobileActions for session interactions"):
        return MobileActions(
            driver_session,
            waits=waits,
            report_manager=report_manager,
            interaction=settings.interaction,
        )


# ----- Logging -----
@pytest.fixture(scope="session", autouse=True)
def _setup_structlog() -> None:
    """Configure structlog before the first test."""
    setup_logging()


@pytest.fixture(autouse=True)
def _bind_test_logging_context(request: pytest.FixtureRequest) -> Generator[None, None, None]:
    """
    Bind the test name to the logging context.

    Platform, device and session id are added by driver_session once a
    session is started. The context is cleared after the test.
    """
    bind_context(test_name=request.node.name)
    try:
        yield
    finally:
        clear_contextvars()
