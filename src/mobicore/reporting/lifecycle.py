from __future__ import annotations

import threading
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import ClassVar, Protocol, TypeVar

from ..utils.logging import get_logger

T = TypeVar("T")


class InvocationState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"


@dataclass(eq=False)
class TestInvocation:
    """Record of one test run, alive from the before hooks to the after hooks."""

    __test__ = False  # not a pytest test class

    name: str
    record: bool = False
    started_at: datetime | None = None
    finished_at: datetime | None = None
    state: InvocationState = InvocationState.IDLE
    error: BaseException | None = None
    artifacts: list[Path] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.state is InvocationState.FAILED

    @property
    def outcome_suffix(self) -> str:
        return "_FAILED" if self.failed else "_PASSED"


class LifecycleHook(Protocol):
    """Callback pair run around a test body."""

    def before(self, invocation: TestInvocation) -> None: ...

    def after(self, invocation: TestInvocation) -> None: ...


class HookManager:
    """
    Runs registered hooks around each test invocation.

    State machine per invocation: idle -> running -> passed | failed.
    Before hooks run in registration order when the invocation starts; after
    hooks run in reverse order once the outcome is known, whether the body
    raised or returned. Failures inside after hooks are logged and never
    replace the test outcome.
    """

    _default: ClassVar[HookManager | None] = None
    _default_lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self, hooks: Sequence[LifecycleHook] = ()) -> None:
        self._hooks: list[LifecycleHook] = list(hooks)
        self._log = get_logger(__name__)

    @classmethod
    def get_default(cls) -> HookManager:
        """Return the global manager, creating one with screen recording on first use."""
        if cls._default is None:
            with cls._default_lock:
                if cls._default is None:
                    from .video import ScreenRecordingHook

                    cls._default = HookManager([ScreenRecordingHook()])
        return cls._default

    @classmethod
    def set_default(cls, manager: HookManager | None) -> None:
        cls._default = manager

    @property
    def hooks(self) -> tuple[LifecycleHook, ...]:
        return tuple(self._hooks)

    def register(self, hook: LifecycleHook) -> None:
        self._hooks.append(hook)

    def start(self, name: str, *, record: bool = False) -> TestInvocation:
        """
        Enter `running` and run the before hooks.

        If a before hook raises, the hooks that already ran get their after
        call with a failed outcome and the error propagates.
        """
        invocation = TestInvocation(name=name, record=record)
        invocation.started_at = datetime.now()
        invocation.state = InvocationState.RUNNING
        self._log.info("Test started", action="test_start", test=name, record=record)

        started: list[LifecycleHook] = []
        for hook in self._hooks:
            try:
                hook.before(invocation)
            except Exception as e:
                self._complete(invocation, e, started)
                raise
            started.append(hook)
        return invocation

    def finish(self, invocation: TestInvocation, error: BaseException | None = None) -> TestInvocation:
        """Leave `running` with the outcome implied by `error` and run the after hooks."""
        if invocation.state is not InvocationState.RUNNING:
            raise RuntimeError(
                f"Invocation '{invocation.name}' is {invocation.state.value}, not running"
            )
        return self._complete(invocation, error, self._hooks)

    @contextmanager
    def invocation(self, name: str, *, record: bool = False) -> Iterator[TestInvocation]:
        """Wrap a test body; its exception is re-raised unchanged after the hooks ran."""
        inv = self.start(name, record=record)
        try:
            yield inv
        except BaseException as e:
            self.finish(inv, e)
            raise
        self.finish(inv)

    def run(self, name: str, body: Callable[[], T], *, record: bool = False) -> T:
        """Run `body` as a test invocation and return its result."""
        with self.invocation(name, record=record):
            return body()

    def _complete(
        self,
        invocation: TestInvocation,
        error: BaseException | None,
        hooks: Sequence[LifecycleHook],
    ) -> TestInvocation:
        invocation.error = error
        invocation.state = InvocationState.FAILED if error is not None else InvocationState.PASSED
        invocation.finished_at = datetime.now()
        for hook in reversed(list(hooks)):
            try:
                hook.after(invocation)
            except Exception as e:
                self._log.error(
                    "After-test hook failed",
                    action="test_finish",
                    test=invocation.name,
                    hook=type(hook).__name__,
                    error=str(e),
                )
        self._log.info(
            "Test finished",
            action="test_finish",
            test=invocation.name,
            outcome=invocation.state.value,
            artifacts=[str(p) for p in invocation.artifacts],
        )
        return invocation
