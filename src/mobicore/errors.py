"""Exceptions raised by the mobicore session, wait and action layers."""

from __future__ import annotations


class MobicoreError(Exception):
    """Base exception class for mobicore."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.__class__.__name__}: {self.message}"


class ConfigurationError(MobicoreError):
    """Missing or invalid settings. Fatal, raised before any session work."""


class UnsupportedPlatformError(ConfigurationError):
    """The configured platform is not one of the supported variants."""


class SessionStartError(MobicoreError):
    """The remote session handshake failed or the endpoint is malformed."""


class AlreadyInitializedError(MobicoreError):
    """A live session already exists for the current execution context."""


class NotInitializedError(MobicoreError):
    """No live session exists for the current execution context."""


class WaitTimeoutError(MobicoreError):
    """A polled condition did not become true within its timeout."""

    def __init__(
        self,
        description: str,
        timeout: float,
        elapsed: float,
        last_failure: BaseException | str | None = None,
    ) -> None:
        self.description = description
        self.timeout = timeout
        self.elapsed = elapsed
        self.last_failure = last_failure
        reason = _describe_failure(last_failure)
        super().__init__(
            f"Condition '{description}' was not met within {timeout}s "
            f"(elapsed {elapsed:.2f}s). Last failure: {reason}"
        )


class ActionFailedError(MobicoreError):
    """An interaction with a named element failed."""

    def __init__(self, element_name: str, action: str, cause: BaseException | None = None) -> None:
        self.element_name = element_name
        self.action = action
        self.cause = cause
        detail = f": {_describe_failure(cause)}" if cause is not None else ""
        super().__init__(f"Failed to {action} {element_name}{detail}")


def _describe_failure(failure: BaseException | str | None) -> str:
    if failure is None:
        return "none recorded"
    if isinstance(failure, str):
        return failure
    text = str(getattr(failure, "msg", None) or failure).strip()
    return f"{type(failure).__name__}: {text}" if text else type(failure).__name__
