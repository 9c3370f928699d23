from __future__ import annotations

import base64
import binascii
from collections.abc import Callable

from ..config.loader import get_settings
from ..drivers.handle import DriverHandle
from ..session.registry import registry
from ..utils.logging import get_logger
from .lifecycle import TestInvocation
from .manager import safe_file_stem
from .sink import ArtifactSink, FileArtifactSink


class ScreenRecordingHook:
    """
    Records the device screen through the remote session for invocations
    that asked for it, and saves the video as `<test>_PASSED.mp4` or
    `<test>_FAILED.mp4`.

    Recording state is kept per invocation, so hooks shared by parallel
    workers do not interfere.
    """

    def __init__(
        self,
        handle_provider: Callable[[], DriverHandle] | None = None,
        sink: ArtifactSink | None = None,
        videos_dir: str | None = None,
    ) -> None:
        """
        Args:
            handle_provider: Returns the session of the calling context (registry.get by default).
            sink: Where videos are written; a file sink under reporting.artifacts_root by default.
            videos_dir: Folder inside the sink; reporting.videos_dir by default.
        """
        if sink is None or videos_dir is None:
            reporting = get_settings().reporting
            sink = sink or FileArtifactSink(reporting.artifacts_root)
            videos_dir = videos_dir or reporting.videos_dir
        self._handle_provider = handle_provider or registry.get
        self.sink = sink
        self.videos_dir = videos_dir.rstrip("/")
        self._recording: dict[TestInvocation, DriverHandle] = {}
        self._log = get_logger(__name__)

    def before(self, invocation: TestInvocation) -> None:
        if not invocation.record:
            return
        handle = self._handle_provider()
        self._log.info("Starting screen recording", action="record_start", test=invocation.name)
        handle.driver.start_recording_screen()
        self._recording[invocation] = handle

    def after(self, invocation: TestInvocation) -> None:
        handle = self._recording.pop(invocation, None)
        if handle is None:
            return
        self._log.info(
            "Stopping screen recording",
            action="record_stop",
            test=invocation.name,
            outcome=invocation.state.value,
        )
        try:
            payload = handle.driver.stop_recording_screen()
        except Exception as e:
            self._log.error("Failed to stop screen recording", action="record_stop", error=str(e))
            return
        if not payload:
            self._log.warning("Screen recording is empty", action="record_stop", test=invocation.name)
            return
        try:
            data = base64.b64decode(payload, validate=True)
        except binascii.Error as e:
            self._log.error(
                "Recording payload is not valid base64", action="record_stop", error=str(e)
            )
            return

        file_name = f"{safe_file_stem(invocation.name)}{invocation.outcome_suffix}.mp4"
        try:
            path = self.sink.write(f"{self.videos_dir}/{file_name}", data)
        except OSError as e:
            self._log.error(
                "Failed to save screen recording",
                action="record_save",
                file=file_name,
                error=str(e),
            )
            return
        invocation.artifacts.append(path)
        self._log.info("Screen recording saved", action="record_save", path=str(path))
