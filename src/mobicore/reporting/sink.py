from __future__ import annotations

from pathlib import Path
from typing import Protocol


class ArtifactSink(Protocol):
    """Destination for test artifacts (videos, screenshots)."""

    def write(self, relative_path: str, data: bytes) -> Path:
        """Store `data` under `relative_path` and return where it was written."""
        ...


class FileArtifactSink:
    """Writes artifacts as files under a root directory, creating folders as needed."""

    def __init__(self, root: str | Path = ".") -> None:
        self.root = Path(root)

    def write(self, relative_path: str, data: bytes) -> Path:
        """
        Raises:
            OSError: If the directory cannot be created or the file cannot be written.
        """
        path = self.root / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path
