from __future__ import annotations

import os
import threading
from typing import Any

import yaml
from pydantic import ValidationError

from ..errors import ConfigurationError
from .models import Settings

# Used when no path is given; MOBICORE_CONFIG points elsewhere
DEFAULT_CONFIG: str = os.getenv("MOBICORE_CONFIG", "configs/android.yaml")

_settings: Settings | None = None
_settings_lock = threading.Lock()


def load_settings(path: str | None = None) -> Settings:
    """
    Build Settings from a YAML file plus MOBICORE_* environment variables.

    A missing or empty file yields the defaults (environment still applies).

    Raises:
        ConfigurationError: If the file is not valid YAML or a value fails validation.
    """
    file_path = path or DEFAULT_CONFIG
    data: dict[str, Any] = {}

    if os.path.isfile(file_path):
        try:
            with open(file_path, encoding="utf-8") as fh:
                loaded = yaml.safe_load(fh)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse configuration '{file_path}': {e}") from e
        if isinstance(loaded, dict):
            data = loaded
        elif loaded is not None:
            raise ConfigurationError(f"Configuration '{file_path}' must be a mapping at the top level")

    try:
        return Settings(**data)
    except ValidationError as e:
        raise ConfigurationError(_describe_validation_error(file_path, e)) from e


def get_settings() -> Settings:
    """
    Return the process-wide settings, loading them on first access.

    Concurrent first calls load the file exactly once.
    """
    global _settings
    if _settings is None:
        with _settings_lock:
            if _settings is None:
                _settings = load_settings()
    return _settings


def set_settings(settings: Settings) -> None:
    """Install already-loaded settings as the process-wide instance (used by fixtures)."""
    global _settings
    with _settings_lock:
        _settings = settings


def reset_settings() -> None:
    """Forget the process-wide settings so the next access reloads them."""
    global _settings
    with _settings_lock:
        _settings = None


def _describe_validation_error(file_path: str, error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        key = ".".join(str(p) for p in item.get("loc", ()))
        problems.append(f"'{key}': {item.get('msg', 'invalid value')}")
    return f"Invalid configuration in '{file_path}': " + "; ".join(problems)
