"""Backend implementations."""

from __future__ import annotations

from ..config import WidelogSettings
from .base import LEVELS, TRACE, Backend, StructuredBackend
from .file import JsonFileBackend
from .memory import InMemoryBackend
from .stdlib import LoggingBackend
from .stdout import StdoutBackend

__all__ = [
    "Backend",
    "StructuredBackend",
    "StdoutBackend",
    "JsonFileBackend",
    "InMemoryBackend",
    "LoggingBackend",
    "LEVELS",
    "TRACE",
    "build_backend",
]


def build_backend(settings: WidelogSettings) -> Backend:
    """Instantiate the backend named by ``settings.backend``."""

    name = settings.backend.strip().lower()

    if name == "memory":
        return InMemoryBackend(level=settings.level)

    if name == "stdlib":
        return LoggingBackend(settings.logger_name)

    if name == "file" and settings.file_path:
        return JsonFileBackend(settings.file_path, level=settings.level)

    if name == "gcl":
        from .gcl_api import GoogleCloudLoggingBackend

        return GoogleCloudLoggingBackend(
            project=settings.gcl_project,
            log_name=settings.gcl_log_name,
            level=settings.level,
        )

    return StdoutBackend(level=settings.level)
