"""Adapter exposing a stdlib :class:`logging.Logger` as a backend."""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping

from .base import LEVEL_NUMERIC, TRACE, Fields

logging.addLevelName(TRACE, "TRACE")

EXTRA_KEY = "wide_event"


class LoggingBackend:
    """Forward events to a stdlib logger.

    Structured fields travel as one ``extra`` attribute (``record.wide_event``)
    so they never collide with :class:`logging.LogRecord` attributes.
    """

    def __init__(self, logger: logging.Logger | str, *, bindings: Fields = None) -> None:
        self._logger = logging.getLogger(logger) if isinstance(logger, str) else logger
        self._bindings: Dict[str, Any] = dict(bindings or {})

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def trace(self, message: str, fields: Fields = None) -> None:
        self._log("trace", message, fields)

    def debug(self, message: str, fields: Fields = None) -> None:
        self._log("debug", message, fields)

    def info(self, message: str, fields: Fields = None) -> None:
        self._log("info", message, fields)

    def warning(self, message: str, fields: Fields = None) -> None:
        self._log("warning", message, fields)

    def error(self, message: str, fields: Fields = None) -> None:
        self._log("error", message, fields)

    def child(self, bindings: Mapping[str, Any]) -> "LoggingBackend":
        merged = dict(self._bindings)
        merged.update(bindings)
        return LoggingBackend(self._logger, bindings=merged)

    def _log(self, level: str, message: str, fields: Fields) -> None:
        numeric = LEVEL_NUMERIC[level]
        if not self._logger.isEnabledFor(numeric):
            return

        payload = dict(self._bindings)
        if fields:
            payload.update(fields)

        self._logger.log(numeric, message, extra={EXTRA_KEY: payload})
