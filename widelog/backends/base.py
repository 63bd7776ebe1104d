"""Backend capability contract and the shared structured-record base."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping, Optional, Protocol, runtime_checkable

from ..events import utc_now

TRACE = 5

LEVELS = ("trace", "debug", "info", "warning", "error")

LEVEL_NUMERIC = {
    "trace": TRACE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

Fields = Optional[Mapping[str, Any]]


@runtime_checkable
class Backend(Protocol):
    """Anything that can write a structured message at a severity."""

    def trace(self, message: str, fields: Fields = None) -> None:  # pragma: no cover - protocol
        ...

    def debug(self, message: str, fields: Fields = None) -> None:  # pragma: no cover - protocol
        ...

    def info(self, message: str, fields: Fields = None) -> None:  # pragma: no cover - protocol
        ...

    def warning(self, message: str, fields: Fields = None) -> None:  # pragma: no cover - protocol
        ...

    def error(self, message: str, fields: Fields = None) -> None:  # pragma: no cover - protocol
        ...

    def child(self, bindings: Mapping[str, Any]) -> "Backend":  # pragma: no cover - protocol
        ...


def level_threshold(level: str) -> int:
    return LEVEL_NUMERIC.get(level.lower(), logging.INFO)


def to_json(record: Mapping[str, Any]) -> str:
    return json.dumps(record, ensure_ascii=False, default=str)


class StructuredBackend:
    """Base for backends that write one JSON-ready mapping per call.

    Subclasses implement :meth:`_write` and, when they hold resources that
    children must share, :meth:`_spawn`.
    """

    def __init__(self, *, level: str = "TRACE", bindings: Fields = None) -> None:
        self._level = level.upper()
        self._threshold = level_threshold(level)
        self._bindings: Dict[str, Any] = dict(bindings or {})

    @property
    def bindings(self) -> Dict[str, Any]:
        return dict(self._bindings)

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

    def child(self, bindings: Mapping[str, Any]) -> "StructuredBackend":
        merged = dict(self._bindings)
        merged.update(bindings)
        return self._spawn(merged)

    def build_record(self, level: str, message: str, fields: Fields) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "ts": utc_now(),
            "level": level.upper(),
            "message": message,
        }
        record.update(self._bindings)
        if fields:
            record.update(fields)
        return record

    def _log(self, level: str, message: str, fields: Fields) -> None:
        if LEVEL_NUMERIC[level] < self._threshold:
            return
        self._write(self.build_record(level, message, fields))

    def _spawn(self, bindings: Dict[str, Any]) -> "StructuredBackend":
        raise NotImplementedError

    def _write(self, record: Dict[str, Any]) -> None:
        raise NotImplementedError
