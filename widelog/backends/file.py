"""Structured file backend appending JSON lines."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Dict

from .base import Fields, StructuredBackend, to_json


class JsonFileBackend(StructuredBackend):
    """Append one JSON document per event to ``path``.

    Children share the parent's lock so lines from different bindings never
    interleave.
    """

    def __init__(
        self,
        path: str | Path,
        *,
        level: str = "TRACE",
        bindings: Fields = None,
        encoding: str = "utf-8",
        _lock: threading.Lock | None = None,
    ) -> None:
        super().__init__(level=level, bindings=bindings)
        self._path = Path(path)
        self._encoding = encoding
        self._lock = _lock or threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _spawn(self, bindings: Dict[str, Any]) -> "JsonFileBackend":
        return JsonFileBackend(
            self._path,
            level=self._level,
            bindings=bindings,
            encoding=self._encoding,
            _lock=self._lock,
        )

    def _write(self, record: Dict[str, Any]) -> None:
        line = to_json(record) + "\n"
        with self._lock:
            with self._path.open("a", encoding=self._encoding) as handle:
                handle.write(line)
