"""Console backend writing JSON lines."""

from __future__ import annotations

import sys
from typing import Any, Dict, Optional, TextIO

from .base import Fields, StructuredBackend, to_json


class StdoutBackend(StructuredBackend):
    """Print one JSON document per event to ``stream`` (stdout by default)."""

    def __init__(
        self,
        *,
        stream: Optional[TextIO] = None,
        level: str = "TRACE",
        bindings: Fields = None,
    ) -> None:
        super().__init__(level=level, bindings=bindings)
        self._stream = stream

    def _spawn(self, bindings: Dict[str, Any]) -> "StdoutBackend":
        return StdoutBackend(stream=self._stream, level=self._level, bindings=bindings)

    def _write(self, record: Dict[str, Any]) -> None:
        # Resolved per call so pytest's capsys and redirect_stdout are honoured.
        print(to_json(record), file=self._stream or sys.stdout)
