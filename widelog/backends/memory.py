"""In-memory backend used by tests and local debugging."""

from __future__ import annotations

import copy
from typing import Any, Dict, List, Optional

from .base import Fields, StructuredBackend


class InMemoryBackend(StructuredBackend):
    """Keep deep copies of every record; children append to the same list."""

    def __init__(
        self,
        *,
        level: str = "TRACE",
        bindings: Fields = None,
        records: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        super().__init__(level=level, bindings=bindings)
        self.records: List[Dict[str, Any]] = records if records is not None else []

    def _spawn(self, bindings: Dict[str, Any]) -> "InMemoryBackend":
        return InMemoryBackend(level=self._level, bindings=bindings, records=self.records)

    def _write(self, record: Dict[str, Any]) -> None:
        self.records.append(copy.deepcopy(record))

    def messages(self) -> List[str]:
        return [record["message"] for record in self.records]

    def clear(self) -> None:
        self.records.clear()
