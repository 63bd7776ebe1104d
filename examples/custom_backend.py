"""Example: plugging a custom backend into a wide logger.

Run with ``python examples/custom_backend.py``.
"""

from __future__ import annotations

import sys
from typing import Any, Dict, Mapping, Optional

from widelog import WideLogger, new_event
from widelog.sampling import SamplingPolicy


class ConsoleBackend:
    """Minimal human-readable backend."""

    def __init__(self, bindings: Optional[Mapping[str, Any]] = None) -> None:
        self._bindings: Dict[str, Any] = dict(bindings or {})

    def _write(self, level: str, message: str, fields: Optional[Mapping[str, Any]]) -> None:
        merged = {**self._bindings, **(fields or {})}
        stream = sys.stderr if level in {"WARNING", "ERROR"} else sys.stdout
        print(f"[{level}] {message} {merged}", file=stream)

    def trace(self, message, fields=None):
        self._write("TRACE", message, fields)

    def debug(self, message, fields=None):
        self._write("DEBUG", message, fields)

    def info(self, message, fields=None):
        self._write("INFO", message, fields)

    def warning(self, message, fields=None):
        self._write("WARNING", message, fields)

    def error(self, message, fields=None):
        self._write("ERROR", message, fields)

    def child(self, bindings):
        return ConsoleBackend({**self._bindings, **bindings})


def main() -> None:
    wide_logger = WideLogger(ConsoleBackend(), SamplingPolicy(rate=1.0))

    event = new_event(method="POST", path="/api/orders", url="/api/orders")

    def handle_order() -> None:
        wide_logger.set({"user_id": "348903489", "operation_type": "write", "resource_type": "order"})
        wide_logger.set_details({"amount": 9999, "currency": "EUR", "order_id": "23523"})
        wide_logger.emit("order_created")

    wide_logger.run(event, handle_order)


if __name__ == "__main__":
    main()
