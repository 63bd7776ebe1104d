"""In-process metrics for the wide-event runtime."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Dict


@dataclass
class RuntimeMetrics:
    """Runtime metrics for the wide-event pipeline."""

    emitted_total: int = 0 # Events accepted by the backend
    emitted_levels: dict[str, int] | None = None # Accepted events by severity
    dropped_total: int = 0 # Events dropped by sampling
    sampling: dict[str, int] | None = None # Sampling decisions per reason
    backend_failures: int = 0 # Backend calls that raised and were swallowed
    last_backend_error: str | None = None # repr of the most recent swallowed failure

    def as_dict(self) -> dict[str, object]:
        """Return the metrics as a dictionary."""

        return {
            "emitted_total": self.emitted_total,
            "emitted_levels": dict(self.emitted_levels or {}),
            "dropped_total": self.dropped_total,
            "sampling": dict(self.sampling or {}),
            "backend_failures": self.backend_failures,
            "last_backend_error": self.last_backend_error,
        }


_LOCK = threading.RLock()
_METRICS = RuntimeMetrics(emitted_levels={}, sampling={})


def record_sampling_decision(reason: str, emitted: bool) -> None:
    """Record the outcome of a sampling decision."""

    with _LOCK:
        sampling = _METRICS.sampling or {}
        sampling[reason] = sampling.get(reason, 0) + 1
        _METRICS.sampling = sampling

        if not emitted:
            _METRICS.dropped_total += 1


def record_emit(level: str) -> None:
    """Record an event handed to the backend successfully."""

    with _LOCK:
        _METRICS.emitted_total += 1
        levels = _METRICS.emitted_levels or {}
        levels[level] = levels.get(level, 0) + 1
        _METRICS.emitted_levels = levels


def record_backend_failure(exc: BaseException) -> None:
    """Record a backend failure swallowed by the emission pipeline."""

    with _LOCK:
        _METRICS.backend_failures += 1
        _METRICS.last_backend_error = f"{type(exc).__name__}: {exc}"


def reset_metrics() -> None:
    """Reset the metrics."""

    with _LOCK:
        _METRICS.emitted_total = 0
        _METRICS.emitted_levels = {}
        _METRICS.dropped_total = 0
        _METRICS.sampling = {}
        _METRICS.backend_failures = 0
        _METRICS.last_backend_error = None


def get_metrics() -> RuntimeMetrics:
    """Get a snapshot of the metrics."""

    with _LOCK:
        snapshot: Dict[str, object] = _METRICS.as_dict()
        return RuntimeMetrics(**snapshot)  # type: ignore[arg-type]
