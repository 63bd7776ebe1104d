"""Public API for wide-event logging."""

from __future__ import annotations

from .backends import Backend
from .config import (
    SamplingSettings,
    WidelogConfigError,
    WidelogSettings,
    configure_settings,
    get_settings,
    load_settings,
)
from .context import (
    arun_with_context,
    bind_current_event,
    current_event,
    event_scope,
    merge_details,
    pop_event,
    push_event,
    record_sub_operation,
    run_with_context,
    update,
)
from .emit import build_payload, emit_event, select_level
from .events import ErrorInfo, WideEvent, new_event
from .interceptors import SubOperation, atrack_sub_operation, instrument_connection, track_sub_operation
from .logger import WideLogger, configure_manager, get_wide_logger, reset_wide_logger
from .metrics import get_metrics, reset_metrics
from .sampling import SamplingDecision, SamplingPolicy, decide

__all__ = [
    "configure",
    "Backend",
    "WideLogger",
    "get_wide_logger",
    "reset_wide_logger",
    "WideEvent",
    "ErrorInfo",
    "new_event",
    "WidelogSettings",
    "SamplingSettings",
    "WidelogConfigError",
    "load_settings",
    "get_settings",
    "run_with_context",
    "arun_with_context",
    "event_scope",
    "push_event",
    "pop_event",
    "current_event",
    "update",
    "merge_details",
    "record_sub_operation",
    "bind_current_event",
    "SamplingPolicy",
    "SamplingDecision",
    "decide",
    "select_level",
    "build_payload",
    "emit_event",
    "SubOperation",
    "track_sub_operation",
    "atrack_sub_operation",
    "instrument_connection",
    "get_metrics",
    "reset_metrics",
]


def configure(
    settings: WidelogSettings | None = None,
    *,
    backend: Backend | None = None,
    **overrides,
) -> WideLogger:
    """Resolve settings and rebuild the default wide logger."""

    resolved = configure_settings(settings, **overrides)
    return configure_manager(resolved, backend=backend)
