"""Wide-event record types."""

from __future__ import annotations

import datetime as _dt
import time
import traceback
import uuid
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional

# Set once at creation and never overwritten through the context store.
IMMUTABLE_FIELDS = frozenset({"request_id", "started_at"})

# Only grow through recorded sub-operations.
ACCUMULATE_ONLY_FIELDS = frozenset({"query_count", "query_time_ms"})

# Never part of an emitted payload.
INTERNAL_FIELDS = frozenset({"started_at"})


def utc_now() -> str:
    return (
        _dt.datetime.now(tz=_dt.timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def new_request_id() -> str:
    return uuid.uuid4().hex


@dataclass
class ErrorInfo:
    """Failure descriptor attached to a wide event."""

    code: str
    message: str
    stack: Optional[str] = None

    @classmethod
    def from_exception(cls, exc: BaseException, *, include_stack: bool = True) -> "ErrorInfo":
        """Describe ``exc``; ``code`` prefers an explicit ``code`` attribute."""

        code = getattr(exc, "code", None)
        stack = None
        if include_stack:
            stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

        return cls(
            code=str(code) if code is not None else type(exc).__name__,
            message=str(exc),
            stack=stack,
        )

    def as_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.stack is not None:
            payload["stack"] = self.stack
        return payload


@dataclass
class WideEvent:
    """Mutable record accumulated over one logical unit of work."""

    request_id: str = field(default_factory=new_request_id)
    started_at: float = field(default_factory=time.perf_counter)
    timestamp: str = field(default_factory=utc_now)
    details: Dict[str, Any] = field(default_factory=dict)

    method: Optional[str] = None
    path: Optional[str] = None
    url: Optional[str] = None
    ip: Optional[str] = None
    user_agent: Optional[str] = None

    user_id: Optional[str] = None
    session_id: Optional[str] = None

    operation_type: Optional[str] = None # read, write or delete
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None

    status_code: Optional[int] = None
    response_time_ms: Optional[float] = None

    query_count: Optional[int] = None
    query_time_ms: Optional[float] = None

    trace_id: Optional[str] = None
    error: Optional[ErrorInfo] = None
    sampling_reason: Optional[str] = None
    event_name: Optional[str] = None

    def elapsed_ms(self) -> float:
        """Milliseconds since the event was created."""

        return round((time.perf_counter() - self.started_at) * 1000.0, 3)


FIELD_NAMES = frozenset(f.name for f in fields(WideEvent))


def new_event(**values: Any) -> WideEvent:
    """Create a wide event; unknown keyword arguments land in ``details``."""

    known = {key: value for key, value in values.items() if key in FIELD_NAMES}
    extra = {key: value for key, value in values.items() if key not in FIELD_NAMES}

    event = WideEvent(**known)
    if extra:
        event.details.update(extra)

    return event
