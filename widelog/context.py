"""Context store for the active wide event.

The active event lives in a :class:`~contextvars.ContextVar`, so every thread
and every asyncio task sees its own value. Tasks inherit the event that was
active when they were created; threads start empty unless the callable was
wrapped with :func:`bind_current_event`.
"""

from __future__ import annotations

import contextvars
import functools
import logging
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Any, Awaitable, Callable, Iterator, Mapping, Optional, TypeVar

from .events import ACCUMULATE_ONLY_FIELDS, FIELD_NAMES, IMMUTABLE_FIELDS, WideEvent

LOGGER = logging.getLogger("widelog.context")

T = TypeVar("T")

_MISSING: Any = object()

_CURRENT_EVENT: ContextVar[Optional[WideEvent]] = ContextVar(
    "widelog_current_event", default=None
)


def push_event(event: WideEvent) -> Token:
    """Make ``event`` active and return the token that restores the previous one."""

    return _CURRENT_EVENT.set(event)


def pop_event(token: Token) -> None:
    _CURRENT_EVENT.reset(token)


def current_event() -> Optional[WideEvent]:
    """Return the active event, or ``None`` outside any scope."""

    return _CURRENT_EVENT.get()


@contextmanager
def event_scope(event: WideEvent) -> Iterator[WideEvent]:
    """Context manager for a temporary active event."""

    token = push_event(event)
    try:
        yield event
    finally:
        pop_event(token)


def run_with_context(
    event: WideEvent,
    func: Callable[..., T],
    *args: Any,
    **kwargs: Any,
) -> T:
    """Execute ``func`` with ``event`` active, restoring the outer event afterwards."""

    token = push_event(event)
    try:
        return func(*args, **kwargs)
    finally:
        pop_event(token)


async def arun_with_context(
    event: WideEvent,
    func: Callable[..., Awaitable[T]],
    *args: Any,
    **kwargs: Any,
) -> T:
    """Await ``func`` with ``event`` active across all of its suspension points."""

    token = push_event(event)
    try:
        return await func(*args, **kwargs)
    finally:
        pop_event(token)


def bind_current_event(func: Callable[..., T]) -> Callable[..., T]:
    """Wrap ``func`` to run in a copy of the caller's context.

    Use it when handing work to a thread pool so the worker mutates the
    caller's event instead of seeing none.
    """

    snapshot = contextvars.copy_context()

    @functools.wraps(func)
    def _bound(*args: Any, **kwargs: Any) -> T:
        return snapshot.copy().run(func, *args, **kwargs)

    return _bound


def update(
    field_or_patch: str | Mapping[str, Any] | None = None,
    value: Any = _MISSING,
    **fields: Any,
) -> None:
    """Set one field or merge a patch into the active event.

    ``update("user_id", "u-1")``, ``update({"status_code": 201})`` and
    ``update(user_id="u-1")`` are equivalent forms. Names that are not event
    fields are merged into ``details``. ``details`` itself is only ever merged
    into, and the sub-operation counters are left to
    :func:`record_sub_operation`.
    """

    event = _CURRENT_EVENT.get()
    if event is None:
        return

    patch: dict[str, Any] = {}
    if isinstance(field_or_patch, str):
        patch[field_or_patch] = None if value is _MISSING else value
    elif isinstance(field_or_patch, Mapping):
        patch.update(field_or_patch)
    elif field_or_patch is not None:
        LOGGER.debug("ignoring update of type %s", type(field_or_patch).__name__)
    patch.update(fields)

    for name, new_value in patch.items():
        if name in IMMUTABLE_FIELDS:
            LOGGER.debug("ignoring update to immutable field %s", name)
            continue
        if name in ACCUMULATE_ONLY_FIELDS:
            LOGGER.debug("ignoring update to sub-operation counter %s", name)
            continue
        if name == "details":
            if isinstance(new_value, Mapping):
                event.details.update(new_value)
            else:
                LOGGER.debug("ignoring non-mapping details update of type %s", type(new_value).__name__)
        elif name in FIELD_NAMES:
            setattr(event, name, new_value)
        else:
            event.details[name] = new_value


def merge_details(patch: Mapping[str, Any] | None = None, **fields: Any) -> None:
    """Merge key/value pairs into the active event's ``details``."""

    event = _CURRENT_EVENT.get()
    if event is None:
        return

    if isinstance(patch, Mapping):
        event.details.update(patch)
    elif patch is not None:
        LOGGER.debug("ignoring non-mapping details patch of type %s", type(patch).__name__)
    if fields:
        event.details.update(fields)


def record_sub_operation(duration_ms: float) -> None:
    """Count one sub-operation and accumulate its duration on the active event."""

    event = _CURRENT_EVENT.get()
    if event is None:
        return

    try:
        duration_ms = float(duration_ms)
    except (TypeError, ValueError):
        LOGGER.debug("ignoring sub-operation with duration %r", duration_ms)
        return

    event.query_count = (event.query_count or 0) + 1
    event.query_time_ms = (event.query_time_ms or 0.0) + duration_ms
