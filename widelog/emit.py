"""Turn a finished wide event into one backend call."""

from __future__ import annotations

import logging
from dataclasses import fields
from typing import Any, Callable, Dict, Optional

from .backends.base import Backend
from .events import INTERNAL_FIELDS, ErrorInfo, WideEvent
from .metrics import record_backend_failure, record_emit

LOGGER = logging.getLogger("widelog.emit")

ErrorHook = Callable[[BaseException, str, Dict[str, Any]], None]


def select_level(status_code: Any) -> str:
    """Map a status code to a backend severity; unusable codes are ``info``."""

    try:
        status_code = int(status_code)
    except (TypeError, ValueError):
        return "info"
    if status_code >= 500:
        return "error"
    if status_code >= 400:
        return "warning"
    return "info"


def build_payload(event: WideEvent) -> Dict[str, Any]:
    """Flatten ``event`` into a mapping, leaving out internal and unset fields."""

    payload: Dict[str, Any] = {}
    for spec in fields(event):
        if spec.name in INTERNAL_FIELDS:
            continue

        value = getattr(event, spec.name)
        if value is None:
            continue

        if isinstance(value, ErrorInfo):
            value = value.as_dict()
        elif spec.name == "details":
            value = dict(value)

        payload[spec.name] = value

    return payload


def emit_event(
    backend: Backend,
    event_name: str,
    event: WideEvent,
    *,
    on_error: Optional[ErrorHook] = None,
) -> bool:
    """Send ``event`` to ``backend`` at its severity; never raises.

    Returns ``True`` when the backend accepted the call.
    """

    level = select_level(event.status_code)
    payload: Dict[str, Any] = {}

    try:
        payload = build_payload(event)
        getattr(backend, level)(event_name, payload)
    except Exception as exc:
        record_backend_failure(exc)
        LOGGER.debug("wide event backend failed for %s", event_name, exc_info=True)
        _notify(on_error, exc, event_name, payload)
        return False

    record_emit(level)
    return True


def _notify(
    hook: Optional[ErrorHook],
    exc: BaseException,
    event_name: str,
    payload: Dict[str, Any],
) -> None:
    if hook is None:
        return

    try:
        hook(exc, event_name, payload)
    except Exception:  # pragma: no cover - hook failures are as invisible as backend ones
        LOGGER.debug("wide event error hook failed", exc_info=True)
