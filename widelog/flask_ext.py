"""Flask integration: one wide event per request."""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from flask import Flask, Response, g, request

from .config import WidelogSettings, get_settings
from .context import pop_event, push_event
from .events import ErrorInfo, new_event, new_request_id
from .logger import WideLogger, get_wide_logger

LOGGER = logging.getLogger("widelog.flask")


def register_flask_wide_logger(
    app: Flask,
    wide_logger: WideLogger | None = None,
    *,
    settings: WidelogSettings | None = None,
) -> None:
    """Attach request lifecycle hooks that build and emit a wide event."""

    resolved = settings or get_settings()
    request_id_header = resolved.request_id_header
    traceparent_header = resolved.traceparent_header
    default_event_name = resolved.default_event_name
    capture_stack = resolved.capture_stack

    def _logger() -> WideLogger:
        return wide_logger if wide_logger is not None else get_wide_logger()

    @app.before_request
    def _widelog_before_request() -> None:  # type: ignore[override]
        rid = (request.headers.get(request_id_header) or "").strip() or new_request_id()

        event = new_event(
            request_id=rid,
            method=request.method,
            path=request.url_rule.rule if request.url_rule else request.path,
            url=request.full_path.rstrip("?"),
            ip=_client_ip(),
            user_agent=request.headers.get("User-Agent"),
            trace_id=_parse_traceparent(request.headers.get(traceparent_header))[0],
        )

        g._widelog_event = event
        g._widelog_token = push_event(event)

    @app.after_request
    def _widelog_after_request(response: Response) -> Response:  # type: ignore[override]
        event = g.get("_widelog_event")
        if event is None:
            return response

        event.status_code = response.status_code
        response.headers.setdefault(request_id_header, event.request_id)
        return response

    @app.teardown_request
    def _widelog_teardown(exc: Optional[BaseException]) -> None:  # type: ignore[override]
        event = g.pop("_widelog_event", None)
        token = g.pop("_widelog_token", None)
        if event is None:
            return

        try:
            if exc is not None:
                if event.error is None:
                    event.error = ErrorInfo.from_exception(exc, include_stack=capture_stack)
                if not isinstance(event.status_code, int) or event.status_code < 500:
                    event.status_code = _status_from_exception(exc)

            event.response_time_ms = event.elapsed_ms()

            event_name = event.event_name or default_event_name
            event.event_name = None

            try:
                _logger().emit(event_name)
            except Exception:
                LOGGER.debug("wide event emit failed for %s", event_name, exc_info=True)
        finally:
            if token is not None:
                pop_event(token)


def _status_from_exception(exc: BaseException) -> int:
    code = getattr(exc, "code", None)
    try:
        status = int(code)
    except (TypeError, ValueError):
        return 500
    return status if 100 <= status <= 599 else 500


def _parse_traceparent(header: str | None) -> Tuple[str | None, str | None]:
    if not header:
        return None, None
    parts = header.split("-")
    if len(parts) < 4:
        return None, None
    trace_id, span_id = parts[1], parts[2]
    if len(trace_id) != 32 or len(span_id) != 16:
        return None, None
    return trace_id, span_id


def _client_ip() -> str | None:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.remote_addr