"""ASGI middleware emitting one wide event per HTTP request.

Usage with FastAPI or Starlette::

    app.add_middleware(WideEventMiddleware, wide_logger=wide_logger)
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, MutableMapping

from .config import WidelogSettings, get_settings
from .context import arun_with_context
from .events import ErrorInfo, WideEvent, new_event, new_request_id
from .logger import WideLogger, get_wide_logger

LOGGER = logging.getLogger("widelog.asgi")

Scope = MutableMapping[str, Any]
Message = MutableMapping[str, Any]
Receive = Callable[[], Awaitable[Message]]
Send = Callable[[Message], Awaitable[None]]
ASGIApp = Callable[[Scope, Receive, Send], Awaitable[None]]


class WideEventMiddleware:
    def __init__(
        self,
        app: ASGIApp,
        *,
        wide_logger: WideLogger | None = None,
        settings: WidelogSettings | None = None,
    ) -> None:
        self.app = app
        self._wide_logger = wide_logger
        self._settings = settings or get_settings()

    @property
    def wide_logger(self) -> WideLogger:
        return self._wide_logger if self._wide_logger is not None else get_wide_logger()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            return await self.app(scope, receive, send)

        event = self._build_event(scope)
        await arun_with_context(event, self._handle, event, scope, receive, send)

    async def _handle(self, event: WideEvent, scope: Scope, receive: Receive, send: Send) -> None:
        request_id_header = self._settings.request_id_header.lower().encode("latin1")

        async def _send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                event.status_code = message.get("status")
                headers = list(message.get("headers") or [])
                if not any(key.lower() == request_id_header for key, _ in headers):
                    headers.append((request_id_header, event.request_id.encode("latin1")))
                    message["headers"] = headers
            await send(message)

        try:
            await self.app(scope, receive, _send_wrapper)
        except Exception as exc:
            if event.error is None:
                event.error = ErrorInfo.from_exception(exc, include_stack=self._settings.capture_stack)
            # A started response keeps the status it was sent with.
            if event.status_code is None:
                event.status_code = 500
            raise
        finally:
            # Routers fill in scope["route"] while dispatching.
            event.path = _route_path(scope) or event.path
            event.response_time_ms = event.elapsed_ms()
            event_name = event.event_name or self._settings.default_event_name
            event.event_name = None
            try:
                self.wide_logger.emit(event_name)
            except Exception:
                LOGGER.debug("wide event emit failed for %s", event_name, exc_info=True)

    def _build_event(self, scope: Scope) -> WideEvent:
        headers: Dict[str, str] = {
            key.decode("latin1").lower(): value.decode("latin1")
            for key, value in (scope.get("headers") or [])
        }

        path = scope.get("path", "")
        query = scope.get("query_string", b"").decode("latin1")
        client = scope.get("client")
        forwarded = headers.get("x-forwarded-for")
        ip = forwarded.split(",")[0].strip() if forwarded else (client[0] if client else None)
        rid = (headers.get(self._settings.request_id_header.lower()) or "").strip()

        return new_event(
            request_id=rid or new_request_id(),
            method=scope.get("method"),
            path=path,
            url=f"{path}?{query}" if query else path,
            ip=ip,
            user_agent=headers.get("user-agent"),
            trace_id=_trace_id(headers.get(self._settings.traceparent_header.lower())),
        )


def _route_path(scope: Scope) -> str | None:
    route = scope.get("route")
    return getattr(route, "path", None)


def _trace_id(header: str | None) -> str | None:
    if not header:
        return None
    parts = header.split("-")
    if len(parts) < 4 or len(parts[1]) != 32:
        return None
    return parts[1]
