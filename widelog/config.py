"""Configuration utilities for wide-event logging."""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field, replace
from typing import Any, Mapping

DEFAULT_SAMPLE_RATE = 0.05
DEFAULT_SLOW_REQUEST_MS = 1000.0
DEFAULT_ERROR_STATUS_CODES: tuple[int, ...] = tuple(range(500, 512))

BACKENDS = ("stdout", "stdlib", "file", "memory", "gcl")


class WidelogConfigError(ValueError):
    """Raised when wide-event configuration cannot be turned into a policy."""


def _comma_tuple(value: str | None, *, default: tuple[str, ...]) -> tuple[str, ...]:
    """Convert a comma-separated string to a tuple."""

    if not value:
        return default

    return tuple(filter(None, (part.strip() for part in value.split(","))))


def _bool_env(value: str | None, default: bool) -> bool:
    """Convert a string to a boolean."""

    if value is None:
        return default

    return value.lower() in {"1", "true", "yes", "on"}


def _float_env(value: str | None, default: float) -> float:
    if value is None:
        return default

    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _rate_env(value: str | None, default: float) -> float:
    return max(0.0, min(1.0, _float_env(value, default)))


def _int_tuple(value: str | None, *, default: tuple[int, ...]) -> tuple[int, ...]:
    parts = _comma_tuple(value, default=())
    if not parts:
        return default

    try:
        return tuple(int(part) for part in parts)
    except ValueError:
        return default


@dataclass(frozen=True)
class SamplingSettings:
    """Raw sampling knobs as read from the environment."""

    rate: float = DEFAULT_SAMPLE_RATE
    slow_threshold_ms: float = DEFAULT_SLOW_REQUEST_MS
    error_status_codes: tuple[int, ...] = DEFAULT_ERROR_STATUS_CODES
    vip_user_ids: tuple[str, ...] = ()
    always_log_paths: tuple[str, ...] = ()
    never_log_paths: tuple[str, ...] = ()


@dataclass(frozen=True)
class WidelogSettings:
    """Immutable runtime configuration."""

    service: str = "unknown-service"
    env: str = "local"
    level: str = "INFO"
    backend: str = "stdout"
    file_path: str | None = None
    logger_name: str = "widelog.events"
    gcl_project: str | None = None
    gcl_log_name: str = "wide-events"
    request_id_header: str = "X-Request-Id"
    traceparent_header: str = "traceparent"
    default_event_name: str = "request_completed"
    capture_stack: bool = True
    sampling: SamplingSettings = field(default_factory=SamplingSettings)

    def with_overrides(self, **kwargs: Any) -> "WidelogSettings":
        return replace(self, **kwargs)


_SETTINGS_LOCK = threading.RLock()
_SETTINGS: WidelogSettings | None = None


def load_settings(env: Mapping[str, str] | None = None) -> WidelogSettings:
    source = os.environ if env is None else env

    backend = source.get("WIDELOG_BACKEND", "stdout").strip().lower()
    if backend not in BACKENDS:
        backend = "stdout"

    sampling = SamplingSettings(
        rate=_rate_env(source.get("WIDELOG_SAMPLE_RATE"), DEFAULT_SAMPLE_RATE),
        slow_threshold_ms=_float_env(
            source.get("WIDELOG_SLOW_REQUEST_MS"), DEFAULT_SLOW_REQUEST_MS
        ),
        error_status_codes=_int_tuple(
            source.get("WIDELOG_ERROR_STATUS_CODES"), default=DEFAULT_ERROR_STATUS_CODES
        ),
        vip_user_ids=_comma_tuple(source.get("WIDELOG_VIP_USER_IDS"), default=()),
        always_log_paths=_comma_tuple(source.get("WIDELOG_ALWAYS_LOG_PATHS"), default=()),
        never_log_paths=_comma_tuple(source.get("WIDELOG_NEVER_LOG_PATHS"), default=()),
    )

    return WidelogSettings(
        service=source.get("WIDELOG_SERVICE_NAME", "unknown-service"),
        env=source.get("WIDELOG_ENV", "local"),
        level=source.get("WIDELOG_LEVEL", "INFO").upper(),
        backend=backend,
        file_path=source.get("WIDELOG_FILE_PATH"),
        logger_name=source.get("WIDELOG_LOGGER_NAME", "widelog.events"),
        gcl_project=source.get("WIDELOG_GCL_PROJECT"),
        gcl_log_name=source.get("WIDELOG_GCL_LOG_NAME", "wide-events"),
        request_id_header=source.get("WIDELOG_REQUEST_ID_HEADER", "X-Request-Id"),
        traceparent_header=source.get("WIDELOG_TRACE_HEADER", "traceparent"),
        default_event_name=source.get("WIDELOG_EVENT_NAME", "request_completed"),
        capture_stack=_bool_env(source.get("WIDELOG_CAPTURE_STACK"), True),
        sampling=sampling,
    )


def configure_settings(
    settings: WidelogSettings | None = None, **overrides: Any
) -> WidelogSettings:
    with _SETTINGS_LOCK:
        resolved = settings or load_settings()
        if overrides:
            resolved = resolved.with_overrides(**overrides)
        global _SETTINGS
        _SETTINGS = resolved
        return _SETTINGS


def get_settings() -> WidelogSettings:
    with _SETTINGS_LOCK:
        if _SETTINGS is None:
            return configure_settings()
        return _SETTINGS


def reset_settings() -> None:
    global _SETTINGS
    with _SETTINGS_LOCK:
        _SETTINGS = None
