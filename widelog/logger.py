"""Wide-event logger facade and the process-wide default instance."""

from __future__ import annotations

import random
from contextlib import contextmanager
from threading import RLock
from typing import Any, Awaitable, Callable, Iterator, Mapping, Optional, TypeVar

from . import context as _context
from .backends import Backend, build_backend
from .config import WidelogSettings, get_settings
from .emit import ErrorHook, emit_event
from .events import WideEvent
from .sampling import SamplingDecision, SamplingPolicy, decide_and_record, policy_from_settings

T = TypeVar("T")


class WideLogger:
    """Bind a backend and a sampling policy to the context store."""

    def __init__(
        self,
        backend: Backend,
        policy: SamplingPolicy | None = None,
        *,
        on_error: Optional[ErrorHook] = None,
        rng: Callable[[], float] = random.random,
    ) -> None:
        self._backend = backend # Where sampled-in events go
        self._policy = policy or SamplingPolicy() # Shared by every unit
        self._on_error = on_error # Called with swallowed backend failures
        self._rng = rng

    @classmethod
    def from_settings(
        cls, settings: WidelogSettings, *, backend: Backend | None = None
    ) -> "WideLogger":
        """Build a logger whose backend carries ``service`` and ``env`` on every call."""

        base = backend if backend is not None else build_backend(settings)
        scoped = base.child({"service": settings.service, "env": settings.env})
        return cls(scoped, policy_from_settings(settings.sampling))

    @property
    def backend(self) -> Backend:
        return self._backend

    @property
    def policy(self) -> SamplingPolicy:
        return self._policy

    def run(self, event: WideEvent, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        return _context.run_with_context(event, func, *args, **kwargs)

    async def arun(
        self, event: WideEvent, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any
    ) -> T:
        return await _context.arun_with_context(event, func, *args, **kwargs)

    @contextmanager
    def scope(self, event: WideEvent) -> Iterator[WideEvent]:
        with _context.event_scope(event) as active:
            yield active

    def current(self) -> Optional[WideEvent]:
        return _context.current_event()

    def set(self, field_or_patch: Any = None, value: Any = _context._MISSING, **fields: Any) -> None:
        _context.update(field_or_patch, value, **fields)

    def set_details(self, patch: Mapping[str, Any] | None = None, **fields: Any) -> None:
        _context.merge_details(patch, **fields)

    def track_sub_operation(self, duration_ms: float) -> None:
        _context.record_sub_operation(duration_ms)

    def emit(self, event_name: str) -> Optional[SamplingDecision]:
        """Sample the active event and hand it to the backend if it is kept.

        The decision's reason is written onto the event either way. Returns
        ``None`` when no event is active.
        """

        event = _context.current_event()
        if event is None:
            return None

        decision = decide_and_record(event, self._policy, rng=self._rng)
        event.sampling_reason = decision.reason

        if decision.emit:
            emit_event(self._backend, event_name, event, on_error=self._on_error)

        return decision


class WideLoggerManager:
    """Own the default :class:`WideLogger` built from settings."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._logger: WideLogger | None = None

    def configure(self, settings: WidelogSettings, *, backend: Backend | None = None) -> WideLogger:
        with self._lock:
            self._logger = WideLogger.from_settings(settings, backend=backend)
            return self._logger

    @property
    def logger(self) -> WideLogger:
        with self._lock:
            if self._logger is None:
                self.configure(get_settings())
            assert self._logger is not None
            return self._logger

    def reset(self) -> None:
        with self._lock:
            self._logger = None


_MANAGER = WideLoggerManager()


def configure_manager(settings: WidelogSettings, *, backend: Backend | None = None) -> WideLogger:
    """Configure the default wide logger."""

    return _MANAGER.configure(settings, backend=backend)


def get_wide_logger() -> WideLogger:
    """Return the default wide logger, configuring it from the environment on first use."""

    return _MANAGER.logger


def reset_wide_logger() -> None:
    _MANAGER.reset()
