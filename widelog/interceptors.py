"""Sub-operation timing for data-access calls."""

from __future__ import annotations

import functools
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Generic, Iterable, Tuple, TypeVar

from .context import record_sub_operation

T = TypeVar("T")


@dataclass
class SubOperation(Generic[T]):
    """One intercepted call: what runs, against which target, and how to run it."""

    operation: str
    target: str
    call: Callable[..., T]
    args: Tuple[Any, ...] = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000.0


def track_sub_operation(op: SubOperation[T]) -> T:
    """Run ``op`` and fold its duration into the active event.

    Failures propagate untouched and are not counted.
    """

    start = time.perf_counter()
    result = op.call(*op.args, **op.kwargs)
    record_sub_operation(_elapsed_ms(start))
    return result


async def atrack_sub_operation(op: SubOperation[Awaitable[T]]) -> T:
    """Awaitable variant of :func:`track_sub_operation`."""

    start = time.perf_counter()
    result = await op.call(*op.args, **op.kwargs)
    record_sub_operation(_elapsed_ms(start))
    return result


def tracked(operation: str, target: str) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator form: every call of the wrapped function is a sub-operation."""

    def _decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def _wrapper(*args: Any, **kwargs: Any) -> T:
            return track_sub_operation(SubOperation(operation, target, func, args, kwargs))

        return _wrapper

    return _decorator


class TrackedCursor:
    """DB-API cursor proxy timing ``execute`` family calls."""

    def __init__(self, cursor: Any, target: str) -> None:
        self._cursor = cursor
        self._target = target

    def execute(self, sql: str, parameters: Iterable[Any] = ()) -> "TrackedCursor":
        track_sub_operation(SubOperation("execute", self._target, self._cursor.execute, (sql, parameters)))
        return self

    def executemany(self, sql: str, seq_of_parameters: Iterable[Iterable[Any]]) -> "TrackedCursor":
        track_sub_operation(
            SubOperation("executemany", self._target, self._cursor.executemany, (sql, seq_of_parameters))
        )
        return self

    def __iter__(self):
        return iter(self._cursor)

    def __getattr__(self, name: str) -> Any:
        return getattr(self._cursor, name)


class TrackedConnection:
    """DB-API connection proxy; statements and cursors are timed."""

    def __init__(self, connection: Any, target: str) -> None:
        self._connection = connection
        self._target = target

    @property
    def wrapped(self) -> Any:
        return self._connection

    def cursor(self, *args: Any, **kwargs: Any) -> TrackedCursor:
        return TrackedCursor(self._connection.cursor(*args, **kwargs), self._target)

    def execute(self, sql: str, parameters: Iterable[Any] = ()) -> TrackedCursor:
        return self.cursor().execute(sql, parameters)

    def executemany(self, sql: str, seq_of_parameters: Iterable[Iterable[Any]]) -> TrackedCursor:
        return self.cursor().executemany(sql, seq_of_parameters)

    def executescript(self, script: str) -> Any:
        return track_sub_operation(
            SubOperation("executescript", self._target, self._connection.executescript, (script,))
        )

    def __enter__(self) -> "TrackedConnection":
        self._connection.__enter__()
        return self

    def __exit__(self, *exc_info: Any) -> Any:
        return self._connection.__exit__(*exc_info)

    def __getattr__(self, name: str) -> Any:
        return getattr(self._connection, name)


def instrument_connection(connection: Any, *, target: str = "db") -> TrackedConnection:
    """Wrap a DB-API connection (``sqlite3`` and friends) so every statement is timed."""

    return TrackedConnection(connection, target)
