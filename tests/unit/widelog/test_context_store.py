"""Tests for active-event propagation, isolation and mutation."""

from __future__ import annotations

import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from widelog.context import (
    arun_with_context,
    bind_current_event,
    current_event,
    event_scope,
    merge_details,
    record_sub_operation,
    run_with_context,
    update,
)

from tests.utils.widelog import make_event


def test_current_event_is_none_outside_scope() -> None:
    assert current_event() is None


def test_run_with_context_exposes_event_and_returns_result() -> None:
    event = make_event()

    result = run_with_context(event, lambda: current_event().request_id)

    assert result == "test-123"
    assert current_event() is None


def test_run_with_context_forwards_arguments() -> None:
    event = make_event()

    def _handler(a, b, *, c):
        return (current_event() is event, a + b + c)

    assert run_with_context(event, _handler, 1, 2, c=3) == (True, 6)


def test_nested_scope_restores_outer_event_after_return() -> None:
    outer = make_event(request_id="outer")
    inner = make_event(request_id="inner")
    seen = []

    def _inner():
        seen.append(current_event().request_id)

    def _outer():
        seen.append(current_event().request_id)
        run_with_context(inner, _inner)
        seen.append(current_event().request_id)

    run_with_context(outer, _outer)

    assert seen == ["outer", "inner", "outer"]
    assert current_event() is None


def test_nested_scope_restores_outer_event_after_failure() -> None:
    outer = make_event(request_id="outer")
    inner = make_event(request_id="inner")

    def _boom():
        raise ValueError("inner failure")

    def _outer():
        with pytest.raises(ValueError):
            run_with_context(inner, _boom)
        return current_event()

    assert run_with_context(outer, _outer) is outer
    assert current_event() is None


def test_event_scope_context_manager_restores_on_exception() -> None:
    event = make_event()

    with pytest.raises(RuntimeError):
        with event_scope(event) as active:
            assert active is event
            assert current_event() is event
            raise RuntimeError("unit failed")

    assert current_event() is None


def test_mutations_without_active_event_are_noops() -> None:
    update("user_id", "u-1")
    update({"status_code": 500})
    update(path="/x")
    merge_details({"order": 1})
    record_sub_operation(10.0)

    assert current_event() is None


def test_update_single_field_patch_and_keywords() -> None:
    event = make_event()

    with event_scope(event):
        update("user_id", "user-123")
        update({"method": "POST", "path": "/api/items"})
        update(status_code=201, operation_type="write")

    assert event.user_id == "user-123"
    assert event.method == "POST"
    assert event.path == "/api/items"
    assert event.status_code == 201
    assert event.operation_type == "write"


def test_update_ignores_immutable_fields() -> None:
    event = make_event()
    started_at = event.started_at

    with event_scope(event):
        update(request_id="other", started_at=0.0)

    assert event.request_id == "test-123"
    assert event.started_at == started_at


def test_update_routes_unknown_fields_into_details() -> None:
    event = make_event()

    with event_scope(event):
        update("cart_total_cents", 4200)
        update(details={"currency": "EUR"})

    assert event.details == {"cart_total_cents": 4200, "currency": "EUR"}


def test_merge_details_is_non_destructive_and_last_writer_wins() -> None:
    event = make_event()

    with event_scope(event):
        merge_details({"amount": 9999, "currency": "EUR"})
        merge_details({"currency": "USD"}, order_id="23523")

    assert event.details == {"amount": 9999, "currency": "USD", "order_id": "23523"}


def test_record_sub_operation_accumulates() -> None:
    event = make_event()

    with event_scope(event):
        for duration in (50, 100, 25):
            record_sub_operation(duration)

    assert event.query_count == 3
    assert event.query_time_ms == 175


def test_concurrent_threads_never_observe_each_other() -> None:
    barrier = threading.Barrier(8)
    observed = {}

    def _unit(index: int) -> None:
        event = make_event(request_id=f"req-{index}")

        def _body():
            barrier.wait(timeout=5)
            update(user_id=f"user-{index}")
            barrier.wait(timeout=5)
            active = current_event()
            observed[index] = (active.request_id, active.user_id)

        run_with_context(event, _body)

    threads = [threading.Thread(target=_unit, args=(i,)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert observed == {i: (f"req-{i}", f"user-{i}") for i in range(8)}


def test_async_tasks_are_isolated_across_suspension_points() -> None:
    async def _unit(index: int):
        event = make_event(request_id=f"req-{index}")

        async def _body():
            update(user_id=f"user-{index}")
            await asyncio.sleep(0)
            record_sub_operation(float(index))
            await asyncio.sleep(0)
            active = current_event()
            return active.request_id, active.user_id, active.query_time_ms

        return await arun_with_context(event, _body)

    async def _main():
        return await asyncio.gather(*(_unit(i) for i in range(5)))

    results = asyncio.run(_main())

    assert results == [(f"req-{i}", f"user-{i}", float(i)) for i in range(5)]


def test_async_child_tasks_share_the_parent_event() -> None:
    event = make_event()

    async def _query(duration: float):
        await asyncio.sleep(0)
        record_sub_operation(duration)

    async def _body():
        await asyncio.gather(_query(10.0), _query(20.0))
        return current_event()

    async def _main():
        active = await arun_with_context(event, _body)
        return active, current_event()

    active, after = asyncio.run(_main())

    assert active is event
    assert after is None
    assert event.query_count == 2
    assert event.query_time_ms == 30.0


def test_arun_with_context_restores_after_failure() -> None:
    outer = make_event(request_id="outer")

    async def _boom():
        await asyncio.sleep(0)
        raise KeyError("missing")

    async def _main():
        with event_scope(outer):
            with pytest.raises(KeyError):
                await arun_with_context(make_event(request_id="inner"), _boom)
            return current_event()

    assert asyncio.run(_main()) is outer


def test_bind_current_event_carries_event_into_worker_threads() -> None:
    event = make_event()

    def _work():
        merge_details(worker=threading.current_thread().name)
        return current_event()

    with event_scope(event):
        bound = bind_current_event(_work)

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = [pool.submit(bound).result() for _ in range(2)]
        unbound = pool.submit(current_event).result()

    assert results == [event, event]
    assert "worker" in event.details
    assert unbound is None


def test_details_can_only_be_merged_into() -> None:
    event = make_event()

    with event_scope(event):
        merge_details(cache="miss")
        update(details=None)
        update("details", ["not", "a", "mapping"])
        merge_details(a=1)
        merge_details(["not", "a", "mapping"])  # type: ignore[arg-type]

    assert event.details == {"cache": "miss", "a": 1}


def test_update_cannot_reset_sub_operation_counters() -> None:
    event = make_event()

    with event_scope(event):
        record_sub_operation(50)
        record_sub_operation(100)
        update(query_count=0, query_time_ms=0.0)
        update({"query_count": 99})
        record_sub_operation(25)

    assert event.query_count == 3
    assert event.query_time_ms == 175


def test_malformed_mutations_are_ignored() -> None:
    event = make_event()

    with event_scope(event):
        update(42)  # type: ignore[arg-type]
        record_sub_operation("fast")  # type: ignore[arg-type]
        record_sub_operation(None)  # type: ignore[arg-type]

    assert event.query_count is None
    assert event.details == {}
