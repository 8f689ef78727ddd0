from __future__ import annotations

import asyncio
from typing import Any

import pytest

from cinema_admin.core.debounce import CancellableTimer, DebouncedFilterBinding
from cinema_admin.core.table_controller import RemoteTableController


def test_debounce_coalesces_burst_into_single_update(clock) -> None:
    calls: list[tuple[float, dict[str, Any]]] = []

    binding = DebouncedFilterBinding(
        lambda f: calls.append((clock.now, dict(f))), "q", delay_ms=300, scheduler=clock.call_later
    )

    binding.on_change("a")
    clock.advance(0.1)
    binding.on_change("ab")
    clock.advance(0.1)
    binding.on_change("abc")

    clock.advance(0.25)
    assert calls == []
    assert binding.pending is True
    assert binding.pending_value == "abc"

    clock.advance(1.0)
    assert len(calls) == 1
    fired_at, filters = calls[0]
    assert filters == {"q": "abc"}
    assert fired_at == pytest.approx(0.5)
    assert binding.pending is False


def test_continuous_typing_never_commits(clock) -> None:
    calls: list[dict[str, Any]] = []
    binding = DebouncedFilterBinding(calls.append, "title", delay_ms=300, scheduler=clock.call_later)

    for i in range(20):
        binding.on_change("x" * (i + 1))
        clock.advance(0.2)
    assert calls == []

    clock.advance(0.1)
    assert calls == [{"title": "x" * 20}]


def test_flush_and_cancel(clock) -> None:
    calls: list[dict[str, Any]] = []
    binding = DebouncedFilterBinding(calls.append, "title", delay_ms=300, scheduler=clock.call_later)

    binding.on_change("dune")
    binding.flush()
    assert calls == [{"title": "dune"}]

    # Nothing pending, so flushing again is a no-op.
    binding.flush()
    clock.advance(1)
    assert calls == [{"title": "dune"}]

    binding.on_change("alien")
    binding.cancel()
    clock.advance(1)
    assert calls == [{"title": "dune"}]


def test_cancellable_timer(clock) -> None:
    fired: list[float] = []
    timer = CancellableTimer(0.5, lambda: fired.append(clock.now), scheduler=clock.call_later)

    timer.start()
    timer.start()  # already pending, not rescheduled
    clock.advance(0.3)
    timer.reset()
    clock.advance(0.3)
    assert fired == []
    assert timer.pending is True

    clock.advance(0.2)
    assert fired == [pytest.approx(0.8)]
    assert timer.pending is False

    timer.start()
    timer.cancel()
    clock.advance(1)
    assert len(fired) == 1

    with pytest.raises(ValueError):
        CancellableTimer(-1, lambda: None)


def test_default_delay_comes_from_env(monkeypatch) -> None:
    monkeypatch.setenv("CINEMA_ADMIN_SEARCH_DEBOUNCE_MS", "150")
    binding = DebouncedFilterBinding(lambda _f: None, "q")
    assert binding.delay_ms == 150


def test_binding_drives_controller_on_event_loop() -> None:
    calls: list[dict[str, Any]] = []

    async def fetch(params: dict[str, Any]) -> dict[str, Any]:
        calls.append(params)
        return {"success": True, "data": [], "meta": None}

    async def scenario() -> RemoteTableController:
        ctrl = RemoteTableController(fetch, page=3)
        binding = DebouncedFilterBinding(ctrl.set_filters, "title", delay_ms=20)
        for value in ("d", "du", "dun", "dune"):
            binding.on_change(value)
        await asyncio.sleep(0.1)
        await ctrl.wait_idle()
        return ctrl

    ctrl = asyncio.run(scenario())
    assert calls == [{"page": 1, "limit": 10, "title": "dune"}]
    assert ctrl.query_params.filters == {"title": "dune"}
