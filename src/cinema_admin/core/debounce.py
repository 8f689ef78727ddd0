from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from typing import Any, Protocol

from cinema_admin.core import settings


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


# call_later-compatible: (delay_s, callback) -> handle with cancel().
Scheduler = Callable[[float, Callable[[], None]], TimerHandle]


def _loop_scheduler(delay_s: float, callback: Callable[[], None]) -> TimerHandle:
    return asyncio.get_running_loop().call_later(delay_s, callback)


class CancellableTimer:
    """One-shot timer that can be restarted or cancelled before it fires."""

    def __init__(
        self,
        delay_s: float,
        callback: Callable[[], None],
        *,
        scheduler: Scheduler | None = None,
    ) -> None:
        if delay_s < 0:
            raise ValueError("delay_s must be >= 0")
        self._delay_s = delay_s
        self._callback = callback
        self._scheduler = scheduler or _loop_scheduler
        self._handle: TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        if self._handle is None:
            self._handle = self._scheduler(self._delay_s, self._fire)

    def reset(self) -> None:
        self.cancel()
        self.start()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self._callback()


class DebouncedFilterBinding:
    """Coalesce bursts of input changes into a single ``set_filters`` call.

    Every change restarts the timer; only the last value seen before the input
    goes quiet for ``delay_ms`` is applied. There is no maximum wait.
    """

    def __init__(
        self,
        set_filters: Callable[[Mapping[str, Any]], Any],
        filter_key: str,
        *,
        delay_ms: int | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        if delay_ms is None:
            delay_ms = settings.search_debounce_ms()

        self._set_filters = set_filters
        self._filter_key = filter_key
        self._delay_ms = delay_ms
        self._timer = CancellableTimer(delay_ms / 1000.0, self._commit, scheduler=scheduler)
        self._value: Any = None

    @property
    def filter_key(self) -> str:
        return self._filter_key

    @property
    def delay_ms(self) -> int:
        return self._delay_ms

    @property
    def pending(self) -> bool:
        return self._timer.pending

    @property
    def pending_value(self) -> Any:
        return self._value if self._timer.pending else None

    def on_change(self, value: Any) -> None:
        self._value = value
        self._timer.reset()

    def flush(self) -> None:
        if self._timer.pending:
            self._timer.cancel()
            self._commit()

    def cancel(self) -> None:
        self._timer.cancel()

    def _commit(self) -> None:
        self._set_filters({self._filter_key: self._value})
