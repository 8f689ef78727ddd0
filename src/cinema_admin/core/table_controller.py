from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from cinema_admin.core import settings, sorting
from cinema_admin.core.query import FilterValue, QueryState, build_request_params
from cinema_admin.core.schemas import DEFAULT_META, PageMeta, PageResponse
from cinema_admin.core.sorting import SortRule, coerce_sort_rules

_LOG = logging.getLogger("cinema_admin.table")

# (params) -> {success, data, meta, message}, either directly or as an awaitable.
FetchPage = Callable[[dict[str, Any]], Any]


class TableFetchError(RuntimeError):
    pass


class RemoteFailure(TableFetchError):
    """The remote source answered, but with ``success: false``."""


class TransportFailure(TableFetchError):
    """The fetch call raised (network error, timeout, malformed envelope)."""


@dataclass(frozen=True)
class TableSnapshot:
    data: list[Any]
    meta: PageMeta
    is_loading: bool
    error: TableFetchError | None
    query: QueryState


Listener = Callable[[TableSnapshot], None]


def _check_limit(limit: int) -> None:
    if limit < 1:
        raise ValueError("limit must be >= 1")


class RemoteTableController:
    """Server-side paginated / sorted / filtered table state.

    Owns the query state (page, limit, sort rules, filters) and republishes the
    result of the latest fetch as ``data``, ``meta``, ``is_loading`` and ``error``.

    Mutators are synchronous: they replace the query state immediately and
    schedule a fetch on the running event loop, returning its task. Each fetch is
    tagged with a generation number, and only the latest generation may touch the
    result state, so a slow earlier response can never overwrite a newer one.

    Failures are captured on ``error`` and never raised to the caller. By default
    an error also clears ``data`` and resets ``meta``; pass
    ``keep_data_on_error=True`` (or set CINEMA_ADMIN_KEEP_DATA_ON_ERROR) to keep
    the last good page visible instead.
    """

    def __init__(
        self,
        fetch_page: FetchPage,
        *,
        page: int = 1,
        limit: int | None = None,
        sort_rules: Iterable[SortRule | Mapping[str, Any]] | None = None,
        filters: Mapping[str, FilterValue] | None = None,
        keep_data_on_error: bool | None = None,
        cancel_superseded: bool = True,
    ) -> None:
        if limit is None:
            limit = settings.default_page_limit()
        _check_limit(limit)

        self._fetch_page = fetch_page
        self._query = QueryState(
            page=page,
            limit=limit,
            sort_rules=coerce_sort_rules(sort_rules),
            filters=dict(filters or {}),
        )
        self._keep_data_on_error = (
            settings.keep_data_on_error() if keep_data_on_error is None else keep_data_on_error
        )
        self._cancel_superseded = cancel_superseded

        self._data: list[Any] = []
        self._meta: PageMeta = DEFAULT_META
        self._is_loading = False
        self._error: TableFetchError | None = None

        self._generation = 0
        self._task: asyncio.Task[None] | None = None
        self._listeners: list[Listener] = []

    # -- view-facing state ---------------------------------------------------

    @property
    def data(self) -> list[Any]:
        return list(self._data)

    @property
    def meta(self) -> PageMeta:
        return self._meta

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def error(self) -> TableFetchError | None:
        return self._error

    @property
    def query_params(self) -> QueryState:
        return self._query.copy()

    def snapshot(self) -> TableSnapshot:
        return TableSnapshot(
            data=list(self._data),
            meta=self._meta,
            is_loading=self._is_loading,
            error=self._error,
            query=self._query.copy(),
        )

    def sort_info(self, field: str) -> sorting.SortInfo:
        return sorting.sort_info(self._query.sort_rules, field)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # -- mutators --------------------------------------------------------------

    def set_page(self, page: int) -> asyncio.Task[None]:
        # No clamping: callers pick pages from the last meta, anything else is sent as-is.
        return self._schedule(self._query.with_page(page))

    def set_limit(self, limit: int) -> asyncio.Task[None]:
        _check_limit(limit)
        return self._schedule(self._query.with_limit(limit))

    def set_sort_rules(
        self, rules: Iterable[SortRule | Mapping[str, Any]] | None
    ) -> asyncio.Task[None]:
        return self._schedule(self._query.with_sort_rules(coerce_sort_rules(rules)))

    def set_filters(self, partial: Mapping[str, FilterValue]) -> asyncio.Task[None]:
        return self._schedule(self._query.with_filters(partial))

    def toggle_sort(self, field: str) -> asyncio.Task[None]:
        return self.set_sort_rules(sorting.toggle_sort(self._query.sort_rules, field))

    def refetch(self) -> asyncio.Task[None]:
        return self._schedule(self._query)

    async def load(self) -> TableSnapshot:
        self.refetch()
        await self.wait_idle()
        return self.snapshot()

    async def wait_idle(self) -> None:
        """Wait until the most recently issued fetch has finished."""

        while True:
            task = self._task
            if task is None or task.done():
                return
            await asyncio.wait({task})

    def close(self) -> None:
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._is_loading = False
        self._listeners.clear()

    # -- internals -------------------------------------------------------------

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _schedule(self, query: QueryState) -> asyncio.Task[None]:
        loop = asyncio.get_running_loop()

        self._query = query
        self._generation += 1
        generation = self._generation
        params = build_request_params(query)

        previous = self._task
        if self._cancel_superseded and previous is not None and not previous.done():
            previous.cancel()

        self._is_loading = True
        self._error = None
        task = self._task = loop.create_task(self._run(generation, params))
        self._notify()
        return task

    async def _run(self, generation: int, params: dict[str, Any]) -> None:
        _LOG.debug("Table fetch #%d params=%s", generation, params)
        try:
            try:
                response = await self._request(params)
            except TableFetchError as failure:
                if self._is_current(generation):
                    self._apply_failure(failure)
                else:
                    _LOG.debug("Dropping stale failure for table fetch #%d", generation)
                return

            if self._is_current(generation):
                self._data = list(response.data or [])
                self._meta = response.meta or DEFAULT_META
            else:
                _LOG.debug(
                    "Dropping stale response for table fetch #%d (current #%d)",
                    generation,
                    self._generation,
                )
        finally:
            if self._is_current(generation):
                self._is_loading = False
                self._notify()

    async def _request(self, params: dict[str, Any]) -> PageResponse:
        try:
            result = self._fetch_page(dict(params))
            if inspect.isawaitable(result):
                result = await result
            response = (
                result if isinstance(result, PageResponse) else PageResponse.model_validate(result)
            )
        except Exception as e:
            raise TransportFailure(str(e) or type(e).__name__) from e

        if not response.success:
            raise RemoteFailure(response.message or "Failed to fetch data")
        return response

    def _apply_failure(self, failure: TableFetchError) -> None:
        _LOG.warning("Table fetch failed: %s", failure)
        self._error = failure
        if not self._keep_data_on_error:
            self._data = []
            self._meta = DEFAULT_META

    def _notify(self) -> None:
        if not self._listeners:
            return
        snap = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception:
                _LOG.exception("Table listener %r failed", listener)
