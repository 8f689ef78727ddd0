from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from cinema_admin.core.debounce import DebouncedFilterBinding, Scheduler
from cinema_admin.core.pagination import PaginationControls, pagination_controls
from cinema_admin.core.services import ResourceService
from cinema_admin.core.sorting import SortRule
from cinema_admin.core.table_controller import RemoteTableController, TableSnapshot


class RecordValidationError(ValueError):
    pass


def validate_record(record: Mapping[str, Any]) -> None:
    title = record.get("title")
    if not isinstance(title, str) or not title.strip():
        raise RecordValidationError("Title is required")


class ResourceTable:
    """Admin list page for one resource: table state, debounced search and CRUD.

    Writes go straight to the service and are followed by a refetch so the
    visible page reflects server state.
    """

    def __init__(
        self,
        service: ResourceService,
        *,
        limit: int | None = None,
        sort_rules: Iterable[SortRule | Mapping[str, Any]] | None = None,
        search_key: str = "title",
        debounce_ms: int | None = None,
        scheduler: Scheduler | None = None,
        keep_data_on_error: bool | None = None,
    ) -> None:
        self.service = service
        self.controller = RemoteTableController(
            service.get_page,
            limit=limit,
            sort_rules=sort_rules,
            keep_data_on_error=keep_data_on_error,
        )
        self.search_binding = DebouncedFilterBinding(
            self.controller.set_filters,
            search_key,
            delay_ms=debounce_ms,
            scheduler=scheduler,
        )

    async def load(self) -> TableSnapshot:
        return await self.controller.load()

    def search(self, value: str) -> None:
        self.search_binding.on_change(value)

    def sort_by(self, field: str) -> None:
        self.controller.toggle_sort(field)

    def go_to_page(self, page: int) -> None:
        self.controller.set_page(page)

    def pagination(self) -> PaginationControls:
        return pagination_controls(self.controller.meta)

    async def save(self, record: Mapping[str, Any]) -> dict[str, Any]:
        validate_record(record)

        payload = {k: v for k, v in record.items() if k != "id"}
        item_id = record.get("id")
        if item_id is None:
            saved = await self.service.create(payload)
        else:
            saved = await self.service.update(int(item_id), payload)

        self.controller.refetch()
        await self.controller.wait_idle()
        return saved

    async def delete(self, item_id: int) -> str:
        message = await self.service.delete(item_id)
        self.controller.refetch()
        await self.controller.wait_idle()
        return message

    def close(self) -> None:
        self.search_binding.cancel()
        self.controller.close()
