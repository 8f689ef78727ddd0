from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PageMeta(BaseModel):
    # Wire format uses camelCase (totalPages); accept snake_case too.
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    page: int = Field(default=1, ge=0)
    limit: int = Field(default=10, ge=0)
    total: int = Field(default=0, ge=0)
    total_pages: int = Field(default=1, ge=0, alias="totalPages")


DEFAULT_META = PageMeta(page=1, limit=10, total=0, total_pages=1)


class PageResponse(BaseModel):
    """Envelope returned by paginated listing endpoints."""

    success: bool
    data: list[Any] | None = None
    meta: PageMeta | None = None
    message: str | None = None


class ItemResponse(BaseModel):
    success: bool = True
    data: dict[str, Any]
    message: str | None = None


class ListResponse(BaseModel):
    success: bool = True
    data: list[dict[str, Any]]
    message: str | None = None


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class RecordPayload(BaseModel):
    # Resources differ in shape; only the title is shared.
    model_config = ConfigDict(extra="allow")

    title: str = Field(min_length=1)
