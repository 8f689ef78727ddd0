# ruff: noqa: E501

from __future__ import annotations

import html
from typing import Any
from urllib.parse import urlencode

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse

from cinema_admin.core.catalog import (
    Catalog,
    CatalogTable,
    InvalidQuery,
    InvalidRecord,
    RecordNotFound,
    UnknownResource,
)
from cinema_admin.core.pagination import pagination_controls
from cinema_admin.core.schemas import (
    ItemResponse,
    ListResponse,
    MessageResponse,
    PageResponse,
    RecordPayload,
)
from cinema_admin.core.sorting import parse_sort_param, serialize_sort_rules, sort_info, toggle_sort

router = APIRouter()

# Everything else in the query string is treated as a filter.
_RESERVED_PARAMS = frozenset({"page", "limit", "sort"})


def _catalog(request: Request) -> Catalog:
    return request.app.state.catalog


def _table(request: Request, resource: str) -> CatalogTable:
    try:
        return _catalog(request).table(resource)
    except UnknownResource as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


def _filters_from_query(request: Request) -> dict[str, str]:
    return {k: v for k, v in request.query_params.items() if k not in _RESERVED_PARAMS}


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/api/{resource}", response_model=PageResponse)
def list_resource(
    resource: str,
    request: Request,
    page: int = Query(default=1),
    limit: int = Query(default=10),
    sort: str | None = Query(default=None),
):
    table = _table(request, resource)
    try:
        result = table.list_page(
            page=page, limit=limit, sort=sort, filters=_filters_from_query(request)
        )
    except InvalidQuery as e:
        return JSONResponse(status_code=400, content={"success": False, "message": str(e)})

    return PageResponse(
        success=True,
        data=result.rows,
        meta=result.meta(),
        message=f"Fetched {resource} successfully.",
    )


@router.get("/api/{resource}/all", response_model=ListResponse)
def list_all(resource: str, request: Request) -> ListResponse:
    table = _table(request, resource)
    return ListResponse(data=table.all(), message=f"Fetched all {resource} successfully.")


@router.get("/api/{resource}/{item_id}", response_model=ItemResponse)
def get_item(resource: str, item_id: int, request: Request) -> ItemResponse:
    table = _table(request, resource)
    try:
        return ItemResponse(data=table.get(item_id))
    except RecordNotFound as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.post("/api/{resource}", response_model=ItemResponse, status_code=201)
def create_item(resource: str, payload: RecordPayload, request: Request) -> ItemResponse:
    table = _table(request, resource)
    try:
        record = table.create(payload.model_dump())
    except InvalidRecord as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return ItemResponse(data=record, message=f"{table.label} created successfully.")


@router.put("/api/{resource}/{item_id}", response_model=ItemResponse)
def update_item(
    resource: str, item_id: int, payload: RecordPayload, request: Request
) -> ItemResponse:
    table = _table(request, resource)
    try:
        record = table.update(item_id, payload.model_dump())
    except RecordNotFound as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except InvalidRecord as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return ItemResponse(data=record, message=f"{table.label} updated successfully.")


@router.delete("/api/{resource}/{item_id}", response_model=MessageResponse)
def delete_item(resource: str, item_id: int, request: Request) -> MessageResponse:
    table = _table(request, resource)
    try:
        table.delete(item_id)
    except RecordNotFound as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return MessageResponse(message=f"{table.label} deleted successfully.")


_PAGE_STYLE = """
      body { font-family: system-ui, -apple-system, Segoe UI, Roboto, sans-serif; margin: 24px; }
      table { border-collapse: collapse; width: 100%; max-width: 960px; }
      th, td { text-align: left; padding: 6px 10px; border-bottom: 1px solid #e6e6e6; }
      th a { color: inherit; text-decoration: none; }
      .muted { color: #666; }
      .pagination { display: flex; gap: 6px; margin-top: 12px; }
      .pagination .active { font-weight: 700; }
      .pagination .disabled { color: #bbb; }
"""


def _columns(rows: list[dict[str, Any]]) -> list[str]:
    cols: list[str] = ["id", "title"]
    for row in rows:
        for key in row:
            if key not in cols:
                cols.append(key)
    return cols


def _page_href(resource: str, params: dict[str, Any]) -> str:
    query = urlencode({k: v for k, v in params.items() if v not in (None, "")})
    return f"/admin/{resource}" + (f"?{query}" if query else "")


def _fmt_cell(value: Any) -> str:
    if value is None:
        return '<span class="muted">n/a</span>'
    if isinstance(value, list):
        return html.escape(", ".join(str(v) for v in value))
    return html.escape(str(value))


@router.get("/admin/{resource}", response_class=HTMLResponse)
def admin_table_page(
    resource: str,
    request: Request,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    sort: str | None = Query(default=None),
) -> HTMLResponse:
    """Server-rendered admin list: sortable headers, search box and page links."""

    table = _table(request, resource)
    filters = _filters_from_query(request)
    try:
        rules = parse_sort_param(sort)
        result = table.list_page(page=page, limit=limit, sort=sort, filters=filters)
    except (InvalidQuery, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    base_params: dict[str, Any] = {"limit": limit, "sort": sort, **filters}

    header_cells: list[str] = []
    for col in _columns(result.rows):
        info = sort_info(rules, col)
        arrow = ""
        if info.is_sorted:
            arrow = " &uarr;" if info.order == "asc" else " &darr;"
        href = _page_href(
            resource,
            {**base_params, "sort": serialize_sort_rules(toggle_sort(rules, col)), "page": 1},
        )
        header_cells.append(f'<th><a href="{html.escape(href)}">{html.escape(col)}{arrow}</a></th>')

    body_rows: list[str] = []
    cols = _columns(result.rows)
    for row in result.rows:
        cells = "".join(f"<td>{_fmt_cell(row.get(c))}</td>" for c in cols)
        body_rows.append(f"<tr>{cells}</tr>")
    if not body_rows:
        body_rows.append(f'<tr><td colspan="{len(cols)}" class="muted"><em>No results.</em></td></tr>')

    controls = pagination_controls(result.meta())
    page_links: list[str] = []
    if controls.previous_page is not None:
        href = _page_href(resource, {**base_params, "page": controls.previous_page})
        page_links.append(f'<a href="{html.escape(href)}" aria-label="Previous">&laquo;</a>')
    else:
        page_links.append('<span class="disabled">&laquo;</span>')
    for p in controls.pages:
        if p == controls.current_page:
            page_links.append(f'<span class="active">{p}</span>')
        else:
            href = _page_href(resource, {**base_params, "page": p})
            page_links.append(f'<a href="{html.escape(href)}">{p}</a>')
    if controls.next_page is not None:
        href = _page_href(resource, {**base_params, "page": controls.next_page})
        page_links.append(f'<a href="{html.escape(href)}" aria-label="Next">&raquo;</a>')
    else:
        page_links.append('<span class="disabled">&raquo;</span>')

    search_value = html.escape(str(filters.get("title", "")))
    sort_input = (
        f'<input type="hidden" name="sort" value="{html.escape(sort)}" />' if sort else ""
    )

    page_html = f"""<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>Admin · {html.escape(table.label)}</title>
    <style>{_PAGE_STYLE}</style>
  </head>
  <body>
    <h1>{html.escape(resource.title())}</h1>
    <form method="get" action="/admin/{html.escape(resource)}">
      <input id="search" name="title" placeholder="Search by title" value="{search_value}" />
      <input type="hidden" name="limit" value="{limit}" />
      {sort_input}
      <button type="submit">Search</button>
    </form>
    <p class="muted">Total: {result.total} · page {controls.current_page} of {controls.total_pages}</p>
    <table id="records">
      <thead><tr>{"".join(header_cells)}</tr></thead>
      <tbody>
        {"".join(body_rows)}
      </tbody>
    </table>
    <nav class="pagination" aria-label="Page navigation">{" ".join(page_links)}</nav>
  </body>
</html>
"""
    return HTMLResponse(page_html)


@router.get("/", response_class=HTMLResponse)
def index(request: Request) -> HTMLResponse:
    items = "\n".join(
        f'<li><a href="/admin/{html.escape(r)}">{html.escape(r.title())}</a>'
        f' · <code>/api/{html.escape(r)}</code></li>'
        for r in _catalog(request).resources
    )
    return HTMLResponse(
        f"""<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>Cinema Admin</title>
    <style>{_PAGE_STYLE}</style>
  </head>
  <body>
    <h1>Cinema Admin</h1>
    <ul id="resources">
{items}
    </ul>
  </body>
</html>
"""
    )
