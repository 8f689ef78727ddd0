from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Final

import httpx

from cinema_admin.core import settings

RESOURCES: Final[tuple[str, ...]] = (
    "genres",
    "categories",
    "countries",
    "sections",
    "series",
    "movies",
)


class AdminApiError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ResourceNotFound(AdminApiError):
    pass


def create_api_client(
    *,
    base_url: str | None = None,
    access_token: str | None = None,
    timeout_s: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    headers = {
        "User-Agent": "cinema-admin-tables/0.1",
        "Accept": "application/json",
        "Content-Type": "application/json",
    }
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"

    return httpx.AsyncClient(
        base_url=base_url or settings.api_base_url(),
        headers=headers,
        timeout=timeout_s if timeout_s is not None else settings.api_timeout_s(),
        follow_redirects=True,
        transport=transport,
    )


def _json_or_none(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return None


def _error_message(resp: httpx.Response, body: Any) -> str:
    if isinstance(body, dict):
        for key in ("message", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return f"Admin API responded with {resp.status_code}"


def _raise_for_status(resp: httpx.Response, body: Any) -> None:
    if resp.status_code == 404:
        raise ResourceNotFound(_error_message(resp, body), status_code=404)
    if resp.status_code >= 400:
        raise AdminApiError(_error_message(resp, body), status_code=resp.status_code)


class ResourceService:
    """Thin async wrapper around one admin REST resource (``/api/<resource>``).

    ``get_page`` is shaped to be passed straight to RemoteTableController as its
    fetch function.
    """

    def __init__(self, resource: str, *, client: httpx.AsyncClient) -> None:
        if resource not in RESOURCES:
            raise ValueError(f"Unknown resource: {resource}")
        self.resource = resource
        self._client = client

    @property
    def base_path(self) -> str:
        return f"/api/{self.resource}"

    async def get_page(self, params: Mapping[str, Any]) -> dict[str, Any]:
        resp = await self._client.get(self.base_path, params=dict(params))
        body = _json_or_none(resp)

        # Listing errors keep the {success: false, message} envelope so the
        # table can surface the server's message.
        if resp.status_code >= 400 and isinstance(body, dict) and "success" in body:
            return body

        _raise_for_status(resp, body)
        if not isinstance(body, dict):
            raise AdminApiError("Admin API returned a non-object payload", status_code=resp.status_code)
        return body

    async def get_all(self) -> list[dict[str, Any]]:
        resp = await self._client.get(f"{self.base_path}/all")
        body = _json_or_none(resp)
        _raise_for_status(resp, body)
        return list((body or {}).get("data") or [])

    async def get_by_id(self, item_id: int) -> dict[str, Any]:
        resp = await self._client.get(f"{self.base_path}/{item_id}")
        body = _json_or_none(resp)
        _raise_for_status(resp, body)
        return dict((body or {}).get("data") or {})

    async def create(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        resp = await self._client.post(self.base_path, json=dict(payload))
        body = _json_or_none(resp)
        _raise_for_status(resp, body)
        return dict((body or {}).get("data") or {})

    async def update(self, item_id: int, payload: Mapping[str, Any]) -> dict[str, Any]:
        resp = await self._client.put(f"{self.base_path}/{item_id}", json=dict(payload))
        body = _json_or_none(resp)
        _raise_for_status(resp, body)
        return dict((body or {}).get("data") or {})

    async def delete(self, item_id: int) -> str:
        resp = await self._client.delete(f"{self.base_path}/{item_id}")
        body = _json_or_none(resp)
        _raise_for_status(resp, body)
        return str((body or {}).get("message") or "Deleted")
