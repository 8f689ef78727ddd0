from __future__ import annotations

from fastapi.testclient import TestClient

from cinema_admin.api.app import create_app
from cinema_admin.core.catalog import load_catalog


def _client() -> TestClient:
    return TestClient(create_app(catalog=load_catalog()))


def test_listing_returns_envelope_with_wire_meta() -> None:
    client = _client()
    resp = client.get("/api/movies", params={"page": 2, "limit": 5, "sort": "year:asc"})
    assert resp.status_code == 200

    body = resp.json()
    assert body["success"] is True
    assert body["meta"] == {"page": 2, "limit": 5, "total": 22, "totalPages": 5}
    assert [r["year"] for r in body["data"]] == [1995, 1999, 2000, 2001, 2001]


def test_listing_treats_other_params_as_filters() -> None:
    client = _client()
    resp = client.get("/api/movies", params={"title": "dune", "sort": "year:desc"})
    assert resp.status_code == 200
    assert [r["title"] for r in resp.json()["data"]] == ["Dune: Part Two", "Dune"]


def test_invalid_listing_query_is_400_envelope() -> None:
    client = _client()

    resp = client.get("/api/genres", params={"sort": "bogus:asc"})
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Unknown sort field: bogus"}

    resp = client.get("/api/genres", params={"limit": 0})
    assert resp.status_code == 400
    assert resp.json()["success"] is False

    resp = client.get("/api/genres", params={"page": "abc"})
    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert resp.json()["message"].startswith("page:")


def test_unknown_resource_is_404() -> None:
    client = _client()
    resp = client.get("/api/widgets")
    assert resp.status_code == 404
    assert resp.json()["success"] is False
    assert resp.json()["message"] == "Unknown resource: widgets"


def test_list_all() -> None:
    client = _client()
    resp = client.get("/api/categories/all")
    assert resp.status_code == 200
    assert len(resp.json()["data"]) == 5


def test_crud_endpoints() -> None:
    client = _client()

    created = client.post("/api/genres", json={"title": "Western"})
    assert created.status_code == 201
    assert created.json()["data"] == {"id": 13, "title": "Western"}
    assert created.json()["message"] == "Genre created successfully."

    fetched = client.get("/api/genres/13")
    assert fetched.status_code == 200
    assert fetched.json()["data"]["title"] == "Western"

    updated = client.put("/api/genres/13", json={"title": "Noir Western"})
    assert updated.status_code == 200
    assert updated.json()["data"] == {"id": 13, "title": "Noir Western"}

    deleted = client.delete("/api/genres/13")
    assert deleted.status_code == 200
    assert deleted.json() == {"success": True, "message": "Genre deleted successfully."}

    missing = client.get("/api/genres/13")
    assert missing.status_code == 404
    assert missing.json()["message"] == "Genre not found"


def test_create_keeps_extra_fields() -> None:
    client = _client()
    resp = client.post("/api/movies", json={"title": "Past Lives", "year": 2023, "genre": "Romance"})
    assert resp.status_code == 201
    assert resp.json()["data"] == {"id": 23, "title": "Past Lives", "year": 2023, "genre": "Romance"}

    listed = client.get("/api/movies", params={"year": 2023})
    assert [r["title"] for r in listed.json()["data"]] == ["Past Lives"]


def test_create_validation() -> None:
    client = _client()

    empty = client.post("/api/genres", json={"title": ""})
    assert empty.status_code == 400
    assert empty.json()["success"] is False
    assert empty.json()["message"].startswith("title:")

    missing = client.post("/api/genres", json={})
    assert missing.status_code == 400
    assert missing.json() == {"success": False, "message": "title: Field required"}

    assert client.put("/api/genres/1", json={"name": "Drama"}).status_code == 400

    blank = client.post("/api/genres", json={"title": "   "})
    assert blank.status_code == 400
    assert blank.json()["message"] == "Title is required"

    assert client.put("/api/genres/999", json={"title": "Ghost"}).status_code == 404


def test_listing_keeps_integer_columns_when_a_record_lacks_them() -> None:
    client = _client()
    assert client.post("/api/movies", json={"title": "No Year"}).status_code == 201

    listed = client.get("/api/movies", params={"limit": 100})
    rows = {r["id"]: r for r in listed.json()["data"]}

    assert rows[1] == client.get("/api/movies/1").json()["data"]
    assert rows[1]["year"] == 1979
    assert isinstance(rows[1]["views"], int)
    assert rows[23] == {"id": 23, "title": "No Year"}

    by_year = client.get("/api/movies", params={"sort": "year:asc", "limit": 100}).json()["data"]
    assert by_year[0]["title"] == "Seven Samurai"
    assert by_year[-1]["title"] == "No Year"
