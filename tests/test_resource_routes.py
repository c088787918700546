"""
Owner-scoped resource routes: every kind shares one mechanism, and one
owner's records are invisible to every other owner.
"""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from lifeboard.resources.models import RESOURCE_KINDS
from lifeboard.resources.store import DocumentStore
from lifeboard.utils.config import AuthSettings, Settings, StorageSettings
from lifeboard.utils.exceptions import ServiceError
from lifeboard_web import create_app

VALID_PAYLOADS = {
    "todos": {"task": "buy milk"},
    "plans": {"title": "Trip", "description": "Go to the mountains", "status": "Not Started"},
    "stories": {"title": "Once", "content": "Upon a time"},
    "links": {"name": "Docs", "url": "https://example.com"},
    "passwords": {"websiteName": "Example", "username": "me", "passwordValue": "s3cret"},
    "cards": {"cardName": "Travel card", "cardType": "credit", "lastFourDigits": "1234", "expiryDate": "09/28"},
    "albums": {"name": "Summer"},
    "photos": {"url": "https://example.com/p.jpg"},
}


def create(client: TestClient, kind: str, owner_id: str, **fields):
    payload = {**VALID_PAYLOADS[kind], **fields, "ownerId": owner_id}
    if kind == "photos" and "albumId" not in payload:
        payload["albumId"] = create(client, "albums", owner_id)["id"]
    res = client.post(f"/{kind}", json=payload)
    assert res.status_code == 201, res.text
    return res.json()


def test_every_kind_has_a_payload():
    assert set(VALID_PAYLOADS) == set(RESOURCE_KINDS)


@pytest.mark.parametrize("kind", sorted(RESOURCE_KINDS))
def test_crud_cycle(client: TestClient, kind: str):
    record = create(client, kind, "u1")
    assert record["ownerId"] == "u1"
    assert len(record["id"]) == 32
    assert record["createdAt"].endswith("Z")

    listed = client.get(f"/{kind}", params={"ownerId": "u1"})
    assert listed.status_code == 200
    assert [r["id"] for r in listed.json()] == [record["id"]]

    field = next(iter(VALID_PAYLOADS[kind]))
    updated = client.put(f"/{kind}/{record['id']}", json={"ownerId": "u1", field: "changed"})
    assert updated.status_code == 200, updated.text
    assert updated.json()[field] == "changed"

    deleted = client.delete(f"/{kind}/{record['id']}", params={"ownerId": "u1"})
    assert deleted.status_code == 200
    assert deleted.json() == {"message": f"{RESOURCE_KINDS[kind].label} deleted successfully"}
    assert client.get(f"/{kind}", params={"ownerId": "u1"}).json() == []


def test_other_owner_records_are_invisible(client: TestClient):
    record = create(client, "todos", "u1")
    create(client, "todos", "u2", task="u2 task")

    assert [r["task"] for r in client.get("/todos", params={"ownerId": "u2"}).json()] == ["u2 task"]

    res = client.put(f"/todos/{record['id']}", json={"ownerId": "u2", "completed": True})
    assert res.status_code == 404
    assert res.json() == {"message": "Todo not found"}

    res = client.delete(f"/todos/{record['id']}", params={"ownerId": "u2"})
    assert res.status_code == 404

    still_there = client.get("/todos", params={"ownerId": "u1"}).json()
    assert still_there == [record]


def test_list_is_newest_first(client: TestClient, monkeypatch):
    from lifeboard.resources import store as store_module

    stamps = iter(["2026-01-01T00:00:00Z", "2026-03-01T00:00:00Z", "2026-02-01T00:00:00Z"])
    monkeypatch.setattr(store_module, "utc_now_iso", lambda: next(stamps))
    for task in ("january", "march", "february"):
        create(client, "todos", "u1", task=task)

    tasks = [r["task"] for r in client.get("/todos", params={"ownerId": "u1"}).json()]
    assert tasks == ["march", "february", "january"]


def test_owner_id_is_required(client: TestClient):
    assert client.get("/todos").status_code == 400
    assert client.get("/todos").json() == {"message": "ownerId is required"}

    res = client.post("/todos", json={"task": "orphan"})
    assert res.status_code == 400
    assert "ownerId" in res.json()["message"]


@pytest.mark.parametrize(
    "kind, payload",
    [
        ("todos", {}),
        ("todos", {"task": ""}),
        ("plans", {"title": "Trip", "description": "x", "status": "Someday"}),
        ("cards", {"cardName": "Card", "lastFourDigits": "12"}),
        ("cards", {"cardName": "Card", "expiryDate": "13/28"}),
        ("passwords", {"websiteName": "Example", "username": "me"}),
    ],
)
def test_invalid_payloads_are_rejected(client: TestClient, kind, payload):
    res = client.post(f"/{kind}", json={**payload, "ownerId": "u1"})
    assert res.status_code == 400
    assert res.json()["message"]


def test_plan_defaults(client: TestClient):
    plan = create(client, "plans", "u1")
    assert plan["priority"] == "Medium"
    assert plan["dueDate"] is None


def test_update_validation(client: TestClient):
    record = create(client, "todos", "u1")

    res = client.put(f"/todos/{record['id']}", json={"ownerId": "u1"})
    assert res.status_code == 400
    assert res.json() == {"message": "Nothing to update"}

    res = client.put("/todos/not-an-id", json={"ownerId": "u1", "task": "x"})
    assert res.status_code == 400
    assert res.json() == {"message": "Invalid todo ID format"}

    res = client.delete("/todos/not-an-id", params={"ownerId": "u1"})
    assert res.status_code == 400


def test_protected_fields_cannot_change(client: TestClient):
    record = create(client, "todos", "u1")

    res = client.put(
        f"/todos/{record['id']}",
        json={"ownerId": "u1", "completed": True, "id": "f" * 32, "createdAt": "1999-01-01T00:00:00Z"},
    )

    assert res.status_code == 200
    body = res.json()
    assert body["completed"] is True
    assert body["id"] == record["id"]
    assert body["createdAt"] == record["createdAt"]


def test_require_session_binds_owner_to_token(tmp_path: Path, suggestion_service):
    settings = Settings(
        storage=StorageSettings(data_dir=str(tmp_path)),
        auth=AuthSettings(bcrypt_rounds=4, require_session=True),
    )
    client = TestClient(create_app(settings, suggestion_service=suggestion_service))
    alice = client.post("/auth/register", json={"email": "alice@example.com", "password": "password123"}).json()
    bob = client.post("/auth/register", json={"email": "bob@example.com", "password": "password123"}).json()
    client.cookies.clear()
    owner_id = alice["user"]["id"]

    assert client.get("/todos", params={"ownerId": owner_id}).status_code == 401

    as_bob = {"Authorization": f"Bearer {bob['token']}"}
    assert client.get("/todos", params={"ownerId": owner_id}, headers=as_bob).status_code == 401

    as_alice = {"Authorization": f"Bearer {alice['token']}"}
    res = client.post("/todos", json={"task": "mine", "ownerId": owner_id}, headers=as_alice)
    assert res.status_code == 201
    listed = client.get("/todos", params={"ownerId": owner_id}, headers=as_alice)
    assert [r["task"] for r in listed.json()] == ["mine"]


def test_document_store_refuses_corrupt_collection(tmp_path: Path):
    (tmp_path / "todos.json").write_text("{oops", encoding="utf-8")
    store = DocumentStore(tmp_path)

    with pytest.raises(ServiceError):
        store.insert("todos", "u1", {"task": "x"})

    assert (tmp_path / "todos.json").read_text(encoding="utf-8") == "{oops"


def test_document_store_strips_protected_fields(tmp_path: Path):
    store = DocumentStore(tmp_path)

    record = store.insert("todos", "u1", {"task": "x", "ownerId": "u2", "id": "mine"})

    assert record["ownerId"] == "u1"
    assert record["id"] != "mine"
    assert store.find_one("todos", record["id"], "u1") == record
    assert store.find_one("todos", record["id"], "u2") is None


def test_document_store_delete_where(tmp_path: Path):
    store = DocumentStore(tmp_path)
    store.insert("photos", "u1", {"albumId": "a", "url": "1"})
    store.insert("photos", "u1", {"albumId": "b", "url": "2"})
    store.insert("photos", "u2", {"albumId": "a", "url": "3"})

    assert store.delete_where("photos", "u1", "albumId", "a") == 1
    assert store.delete_where("photos", "u1", "albumId", "a") == 0

    assert [p["url"] for p in store.find("photos", "u1")] == ["2"]
    assert [p["url"] for p in store.find("photos", "u2")] == ["3"]


def test_deleting_album_removes_its_photos(client: TestClient):
    summer = create(client, "albums", "u1")
    winter = create(client, "albums", "u1", name="Winter")
    create(client, "photos", "u1", albumId=summer["id"], url="https://example.com/beach.jpg")
    kept = create(client, "photos", "u1", albumId=winter["id"], url="https://example.com/snow.jpg")
    other = create(client, "photos", "u2")

    res = client.delete(f"/albums/{summer['id']}", params={"ownerId": "u1"})

    assert res.status_code == 200
    assert client.get("/photos", params={"ownerId": "u1"}).json() == [kept]
    assert client.get("/photos", params={"ownerId": "u2"}).json() == [other]


def test_photo_album_must_belong_to_owner(client: TestClient):
    foreign = create(client, "albums", "u2")
    photo = create(client, "photos", "u1")

    for album_id in (foreign["id"], "0" * 32):
        res = client.post(
            "/photos",
            json={**VALID_PAYLOADS["photos"], "albumId": album_id, "ownerId": "u1"},
        )
        assert res.status_code == 404
        assert res.json() == {"message": "Album not found"}

        res = client.put(f"/photos/{photo['id']}", json={"ownerId": "u1", "albumId": album_id})
        assert res.status_code == 404
        assert res.json() == {"message": "Album not found"}

    assert client.get("/photos", params={"ownerId": "u1"}).json() == [photo]
