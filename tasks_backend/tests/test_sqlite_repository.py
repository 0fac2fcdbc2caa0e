from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from src.api.db import SQLiteRepository
from src.api.errors import NotFoundError
from src.api.main import app
from src.api.queries import compose_list_query
from src.api.repositories import get_repository
from src.api.services import TaskService


@pytest.fixture
def sqlite_repo(tmp_path):
    return SQLiteRepository(str(tmp_path / "data" / "tasks.db"))


@pytest.fixture
def service(sqlite_repo, clock):
    return TaskService(sqlite_repo, clock=clock)


def test_round_trip_preserves_types(service, sqlite_repo):
    created = service.create("Buy milk", None)
    fetched = sqlite_repo.get(created["id"])
    assert fetched == created
    assert fetched["created_at"].tzinfo is not None
    assert fetched["description"] is None


def test_data_survives_new_repository_instance(tmp_path, clock):
    path = str(tmp_path / "tasks.db")
    created = TaskService(SQLiteRepository(path), clock=clock).create("Persistent")
    assert SQLiteRepository(path).get(created["id"])["title"] == "Persistent"


def test_update_toggle_delete(service, sqlite_repo):
    task = service.create("Original", "desc")
    toggled = service.toggle(task["id"])
    assert toggled["completed"] is True
    updated = service.update(task["id"], "Renamed", None)
    assert updated["completed"] is True
    assert sqlite_repo.get(task["id"]) == updated

    service.delete(task["id"])
    assert sqlite_repo.exists(task["id"]) is False
    with pytest.raises(NotFoundError):
        service.delete(task["id"])


def test_list_modes_and_pagination(service, sqlite_repo):
    milk = service.toggle(service.create("Buy MILK")["id"])
    service.create("Café visit", "latte with oat milk")
    service.create("Walk the dog")
    for i in range(22):
        service.create(f"Filler {i}")

    page = service.list(size=10, page=2)
    assert page["total_elements"] == 25
    assert page["total_pages"] == 3
    assert page["last"] is True
    assert len(page["content"]) == 5

    assert service.list(search="milk")["total_elements"] == 2
    assert service.list(search="CAFÉ")["total_elements"] == 1
    combined = service.list(search="milk", completed=True)
    assert [t["id"] for t in combined["content"]] == [milk["id"]]
    assert service.list(completed=False, size=100)["total_elements"] == 24
    assert sqlite_repo.count(completed=True) == 1


def test_equal_timestamps_order_newest_insert_first(sqlite_repo, clock):
    clock.step = timedelta(0)
    service = TaskService(sqlite_repo, clock=clock)
    created = [service.create(f"Same instant {i}") for i in range(4)]
    items, total = sqlite_repo.list(compose_list_query())
    assert total == 4
    assert [t["id"] for t in items] == [t["id"] for t in reversed(created)]


def test_transaction_rolls_back_on_error(service, sqlite_repo):
    task = service.create("Before")
    with pytest.raises(RuntimeError):
        with sqlite_repo.transaction():
            entity = sqlite_repo.get(task["id"])
            entity["title"] = "During"
            sqlite_repo.save(entity)
            raise RuntimeError("boom")
    assert sqlite_repo.get(task["id"])["title"] == "Before"


def test_api_over_sqlite(sqlite_repo):
    app.dependency_overrides[get_repository] = lambda: sqlite_repo
    client = TestClient(app)
    res = client.post("/api/v1/tasks", json={"title": "Buy milk"})
    assert res.status_code == 201
    task_id = res.json()["data"]["id"]

    res = client.patch(f"/api/v1/tasks/{task_id}/toggle")
    assert res.json()["data"]["completed"] is True

    res = client.get("/api/v1/tasks?completed=true&q=milk")
    assert res.json()["data"]["totalElements"] == 1


def test_page_beyond_sqlite_integer_range_is_empty(service):
    for i in range(3):
        service.create(f"Task {i}")
    page = service.list(page=10**17, size=100)
    assert page["content"] == []
    assert page["total_elements"] == 3
    assert page["page"] == 10**17


def test_search_lowercases_without_folding(service):
    service.create("Straße fegen")
    assert service.list(search="STRASSE")["total_elements"] == 0
    assert service.list(search="STRAßE")["total_elements"] == 1


def test_api_rejects_oversized_page_over_sqlite(sqlite_repo):
    app.dependency_overrides[get_repository] = lambda: sqlite_repo
    client = TestClient(app)
    res = client.get(f"/api/v1/tasks?page={10**17}&size=100")
    assert res.status_code == 400
    assert res.json()["message"] == "Parameter 'page' has an invalid format"

    res = client.get(f"/api/v1/tasks?page={2**31 - 1}&size=100")
    assert res.status_code == 200
    assert res.json()["data"]["content"] == []
