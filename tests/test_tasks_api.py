from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel

from todo_api.main import create_app
from todo_api.models import Category, Recurrence
from todo_api.store import TaskStore


def _create(client, **payload):
    response = client.post("/tasks", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_create_applies_defaults(client):
    created = _create(client, title="Buy milk")

    assert created["id"]
    assert created["title"] == "Buy milk"
    assert created["completed"] is False
    assert created["dueDate"] is None
    assert created["category"] == "Other"
    assert created["recurring"] == "None"
    assert created["createdAt"]

    fetched = client.get(f"/tasks/{created['id']}")
    assert fetched.status_code == 200
    assert fetched.json() == created


def test_create_with_all_fields(client):
    created = _create(
        client,
        title="Standup",
        completed=True,
        dueDate="2024-01-01T09:00:00",
        category="Work",
        recurring="Daily",
    )

    assert created["completed"] is True
    assert created["dueDate"] == "2024-01-01T09:00:00Z"
    assert created["category"] == "Work"
    assert created["recurring"] == "Daily"


def test_create_converts_offset_due_date_to_utc(client):
    created = _create(client, title="Call", dueDate="2024-01-01T10:00:00+02:00")
    assert created["dueDate"] == "2024-01-01T08:00:00Z"


@pytest.mark.parametrize("payload", [{}, {"title": ""}, {"title": "   "}, {"title": None}])
def test_create_requires_title(client, store, payload):
    response = client.post("/tasks", json=payload)

    assert response.status_code == 400
    assert "title" in response.json()["detail"]
    assert store.count_tasks() == 0


@pytest.mark.parametrize("field,value", [("category", "Hobby"), ("recurring", "Yearly")])
def test_create_rejects_unknown_enum_values(client, store, field, value):
    response = client.post("/tasks", json={"title": "x", field: value})

    assert response.status_code == 400
    assert store.count_tasks() == 0


def test_create_ignores_client_supplied_id(client):
    created = _create(client, title="x", id="mine", createdAt="1999-01-01T00:00:00")
    assert created["id"] != "mine"
    assert not created["createdAt"].startswith("1999")


@pytest.mark.parametrize("method", ["get", "put", "delete"])
def test_unknown_id_is_not_found(client, method):
    kwargs = {"json": {"title": "new"}} if method == "put" else {}
    response = client.request(method.upper(), "/tasks/does-not-exist", **kwargs)

    assert response.status_code == 404
    assert response.json() == {"detail": "Task not found"}


def test_partial_update_leaves_other_fields(client):
    created = _create(client, title="Report", dueDate="2024-02-01T00:00:00", category="Work", recurring="Weekly")

    response = client.put(f"/tasks/{created['id']}", json={"completed": True})

    assert response.status_code == 200
    updated = response.json()
    assert updated["completed"] is True
    for field in ("id", "title", "dueDate", "category", "recurring", "createdAt"):
        assert updated[field] == created[field]


def test_update_can_clear_due_date(client):
    created = _create(client, title="Report", dueDate="2024-02-01T00:00:00")

    updated = client.put(f"/tasks/{created['id']}", json={"dueDate": None}).json()

    assert updated["dueDate"] is None
    assert updated["title"] == "Report"


@pytest.mark.parametrize(
    "payload",
    [{"title": None}, {"title": ""}, {"completed": None}, {"category": None}, {"recurring": "Hourly"}],
)
def test_update_rejects_invalid_values(client, payload):
    created = _create(client, title="Keep me", category="Urgent")

    response = client.put(f"/tasks/{created['id']}", json=payload)

    assert response.status_code == 400
    assert client.get(f"/tasks/{created['id']}").json() == created


def test_delete_removes_task(client):
    created = _create(client, title="Trash")

    response = client.delete(f"/tasks/{created['id']}")

    assert response.status_code == 200
    assert response.json() == {"message": "Task deleted successfully"}
    assert client.get(f"/tasks/{created['id']}").status_code == 404


def test_complete_all_is_idempotent(client, store):
    for title in ("a", "b", "c"):
        _create(client, title=title)
    _create(client, title="d", completed=True)

    for _ in range(2):
        response = client.patch("/tasks/complete-all")
        assert response.status_code == 200
        assert response.json() == {"message": "All tasks marked as completed"}
        tasks = client.get("/tasks", params={"limit": 50}).json()
        assert len(tasks) == 4
        assert all(task["completed"] for task in tasks)


def test_complete_all_on_empty_store(client):
    assert client.patch("/tasks/complete-all").status_code == 200


def test_list_filters_are_combined(client):
    _create(client, title="Write report", category="Work")
    _create(client, title="Report taxes", category="Personal")
    _create(client, title="Ship REPORT", category="Work", completed=True)
    _create(client, title="Gym", category="Work")

    response = client.get("/tasks", params={"category": "Work", "search": "report", "completed": "false"})

    assert response.status_code == 200
    assert [task["title"] for task in response.json()] == ["Write report"]


def test_search_is_case_insensitive_substring(client):
    _create(client, title="Ship REPORT")
    _create(client, title="100% done")
    _create(client, title="1000 done")

    assert [t["title"] for t in client.get("/tasks", params={"search": "port"}).json()] == ["Ship REPORT"]
    assert [t["title"] for t in client.get("/tasks", params={"search": "0%"}).json()] == ["100% done"]


def test_sort_by_due_date_ascending(client):
    _create(client, title="later", dueDate="2024-03-01T00:00:00")
    _create(client, title="sooner", dueDate="2024-01-01T00:00:00")
    _create(client, title="middle", dueDate="2024-02-01T00:00:00")

    tasks = client.get("/tasks", params={"sortBy": "dueDate"}).json()

    assert [t["title"] for t in tasks] == ["sooner", "middle", "later"]


def test_sort_by_created_at_descending(store, client):
    for day, title in ((1, "first"), (3, "third"), (2, "second")):
        store.create_task(title=title, created_at=datetime(2024, 1, day))

    tasks = client.get("/tasks", params={"sortBy": "createdAt"}).json()

    assert [t["title"] for t in tasks] == ["third", "second", "first"]


def test_pagination(store, client):
    for day in range(1, 26):
        store.create_task(title=f"task {day}", created_at=datetime(2024, 1, day))

    default_page = client.get("/tasks", params={"sortBy": "createdAt"}).json()
    last_page = client.get("/tasks", params={"sortBy": "createdAt", "page": 3}).json()
    small_page = client.get("/tasks", params={"sortBy": "createdAt", "page": 2, "limit": 5}).json()

    assert len(default_page) == 10
    assert default_page[0]["title"] == "task 25"
    assert [t["title"] for t in last_page] == [f"task {day}" for day in range(5, 0, -1)]
    assert [t["title"] for t in small_page] == [f"task {day}" for day in range(20, 15, -1)]


@pytest.mark.parametrize(
    "params",
    [{"page": 0}, {"limit": 0}, {"page": "x"}, {"completed": "maybe"}, {"category": "Hobby"}],
)
def test_list_rejects_invalid_query(client, params):
    assert client.get("/tasks", params=params).status_code == 400


def test_unknown_sort_is_ignored(client):
    _create(client, title="a")
    assert client.get("/tasks", params={"sortBy": "title"}).status_code == 200


def test_store_failure_is_server_error(client, store):
    SQLModel.metadata.drop_all(store.engine)

    response = client.get("/tasks")

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}


def test_startup_creates_tables(tmp_path):
    store = TaskStore(f"sqlite:///{tmp_path / 'fresh.db'}")
    app = create_app(store, scheduler_enabled=False)

    with TestClient(app) as client:
        response = client.post("/tasks", json={"title": "hello", "category": Category.URGENT.value})

    assert response.status_code == 201
    assert store.count_tasks() == 1
    assert store.list_tasks()[0].recurring == Recurrence.NONE


def test_created_at_is_serialized_as_utc(client):
    created = _create(client, title="x", dueDate="2024-05-01T10:00:00Z")

    assert created["createdAt"].endswith("Z")
    assert created["dueDate"] == "2024-05-01T10:00:00Z"


@pytest.mark.parametrize(
    "params",
    [{"page": 10**12, "limit": 10**8}, {"page": 100_001}, {"limit": 101}],
)
def test_list_rejects_oversized_paging(client, params):
    assert client.get("/tasks", params=params).status_code == 400


def test_largest_allowed_page_is_empty(client):
    _create(client, title="a")

    response = client.get("/tasks", params={"page": 100_000, "limit": 100})

    assert response.status_code == 200
    assert response.json() == []


def test_search_folds_non_ascii_case(client):
    _create(client, title="ÄPFEL kaufen")
    _create(client, title="Birnen kaufen")

    tasks = client.get("/tasks", params={"search": "äpfel"}).json()

    assert [task["title"] for task in tasks] == ["ÄPFEL kaufen"]
