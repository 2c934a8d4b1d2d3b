from datetime import datetime
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from todo_api.main import create_app
from todo_api.store import TaskStore

NOW = datetime(2024, 1, 1, 12, 0, 0)


@pytest.fixture()
def store(tmp_path: Path) -> TaskStore:
    """A real SQLite store in a per-test file."""
    task_store = TaskStore(f"sqlite:///{tmp_path / 'tasks.db'}")
    task_store.create_tables()
    yield task_store
    task_store.dispose()


@pytest.fixture()
def app(store: TaskStore):
    return create_app(store, scheduler_enabled=False)


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def now() -> datetime:
    return NOW
