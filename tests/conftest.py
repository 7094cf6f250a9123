# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from tasklane.cli.bootstrap import create_initial_state
from tasklane.core.state import AppState
from tasklane.stores.sqlite_store import SqliteDataStore
from tasklane.tasks.capabilities import FieldCapabilities
from tasklane.tasks.task_models import CurrentUser
from tasklane.tasks.task_mutations import TaskMutationController
from tasklane.tasks.task_query import TaskQueryController

from .fakes import FakeDataStore, FakeNavigator


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="tasklane-test",
        log_level="DEBUG",
        backend="sqlite",
        probe_schema=False,
        data_dir=tmp_path,
        db_path=tmp_path / "tasks.sqlite3",
        omit_columns=[],
        user_id="u1",
        user_email="u1@example.com",
    )


@pytest.fixture()
def sample_rows() -> list[dict]:
    return [
        {"id": "t-b", "title": "B", "status": "completed", "priority": "low", "created_at": "2024-01-02T00:00:00+00:00"},
        {"id": "t-a", "title": "A", "status": "completed", "priority": "high", "created_at": "2024-01-03T00:00:00+00:00"},
        {"id": "t-c", "title": "C", "status": "in_progress", "priority": "medium", "created_at": "2024-01-01T00:00:00+00:00"},
    ]


@pytest.fixture()
def fake_store(sample_rows) -> FakeDataStore:
    return FakeDataStore(sample_rows)


@pytest.fixture()
def query(fake_store: FakeDataStore) -> TaskQueryController:
    return TaskQueryController(fake_store)


@pytest.fixture()
def navigator() -> FakeNavigator:
    return FakeNavigator()


@pytest.fixture()
def mutations(fake_store, query, navigator) -> TaskMutationController:
    return TaskMutationController(fake_store, query, navigator, capabilities=FieldCapabilities())


@pytest.fixture()
def state(settings: SimpleNamespace) -> AppState:
    """
    AppState wired like production but on a tmp SQLite store.

    NOTE: We keep a real SQLite store here because its behaviour (including the
    error messages for missing columns) is part of what we want to test.
    """
    store = SqliteDataStore(settings.db_path, user=CurrentUser(id="u1", email="u1@example.com"))
    return create_initial_state(settings=settings, store=store)
