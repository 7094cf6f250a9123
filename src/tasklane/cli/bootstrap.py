# src/tasklane/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- picks the data store (local SQLite or hosted REST backend),
- wires controllers, profile service and navigator into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..connectors.console_connector import ConsoleNavigator
from ..core.ports import DataStore
from ..core.state import AppState
from ..profiles.profile_service import ProfileService
from ..stores.rest_store import RestDataStore
from ..stores.sqlite_store import SqliteDataStore
from ..tasks.capabilities import FieldCapabilities
from ..tasks.task_models import CurrentUser
from ..tasks.task_mutations import TaskMutationController
from ..tasks.task_query import TaskQueryController

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def create_store(settings) -> DataStore:
    backend = str(getattr(settings, "backend", "sqlite")).lower()

    if backend == "rest":
        if not settings.supabase_url or not settings.supabase_anon_key:
            raise ValueError(
                "REST backend needs TASKLANE_SUPABASE_URL and TASKLANE_SUPABASE_ANON_KEY"
            )
        logger.info("Using REST backend url=%s", settings.supabase_url)
        return RestDataStore(
            settings.supabase_url,
            settings.supabase_anon_key,
            access_token=settings.access_token,
            timeout=settings.http_timeout_seconds,
        )

    if backend != "sqlite":
        raise ValueError(f"Unknown backend {backend!r}; expected 'sqlite' or 'rest'")

    user = None
    if settings.user_id:
        user = CurrentUser(id=settings.user_id, email=settings.user_email)
    return SqliteDataStore(settings.db_path, omit_columns=settings.omit_columns, user=user)


def create_initial_state(*, settings=None, store: DataStore | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings (and the store) injectable makes the app easier to test and
    avoids hidden global config reads. If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    if store is None:
        _ensure_local_dirs(settings)
        store = create_store(settings)

    navigator = ConsoleNavigator()
    query = TaskQueryController(store)
    mutations = TaskMutationController(store, query, navigator, capabilities=FieldCapabilities())

    state = AppState(
        settings=settings,
        store=store,
        navigator=navigator,
        query=query,
        mutations=mutations,
        profiles=ProfileService(store),
    )
    navigator.bind(state)
    return state
