# src/tasklane/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..profiles.profile_service import ProfileService
from ..tasks.task_models import TaskDraft
from ..tasks.task_mutations import TaskMutationController
from ..tasks.task_query import TaskQueryController
from .ports import DataStore, Navigator


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules.
    settings: Any

    store: DataStore
    navigator: Navigator
    query: TaskQueryController
    mutations: TaskMutationController
    profiles: ProfileService

    # Route the front-end is showing: "tasks" or "tasks/<id>".
    route: str = "tasks"

    # Last submitted form values, kept so a failed save can be retried as-is.
    last_draft: TaskDraft | None = None
    last_draft_task_id: str | None = None  # None means "create"

    # Lines rendered by the navigator, drained by the connector after each command.
    outbox: list[str] = field(default_factory=list)
