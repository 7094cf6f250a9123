# src/tasklane/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import TYPE_CHECKING

from ..cli.commands import registry as command_registry
from ..cli.render import render_task_detail, render_task_list

if TYPE_CHECKING:
    from ..core.state import AppState

logger = logging.getLogger(__name__)

TASK_LIST_ROUTE = "tasks"


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


class ConsoleNavigator:
    """
    Navigator port for the console: tracks the current route on AppState and
    renders it into state.outbox on refresh().
    """

    def __init__(self) -> None:
        self._state: AppState | None = None

    def bind(self, state: AppState) -> None:
        self._state = state

    @property
    def state(self) -> AppState:
        if self._state is None:
            raise RuntimeError("ConsoleNavigator used before bind()")
        return self._state

    def go_to_task_list(self) -> None:
        self.state.route = TASK_LIST_ROUTE

    def go_to_task_detail(self, task_id: str) -> None:
        self.state.route = f"{TASK_LIST_ROUTE}/{task_id}"

    async def refresh(self) -> None:
        state = self.state
        if state.route == TASK_LIST_ROUTE:
            try:
                await state.query.refresh()
            finally:
                state.outbox.append(
                    render_task_list(
                        state.query.tasks,
                        filter_state=state.query.filter,
                        error=state.query.error,
                        divergent=state.mutations.divergent,
                    )
                )
            return

        task_id = state.route.split("/", 1)[1]
        task = await state.query.fetch_task(task_id)
        if task is None:
            state.outbox.append("Task not found.")
            return
        state.outbox.append(
            render_task_detail(task, divergent_reason=state.mutations.divergent.get(task_id))
        )


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Manage your tasks. Use /help for commands. Use /exit to quit.\n")

    while True:
        try:
            line = (await asyncio.to_thread(input, ">>> ")).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not line:
            continue

        if line.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        if not line.startswith("/"):
            _print_ts("Commands start with '/'. Use /help to list them.")
            continue

        try:
            response = await command_registry.handle(state, line)
        except Exception:
            logger.exception("Command handler crashed.")
            response = "Internal error while handling a command."

        # Anything the navigator rendered that the command did not return itself.
        for extra in state.outbox:
            _print_ts(extra)
        state.outbox.clear()

        if response is not None:
            _print_ts(response)

    logger.info("Console connector finished.")
