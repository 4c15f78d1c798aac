# src/service_workflow/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

from ..core.state import AppState
from ..workflow.dispatcher import ActionResult
from ..workflow.models import TaskStatus

CommandEmitter = Callable[[str], None]
CommandHandler = Callable[[AppState, list[str], CommandEmitter | None], Awaitable[str]]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /status, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        return await handler(state, args, emit)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()

_STATUS_MARK = {
    TaskStatus.COMPLETED: "[x]",
    TaskStatus.ACTIVE: "[>]",
    TaskStatus.PENDING: "[ ]",
}


def _fmt_ts(ts: float | None) -> str:
    if not ts:
        return ""
    return datetime.fromtimestamp(ts).astimezone().strftime("%Y-%m-%d %H:%M")


def _fmt_result(res: ActionResult) -> str:
    if res.stale:
        return f"{res.action} {res.task_id}: date changed meanwhile, result dropped."
    if not res.ok:
        return f"{res.action} {res.task_id} failed: {res.error}"
    tail = "" if res.reconciled else " (not yet confirmed by server)"
    status = res.status.value if res.status is not None else "?"
    return f"{res.action} {res.task_id} -> {status}{tail}"


def _need_date(state: AppState) -> str | None:
    if state.board.date is None:
        return "No service date selected. Use /date YYYY-MM-DD first."
    return None


async def cmd_help(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


async def cmd_date(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /date              -> show selected date
    /date YYYY-MM-DD   -> select a service date and load it
    """
    if not args:
        return f"Selected date: {state.board.date or '(none)'}"

    date = args[0].strip()
    try:
        datetime.strptime(date, "%Y-%m-%d")
    except ValueError:
        return "Usage: /date YYYY-MM-DD"

    ok = await state.board.select_date(date, visible=state.visible)
    if not ok:
        return f"Selected {date}, but loading failed: {state.board.last_error}. Use /refresh to retry."
    return f"Selected {date}."


async def cmd_role(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not args:
        return f"Current role: {state.role or '(none)'}"
    state.role = args[0].strip().lower()
    logger.debug("Console role set to %s", state.role)
    return f"Role set to {state.role}."


async def cmd_status(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if msg := _need_date(state):
        return msg

    board = state.board
    lines = [f"Service {board.date} (role: {state.role or '-'}, poll: {board.scheduler.state.value})"]
    current_cat = None
    for view in board.task_views(state.role):
        if view.task.category_id != current_cat:
            current_cat = view.task.category_id
            lines.append(f"  {current_cat}:")
        mark = _STATUS_MARK[view.display_status]
        who = f" by {view.updated_by}" if view.updated_by else ""
        when = f" {_fmt_ts(view.updated_at)}" if view.updated_at else ""
        mine = " *" if view.can_act else ""
        sync = " (unsynced)" if not view.reconciled else ""
        link = f" <{view.document_link}>" if view.document_link else ""
        lines.append(f"    {mark} {view.task.id:<18} {view.status.value:<9}{who}{when}{mine}{sync}{link}")
    if board.last_error is not None:
        lines.append(f"  last error: {board.last_error}")
    return "\n".join(lines)


async def cmd_start(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if msg := _need_date(state):
        return msg
    if not args:
        return "Usage: /start <task>"
    return _fmt_result(await state.board.start(state.role, args[0]))


async def cmd_done(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/done <task> [link]"""
    if msg := _need_date(state):
        return msg
    if not args:
        return "Usage: /done <task> [document-link]"
    link = args[1] if len(args) > 1 else None
    return _fmt_result(await state.board.submit(state.role, args[0], document_link=link))


async def cmd_link(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if msg := _need_date(state):
        return msg
    if len(args) < 2:
        return "Usage: /link <task> <document-link>"
    return _fmt_result(await state.board.edit_document_link(state.role, args[0], args[1]))


async def cmd_qr(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if msg := _need_date(state):
        return msg
    if not args:
        return "Usage: /qr <link>"
    if emit:
        emit("[QR] Uploading...")
    return _fmt_result(await state.board.upload_qr_code(state.role, args[0]))


async def cmd_delete(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if msg := _need_date(state):
        return msg
    if not args:
        return "Usage: /delete <task>"
    return _fmt_result(await state.board.delete(state.role, args[0]))


async def cmd_refresh(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if msg := _need_date(state):
        return msg
    ok = await state.board.refresh_now()
    return "Refreshed." if ok else f"Refresh failed: {state.board.last_error}"


async def cmd_visibility(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/show or /hide: simulate the dashboard tab becoming visible/hidden."""
    visible = not (args and args[0] == "hide")
    state.visible = visible
    state.board.scheduler.on_visibility_change(visible)
    return f"Dashboard {'visible' if visible else 'hidden'}; polling: {state.board.scheduler.state.value}"


async def cmd_show(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return await cmd_visibility(state, [], emit)


async def cmd_hide(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return await cmd_visibility(state, ["hide"], emit)


async def cmd_focus(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    task = state.board.scheduler.on_focus()
    if task is None:
        return "Polling is not running."
    ok = await task
    return "Refreshed on focus." if ok else f"Refresh failed: {state.board.last_error}"


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("date", cmd_date, help_text="Select a service date: /date YYYY-MM-DD.")
registry.register("role", cmd_role, help_text="Show or set your role: /role pastor.")
registry.register("status", cmd_status, help_text="Show task statuses for the selected date.", aliases=["ls"])
registry.register("start", cmd_start, help_text="Mark a task in progress: /start <task>.")
registry.register("done", cmd_done, help_text="Complete a task: /done <task> [link].")
registry.register("link", cmd_link, help_text="Change a task's document link: /link <task> <link>.")
registry.register("qr", cmd_qr, help_text="Upload the QR code (treasurer): /qr <link>.")
registry.register("delete", cmd_delete, help_text="Delete a task record: /delete <task>.")
registry.register("refresh", cmd_refresh, help_text="Refresh now from the server.", aliases=["r"])
registry.register("show", cmd_show, help_text="Simulate the dashboard becoming visible.")
registry.register("hide", cmd_hide, help_text="Simulate the dashboard being hidden.")
registry.register("focus", cmd_focus, help_text="Simulate the window regaining focus.")
