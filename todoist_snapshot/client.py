"""
Todoist REST v2 reads: tasks, sub-tasks by parent, projects.

No server-side filter is sent; the due-date window is applied locally so
the selection stays auditable and independent of Todoist's filter syntax.
"""
from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta, tzinfo
from typing import Any, Optional

import httpx
import structlog

from .config import DEFAULT_API_BASE, Settings
from .errors import ApiError, ParseError
from .markup import strip_markdown
from .models import FetchedBundle, Project, SubtaskFetch, Task

log = structlog.get_logger("todoist_snapshot.client")

WINDOW_DAYS = 7


class TodoistClient:
    def __init__(self, token: str, base_url: str = DEFAULT_API_BASE, *, http: Optional[httpx.Client] = None):
        self.base = base_url.rstrip("/")
        self.h = {"Authorization": f"Bearer {token}"}
        self._owns_http = http is None
        self.cli = http or httpx.Client(timeout=30)

    def close(self) -> None:
        if self._owns_http:
            self.cli.close()

    def __enter__(self) -> "TodoistClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _get_json(self, path: str, what: str, *, params: Optional[dict[str, str]] = None) -> list[dict[str, Any]]:
        url = f"{self.base}{path}"
        try:
            r = self.cli.get(url, headers=self.h, params=params)
        except httpx.HTTPError as e:
            raise ApiError(f"Request to Todoist {what} API failed: {e}")
        if r.status_code != 200:
            raise ApiError(
                f"Failed to fetch {what} from Todoist API. Status: {r.status_code}, Response: {r.text}",
                status=r.status_code,
                body=r.text,
            )
        text = r.text
        if not text.strip().startswith(("[", "{")):
            raise ApiError(
                f"Invalid JSON response from Todoist {what} API. Response content: {text[:200]}",
                status=r.status_code,
                body=text,
            )
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ParseError(
                "JSON parsing error in Todoist API response. This usually indicates an invalid API token "
                f"or API rate limiting. Original error: {e}",
                status=r.status_code,
                body=text,
            )
        if not isinstance(data, list):
            raise ApiError(f"Unexpected response from Todoist {what} API: expected a JSON array", status=r.status_code, body=text)
        return data

    def get_tasks(self) -> list[dict[str, Any]]:
        return self._get_json("/tasks", "tasks")

    def get_subtasks(self, parent_id: str) -> list[dict[str, Any]]:
        return self._get_json("/tasks", f"sub-tasks for task {parent_id}", params={"parent_id": parent_id})

    def get_projects(self) -> list[dict[str, Any]]:
        return self._get_json("/projects", "projects")


# ---------- selection ----------

def within_window(task: Task, now: datetime, tz: tzinfo, days: int = WINDOW_DAYS) -> bool:
    """Overdue tasks and those due within `days` of now; undated tasks are dropped."""
    if task.due is None:
        return False
    due_at = task.due.instant(tz)
    if due_at is None:
        return False
    return due_at <= now + timedelta(days=days)


def attach_subtasks(client: TodoistClient, tasks: list[Task]) -> list[SubtaskFetch]:
    """
    Fetch direct children for each task. A failure for one task leaves it with
    no children and is recorded in its result; it never stops the others.
    """
    results: list[SubtaskFetch] = []
    for i, task in enumerate(tasks, 1):
        log.debug("subtasks_fetching", index=i, task_id=task.id, content=strip_markdown(task.content))
        try:
            children = [Task.from_api(d) for d in client.get_subtasks(task.id) if isinstance(d, dict)]
        except (ApiError, TypeError, ValueError) as e:
            log.debug("subtasks_fetch_failed", task_id=task.id, error=str(e))
            task.attach_subtasks([])
            results.append(SubtaskFetch(task.id, [], error=str(e)))
            continue
        task.attach_subtasks(children)
        if task.subtasks:
            log.debug("subtasks_found", task_id=task.id, count=len(task.subtasks))
        results.append(SubtaskFetch(task.id, task.subtasks))
    return results


def fetch_all(settings: Settings, *, http: Optional[httpx.Client] = None, now: Optional[datetime] = None) -> FetchedBundle:
    token = settings.token()
    tz = settings.zone()
    now = now or datetime.now(UTC)

    with TodoistClient(token, settings.api_base, http=http) as td:
        raw_all = td.get_tasks()
        log.debug("tasks_fetched", count=len(raw_all))

        raw_tasks = [d for d in raw_all if isinstance(d, dict) and within_window(Task.from_api(d), now, tz)]
        log.debug("tasks_filtered", count=len(raw_tasks), window_days=WINDOW_DAYS)

        tasks = [Task.from_api(d) for d in raw_tasks]
        fetches = attach_subtasks(td, tasks)
        degraded = [f.task_id for f in fetches if not f.ok]
        if degraded:
            log.warning("subtasks_degraded", count=len(degraded), task_ids=degraded)

        raw_projects = [d for d in td.get_projects() if isinstance(d, dict)]

    return FetchedBundle(
        tasks=tasks,
        raw_tasks=raw_tasks,
        projects=[Project.from_api(d) for d in raw_projects],
        raw_projects=raw_projects,
        subtask_fetches=fetches,
    )
