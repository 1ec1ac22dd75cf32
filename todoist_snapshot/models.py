from __future__ import annotations

import dataclasses as dc
import unicodedata
from datetime import date, datetime, time as dtime, tzinfo
from typing import Any, Optional

INBOX_NAME = "Inbox"

# ---------- parsing helpers ----------

def parse_date(s: Optional[str]) -> Optional[date]:
    if not s:
        return None
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return None


def parse_instant(s: Optional[str], tz: tzinfo) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp; naive values are taken to be in `tz`."""
    if not s:
        return None
    try:
        dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=tz)
    return dt


def _int(v: Any, default: int) -> int:
    try:
        return int(v or default)
    except (TypeError, ValueError):
        return default


# ---------- project refs ----------

@dc.dataclass(frozen=True)
class ProjectRef:
    """Either the inbox (project_id is None) or a named project."""

    project_id: Optional[str] = None

    @classmethod
    def inbox(cls) -> "ProjectRef":
        return cls(None)

    @classmethod
    def named(cls, project_id: str) -> "ProjectRef":
        return cls(str(project_id))

    @property
    def is_inbox(self) -> bool:
        return self.project_id is None

    def display_name(self, names: dict[str, str]) -> str:
        if self.project_id is None:
            return INBOX_NAME
        return names.get(self.project_id) or f"Project {self.project_id}"

    def sort_key(self, names: dict[str, str]) -> tuple:
        if self.project_id is None:
            return (0,)
        return (1, *name_collation_key(self.display_name(names)))


def name_collation_key(name: str) -> tuple[str, str]:
    # Accents and case are ignored first; lowercase sorts before uppercase on ties.
    base = "".join(c for c in unicodedata.normalize("NFKD", name) if not unicodedata.combining(c))
    return (base.casefold(), name.swapcase())


# ---------- models ----------

@dc.dataclass(frozen=True)
class Due:
    date: Optional[str] = None
    datetime: Optional[str] = None

    @classmethod
    def from_api(cls, d: Any) -> Optional["Due"]:
        if not isinstance(d, dict):
            return None
        return cls(date=d.get("date") or None, datetime=d.get("datetime") or None)

    @property
    def has_time(self) -> bool:
        return bool(self.datetime)

    def instant(self, tz: tzinfo) -> Optional[datetime]:
        """Exact instant for timed dues, local midnight in `tz` for all-day ones."""
        if self.datetime:
            return parse_instant(self.datetime, tz)
        d = parse_date(self.date)
        if d is None:
            return None
        return datetime.combine(d, dtime(0, 0), tzinfo=tz)


@dc.dataclass
class Task:
    id: str
    content: str = ""
    description: str = ""
    due: Optional[Due] = None
    priority: int = 1
    labels: list[str] = dc.field(default_factory=list)
    project_id: Optional[str] = None
    parent_id: Optional[str] = None
    created_at: Optional[str] = None
    comment_count: int = 0
    subtasks: list["Task"] = dc.field(default_factory=list)
    raw: dict[str, Any] = dc.field(default_factory=dict, repr=False)

    @classmethod
    def from_api(cls, d: dict[str, Any]) -> "Task":
        pid = d.get("project_id")
        parent = d.get("parent_id")
        return cls(
            id=str(d.get("id") or ""),
            content=d.get("content") or "",
            description=d.get("description") or "",
            due=Due.from_api(d.get("due")),
            priority=_int(d.get("priority"), 1),
            labels=[str(lbl) for lbl in (d.get("labels") or [])],
            project_id=str(pid) if pid not in (None, "") else None,
            parent_id=str(parent) if parent not in (None, "") else None,
            created_at=d.get("created_at") or None,
            comment_count=_int(d.get("comment_count"), 0),
            raw=d,
        )

    @property
    def project_ref(self) -> ProjectRef:
        if self.project_id is None or self.project_id == "inbox":
            return ProjectRef.inbox()
        return ProjectRef.named(self.project_id)

    def attach_subtasks(self, children: list["Task"]) -> None:
        # Only direct children; their own children are never expanded.
        self.subtasks = [c for c in children if c.parent_id == self.id]


@dc.dataclass(frozen=True)
class Project:
    id: str
    name: str

    @classmethod
    def from_api(cls, d: dict[str, Any]) -> "Project":
        return cls(id=str(d.get("id") or ""), name=d.get("name") or "")


@dc.dataclass(frozen=True)
class SubtaskFetch:
    task_id: str
    children: list[Task]
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dc.dataclass
class FetchedBundle:
    tasks: list[Task]
    raw_tasks: list[dict[str, Any]]
    projects: list[Project]
    raw_projects: list[dict[str, Any]] = dc.field(default_factory=list)
    subtask_fetches: list[SubtaskFetch] = dc.field(default_factory=list)

    @property
    def degraded_task_ids(self) -> list[str]:
        return [f.task_id for f in self.subtask_fetches if not f.ok]

    @property
    def project_names(self) -> dict[str, str]:
        return {p.id: p.name for p in self.projects}
