"""
Rendering of a fetched bundle into the three output representations:
rich document, plain text and JSON snapshot.

Every renderer takes the generation instant explicitly, so the same bundle
rendered with the same RenderContext is byte-identical.
"""
from __future__ import annotations

import dataclasses as dc
import json
from datetime import UTC, date, datetime
from typing import Any, Optional
from zoneinfo import ZoneInfo

from . import __version__
from .config import Settings
from .document import Document
from .markup import StyledText, render_inline
from .models import FetchedBundle, Project, ProjectRef, Task, parse_date, parse_instant

API_VERSION = "v2"
EMPTY_MESSAGE = "No tasks due today."
META_SEP = " • "

PRIORITY_PREFIX = {4: "(P1) ", 3: "(P2) ", 2: "(P3) "}
PRIORITY_BUCKET = {4: "p1", 3: "p2", 2: "p3"}


@dc.dataclass(frozen=True)
class RenderContext:
    timezone: str
    zone: ZoneInfo
    now: datetime  # aware

    @classmethod
    def from_settings(cls, settings: Settings, now: Optional[datetime] = None) -> "RenderContext":
        return cls(settings.timezone, settings.zone(), now or datetime.now(UTC))

    @property
    def local_now(self) -> datetime:
        return self.now.astimezone(self.zone)


# ---------- small formatters ----------

def _clock(dt: datetime, *, seconds: bool = False) -> str:
    h = dt.hour % 12 or 12
    ampm = "AM" if dt.hour < 12 else "PM"
    if seconds:
        return f"{h}:{dt.minute:02d}:{dt.second:02d} {ampm}"
    return f"{h}:{dt.minute:02d} {ampm}"


def _short_date(d: date) -> str:
    return f"{d:%b} {d.day}, {d.year}"


def priority_prefix(priority: int) -> str:
    return PRIORITY_PREFIX.get(priority, "")


def priority_bucket(priority: int) -> str:
    return PRIORITY_BUCKET.get(priority, "p4")


def due_suffix(task: Task, ctx: RenderContext) -> str:
    due = task.due
    if due is None:
        return ""
    if due.has_time:
        at = parse_instant(due.datetime, ctx.zone)
        if at is None:
            return ""
        local = at.astimezone(ctx.zone)
        return f" (Due: {_short_date(local.date())} at {_clock(local)})"
    # All-day: format the literal Y-M-D, no timezone shift.
    d = parse_date(due.date)
    return f" (Due: {_short_date(d)})" if d else ""


def labels_suffix(task: Task) -> str:
    return f" [{', '.join(task.labels)}]" if task.labels else ""


def metadata_suffix(task: Task, ctx: RenderContext) -> str:
    parts = []
    if task.comment_count > 0:
        parts.append(f"{task.comment_count} comments")
    created = parse_instant(task.created_at, UTC)
    if created is not None:
        local = created.astimezone(ctx.zone)
        parts.append(f"created {local:%b} {local.day}")
    return f" ({', '.join(parts)})" if parts else ""


# ---------- grouping / stats ----------

def group_tasks(tasks: list[Task], projects: list[Project]) -> list[tuple[ProjectRef, str, list[Task]]]:
    """Inbox first, then projects by name; fetch order kept inside each group."""
    names = {p.id: p.name for p in projects}
    groups: dict[ProjectRef, list[Task]] = {}
    for t in tasks:
        groups.setdefault(t.project_ref, []).append(t)
    ordered = sorted(groups, key=lambda ref: ref.sort_key(names))
    return [(ref, ref.display_name(names), groups[ref]) for ref in ordered]


@dc.dataclass(frozen=True)
class TaskStats:
    total: int
    with_labels: int
    with_comments: int
    subtask_count: int

    @classmethod
    def of(cls, tasks: list[Task]) -> "TaskStats":
        return cls(
            total=len(tasks),
            with_labels=sum(1 for t in tasks if t.labels),
            with_comments=sum(1 for t in tasks if t.comment_count > 0),
            subtask_count=sum(len(t.subtasks) for t in tasks),
        )


def header(bundle: FetchedBundle, ctx: RenderContext) -> tuple[str, str]:
    local = ctx.local_now
    title = f"Todoist Tasks for {local.month}/{local.day}/{local.year}"
    stats = TaskStats.of(bundle.tasks)
    meta = [
        f"Export date: {local.month}/{local.day}/{local.year}, {_clock(local, seconds=True)}",
        f"Timezone: {ctx.timezone}",
        f"Total tasks: {stats.total}",
        f"Total projects: {len(bundle.projects)}",
    ]
    if stats.with_labels:
        meta.append(f"Tasks with labels: {stats.with_labels}")
    if stats.with_comments:
        meta.append(f"Tasks with comments: {stats.with_comments}")
    if stats.subtask_count:
        meta.append(f"Sub-tasks: {stats.subtask_count}")
    return title, META_SEP.join(meta)


# ---------- plain text ----------

def text_lines(task: Task, ctx: RenderContext, *, subtask: bool = False) -> list[str]:
    indent = "  " if subtask else ""
    lines = [
        f"{indent}- {priority_prefix(task.priority)}{task.content}"
        f"{due_suffix(task, ctx)}{labels_suffix(task)}{metadata_suffix(task, ctx)}"
    ]
    for raw in task.description.split("\n") if task.description else []:
        line = raw.strip()
        if line:
            lines.append(f"{indent}  > {line}")
    return lines


def render_text(bundle: FetchedBundle, ctx: RenderContext) -> str:
    title, meta = header(bundle, ctx)
    lines = [title, meta, ""]
    if not bundle.tasks:
        lines.append(EMPTY_MESSAGE)
        return "\n".join(lines)

    for _ref, name, group in group_tasks(bundle.tasks, bundle.projects):
        lines.append(f"{name}:")
        for task in group:
            lines.extend(text_lines(task, ctx))
            for sub in task.subtasks:
                lines.extend(text_lines(sub, ctx, subtask=True))
        lines.append("")
    return "\n".join(lines)


# ---------- rich document ----------

def document_item(task: Task, ctx: RenderContext) -> StyledText:
    prefix = priority_prefix(task.priority)
    description = f" — {task.description}" if task.description else ""
    text = f"{prefix}{task.content}{description}{due_suffix(task, ctx)}{labels_suffix(task)}"
    start = len(prefix)
    return render_inline(text, bold=(start, start + len(task.content)))


def render_document(bundle: FetchedBundle, ctx: RenderContext, doc: Optional[Document] = None) -> Document:
    doc = doc or Document()
    doc.clear()
    title, meta = header(bundle, ctx)
    doc.append_heading(title, 1)
    doc.append_paragraph(meta, italic=True)
    doc.append_paragraph("")

    if not bundle.tasks:
        doc.append_paragraph(EMPTY_MESSAGE)
        return doc

    for _ref, name, group in group_tasks(bundle.tasks, bundle.projects):
        doc.append_heading(name, 2)
        for task in group:
            doc.append_list_item(document_item(task, ctx))
            for sub in task.subtasks:
                doc.append_list_item(document_item(sub, ctx), nesting=1)
    return doc


# ---------- JSON ----------

def json_statistics(bundle: FetchedBundle) -> dict[str, Any]:
    by_priority = {"p1": 0, "p2": 0, "p3": 0, "p4": 0}
    with_due = with_labels = with_comments = 0
    for d in bundle.raw_tasks:
        if d.get("due"):
            with_due += 1
        if d.get("labels"):
            with_labels += 1
        if (d.get("comment_count") or 0) > 0:
            with_comments += 1
        by_priority[priority_bucket(d.get("priority"))] += 1
    return {
        "tasks": {
            "total": len(bundle.raw_tasks),
            "withDueDates": with_due,
            "withLabels": with_labels,
            "withComments": with_comments,
            "byPriority": by_priority,
            "subtaskCount": sum(len(t.subtasks) for t in bundle.tasks),
        },
        "projects": {"total": len(bundle.raw_projects)},
    }


def render_json(bundle: FetchedBundle, ctx: RenderContext) -> str:
    export_date = ctx.now.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    payload = {
        "exportMetadata": {
            "exportDate": export_date,
            "timezone": ctx.timezone,
            "apiVersion": API_VERSION,
            "scriptVersion": __version__,
        },
        "statistics": json_statistics(bundle),
        "data": {
            "tasks": bundle.raw_tasks,
            "projects": bundle.raw_projects,
        },
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)
