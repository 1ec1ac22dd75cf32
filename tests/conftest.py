# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import pytest
import structlog

from todoist_snapshot.config import Settings, load_settings
from todoist_snapshot.render import RenderContext

from .fakes import NOW, FakeTodoist


@pytest.fixture(autouse=True)
def _reset_structlog():
    # The CLI configures structlog globally; undo it between tests.
    yield
    structlog.reset_defaults()


@pytest.fixture()
def env(tmp_path: Path) -> dict[str, str]:
    return {
        "TODOIST_TOKEN": "test-token",
        "SNAPSHOT_OUTPUT_DIR": str(tmp_path),
    }


@pytest.fixture()
def make_settings(env: dict[str, str]) -> Callable[..., Settings]:
    def _make(**overrides: str) -> Settings:
        return load_settings({**env, **overrides})

    return _make


@pytest.fixture()
def ctx(make_settings) -> RenderContext:
    return RenderContext.from_settings(make_settings(), NOW)


@pytest.fixture()
def sample_tasks() -> list[dict[str, Any]]:
    return [
        {
            "id": "1",
            "content": "Ship report",
            "priority": 4,
            "labels": ["work", "urgent"],
            "due": {"date": "2025-09-16"},
            "project_id": "p1",
        },
        {
            "id": "2",
            "content": "Someday",
            "priority": 1,
            "due": {"date": "2025-12-01"},
            "project_id": "p1",
        },
        {"id": "3", "content": "No date", "priority": 2, "project_id": "p2"},
        {
            "id": "4",
            "content": "Call **Sam**",
            "priority": 3,
            "due": {"date": "2025-09-15", "datetime": "2025-09-15T19:30:00Z"},
            "comment_count": 2,
            "created_at": "2025-09-01T10:00:00Z",
            "description": "Agenda:\n  budget  \n\nhiring",
        },
    ]


@pytest.fixture()
def sample_projects() -> list[dict[str, Any]]:
    return [{"id": "p1", "name": "Work"}, {"id": "p2", "name": "Home"}]


@pytest.fixture()
def fake(sample_tasks, sample_projects) -> FakeTodoist:
    return FakeTodoist(
        tasks=sample_tasks,
        projects=sample_projects,
        subtasks={"1": [{"id": "11", "parent_id": "1", "content": "Draft", "priority": 1, "project_id": "p1"}]},
    )
