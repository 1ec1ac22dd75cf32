# tests/test_client.py

from __future__ import annotations

from datetime import timedelta
from zoneinfo import ZoneInfo

import httpx
import pytest
from structlog.testing import capture_logs

from todoist_snapshot.client import TodoistClient, fetch_all, within_window
from todoist_snapshot.errors import ApiError, ConfigError, ParseError
from todoist_snapshot.models import Due, Task

from .fakes import NOW, FakeTodoist

CHICAGO = ZoneInfo("America/Chicago")


def test_fetch_all_filters_and_attaches(make_settings, fake: FakeTodoist) -> None:
    bundle = fetch_all(make_settings(), http=fake.client(), now=NOW)

    assert [t.id for t in bundle.tasks] == ["1", "4"]
    assert [s.id for s in bundle.tasks[0].subtasks] == ["11"]
    assert bundle.tasks[1].subtasks == []
    assert [d["id"] for d in bundle.raw_tasks] == ["1", "4"]
    assert all("subtasks" not in d for d in bundle.raw_tasks)
    assert [p.name for p in bundle.projects] == ["Work", "Home"]
    assert bundle.raw_projects == fake.projects
    assert bundle.degraded_task_ids == []

    assert fake.calls["tasks"] == 1
    assert fake.calls["projects"] == 1
    assert fake.subtask_calls == 2
    assert set(fake.auth) == {"Bearer test-token"}


def test_missing_token_makes_no_request(make_settings, fake: FakeTodoist) -> None:
    with pytest.raises(ConfigError):
        fetch_all(make_settings(TODOIST_TOKEN=""), http=fake.client(), now=NOW)
    assert fake.total_calls == 0


def test_non_200_is_api_error(make_settings, fake: FakeTodoist) -> None:
    fake.failures["tasks"] = httpx.Response(401, text="Forbidden")
    with pytest.raises(ApiError) as ei:
        fetch_all(make_settings(), http=fake.client(), now=NOW)
    assert ei.value.status == 401
    assert ei.value.body == "Forbidden"
    assert not isinstance(ei.value, ParseError)
    assert fake.calls["projects"] == 0


def test_non_json_body_is_api_error(make_settings, fake: FakeTodoist) -> None:
    fake.failures["projects"] = httpx.Response(200, text="<html>Too many requests</html>")
    with pytest.raises(ApiError, match="Invalid JSON response from Todoist projects API") as ei:
        fetch_all(make_settings(), http=fake.client(), now=NOW)
    assert not isinstance(ei.value, ParseError)


def test_broken_json_is_parse_error(make_settings, fake: FakeTodoist) -> None:
    fake.failures["tasks"] = httpx.Response(200, text='[{"id": "1",')
    with pytest.raises(ParseError, match="invalid API token or API rate limiting"):
        fetch_all(make_settings(), http=fake.client(), now=NOW)


def test_object_instead_of_array(make_settings, fake: FakeTodoist) -> None:
    fake.failures["tasks"] = httpx.Response(200, json={"results": []})
    with pytest.raises(ApiError, match="expected a JSON array"):
        fetch_all(make_settings(), http=fake.client(), now=NOW)


def test_transport_error_is_api_error(make_settings, fake: FakeTodoist) -> None:
    fake.failures["tasks"] = httpx.ConnectError("connection refused")
    with pytest.raises(ApiError, match="connection refused"):
        fetch_all(make_settings(), http=fake.client(), now=NOW)


def test_subtask_failures_degrade_per_task(make_settings, fake: FakeTodoist) -> None:
    fake.failures["subtasks:1"] = httpx.Response(500, text="oops")
    fake.failures["subtasks:4"] = httpx.ReadTimeout("slow")

    with capture_logs() as logs:
        bundle = fetch_all(make_settings(), http=fake.client(), now=NOW)

    assert [t.id for t in bundle.tasks] == ["1", "4"]
    assert all(t.subtasks == [] for t in bundle.tasks)
    assert bundle.degraded_task_ids == ["1", "4"]
    assert "Status: 500" in bundle.subtask_fetches[0].error
    assert fake.calls["projects"] == 1

    warnings = [e for e in logs if e["event"] == "subtasks_degraded"]
    assert warnings == [{"event": "subtasks_degraded", "log_level": "warning", "count": 2, "task_ids": ["1", "4"]}]


def test_one_bad_subtask_fetch_does_not_hide_others(make_settings, fake: FakeTodoist) -> None:
    fake.subtasks["4"] = [{"id": "41", "parent_id": "4", "content": "Child"}]
    fake.failures["subtasks:1"] = httpx.Response(200, text="not json")
    bundle = fetch_all(make_settings(), http=fake.client(), now=NOW)
    assert bundle.tasks[0].subtasks == []
    assert [s.id for s in bundle.tasks[1].subtasks] == ["41"]
    assert bundle.degraded_task_ids == ["1"]


def test_only_direct_children_are_kept(make_settings, fake: FakeTodoist) -> None:
    fake.subtasks["1"] = [
        {"id": "11", "parent_id": "1", "content": "child"},
        {"id": "111", "parent_id": "11", "content": "grandchild"},
    ]
    bundle = fetch_all(make_settings(), http=fake.client(), now=NOW)
    assert [s.id for s in bundle.tasks[0].subtasks] == ["11"]


@pytest.mark.parametrize(
    "due, kept",
    [
        (None, False),
        (Due(date="2020-01-01"), True),  # overdue
        (Due(date="2025-09-21"), True),  # local midnight is 05:00 UTC, before the edge
        (Due(date="2025-09-22"), False),
        (Due(datetime="2025-09-21T15:00:00Z"), True),
        (Due(datetime="2025-09-21T15:00:01Z"), False),
        (Due(date="not-a-date"), False),
    ],
)
def test_within_window(due, kept: bool) -> None:
    assert within_window(Task(id="x", due=due), NOW, CHICAGO) is kept


def test_window_is_seven_days() -> None:
    edge = NOW + timedelta(days=7)
    assert within_window(Task(id="x", due=Due(datetime=edge.isoformat())), NOW, CHICAGO)


def test_client_sends_parent_id_query() -> None:
    seen: list[httpx.URL] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url)
        return httpx.Response(200, json=[])

    with TodoistClient("t", "https://example.test/rest/v2/", http=httpx.Client(transport=httpx.MockTransport(handler))) as td:
        td.get_subtasks("123")
        td.get_projects()

    assert str(seen[0]) == "https://example.test/rest/v2/tasks?parent_id=123"
    assert str(seen[1]) == "https://example.test/rest/v2/projects"


def test_malformed_subtask_fields_are_tolerated(make_settings, fake: FakeTodoist) -> None:
    fake.subtasks["1"] = [{"id": "11", "parent_id": "1", "content": "x", "comment_count": "n/a", "priority": "high"}]
    bundle = fetch_all(make_settings(), http=fake.client(), now=NOW)
    (child,) = bundle.tasks[0].subtasks
    assert (child.comment_count, child.priority) == (0, 1)
    assert bundle.degraded_task_ids == []


def test_unreadable_subtask_payload_degrades_only_that_task(make_settings, fake: FakeTodoist) -> None:
    fake.subtasks["1"] = [{"id": "11", "parent_id": "1", "labels": 5}]
    fake.subtasks["4"] = [{"id": "41", "parent_id": "4", "content": "Child"}]
    bundle = fetch_all(make_settings(), http=fake.client(), now=NOW)
    assert [t.id for t in bundle.tasks] == ["1", "4"]
    assert bundle.tasks[0].subtasks == []
    assert [s.id for s in bundle.tasks[1].subtasks] == ["41"]
    assert bundle.degraded_task_ids == ["1"]


def test_subtask_fetch_log_uses_plain_content(make_settings, fake: FakeTodoist) -> None:
    with capture_logs() as logs:
        fetch_all(make_settings(), http=fake.client(), now=NOW)
    fetching = [e["content"] for e in logs if e["event"] == "subtasks_fetching"]
    assert fetching == ["Ship report", "Call Sam"]
