"""
Entry routines.

`sync_all` looks at which targets are configured. With one target, that
target's routine fetches for itself; with several, tasks are fetched once
and the same bundle is handed to every routine. Each routine reports its
own failures and never raises, so a run always finishes once targets have
been detected.
"""
from __future__ import annotations

from datetime import UTC, datetime
from typing import Callable, Mapping, Optional

import httpx
import structlog

from .client import fetch_all
from .config import Settings, Target, load_settings
from .errors import ConfigError
from .models import FetchedBundle
from .render import RenderContext, render_document, render_json, render_text
from .sinks import FileSink, write_document, write_json_file, write_text_file

log = structlog.get_logger("todoist_snapshot.sync")

Writer = Callable[[Settings, FetchedBundle, RenderContext], FileSink]


def _run_target(
    target: Target,
    write: Writer,
    settings: Optional[Settings],
    bundle: Optional[FetchedBundle],
    *,
    http: Optional[httpx.Client],
    now: Optional[datetime],
) -> bool:
    settings = settings or load_settings()
    now = now or datetime.now(UTC)
    try:
        data = bundle or fetch_all(settings, http=http, now=now)
        log.debug(f"{target.event}_rendering", tasks=len(data.tasks))
        sink = write(settings, data, RenderContext.from_settings(settings, now))
    except Exception as e:
        log.error(f"{target.event}_sync_failed", error=str(e), exc_info=settings.debug)
        return False
    log.info(f"{target.event}_synced", path=str(sink.path))
    return True


def sync_to_document(
    settings: Optional[Settings] = None,
    bundle: Optional[FetchedBundle] = None,
    *,
    http: Optional[httpx.Client] = None,
    now: Optional[datetime] = None,
) -> bool:
    return _run_target(
        Target.DOCUMENT,
        lambda s, b, ctx: write_document(s, render_document(b, ctx)),
        settings, bundle, http=http, now=now,
    )


def sync_to_text_file(
    settings: Optional[Settings] = None,
    bundle: Optional[FetchedBundle] = None,
    *,
    http: Optional[httpx.Client] = None,
    now: Optional[datetime] = None,
) -> bool:
    return _run_target(
        Target.TEXT,
        lambda s, b, ctx: write_text_file(s, render_text(b, ctx)),
        settings, bundle, http=http, now=now,
    )


def sync_to_json_file(
    settings: Optional[Settings] = None,
    bundle: Optional[FetchedBundle] = None,
    *,
    http: Optional[httpx.Client] = None,
    now: Optional[datetime] = None,
) -> bool:
    return _run_target(
        Target.JSON,
        lambda s, b, ctx: write_json_file(s, render_json(b, ctx)),
        settings, bundle, http=http, now=now,
    )


ROUTINES = {
    Target.DOCUMENT: sync_to_document,
    Target.TEXT: sync_to_text_file,
    Target.JSON: sync_to_json_file,
}


def sync_all(
    env: Optional[Mapping[str, str]] = None,
    *,
    http: Optional[httpx.Client] = None,
    now: Optional[datetime] = None,
) -> dict[str, bool]:
    """Sync every configured target. Raises ConfigError only when none is configured."""
    settings = load_settings(env)
    targets = settings.configured_targets()
    if not targets:
        raise ConfigError("No output targets configured. Set DOC_ID, TEXT_FILE_ID, and/or JSON_FILE_ID.")

    now = now or datetime.now(UTC)
    log.info("sync_started", targets=len(targets))
    log.debug("targets_detected", targets=[t.value for t in targets])

    bundle: Optional[FetchedBundle] = None
    if len(targets) > 1:
        try:
            bundle = fetch_all(settings, http=http, now=now)
        except Exception as e:
            # The shared fetch is not retried per target.
            for t in targets:
                log.error(f"{t.event}_sync_failed", error=str(e), exc_info=settings.debug)
            log.info("sync_finished", ok=0, failed=len(targets))
            return {t.event: False for t in targets}

    results = {t.event: ROUTINES[t](settings, bundle, http=http, now=now) for t in targets}
    ok = sum(results.values())
    log.info("sync_finished", ok=ok, failed=len(results) - ok)
    return results
