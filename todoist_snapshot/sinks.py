from __future__ import annotations

from pathlib import Path

import structlog

from .config import Settings, Target
from .document import Document, to_html
from .errors import ResourceError

log = structlog.get_logger("todoist_snapshot.sinks")

DEFAULT_SUFFIX = {
    Target.DOCUMENT: ".html",
    Target.TEXT: ".txt",
    Target.JSON: ".json",
}


class FileSink:
    """A local file that is always replaced whole."""

    def __init__(self, path: Path):
        self.path = path

    def write(self, content: str) -> None:
        if not self.path.parent.is_dir():
            raise ResourceError(f"Output directory not found: {self.path.parent}", path=self.path)
        try:
            self.path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise ResourceError(f"Could not write {self.path}: {e}", path=self.path)
        log.debug("sink_written", path=str(self.path), chars=len(content))

    def read(self) -> str:
        try:
            return self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise ResourceError(f"Could not read {self.path}: {e}", path=self.path)


def resolve_sink(settings: Settings, target: Target) -> FileSink:
    target_id = settings.output_target_id(target)
    path = Path(target_id)
    if not path.suffix:
        path = path.with_name(path.name + DEFAULT_SUFFIX[target])
    if not path.is_absolute():
        path = settings.output_dir / path
    return FileSink(path)


# ---------- writers ----------

def write_document(settings: Settings, doc: Document) -> FileSink:
    sink = resolve_sink(settings, Target.DOCUMENT)
    sink.write(to_html(doc))
    return sink


def write_text_file(settings: Settings, text: str) -> FileSink:
    sink = resolve_sink(settings, Target.TEXT)
    sink.write(text)
    return sink


def write_json_file(settings: Settings, payload: str) -> FileSink:
    sink = resolve_sink(settings, Target.JSON)
    sink.write(payload)
    return sink
