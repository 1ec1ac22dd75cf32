"""
Run configuration.

Settings are read once per run from a flat string mapping (the process
environment unless told otherwise) and passed explicitly to every component.

Keys:
  TODOIST_TOKEN        Todoist API token (required to fetch)
  DOC_ID               document target: bare ID or sharing URL
  TEXT_FILE_ID         plain-text target: bare ID or sharing URL
  JSON_FILE_ID         JSON target: bare ID or sharing URL
  TIMEZONE             IANA zone name (default: America/Chicago)
  DEBUG                "true" enables debug logging and tracebacks
  SNAPSHOT_OUTPUT_DIR  directory targets are resolved against (default: cwd)
  TODOIST_API_BASE     REST base URL (default: https://api.todoist.com/rest/v2)
"""
from __future__ import annotations

import dataclasses as dc
import enum
import os
import re
from pathlib import Path
from typing import Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import ConfigError

DEFAULT_TIMEZONE = "America/Chicago"
DEFAULT_API_BASE = "https://api.todoist.com/rest/v2"


class Target(enum.Enum):
    DOCUMENT = "DOC_ID"
    TEXT = "TEXT_FILE_ID"
    JSON = "JSON_FILE_ID"

    @property
    def label(self) -> str:
        return {"DOC_ID": "document", "TEXT_FILE_ID": "text file", "JSON_FILE_ID": "JSON file"}[self.value]

    @property
    def event(self) -> str:
        """Prefix for this target's log events and result keys."""
        return {"DOC_ID": "document", "TEXT_FILE_ID": "text_file", "JSON_FILE_ID": "json_file"}[self.value]


# ---------- sharing URL -> ID ----------

_URL_RE = re.compile(r"^https?://", re.IGNORECASE)
_FOLDER_RE = re.compile(r"/folders/", re.IGNORECASE)
_ID_PATTERNS = (
    re.compile(r"/[du]/([a-zA-Z0-9_-]{10,})\b"),
    re.compile(r"/file/d/([a-zA-Z0-9_-]{10,})\b"),
    re.compile(r"[?&]id=([a-zA-Z0-9_-]{10,})"),
)


def extract_drive_id(raw: Optional[str]) -> str:
    """
    Normalize a target setting to a bare identifier.

    Anything that is not an http(s) URL is assumed to already be an ID.
    Folder links are rejected since they do not name a single resource.
    """
    s = (raw or "").strip()
    if not s:
        raise ConfigError("Empty ID/URL provided.")
    if not _URL_RE.match(s):
        return s
    if _FOLDER_RE.search(s):
        raise ConfigError("The provided link appears to be a folder. Please provide a file or document link.")
    for pat in _ID_PATTERNS:
        m = pat.search(s)
        if m:
            return m.group(1)
    raise ConfigError("Unable to extract a file ID from the provided URL. Provide a direct file/document link.")


# ---------- settings ----------

@dc.dataclass(frozen=True)
class Settings:
    values: Mapping[str, str] = dc.field(default_factory=dict)

    def _get(self, key: str) -> Optional[str]:
        v = self.values.get(key)
        if v is None or v.strip() == "":
            return None
        return v

    def token(self) -> str:
        tok = self._get("TODOIST_TOKEN")
        if not tok:
            raise ConfigError("TODOIST_TOKEN is not configured. Set it in the environment.")
        return tok.strip()

    def output_target_id(self, target: Target) -> str:
        raw = self._get(target.value)
        if not raw:
            raise ConfigError(f"{target.value} is not configured. Set a file ID or sharing URL for the {target.label} target.")
        return extract_drive_id(raw)

    def configured_targets(self) -> list[Target]:
        return [t for t in Target if self._get(t.value)]

    @property
    def timezone(self) -> str:
        tz = self._get("TIMEZONE")
        return tz.strip() if tz else DEFAULT_TIMEZONE

    def zone(self) -> ZoneInfo:
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ConfigError(f"Unknown TIMEZONE: {self.timezone!r}")

    @property
    def debug(self) -> bool:
        return (self.values.get("DEBUG") or "").strip().lower() == "true"

    @property
    def output_dir(self) -> Path:
        raw = self._get("SNAPSHOT_OUTPUT_DIR")
        return Path(raw).expanduser() if raw else Path.cwd()

    @property
    def api_base(self) -> str:
        return (self._get("TODOIST_API_BASE") or DEFAULT_API_BASE).rstrip("/")


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Snapshot the configuration mapping; later changes to `env` are not seen."""
    source = os.environ if env is None else env
    return Settings(values=dict(source))
