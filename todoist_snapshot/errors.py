from __future__ import annotations

from pathlib import Path
from typing import Optional


class SnapshotError(Exception):
    """Base class for every error raised by todoist_snapshot."""


class ConfigError(SnapshotError):
    """A required setting is missing or unusable."""


class ApiError(SnapshotError):
    def __init__(self, message: str, *, status: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.body = body


class ParseError(ApiError):
    """The API answered with something that looked like JSON but did not decode."""


class ResourceError(SnapshotError):
    def __init__(self, message: str, *, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path
