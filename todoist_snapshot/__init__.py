"""Export Todoist tasks to a rich document, a plain text file and a JSON snapshot."""

__version__ = "1.0.0"

from .errors import ApiError, ConfigError, ParseError, ResourceError, SnapshotError  # noqa: E402
from .sync import sync_all, sync_to_document, sync_to_json_file, sync_to_text_file  # noqa: E402

__all__ = [
    "ApiError",
    "ConfigError",
    "ParseError",
    "ResourceError",
    "SnapshotError",
    "sync_all",
    "sync_to_document",
    "sync_to_json_file",
    "sync_to_text_file",
]
