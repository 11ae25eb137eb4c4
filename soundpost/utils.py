"""
SoundPost v1 Utilities - Shared helper functions.

Responsibilities:
- Time formatting (UTC, ISO-8601)
- JSON serialization helpers
- Derived artifact naming and safe deletion

Invariants:
- Derived names keep the source directory: <dir>/<stem><suffix><ext>
- Deleting a missing file is not an error
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping


def now_iso() -> str:
    """
    Return current time as ISO-8601 in UTC.

    Returns:
        ISO-8601 formatted string, e.g., "2025-12-23T17:02:10+00:00"
    """
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def serialize_json(data: Mapping[str, Any]) -> str:
    """
    Serialize dictionary to JSON deterministically.

    Args:
        data: Dictionary to serialize.

    Returns:
        JSON string with sorted keys, 2-space indent, trailing newline.
    """
    return json.dumps(data, indent=2, sort_keys=True) + "\n"


def derived_path(path: str | Path, suffix: str, extension: str | None = None) -> Path:
    """
    Name the successor of an artifact.

    Args:
        path: Source artifact path
        suffix: Appended to the stem (e.g., "_trimmed")
        extension: New extension with or without dot; defaults to the source's

    Returns:
        e.g. work/episode.mp3 + "_trimmed" -> work/episode_trimmed.mp3
    """
    path = Path(path)
    if extension is None:
        ext = path.suffix
    else:
        ext = extension if extension.startswith(".") else f".{extension}"
    return path.with_name(f"{path.stem}{suffix}{ext}")


def safe_unlink(path: str | Path | None) -> bool:
    """
    Delete a file if it exists.

    Returns:
        True if a file was removed.
    """
    if not path:
        return False
    target = Path(path)
    if not target.is_file():
        return False
    target.unlink()
    return True


def strip_newlines(text: str) -> str:
    """Remove line breaks from a tag value."""
    return text.replace("\r\n", "").replace("\r", "").replace("\n", "")
