"""Atomic file I/O for MindWell slices and settings."""

from __future__ import annotations

import fcntl
import json
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml


def _read(path: Path) -> str | None:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    return text if text.strip() else None


def read_json(path: Path) -> Any:
    """Parsed JSON at *path*, or None if the file is missing or blank.

    Malformed JSON raises ``json.JSONDecodeError``; callers decide whether
    that counts as absent.
    """
    text = _read(path)
    return None if text is None else json.loads(text)


def read_yaml(path: Path) -> dict[str, Any]:
    """Mapping stored at *path*; empty if missing, blank or not a mapping."""
    text = _read(path)
    if text is None:
        return {}
    result = yaml.safe_load(text)
    return result if isinstance(result, dict) else {}


def _replace_atomic(path: Path, content: str) -> None:
    """Write to a locked sibling temp file, fsync, then swap it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            fcntl.flock(f, fcntl.LOCK_EX)
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_path, path)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise


def write_json_atomic(path: Path, data: Any) -> None:
    """Serialize first so an unserializable value never touches disk."""
    _replace_atomic(path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")


def write_yaml_atomic(path: Path, data: dict[str, Any]) -> None:
    _replace_atomic(path, yaml.safe_dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False))


def remove_file(path: Path) -> bool:
    """Delete *path*. Returns False if it did not exist."""
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True
