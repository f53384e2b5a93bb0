"""Utilities for saving pipeline outputs."""

from __future__ import annotations

import json
import logging
import os
import uuid
from contextlib import suppress
from pathlib import Path
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)


def ensure_directory(path: str | Path) -> Path:
    """Create a directory if it does not exist and return it."""

    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def _fsync_directory(path: Path) -> None:
    """Best-effort fsync for a directory."""

    try:
        fd = os.open(path, os.O_RDONLY)
    except OSError:
        logger.debug("fsync: unable to open directory %s", path)
        return
    try:
        os.fsync(fd)
    except OSError:
        logger.debug("fsync: sync failed for directory %s", path)
    finally:
        os.close(fd)


def _atomic_write_text(path: Path, content: str) -> None:
    """Atomically replace file contents via temp-write + rename."""

    ensure_directory(path.parent)
    temp_path = path.parent / f".{path.name}.{uuid.uuid4().hex}.tmp"
    try:
        with temp_path.open("w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, path)
        _fsync_directory(path.parent)
    finally:
        if temp_path.exists():
            with suppress(OSError):
                temp_path.unlink()


def _jsonable(row: dict[str, Any] | BaseModel) -> dict[str, Any]:
    if isinstance(row, BaseModel):
        return row.model_dump(by_alias=True, mode="json")
    return row


def save_json(path: str | Path, payload: dict[str, Any]) -> Path:
    """Atomically save a JSON object to disk."""

    file_path = Path(path)
    content = json.dumps(payload, ensure_ascii=False, indent=2) + "\n"
    _atomic_write_text(file_path, content)
    return file_path


def append_jsonl(path: str | Path, rows: list[dict[str, Any] | BaseModel]) -> Path:
    """Append records to a JSONL file."""

    file_path = Path(path)
    ensure_directory(file_path.parent)
    if not rows:
        return file_path

    with file_path.open("a", encoding="utf-8") as handle:
        for row in rows:
            handle.write(json.dumps(_jsonable(row), ensure_ascii=False) + "\n")
        handle.flush()
        os.fsync(handle.fileno())
    return file_path


def read_json_dict(path: Path) -> dict[str, Any]:
    """Read a JSON object from disk, returning an empty dict when missing or corrupt."""

    if not path.exists():
        return {}
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        logger.warning("Ignoring unreadable JSON file: %s", path)
        return {}
    return payload if isinstance(payload, dict) else {}
