from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict

import toml

from .errors import PersistenceError


def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def read_toml(path: Path) -> Dict[str, Any]:
    try:
        raw_text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise PersistenceError(f"Cannot read {path}: {exc}") from exc
    try:
        return toml.loads(raw_text)
    except toml.TomlDecodeError as exc:
        raise PersistenceError(f"Invalid TOML in {path}") from exc


def write_toml(path: Path, data: Dict[str, Any]) -> None:
    """Write ``data`` next to ``path`` first, then move it into place."""

    ensure_directory(path.parent)
    staging = path.with_name(path.name + ".tmp")
    try:
        with staging.open("w", encoding="utf-8", newline="\n") as writer:
            toml.dump(data, writer)
        os.replace(staging, path)
    except OSError as exc:
        raise PersistenceError(f"Cannot write {path}: {exc}") from exc


def remove_file(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        raise PersistenceError(f"Cannot delete {path}: {exc}") from exc


def disabled_name(filename: str, suffix: str) -> str:
    return filename + suffix


def enabled_name(filename: str, suffix: str) -> str:
    if suffix and filename.endswith(suffix):
        return filename[: -len(suffix)]
    return filename
