from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List

from .file_utils import read_toml, write_toml

LINK_STATE_FILE = "linkstate.toml"
LINK_STATE_VERSION = "1.0"


@dataclass(slots=True)
class LinkState:
    """Files removed from the project that linked instances still have to drop."""

    removed_files: List[str] = field(default_factory=list)
    last_update: str = ""
    version: str = LINK_STATE_VERSION

    def add_removed_file(self, filepath: str) -> None:
        if filepath and filepath not in self.removed_files:
            self.removed_files.append(filepath)

    def clear_removed_files(self) -> None:
        self.removed_files.clear()


def link_state_path(project_root: Path) -> Path:
    return project_root / LINK_STATE_FILE


def load_link_state(project_root: Path) -> LinkState:
    path = link_state_path(project_root)
    if not path.exists():
        return LinkState()
    data = read_toml(path)
    return LinkState(
        removed_files=list(data.get("removed_files", [])),
        last_update=data.get("last_update", ""),
        version=data.get("version", LINK_STATE_VERSION),
    )


def save_link_state(project_root: Path, state: LinkState) -> None:
    state.last_update = datetime.now().isoformat(timespec="seconds")
    write_toml(
        link_state_path(project_root),
        {
            "version": state.version,
            "last_update": state.last_update,
            "removed_files": list(state.removed_files),
        },
    )
