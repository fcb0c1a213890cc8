from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, List, Protocol, Sequence

from .errors import ConflictError, NotFoundError, PersistenceError
from .file_utils import ensure_directory, read_toml, remove_file, write_toml
from .logging_utils import log_info
from .models import ContentItem, ContentType, Dependency, IndexEntry

INDEX_FILE = "content.sum.toml"
INCOMPAT_FILE = "incompat.sum.toml"
RECORD_SUFFIX = ".toml"
DEFAULT_WORKERS = 8


class ContentStore(Protocol):
    def get(self, key: str) -> ContentItem:
        ...

    def put(self, item: ContentItem) -> None:
        ...

    def update(self, item: ContentItem) -> None:
        ...

    def delete(self, slug: str) -> None:
        ...

    def list_all(self) -> List[ContentItem]:
        ...

    def exists(self, key: str) -> bool:
        ...

    def record_incompatible(self, dependencies: Sequence[Dependency]) -> int:
        ...


class TomlContentStore:
    """Project content kept as one index file plus one TOML record per slug.

    The index and the records move in lock-step: ``put`` writes the record
    before the index entry, ``delete`` drops the index entry before the
    record, so an entry in the index always has a record behind it.
    """

    def __init__(self, project_root: Path, content_directory: str = "content", workers: int = DEFAULT_WORKERS) -> None:
        self.project_root = project_root
        self.content_dir = project_root / content_directory
        self.index_path = project_root / INDEX_FILE
        self.incompat_path = project_root / INCOMPAT_FILE
        self.workers = max(workers, 1)

    def _record_path(self, slug: str) -> Path:
        return self.content_dir / f"{slug}{RECORD_SUFFIX}"

    def read_index(self) -> List[IndexEntry]:
        if not self.index_path.exists():
            return []
        data = read_toml(self.index_path)
        try:
            return [IndexEntry.from_dict(entry) for entry in data.get("content", [])]
        except (KeyError, ValueError) as exc:
            raise PersistenceError(f"Malformed index in {self.index_path}: {exc}") from exc

    def _write_index(self, entries: Sequence[IndexEntry]) -> None:
        write_toml(self.index_path, {"content": [entry.to_dict() for entry in entries]})

    def _find_entry(self, key: str) -> IndexEntry | None:
        entries = self.read_index()
        for entry in entries:
            if entry.slug == key:
                return entry
        for entry in entries:
            if key and entry.id == key:
                return entry
        return None

    def _load_record(self, slug: str) -> ContentItem:
        record_path = self._record_path(slug)
        if not record_path.exists():
            raise PersistenceError(f"Index lists '{slug}' but {record_path} is missing.")
        data = read_toml(record_path)
        try:
            return ContentItem.from_dict(data)
        except (KeyError, ValueError) as exc:
            raise PersistenceError(f"Malformed content record {record_path}: {exc}") from exc

    def exists(self, key: str) -> bool:
        if not key:
            return False
        return self._find_entry(key) is not None

    def get(self, key: str) -> ContentItem:
        entry = self._find_entry(key)
        if entry is None:
            raise NotFoundError(key)
        return self._load_record(entry.slug)

    def put(self, item: ContentItem) -> None:
        if not item.slug:
            raise PersistenceError("Cannot store content without a slug.")
        entries = self.read_index()
        if any(entry.slug == item.slug for entry in entries):
            raise ConflictError(item.slug)
        ensure_directory(self.content_dir)
        write_toml(self._record_path(item.slug), item.to_dict())
        entries.append(IndexEntry.for_item(item))
        self._write_index(entries)

    def update(self, item: ContentItem) -> None:
        entries = self.read_index()
        for position, entry in enumerate(entries):
            if entry.slug == item.slug:
                break
        else:
            raise NotFoundError(item.slug)
        write_toml(self._record_path(item.slug), item.to_dict())
        refreshed = IndexEntry.for_item(item)
        if refreshed != entries[position]:
            entries[position] = refreshed
            self._write_index(entries)

    def delete(self, slug: str) -> None:
        entries = self.read_index()
        remaining = [entry for entry in entries if entry.slug != slug]
        if len(remaining) == len(entries):
            raise NotFoundError(slug)
        self._write_index(remaining)
        remove_file(self._record_path(slug))

    def list_all(self) -> List[ContentItem]:
        """Load every record; reads run in parallel, results keep index order."""

        entries = self.read_index()
        if not entries:
            return []
        slugs = [entry.slug for entry in entries]
        with ThreadPoolExecutor(max_workers=min(self.workers, len(slugs))) as pool:
            return list(pool.map(self._load_record, slugs))

    def read_incompatible(self) -> List[Dict[str, Any]]:
        if not self.incompat_path.exists():
            return []
        return list(read_toml(self.incompat_path).get("incompatible", []))

    def record_incompatible(self, dependencies: Sequence[Dependency]) -> int:
        """Merge dependencies into the incompatibility ledger, returning how many were new."""

        ledger = self.read_incompatible()
        known = {(entry.get("slug", ""), entry.get("id", "")) for entry in ledger}
        added = 0
        for dep in dependencies:
            if (dep.slug, dep.id) in known:
                continue
            ledger.append({"slug": dep.slug, "id": dep.id, "content_type": ContentType.MOD.value})
            known.add((dep.slug, dep.id))
            added += 1
        if added:
            write_toml(self.incompat_path, {"incompatible": ledger})
            log_info(f"Recorded {added} incompatible entr{'y' if added == 1 else 'ies'} in {self.incompat_path.name}")
        return added


__all__ = ["ContentStore", "TomlContentStore", "INDEX_FILE", "INCOMPAT_FILE"]
