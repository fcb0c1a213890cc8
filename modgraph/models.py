from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List


class ContentType(str, Enum):
    MOD = "mod"
    RESOURCE_PACK = "resourcepack"
    SHADER_PACK = "shaderpack"
    DATA_PACK = "datapack"
    WORLD = "world"

    @property
    def folder(self) -> str:
        """Instance folder this kind of content is installed into."""

        if self is ContentType.MOD:
            return "mods"
        if self is ContentType.RESOURCE_PACK:
            return "resourcepacks"
        if self is ContentType.SHADER_PACK:
            return "shaderpacks"
        if self is ContentType.DATA_PACK:
            return "datapacks"
        if self is ContentType.WORLD:
            return "saves"
        raise ValueError(f"Unhandled content type: {self!r}")


class Side(str, Enum):
    NONE = "none"
    CLIENT = "client"
    SERVER = "server"
    BOTH = "both"


class Source(str, Enum):
    MODRINTH = "modrinth"
    CURSEFORGE = "curseforge"
    CUSTOM = "custom"


class DependencyType(str, Enum):
    REQUIRED = "required"
    OPTIONAL = "optional"
    EMBEDDED = "embedded"
    INCOMPATIBLE = "incompatible"


class TestResult(str, Enum):
    UNKNOWN = "unknown"
    GOOD = "good"
    BAD = "bad"

    __test__ = False


@dataclass(slots=True)
class Hashes:
    sha1: str = ""
    sha256: str = ""
    sha512: str = ""
    md5: str = ""


@dataclass(slots=True)
class FileData:
    filename: str = ""
    filesize: int = 0
    filepath: str = ""
    hashes: Hashes = field(default_factory=Hashes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "filesize": self.filesize,
            "filepath": self.filepath,
            "hashes": {
                "sha1": self.hashes.sha1,
                "sha256": self.hashes.sha256,
                "sha512": self.hashes.sha512,
                "md5": self.hashes.md5,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileData":
        hashes = data.get("hashes") or {}
        return cls(
            filename=data.get("filename", ""),
            filesize=int(data.get("filesize", 0)),
            filepath=data.get("filepath", ""),
            hashes=Hashes(
                sha1=hashes.get("sha1", ""),
                sha256=hashes.get("sha256", ""),
                sha512=hashes.get("sha512", ""),
                md5=hashes.get("md5", ""),
            ),
        )


@dataclass(slots=True)
class Dependency:
    name: str = ""
    slug: str = ""
    id: str = ""
    type: DependencyType = DependencyType.REQUIRED

    @property
    def key(self) -> str:
        return self.slug or self.id

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "slug": self.slug, "id": self.id, "type": self.type.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Dependency":
        return cls(
            name=data.get("name", ""),
            slug=data.get("slug", ""),
            id=data.get("id", ""),
            type=DependencyType(data.get("type", DependencyType.REQUIRED.value)),
        )


@dataclass(slots=True)
class RequiredBy:
    name: str = ""
    slug: str = ""
    id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "slug": self.slug, "id": self.id}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RequiredBy":
        return cls(name=data.get("name", ""), slug=data.get("slug", ""), id=data.get("id", ""))


@dataclass(slots=True)
class ContentItem:
    slug: str
    id: str = ""
    name: str = ""
    content_type: ContentType = ContentType.MOD
    side: Side = Side.BOTH
    source: Source = Source.MODRINTH
    file: FileData = field(default_factory=FileData)
    download_url: str = ""
    page_url: str = ""
    version_id: str = ""
    dependencies: List[Dependency] = field(default_factory=list)
    required_by: List[RequiredBy] = field(default_factory=list)
    added_as_dependency: bool = False

    @property
    def label(self) -> str:
        return f"{self.name or self.slug} ({self.slug})"

    def identity(self) -> RequiredBy:
        """Back-reference entry pointing at this item."""

        return RequiredBy(name=self.name, slug=self.slug, id=self.id)

    def matches(self, key: str) -> bool:
        return bool(key) and key in (self.slug, self.id)

    def depends_on(self, other: "ContentItem") -> bool:
        """True when a non-incompatible dependency entry references ``other``."""

        for dep in self.dependencies:
            if dep.type == DependencyType.INCOMPATIBLE:
                continue
            if dep.slug and dep.slug == other.slug:
                return True
            if dep.id and dep.id == other.id:
                return True
        return False

    def has_required_by(self, slug: str) -> bool:
        return any(entry.slug == slug for entry in self.required_by)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "slug": self.slug,
            "id": self.id,
            "name": self.name,
            "content_type": self.content_type.value,
            "side": self.side.value,
            "source": self.source.value,
            "download_url": self.download_url,
            "page_url": self.page_url,
            "version_id": self.version_id,
            "added_as_dependency": self.added_as_dependency,
            "file": self.file.to_dict(),
            "dependencies": [dep.to_dict() for dep in self.dependencies],
            "required_by": [entry.to_dict() for entry in self.required_by],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContentItem":
        return cls(
            slug=data["slug"],
            id=data.get("id", ""),
            name=data.get("name", ""),
            content_type=ContentType(data.get("content_type", ContentType.MOD.value)),
            side=Side(data.get("side", Side.BOTH.value)),
            source=Source(data.get("source", Source.MODRINTH.value)),
            file=FileData.from_dict(data.get("file") or {}),
            download_url=data.get("download_url", ""),
            page_url=data.get("page_url", ""),
            version_id=data.get("version_id", ""),
            dependencies=[Dependency.from_dict(dep) for dep in data.get("dependencies", [])],
            required_by=[RequiredBy.from_dict(entry) for entry in data.get("required_by", [])],
            added_as_dependency=bool(data.get("added_as_dependency", False)),
        )


@dataclass(slots=True)
class IndexEntry:
    slug: str
    id: str = ""
    content_type: ContentType = ContentType.MOD
    source: Source = Source.MODRINTH

    @classmethod
    def for_item(cls, item: ContentItem) -> "IndexEntry":
        return cls(slug=item.slug, id=item.id, content_type=item.content_type, source=item.source)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "slug": self.slug,
            "id": self.id,
            "content_type": self.content_type.value,
            "source": self.source.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IndexEntry":
        return cls(
            slug=data["slug"],
            id=data.get("id", ""),
            content_type=ContentType(data.get("content_type", ContentType.MOD.value)),
            source=Source(data.get("source", Source.MODRINTH.value)),
        )


@dataclass(slots=True)
class BisectStep:
    disabled_mods: List[str] = field(default_factory=list)
    enabled_mods: List[str] = field(default_factory=list)
    test_result: TestResult = TestResult.UNKNOWN

    @property
    def is_scored(self) -> bool:
        return self.test_result != TestResult.UNKNOWN

    def to_dict(self) -> Dict[str, Any]:
        return {
            "disabled_mods": list(self.disabled_mods),
            "enabled_mods": list(self.enabled_mods),
            "test_result": self.test_result.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BisectStep":
        return cls(
            disabled_mods=list(data.get("disabled_mods", [])),
            enabled_mods=list(data.get("enabled_mods", [])),
            test_result=TestResult(data.get("test_result", TestResult.UNKNOWN.value)),
        )


@dataclass(slots=True)
class BisectState:
    linked_instance: str
    all_mods: List[str] = field(default_factory=list)
    dependency_map: Dict[str, List[str]] = field(default_factory=dict)
    mod_files: Dict[str, str] = field(default_factory=dict)
    history: List[BisectStep] = field(default_factory=list)
    current_step: int = -1
    created: str = ""

    @property
    def has_current_step(self) -> bool:
        return 0 <= self.current_step < len(self.history)

    @property
    def step(self) -> BisectStep:
        return self.history[self.current_step]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "linked_instance": self.linked_instance,
            "created": self.created,
            "current_step": self.current_step,
            "all_mods": list(self.all_mods),
            "dependency_map": {slug: list(dependents) for slug, dependents in self.dependency_map.items()},
            "mod_files": dict(self.mod_files),
            "history": [step.to_dict() for step in self.history],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BisectState":
        return cls(
            linked_instance=data["linked_instance"],
            all_mods=list(data.get("all_mods", [])),
            dependency_map={slug: list(dependents) for slug, dependents in (data.get("dependency_map") or {}).items()},
            mod_files=dict(data.get("mod_files") or {}),
            history=[BisectStep.from_dict(step) for step in data.get("history", [])],
            current_step=int(data.get("current_step", -1)),
            created=data.get("created", ""),
        )


@dataclass(slots=True)
class AddResult:
    added: List[ContentItem] = field(default_factory=list)
    incompatible_found: List[Dependency] = field(default_factory=list)
    incompatible_seen: List[Dependency] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)
    truncated: List[str] = field(default_factory=list)
    root_required_by: List[RequiredBy] = field(default_factory=list)

    @property
    def added_slugs(self) -> List[str]:
        return [item.slug for item in self.added]


@dataclass(slots=True)
class RemovalPlan:
    target: ContentItem
    dependents: List[ContentItem] = field(default_factory=list)
    orphans: List[ContentItem] = field(default_factory=list)
    items: List[ContentItem] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.items:
            self.items.append(self.target)

    @property
    def slugs(self) -> List[str]:
        return [item.slug for item in self.items]

    def extend(self, extra: List[ContentItem]) -> None:
        known = set(self.slugs)
        for item in extra:
            if item.slug not in known:
                self.items.append(item)
                known.add(item.slug)


@dataclass(slots=True)
class RemovalOutcome:
    total: int = 0
    removed: List[str] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)

    @property
    def success_count(self) -> int:
        return len(self.removed)

    @property
    def ok(self) -> bool:
        return not self.failures


@dataclass(slots=True)
class FileSyncReport:
    enabled: List[str] = field(default_factory=list)
    disabled: List[str] = field(default_factory=list)
    unmapped: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures
