"""Shared fixtures: an in-memory provider, a scripted chooser and a TOML store."""

import copy
from typing import Any, Dict, List, Tuple

import pytest

from modgraph.errors import ProviderFetchError
from modgraph.interfaces import PromptKind
from modgraph.models import ContentItem, Dependency, DependencyType, FileData, RequiredBy
from modgraph.store import TomlContentStore


def make_item(slug, requires=(), optional=(), incompatible=(), required_by=(), added_as_dependency=False, item_id=""):
    """Build a mod with the given dependency slugs."""
    dependencies = [Dependency(name=dep.title(), slug=dep, type=DependencyType.REQUIRED) for dep in requires]
    dependencies += [Dependency(name=dep.title(), slug=dep, type=DependencyType.OPTIONAL) for dep in optional]
    dependencies += [Dependency(name=dep.title(), slug=dep, type=DependencyType.INCOMPATIBLE) for dep in incompatible]
    return ContentItem(
        slug=slug,
        id=item_id or f"id-{slug}",
        name=slug.title(),
        file=FileData(filename=f"{slug}.jar", filepath=f"mods/{slug}.jar"),
        dependencies=dependencies,
        required_by=[RequiredBy(name=owner.title(), slug=owner, id=f"id-{owner}") for owner in required_by],
        added_as_dependency=added_as_dependency,
    )


class FakeProvider:
    """Serves copies of known items; anything else fails like a network error."""

    def __init__(self, items=()):
        self.items: Dict[str, ContentItem] = {}
        for item in items:
            self.items[item.slug] = item
            self.items[item.id] = item
        self.fetched: List[str] = []

    def fetch_item(self, identifier):
        return self.fetch_dependency_item(identifier)

    def fetch_dependency_item(self, identifier):
        self.fetched.append(identifier)
        if identifier not in self.items:
            raise ProviderFetchError(f"404 for {identifier}")
        return copy.deepcopy(self.items[identifier])

    def download(self, item, dest_path):
        dest_path.write_bytes(b"")


class ScriptedChooser:
    """Answers prompts from per-kind queues and records what was asked."""

    def __init__(self, choices=None, picks=None, confirms=None):
        self.choices: Dict[PromptKind, List[Any]] = {kind: list(v) for kind, v in (choices or {}).items()}
        self.picks: Dict[PromptKind, Any] = dict(picks or {})
        self.confirms: Dict[PromptKind, List[bool]] = {kind: list(v) for kind, v in (confirms or {}).items()}
        self.asked: List[Tuple[PromptKind, Any]] = []

    def choose(self, kind, options):
        self.asked.append((kind, list(options)))
        answer = self.choices[kind].pop(0)
        assert answer in options
        return answer

    def choose_many(self, kind, options):
        self.asked.append((kind, list(options)))
        pick = self.picks.get(kind, "all")
        if pick == "all":
            return list(options)
        return [option for option in options if getattr(option, "key", getattr(option, "slug", None)) in pick]

    def confirm(self, kind, subject=()):
        self.asked.append((kind, [item.slug for item in subject]))
        queue = self.confirms.get(kind)
        if not queue:
            return True
        return queue.pop(0)

    def kinds(self):
        return [kind for kind, _ in self.asked]


@pytest.fixture
def store(tmp_path):
    return TomlContentStore(tmp_path)


@pytest.fixture
def chooser():
    return ScriptedChooser()


def seed(store, *items):
    for item in items:
        store.put(item)
    return store
