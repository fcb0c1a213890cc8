from __future__ import annotations

from typing import Dict, Iterable, List, Sequence, Set

from .models import ContentItem, Dependency, DependencyType


def find_live_item(dep: Dependency, items: Iterable[ContentItem]) -> ContentItem | None:
    """Return the item a dependency entry points at, matching slug first, then id."""

    candidates = list(items)
    if dep.slug:
        for item in candidates:
            if item.slug == dep.slug:
                return item
    if dep.id:
        for item in candidates:
            if item.id == dep.id:
                return item
    return None


def build_reverse_edges(items: Sequence[ContentItem]) -> Dict[str, List[str]]:
    """Map every slug to the slugs of the items that depend on it.

    Incompatible entries are not edges. Entries whose slug matches no item
    are translated through their id to the slug of the matching item;
    entries that point outside ``items`` are kept under their own key.
    """

    slugs = {item.slug for item in items}
    slug_by_id = {item.id: item.slug for item in items if item.id}
    reverse: Dict[str, List[str]] = {}
    for item in items:
        for dep in item.dependencies:
            if dep.type == DependencyType.INCOMPATIBLE:
                continue
            if dep.slug in slugs or dep.id not in slug_by_id:
                target = dep.slug or dep.id
            else:
                target = slug_by_id[dep.id]
            if not target or target == item.slug:
                continue
            dependents = reverse.setdefault(target, [])
            if item.slug not in dependents:
                dependents.append(item.slug)
    return reverse


def build_forward_edges(reverse: Dict[str, List[str]]) -> Dict[str, List[str]]:
    forward: Dict[str, List[str]] = {}
    for dependency, dependents in reverse.items():
        for dependent in dependents:
            forward.setdefault(dependent, []).append(dependency)
    return forward


def closure(start: str, edges: Dict[str, List[str]]) -> List[str]:
    """Return ``start`` followed by every slug reachable through ``edges``."""

    visited: Set[str] = {start}
    ordered = [start]
    stack = [start]
    while stack:
        current = stack.pop()
        for neighbour in edges.get(current, []):
            if neighbour in visited:
                continue
            visited.add(neighbour)
            ordered.append(neighbour)
            stack.append(neighbour)
    return ordered


def find_dependents(target: ContentItem, items: Sequence[ContentItem]) -> List[ContentItem]:
    """Every item that would break if ``target`` disappeared, transitively.

    The visited set is keyed by slug so cyclic graphs terminate; the target
    itself is never reported and each dependent appears once.
    """

    visited: Set[str] = {target.slug}
    dependents: List[ContentItem] = []
    queue = [target]
    while queue:
        current = queue.pop(0)
        for item in items:
            if item.slug in visited:
                continue
            if item.depends_on(current):
                visited.add(item.slug)
                dependents.append(item)
                queue.append(item)
    return dependents


def graph_violations(items: Sequence[ContentItem]) -> List[str]:
    """Describe every back-reference that breaks graph consistency."""

    by_slug = {item.slug: item for item in items}
    problems: List[str] = []
    for item in items:
        for entry in item.required_by:
            owner = by_slug.get(entry.slug)
            if owner is None:
                problems.append(f"{item.slug}: required by missing content '{entry.slug}'")
                continue
            if not owner.depends_on(item):
                problems.append(f"{item.slug}: '{entry.slug}' does not list it as a dependency")
    return problems


__all__ = [
    "find_live_item",
    "build_reverse_edges",
    "build_forward_edges",
    "closure",
    "find_dependents",
    "graph_violations",
]
