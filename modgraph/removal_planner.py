from __future__ import annotations

from typing import List, Sequence, Set

from .graph import find_dependents, find_live_item
from .models import ContentItem, DependencyType, RemovalPlan
from .store import ContentStore


def plan_removal(
    store: ContentStore,
    target_slug: str,
    all_items: Sequence[ContentItem] | None = None,
) -> RemovalPlan:
    """Load the target and collect everything that transitively depends on it."""

    target = store.get(target_slug)
    if all_items is None:
        all_items = store.list_all()
    dependents = find_dependents(target, all_items)
    return RemovalPlan(target=target, dependents=dependents)


def compute_orphans(removal_set: Sequence[ContentItem], all_items: Sequence[ContentItem]) -> List[ContentItem]:
    """Required dependencies that nothing would need once ``removal_set`` is gone.

    Only items that were pulled in as dependencies qualify, and only when
    every remaining back-reference belongs to the removal set.
    """

    removing: Set[str] = {item.slug for item in removal_set}
    seen: Set[str] = set()
    orphans: List[ContentItem] = []

    for target in removal_set:
        for dep in target.dependencies:
            if dep.type != DependencyType.REQUIRED:
                continue
            live = find_live_item(dep, all_items)
            if live is None or live.slug in seen or live.slug in removing:
                continue
            if not live.added_as_dependency:
                continue
            remaining = [entry for entry in live.required_by if entry.slug not in removing]
            if not remaining:
                orphans.append(live)
                seen.add(live.slug)
    return orphans


def plan_orphans(plan: RemovalPlan, all_items: Sequence[ContentItem]) -> List[ContentItem]:
    plan.orphans = compute_orphans(plan.items, all_items)
    return plan.orphans


__all__ = ["plan_removal", "compute_orphans", "plan_orphans"]
