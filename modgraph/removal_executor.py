from __future__ import annotations

from typing import Sequence, Set

from .errors import ModgraphError, NotFoundError, OperationCancelled
from .interfaces import Chooser, DependentAction, PromptKind
from .link_state import LinkState
from .logging_utils import log_error, log_info, log_ok, log_summary, log_warn
from .models import ContentItem, Dependency, RemovalOutcome, RemovalPlan
from .removal_planner import plan_orphans, plan_removal
from .report import print_removal_plan
from .store import ContentStore


def _load_dependency(store: ContentStore, dep: Dependency) -> ContentItem | None:
    """Stored item behind a dependency entry, by slug first, then by id."""

    for key in (dep.slug, dep.id):
        if not key:
            continue
        try:
            return store.get(key)
        except NotFoundError:
            continue
    return None


def _release_dependencies(store: ContentStore, item: ContentItem, removing: Set[str]) -> int:
    """Drop ``item`` from the back-references of the dependencies that survive."""

    repaired = 0
    for dep in item.dependencies:
        live = _load_dependency(store, dep)
        if live is None or live.slug in removing:
            continue
        if not live.has_required_by(item.slug):
            continue
        live.required_by = [entry for entry in live.required_by if entry.slug != item.slug]
        store.update(live)
        repaired += 1
    return repaired


def commit_removal(
    store: ContentStore,
    removal_set: Sequence[ContentItem],
    ledger: LinkState | None = None,
) -> RemovalOutcome:
    """Remove every item independently and report how many went through.

    A failure while repairing an item's dependencies leaves that item in the
    store; the other items of the batch are still processed.
    """

    outcome = RemovalOutcome(total=len(removal_set))
    removing = {item.slug for item in removal_set}

    for item in removal_set:
        try:
            repaired = _release_dependencies(store, item, removing)
            store.delete(item.slug)
        except ModgraphError as exc:
            log_error(f"Failed to remove {item.label}: {exc}", indent=2)
            outcome.failures[item.slug] = str(exc)
            continue

        if ledger is not None:
            ledger.add_removed_file(item.file.filepath)
        outcome.removed.append(item.slug)
        if repaired:
            log_info(f"Updated {repaired} dependenc{'y' if repaired == 1 else 'ies'} of {item.slug}", indent=2)
        log_ok(f"Removed {item.label}", indent=2)

    log_summary(outcome.success_count, outcome.total, "Removed")
    return outcome


def remove_single(store: ContentStore, slug: str, ledger: LinkState | None = None) -> RemovalOutcome:
    """Remove one item without looking at dependents or orphans."""

    item = store.get(slug)
    return commit_removal(store, [item], ledger)


def remove_content(
    store: ContentStore,
    target_slug: str,
    chooser: Chooser,
    ledger: LinkState | None = None,
) -> RemovalOutcome:
    all_items = store.list_all()
    plan = plan_removal(store, target_slug, all_items)

    if plan.dependents:
        print_removal_plan(plan)
        action = chooser.choose(PromptKind.DEPENDENT_ACTION, list(DependentAction))
        if action == DependentAction.CANCEL:
            raise OperationCancelled("Removal cancelled.")
        if action == DependentAction.REMOVE_ALL:
            plan.extend(plan.dependents)
            log_info(f"Will remove {plan.target.slug} and {len(plan.dependents)} dependent item(s)")
        else:
            log_warn(f"Removing {plan.target.slug} anyway; dependents may break")

    orphans = plan_orphans(plan, all_items)
    if orphans:
        log_warn("The following dependencies would become unused:")
        for orphan in orphans:
            log_warn(f"- {orphan.label}", indent=2)
        if chooser.confirm(PromptKind.ORPHAN_CLEANUP, orphans):
            plan.extend(orphans)

    if not chooser.confirm(PromptKind.CONFIRM_REMOVAL, plan.items):
        raise OperationCancelled("Removal cancelled.")

    log_info(f"Removing {', '.join(plan.slugs)}")
    return commit_removal(store, plan.items, ledger)


__all__ = ["commit_removal", "remove_single", "remove_content", "RemovalPlan"]
