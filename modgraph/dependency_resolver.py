from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Set

from .errors import (
    ConflictError,
    DepthExceededError,
    ModgraphError,
    OperationCancelled,
    ProviderFetchError,
)
from .interfaces import Chooser, IncompatibleAction, PromptKind, ProviderClient
from .link_state import LinkState
from .load_config import DEFAULT_MAX_DEPTH
from .logging_utils import log_conflict, log_error, log_info, log_ok, log_warn
from .models import AddResult, ContentItem, Dependency, DependencyType
from .removal_executor import remove_single
from .store import ContentStore


@dataclass(slots=True)
class _Resolution:
    store: ContentStore
    provider: ProviderClient
    chooser: Chooser
    root: ContentItem
    interactive: bool
    max_depth: int
    processed: Set[str] = field(default_factory=set)
    incompatible: Dict[str, Dependency] = field(default_factory=dict)
    result: AddResult = field(default_factory=AddResult)

    def in_store(self, dep: Dependency) -> bool:
        return self.store.exists(dep.slug) or self.store.exists(dep.id)

    def is_root(self, key: str) -> bool:
        return self.root.matches(key)


def _conflicting_dependencies(store: ContentStore, root: ContentItem) -> List[Dependency]:
    conflicts: List[Dependency] = []
    for dep in root.dependencies:
        if dep.type != DependencyType.INCOMPATIBLE:
            continue
        if store.exists(dep.slug) or store.exists(dep.id):
            conflicts.append(dep)
    return conflicts


def screen_incompatible(
    store: ContentStore,
    root: ContentItem,
    chooser: Chooser,
    ledger: LinkState | None = None,
) -> List[Dependency]:
    """Resolve the root's declared incompatibilities that are already installed.

    Returns the entries that were removed. Raises ``OperationCancelled`` when
    the user cancels the add.
    """

    conflicts = _conflicting_dependencies(store, root)
    if not conflicts:
        return []

    log_conflict(f"{root.label} is incompatible with installed content:")
    for dep in conflicts:
        log_conflict(f"- {dep.name or dep.key} ({dep.key})", indent=2)

    action = chooser.choose(PromptKind.INCOMPATIBLE_ACTION, list(IncompatibleAction))
    if action == IncompatibleAction.CANCEL:
        raise OperationCancelled(f"Adding {root.slug} cancelled.")
    if action == IncompatibleAction.CONTINUE:
        log_warn("Continuing with incompatible content installed (not recommended)")
        return []

    selected = conflicts
    if action == IncompatibleAction.PICK:
        selected = chooser.choose_many(PromptKind.INCOMPATIBLE_PICK, conflicts)

    removed: List[Dependency] = []
    for dep in selected:
        try:
            outcome = remove_single(store, dep.key, ledger)
        except ModgraphError as exc:
            log_error(f"Error removing incompatible content {dep.key}: {exc}")
            continue
        if outcome.ok:
            removed.append(dep)
    return removed


def _select_dependencies(ctx: _Resolution, item: ContentItem) -> List[Dependency]:
    if not ctx.interactive:
        return [dep for dep in item.dependencies if dep.type == DependencyType.REQUIRED]

    options = [
        dep
        for dep in item.dependencies
        if dep.type != DependencyType.INCOMPATIBLE
        and dep.key
        and dep.key not in ctx.processed
        and not ctx.in_store(dep)
    ]
    if not options:
        return []
    return ctx.chooser.choose_many(PromptKind.DEPENDENCY_PICK, options)


def _link_existing(ctx: _Resolution, key: str, item: ContentItem) -> None:
    """Add ``item`` to the back-references of an already stored dependency."""

    try:
        stored = ctx.store.get(key)
        if stored.has_required_by(item.slug):
            return
        stored.required_by.append(item.identity())
        ctx.store.update(stored)
    except ModgraphError as exc:
        log_error(f"Error updating dependency {key}: {exc}", indent=2)
        ctx.result.failures[key] = str(exc)
        return
    log_ok(f"{stored.slug} is now also required by {item.slug}", indent=2)


def _track_incompatible(ctx: _Resolution, item: ContentItem) -> None:
    for dep in item.dependencies:
        if dep.type == DependencyType.INCOMPATIBLE and dep.key:
            ctx.incompatible.setdefault(dep.key, dep)


def _resolve(ctx: _Resolution, item: ContentItem, depth: int) -> None:
    if depth > ctx.max_depth:
        raise DepthExceededError(item.slug, depth)

    _track_incompatible(ctx, item)

    for dep in _select_dependencies(ctx, item):
        key = dep.key
        if not key:
            continue

        if ctx.in_store(dep):
            _link_existing(ctx, dep.slug if ctx.store.exists(dep.slug) else dep.id, item)
            continue
        if ctx.is_root(key):
            if not any(entry.slug == item.slug for entry in ctx.result.root_required_by):
                ctx.result.root_required_by.append(item.identity())
            continue
        if key in ctx.processed:
            continue
        ctx.processed.add(key)

        try:
            fetched = ctx.provider.fetch_dependency_item(key)
        except (ProviderFetchError, OSError) as exc:
            log_error(f"Error fetching dependency {dep.name or key}: {exc}", indent=2)
            ctx.result.failures[key] = str(exc)
            continue

        fetched.added_as_dependency = True
        fetched.required_by = [item.identity()]
        try:
            ctx.store.put(fetched)
        except ConflictError:
            ctx.processed.add(fetched.slug)
            _link_existing(ctx, fetched.slug, item)
            continue
        except ModgraphError as exc:
            log_error(f"Error adding dependency {fetched.label}: {exc}", indent=2)
            ctx.result.failures[key] = str(exc)
            continue

        ctx.processed.add(fetched.slug)
        ctx.result.added.append(fetched)
        log_ok(f"Added dependency {fetched.label}", indent=2)

        try:
            _resolve(ctx, fetched, depth + 1)
        except DepthExceededError as exc:
            log_warn(f"{exc} Stopping recursive resolution.", indent=2)
            ctx.result.truncated.append(fetched.slug)


def add_with_dependencies(
    root: ContentItem,
    store: ContentStore,
    provider: ProviderClient,
    chooser: Chooser,
    interactive: bool = False,
    max_depth: int = DEFAULT_MAX_DEPTH,
    ledger: LinkState | None = None,
) -> AddResult:
    """Settle every dependency of ``root`` in the store.

    The root itself is not stored; see ``add_content``. Provider failures on
    one dependency are recorded in ``failures`` and never stop its siblings.
    """

    screen_incompatible(store, root, chooser, ledger)

    ctx = _Resolution(
        store=store,
        provider=provider,
        chooser=chooser,
        root=root,
        interactive=interactive,
        max_depth=max_depth,
    )
    ctx.processed.update(key for key in (root.slug, root.id) if key)

    try:
        _resolve(ctx, root, 0)
    except DepthExceededError as exc:
        log_warn(f"{exc} Stopping recursive resolution.")
        ctx.result.truncated.append(root.slug)

    ctx.result.incompatible_seen = list(ctx.incompatible.values())
    ctx.result.incompatible_found = [dep for dep in ctx.result.incompatible_seen if ctx.in_store(dep)]
    if ctx.result.failures:
        log_warn(f"{len(ctx.result.failures)} dependenc{'y' if len(ctx.result.failures) == 1 else 'ies'} could not be added")
    return ctx.result


def add_content(
    root: ContentItem,
    store: ContentStore,
    provider: ProviderClient,
    chooser: Chooser,
    interactive: bool = False,
    max_depth: int = DEFAULT_MAX_DEPTH,
    ledger: LinkState | None = None,
) -> AddResult:
    """Resolve the dependencies of ``root`` and store it.

    Raises ``ConflictError`` when the root slug is already in the project.
    """

    log_info(f"Adding {root.label}")
    result = add_with_dependencies(root, store, provider, chooser, interactive, max_depth, ledger)

    for entry in result.root_required_by:
        if not root.has_required_by(entry.slug):
            root.required_by.append(entry)
    store.put(root)
    log_ok(f"Added {root.label}")

    if result.incompatible_seen:
        store.record_incompatible(result.incompatible_seen)
    return result


__all__ = ["add_with_dependencies", "add_content", "screen_incompatible"]
