"""Dependency-aware bisection over the mods of a linked game instance.

A session is persisted as ``bisect.toml`` in the project root; the file's
presence is what makes a session active. Candidates are never cached: they
are recomputed from the recorded history every time they are needed, so a
session picks up where it left off after a restart.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Dict, List, Sequence, Set, Tuple

from .errors import (
    BisectionComplete,
    InvalidStateTransition,
    NotFoundError,
    PersistenceError,
)
from .file_utils import disabled_name, enabled_name, read_toml, remove_file, write_toml
from .graph import build_forward_edges, build_reverse_edges, closure
from .load_config import DEFAULT_DISABLED_SUFFIX
from .logging_utils import log_info, log_warn
from .models import BisectState, BisectStep, ContentItem, FileSyncReport, TestResult

BISECT_FILE = "bisect.toml"
DEFAULT_MODS_DIRECTORY = "mods"


def session_path(project_root: Path) -> Path:
    return project_root / BISECT_FILE


def has_active_session(project_root: Path) -> bool:
    return session_path(project_root).exists()


def load_session(project_root: Path) -> BisectState:
    path = session_path(project_root)
    if not path.exists():
        raise NotFoundError(str(project_root), what="active bisection in")
    data = read_toml(path)
    try:
        return BisectState.from_dict(data)
    except (KeyError, ValueError) as exc:
        raise PersistenceError(f"Corrupt bisection state in {path}: {exc}") from exc


def save_session(project_root: Path, state: BisectState) -> None:
    write_toml(session_path(project_root), state.to_dict())


def delete_session(project_root: Path) -> None:
    remove_file(session_path(project_root))


def create_session(instance_path: Path | str, all_items: Sequence[ContentItem]) -> BisectState:
    all_mods = [item.slug for item in all_items]
    mod_files = {
        item.slug: Path(item.file.filepath or item.file.filename).name
        for item in all_items
        if item.file.filepath or item.file.filename
    }
    return BisectState(
        linked_instance=str(instance_path),
        all_mods=all_mods,
        dependency_map=build_reverse_edges(all_items),
        mod_files=mod_files,
        history=[],
        current_step=-1,
        created=datetime.now().isoformat(timespec="seconds"),
    )


def start_session(project_root: Path, instance_path: Path | str, all_items: Sequence[ContentItem]) -> BisectState:
    if has_active_session(project_root):
        raise InvalidStateTransition("A bisection is already active; finish it before starting another.")
    state = create_session(instance_path, all_items)
    save_session(project_root, state)
    log_info(f"Bisection started with {len(state.all_mods)} mods on {Path(state.linked_instance).name}")
    return state


def current_candidates(state: BisectState) -> List[str]:
    """Mods that may still be at fault, in ``all_mods`` order."""

    if not state.history:
        return list(state.all_mods)

    cleared: Set[str] = set()
    for step in state.history:
        if step.test_result == TestResult.GOOD:
            cleared.update(step.disabled_mods)
        elif step.test_result == TestResult.BAD:
            cleared.update(step.enabled_mods)
    return [slug for slug in state.all_mods if slug not in cleared]


def is_complete(state: BisectState) -> bool:
    return len(current_candidates(state)) <= 1


def _dependents_closure(slug: str, state: BisectState) -> List[str]:
    return closure(slug, state.dependency_map)


def _select_seeds(state: BisectState, candidates: Sequence[str]) -> List[str]:
    target = max(1, len(candidates) // 2)
    candidate_set = set(candidates)

    covered_by: Dict[str, List[str]] = {}
    for slug in candidates:
        covered_by[slug] = [other for other in _dependents_closure(slug, state) if other in candidate_set]

    # impact counts the other candidates that go dark with a mod; sorting is stable
    ranked = sorted(candidates, key=lambda slug: len(covered_by[slug]) - 1)

    selected: List[str] = []
    covered: Set[str] = set()
    total = 0
    for slug in ranked:
        if slug in covered:
            continue
        weight = len(covered_by[slug])
        if selected and total + weight > target * 2:
            break
        selected.append(slug)
        covered.update(covered_by[slug])
        total += weight
        if total >= target:
            break

    if not selected and candidates:
        selected.append(candidates[0])
    return selected


def next_step(state: BisectState) -> Tuple[List[str], List[str]]:
    """Choose the mods to disable next, closed under "is depended on by"."""

    candidates = current_candidates(state)
    if len(candidates) <= 1:
        raise BisectionComplete()

    disabled: Set[str] = set()
    for seed in _select_seeds(state, candidates):
        disabled.update(_dependents_closure(seed, state))

    disabled_mods = [slug for slug in state.all_mods if slug in disabled]
    enabled_mods = [slug for slug in state.all_mods if slug not in disabled]
    return disabled_mods, enabled_mods


def add_step(state: BisectState, disabled: Sequence[str], enabled: Sequence[str]) -> BisectStep:
    step = BisectStep(disabled_mods=list(disabled), enabled_mods=list(enabled), test_result=TestResult.UNKNOWN)
    state.history.append(step)
    state.current_step = len(state.history) - 1
    return step


def record_result(state: BisectState, outcome: TestResult | str) -> None:
    result = TestResult(outcome)
    if result == TestResult.UNKNOWN:
        raise ValueError("A test outcome must be 'good' or 'bad'.")
    if not state.has_current_step:
        raise InvalidStateTransition("No current step to record a result for.")
    if state.step.is_scored:
        raise InvalidStateTransition(f"Step {state.current_step + 1} already recorded as '{state.step.test_result.value}'.")
    state.step.test_result = result


def go_to_previous_step(state: BisectState) -> BisectStep:
    if state.current_step <= 0:
        raise InvalidStateTransition("Already at the first step.")
    state.current_step -= 1
    return state.step


def _mods_dir(state: BisectState, mods_directory: str) -> Path:
    return Path(state.linked_instance) / mods_directory


def _enable_all(mods_dir: Path, suffix: str, report: FileSyncReport) -> None:
    try:
        entries = sorted(mods_dir.iterdir())
    except OSError as exc:
        raise PersistenceError(f"Failed to read mods directory {mods_dir}: {exc}") from exc

    for path in entries:
        if not path.is_file() or not path.name.endswith(suffix):
            continue
        restored = path.with_name(enabled_name(path.name, suffix))
        if restored.exists():
            report.failures[path.name] = f"{restored.name} already exists"
            continue
        try:
            path.replace(restored)
        except OSError as exc:
            report.failures[path.name] = str(exc)
            continue
        report.enabled.append(restored.name)


def restore_all_mods(
    state: BisectState,
    suffix: str = DEFAULT_DISABLED_SUFFIX,
    mods_directory: str = DEFAULT_MODS_DIRECTORY,
) -> FileSyncReport:
    report = FileSyncReport()
    _enable_all(_mods_dir(state, mods_directory), suffix, report)
    for name, error in report.failures.items():
        log_warn(f"Failed to enable {name}: {error}", indent=2)
    return report


def apply_current_step(
    state: BisectState,
    suffix: str = DEFAULT_DISABLED_SUFFIX,
    mods_directory: str = DEFAULT_MODS_DIRECTORY,
) -> FileSyncReport:
    """Make the instance's mod folder match the current step.

    Everything is re-enabled first, then the step's disabled mods get the
    suffix, so running it again after an interruption converges on the same
    folder contents.
    """

    if not state.has_current_step:
        raise InvalidStateTransition("No current step to apply.")

    mods_dir = _mods_dir(state, mods_directory)
    report = FileSyncReport()
    _enable_all(mods_dir, suffix, report)

    for slug in state.step.disabled_mods:
        filename = state.mod_files.get(slug)
        if not filename:
            log_warn(f"No file known for {slug}; skipping", indent=2)
            report.unmapped.append(slug)
            continue
        source = mods_dir / filename
        if not source.exists():
            report.missing.append(slug)
            continue
        target = mods_dir / disabled_name(filename, suffix)
        if target.exists():
            report.failures[filename] = f"{target.name} already exists"
            continue
        try:
            source.replace(target)
        except OSError as exc:
            report.failures[filename] = str(exc)
            continue
        report.disabled.append(filename)

    for name, error in report.failures.items():
        log_warn(f"Failed to rename {name}: {error}", indent=2)
    return report


def manual_disable(state: BisectState, slug: str) -> List[str]:
    """Disable ``slug`` and its dependents in the current, not yet scored step."""

    step = _editable_step(state, slug)
    moved = [mod for mod in _dependents_closure(slug, state) if mod in step.enabled_mods]
    _rebalance(state, step, disabled=set(step.disabled_mods) | set(moved))
    return moved


def manual_enable(state: BisectState, slug: str) -> List[str]:
    """Enable ``slug`` and everything it depends on in the current, not yet scored step."""

    step = _editable_step(state, slug)
    forward = build_forward_edges(state.dependency_map)
    moved = [mod for mod in closure(slug, forward) if mod in step.disabled_mods]
    _rebalance(state, step, disabled=set(step.disabled_mods) - set(moved))
    return moved


def _editable_step(state: BisectState, slug: str) -> BisectStep:
    if slug not in state.all_mods:
        raise NotFoundError(slug, what="mod in this bisection")
    if not state.has_current_step:
        raise InvalidStateTransition("No current step to modify.")
    if state.step.is_scored:
        raise InvalidStateTransition("The current step already has a result and can no longer change.")
    return state.step


def _rebalance(state: BisectState, step: BisectStep, disabled: Set[str]) -> None:
    step.disabled_mods = [mod for mod in state.all_mods if mod in disabled]
    step.enabled_mods = [mod for mod in state.all_mods if mod not in disabled]


def finish(
    project_root: Path,
    state: BisectState,
    suffix: str = DEFAULT_DISABLED_SUFFIX,
    mods_directory: str = DEFAULT_MODS_DIRECTORY,
) -> List[str]:
    """Restore every mod file, end the session and return the remaining candidates.

    The session file is kept when a file could not be restored so the call
    can simply be repeated.
    """

    candidates = current_candidates(state)
    report = restore_all_mods(state, suffix, mods_directory)
    if not report.ok:
        raise PersistenceError(
            f"{len(report.failures)} mod file(s) could not be re-enabled; the bisection is still active."
        )
    delete_session(project_root)
    log_info(f"Bisection finished after {len(state.history)} step(s); all mods restored")
    return candidates


__all__ = [
    "BISECT_FILE",
    "session_path",
    "has_active_session",
    "load_session",
    "save_session",
    "delete_session",
    "create_session",
    "start_session",
    "current_candidates",
    "is_complete",
    "next_step",
    "add_step",
    "record_result",
    "go_to_previous_step",
    "apply_current_step",
    "restore_all_mods",
    "manual_disable",
    "manual_enable",
    "finish",
]
