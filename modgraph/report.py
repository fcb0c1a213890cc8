from __future__ import annotations

from pathlib import Path
from typing import Any, List, Sequence

from openpyxl import Workbook

from .bisection import current_candidates
from .logging_utils import log_conflict, log_info, log_ok, log_warn
from .models import BisectState, ContentItem, RemovalPlan


def print_removal_plan(plan: RemovalPlan) -> None:
    if not plan.dependents:
        log_ok(f"Nothing depends on {plan.target.label}.")
        return
    log_conflict(f"{plan.target.label} is required by other content:")
    for item in plan.dependents:
        log_conflict(f"- {item.label}", indent=2)


def print_violations(violations: Sequence[str]) -> None:
    if not violations:
        log_ok("Dependency graph is consistent.")
        return
    log_conflict(f"{len(violations)} inconsistent back-reference(s):")
    for violation in violations:
        log_conflict(violation, indent=2)


def print_bisect_summary(state: BisectState) -> None:
    candidates = current_candidates(state)
    scored = sum(1 for step in state.history if step.is_scored)
    log_info(f"Instance: {state.linked_instance}")
    log_info(f"Steps: {len(state.history)} ({scored} with a result)")
    if state.has_current_step:
        step = state.step
        log_info(
            f"Current step {state.current_step + 1}: {len(step.disabled_mods)} disabled, "
            f"{len(step.enabled_mods)} enabled, result '{step.test_result.value}'"
        )
    if len(candidates) == 1:
        log_ok(f"Fault isolated to {candidates[0]}")
    elif not candidates:
        log_warn("No candidates left; the fault may not come from a single mod.")
    else:
        log_info(f"{len(candidates)} candidate(s) remain: {', '.join(candidates)}")


def _build_content_rows(items: Sequence[ContentItem]) -> List[List[Any]]:
    rows: List[List[Any]] = []
    for item in sorted(items, key=lambda entry: (entry.content_type.value, entry.slug)):
        rows.append(
            [
                item.slug,  # slug
                item.name,  # name
                item.content_type.value,  # content_type
                item.content_type.folder,  # folder
                item.side.value,  # side
                item.source.value,  # source
                item.version_id,  # version
                item.file.filename,  # filename
                "yes" if item.added_as_dependency else "no",  # dependency
                ", ".join(entry.slug for entry in item.required_by),  # required_by
            ]
        )
    return rows


def _build_dependency_rows(items: Sequence[ContentItem]) -> List[List[Any]]:
    installed = {item.slug for item in items} | {item.id for item in items if item.id}
    rows: List[List[Any]] = []
    for item in items:
        for dep in item.dependencies:
            rows.append(
                [
                    item.slug,  # dependent
                    dep.name or dep.key,  # dependency
                    dep.key,  # key
                    dep.type.value,  # type
                    "yes" if dep.key in installed else "no",  # installed
                ]
            )
    return rows


def _build_history_rows(state: BisectState) -> List[List[Any]]:
    rows: List[List[Any]] = []
    for position, step in enumerate(state.history):
        rows.append(
            [
                position + 1,  # step
                "*" if position == state.current_step else "",  # current
                step.test_result.value,  # result
                len(step.disabled_mods),  # disabled_count
                ", ".join(step.disabled_mods),  # disabled
                ", ".join(step.enabled_mods),  # enabled
            ]
        )
    return rows


def export_report(
    output_path: Path,
    items: Sequence[ContentItem],
    state: BisectState | None = None,
) -> None:
    """Write an Excel report of the project content and any running bisection."""

    output_path.parent.mkdir(parents=True, exist_ok=True)

    workbook = Workbook()

    # Export content sheet
    content_sheet = workbook.active
    if not content_sheet:
        content_sheet = workbook.create_sheet("content")
    else:
        content_sheet.title = "content"
    content_sheet.append(
        [
            "slug",
            "name",
            "content type",
            "folder",
            "side",
            "source",
            "version",
            "filename",
            "added as dependency",
            "required by",
        ]
    )
    for row in _build_content_rows(items):
        content_sheet.append(row)

    # Export dependencies sheet
    deps_sheet = workbook.create_sheet("dependencies")
    deps_sheet.append(["dependent", "dependency", "key", "type", "installed"])
    for row in _build_dependency_rows(items):
        deps_sheet.append(row)

    # Export bisection history sheet
    if state is not None:
        history_sheet = workbook.create_sheet("bisect_history")
        history_sheet.append(["step", "current", "result", "disabled count", "disabled mods", "enabled mods"])
        for row in _build_history_rows(state):
            history_sheet.append(row)
        history_sheet.append([])
        history_sheet.append(["candidates", ", ".join(current_candidates(state))])

    workbook.save(output_path)
    workbook.close()
    log_ok(f"Report written to {output_path}")


__all__ = ["print_removal_plan", "print_violations", "print_bisect_summary", "export_report"]
