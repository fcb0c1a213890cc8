from __future__ import annotations

import argparse
from pathlib import Path

from modgraph import (
    ModgraphError,
    TomlContentStore,
    add_step,
    apply_current_step,
    export_report,
    finish,
    go_to_previous_step,
    load_project_config,
    load_session,
    next_step,
    print_bisect_summary,
    record_result,
    remove_content,
    save_session,
    start_session,
)
from modgraph.bisection import has_active_session, manual_disable, manual_enable
from modgraph.errors import BisectionComplete, OperationCancelled
from modgraph.graph import graph_violations
from modgraph.interfaces import PromptKind
from modgraph.link_state import load_link_state, save_link_state
from modgraph.load_config import ProjectConfig
from modgraph.logging_utils import log_error, log_info, log_ok, log_warn
from modgraph.models import BisectState, ContentType, FileSyncReport, TestResult
from modgraph.prompts import TerminalChooser
from modgraph.report import print_violations
from modgraph.text_utils import resolve_query


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Manage the content graph of a modpack project: remove content with its "
            "dependents and orphans, check back-references, export a report, "
            "and bisect a linked instance to find a faulty mod."
        )
    )
    parser.add_argument(
        "--project",
        type=Path,
        default=Path("."),
        help="Project directory containing project.toml (default: current directory).",
    )
    parser.add_argument(
        "--yes",
        action="store_true",
        default=False,
        help="Answer yes to every confirmation.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    remove = commands.add_parser("remove", help="Remove content and handle dependents and orphans.")
    remove.add_argument("query", help="Slug, id or name of the content to remove.")

    commands.add_parser("check", help="Verify that every back-reference matches a dependency.")

    report = commands.add_parser("report", help="Export the project content to Excel.")
    report.add_argument(
        "--export-path",
        type=Path,
        default=Path("modgraph_report.xlsx"),
        help="Path to save the report Excel file.",
    )

    bisect = commands.add_parser("bisect", help="Find a faulty mod by disabling halves of the pack.")
    bisect_commands = bisect.add_subparsers(dest="bisect_command", required=True)
    start = bisect_commands.add_parser("start", help="Start a bisection on a linked instance.")
    start.add_argument("--instance", type=Path, required=True, help="Path to the game instance.")
    step = bisect_commands.add_parser("next", help="Record the current result and apply the next step.")
    step.add_argument(
        "--result",
        choices=[TestResult.GOOD.value, TestResult.BAD.value],
        help="Outcome of the current step; asked for when omitted.",
    )
    bisect_commands.add_parser("previous", help="Go back one step and apply it.")
    enable = bisect_commands.add_parser("enable", help="Enable a mod and what it depends on in this step.")
    enable.add_argument("slug")
    disable = bisect_commands.add_parser("disable", help="Disable a mod and its dependents in this step.")
    disable.add_argument("slug")
    bisect_commands.add_parser("status", help="Show the bisection progress.")
    bisect_commands.add_parser("finish", help="Re-enable every mod and end the bisection.")
    return parser.parse_args()


def _open_store(config: ProjectConfig) -> TomlContentStore:
    return TomlContentStore(config.root, config.content_directory)


def run_remove(config: ProjectConfig, query: str, chooser: TerminalChooser) -> None:
    store = _open_store(config)
    item, suggestions = resolve_query(store.list_all(), query)
    if item is None:
        log_error(f"No content matches '{query}'.")
        if suggestions:
            log_info(f"Did you mean: {', '.join(suggestions)}?", indent=2)
        raise SystemExit(1)

    ledger = load_link_state(config.root)
    try:
        outcome = remove_content(store, item.slug, chooser, ledger)
    except OperationCancelled as exc:
        log_warn(str(exc))
        return
    if outcome.removed:
        save_link_state(config.root, ledger)
    if not outcome.ok:
        raise SystemExit(1)


def run_check(config: ProjectConfig) -> None:
    violations = graph_violations(_open_store(config).list_all())
    print_violations(violations)
    if violations:
        raise SystemExit(1)


def run_report(config: ProjectConfig, export_path: Path) -> None:
    if export_path.suffix.lower() != ".xlsx":
        export_path = export_path / "modgraph_report.xlsx"
    state = load_session(config.root) if has_active_session(config.root) else None
    export_report(export_path, _open_store(config).list_all(), state)


def _sync(config: ProjectConfig, state: BisectState) -> FileSyncReport:
    report = apply_current_step(state, config.bisect.disabled_suffix, config.bisect.mods_directory)
    save_session(config.root, state)
    log_info(f"{len(report.disabled)} mod file(s) disabled for step {state.current_step + 1}")
    if report.missing:
        log_warn(f"Not found in the instance: {', '.join(report.missing)}")
    if not report.ok:
        log_error("Some mod files could not be renamed; run the command again to retry.")
    return report


def run_bisect(config: ProjectConfig, args: argparse.Namespace, chooser: TerminalChooser) -> None:
    command = args.bisect_command

    if command == "start":
        instance = args.instance.expanduser().resolve()
        if not instance.exists():
            raise SystemExit(f"Instance path {instance} does not exist.")
        mods = [item for item in _open_store(config).list_all() if item.content_type == ContentType.MOD]
        start_session(config.root, instance, mods)
        log_info("Run 'bisect next' to disable the first half.")
        return

    state = load_session(config.root)

    if command == "status":
        print_bisect_summary(state)
        return

    if command == "finish":
        if not chooser.confirm(PromptKind.CONFIRM_FINISH):
            log_warn("Bisection left running.")
            return
        candidates = finish(config.root, state, config.bisect.disabled_suffix, config.bisect.mods_directory)
        if len(candidates) == 1:
            log_ok(f"Faulty mod: {candidates[0]}")
        elif candidates:
            log_warn(f"Narrowed down to {len(candidates)} mods: {', '.join(candidates)}")
        else:
            log_warn("No single mod could be blamed.")
        return

    if command == "next":
        if state.has_current_step and not state.step.is_scored:
            outcome = args.result or chooser.choose(PromptKind.TEST_OUTCOME, [TestResult.GOOD, TestResult.BAD])
            record_result(state, outcome)
            save_session(config.root, state)
        try:
            disabled, enabled = next_step(state)
        except BisectionComplete:
            print_bisect_summary(state)
            log_info("Run 'bisect finish' to restore every mod.")
            return
        add_step(state, disabled, enabled)
    elif command == "previous":
        go_to_previous_step(state)
    elif command == "enable":
        moved = manual_enable(state, args.slug)
        log_info(f"Enabled {', '.join(moved) or 'nothing'}")
    elif command == "disable":
        moved = manual_disable(state, args.slug)
        log_info(f"Disabled {', '.join(moved) or 'nothing'}")

    if not _sync(config, state).ok:
        raise SystemExit(1)
    print_bisect_summary(state)


def main() -> None:
    args = parse_args()
    project_root = args.project.expanduser().resolve()
    if not project_root.exists():
        raise SystemExit(f"Project path {project_root} does not exist.")

    config = load_project_config(project_root)
    chooser = TerminalChooser(assume_yes=args.yes)

    try:
        if args.command == "remove":
            run_remove(config, args.query, chooser)
        elif args.command == "check":
            run_check(config)
        elif args.command == "report":
            run_report(config, args.export_path)
        elif args.command == "bisect":
            run_bisect(config, args, chooser)
    except ModgraphError as exc:
        log_error(str(exc))
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
