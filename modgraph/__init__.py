"""Dependency resolution, removal and bisection for modpack projects."""

from .bisection import (
    add_step,
    apply_current_step,
    create_session,
    current_candidates,
    finish,
    go_to_previous_step,
    load_session,
    next_step,
    record_result,
    restore_all_mods,
    save_session,
    start_session,
)
from .dependency_resolver import add_content, add_with_dependencies
from .errors import (
    BisectionComplete,
    ConflictError,
    DepthExceededError,
    InvalidStateTransition,
    ModgraphError,
    NotFoundError,
    OperationCancelled,
    PersistenceError,
    ProviderFetchError,
)
from .load_config import load_project_config, write_project_config
from .models import BisectState, BisectStep, ContentItem, Dependency, RequiredBy
from .removal_executor import commit_removal, remove_content
from .removal_planner import compute_orphans, plan_removal
from .report import export_report, print_bisect_summary
from .store import ContentStore, TomlContentStore

__all__ = [
    "BisectState",
    "BisectStep",
    "ContentItem",
    "Dependency",
    "RequiredBy",
    "ContentStore",
    "TomlContentStore",
    "load_project_config",
    "write_project_config",
    "add_with_dependencies",
    "add_content",
    "plan_removal",
    "compute_orphans",
    "commit_removal",
    "remove_content",
    "create_session",
    "start_session",
    "load_session",
    "save_session",
    "current_candidates",
    "next_step",
    "add_step",
    "record_result",
    "go_to_previous_step",
    "apply_current_step",
    "restore_all_mods",
    "finish",
    "print_bisect_summary",
    "export_report",
    "ModgraphError",
    "NotFoundError",
    "ConflictError",
    "DepthExceededError",
    "ProviderFetchError",
    "PersistenceError",
    "InvalidStateTransition",
    "BisectionComplete",
    "OperationCancelled",
]
