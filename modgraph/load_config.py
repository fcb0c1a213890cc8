from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import toml

from .logging_utils import log_warn
from .models import Source

PROJECT_FILE = "project.toml"
DEFAULT_MAX_DEPTH = 10
DEFAULT_DISABLED_SUFFIX = ".disabled"


@dataclass(slots=True)
class ResolutionConfig:
    max_depth: int = DEFAULT_MAX_DEPTH
    interactive: bool = False


@dataclass(slots=True)
class BisectConfig:
    mods_directory: str = "mods"
    disabled_suffix: str = DEFAULT_DISABLED_SUFFIX


@dataclass(slots=True)
class ProjectConfig:
    root: Path
    name: str = ""
    default_source: Source = Source.MODRINTH
    content_directory: str = "content"
    game_version: str = ""
    loader: str = ""
    resolution: ResolutionConfig = field(default_factory=ResolutionConfig)
    bisect: BisectConfig = field(default_factory=BisectConfig)


def load_project_config(project_root: Path) -> ProjectConfig:
    """Load ``project.toml`` from the project root.

    A missing file is not fatal: the defaults are returned so commands that
    only need the content store keep working.
    """

    config_path = project_root / PROJECT_FILE
    config = ProjectConfig(root=project_root)

    if not config_path.exists():
        log_warn(f"Project file {config_path} not found. Proceeding with defaults.")
        return config

    raw_text = config_path.read_text(encoding="utf-8")
    try:
        data = toml.loads(raw_text)
    except toml.TomlDecodeError as exc:
        raise ValueError(f"Invalid TOML in project file: {config_path}") from exc

    config.name = data.get("name", "")
    config.content_directory = data.get("content_directory", config.content_directory)
    try:
        config.default_source = Source(data.get("default_source", Source.MODRINTH.value))
    except ValueError as exc:
        raise ValueError(f"Unknown default_source in {config_path}: {data.get('default_source')}") from exc

    versions = data.get("versions", {})
    config.game_version = versions.get("game", "")
    config.loader = versions.get("loader", "")

    resolution = data.get("resolution", {})
    config.resolution = ResolutionConfig(
        max_depth=int(resolution.get("max_depth", DEFAULT_MAX_DEPTH)),
        interactive=bool(resolution.get("interactive", False)),
    )

    bisect = data.get("bisect", {})
    config.bisect = BisectConfig(
        mods_directory=bisect.get("mods_directory", "mods"),
        disabled_suffix=bisect.get("disabled_suffix", DEFAULT_DISABLED_SUFFIX),
    )
    if not config.bisect.disabled_suffix:
        raise ValueError(f"bisect.disabled_suffix must not be empty in {config_path}")

    return config


def write_project_config(config: ProjectConfig) -> Path:
    config_path = config.root / PROJECT_FILE
    config.root.mkdir(parents=True, exist_ok=True)
    data = {
        "name": config.name,
        "default_source": config.default_source.value,
        "content_directory": config.content_directory,
        "versions": {"game": config.game_version, "loader": config.loader},
        "resolution": {
            "max_depth": config.resolution.max_depth,
            "interactive": config.resolution.interactive,
        },
        "bisect": {
            "mods_directory": config.bisect.mods_directory,
            "disabled_suffix": config.bisect.disabled_suffix,
        },
    }
    config_path.write_text(toml.dumps(data), encoding="utf-8")
    return config_path
