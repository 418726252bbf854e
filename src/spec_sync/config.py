"""Configuration loading and deterministic merge order."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path

CONFIG_FILE_NAME = "spec_sync.toml"

DEFAULT_SOURCE_ROOTS = ("lib", "src")
DEFAULT_INCLUDE_EXTENSIONS = (".py", ".js", ".ts", ".jsx", ".tsx", ".mjs", ".cjs")
DEFAULT_EXCLUDE_DIRS = (
    "node_modules",
    ".git",
    "test",
    "tests",
    "__tests__",
    "__pycache__",
    ".venv",
    "build",
    "dist",
)
DEFAULT_SPEC_DIRS = ("openspec/specs", ".seed/specs")
DEFAULT_SPEC_SUFFIX = ".fspec.md"
DEFAULT_DATA_DIR = ".seed"


@dataclass(slots=True, frozen=True)
class SourcesConfig:
    """Where source files live and which of them are analyzed."""

    roots: tuple[str, ...]
    include_extensions: tuple[str, ...]
    exclude_dirs: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class SpecsConfig:
    """Where paired specification documents are looked up."""

    dirs: tuple[str, ...]
    suffix: str


@dataclass(slots=True, frozen=True)
class SyncConfig:
    """Fully merged synchronization configuration."""

    project_root: Path
    data_dir: Path
    sources: SourcesConfig
    specs: SpecsConfig

    @property
    def checkpoint_path(self) -> Path:
        """Return on-disk checkpoint file path."""
        return self.data_dir / "defend-cache.json"

    @property
    def backups_dir(self) -> Path:
        """Return directory holding spec backups."""
        return self.data_dir / "backups"

    @property
    def observations_dir(self) -> Path:
        """Return directory observation records are written into."""
        return self.data_dir / "observations"

    @property
    def log_path(self) -> Path:
        """Return JSONL run log path."""
        return self.data_dir / "sync-log.jsonl"

    def to_public_dict(self) -> dict[str, object]:
        """Return serializable config snapshot for CLI output."""
        return {
            "project_root": str(self.project_root),
            "data_dir": str(self.data_dir),
            "sources": {
                "roots": list(self.sources.roots),
                "include_extensions": list(self.sources.include_extensions),
                "exclude_dirs": list(self.sources.exclude_dirs),
            },
            "specs": {
                "dirs": list(self.specs.dirs),
                "suffix": self.specs.suffix,
            },
        }


@dataclass(slots=True, frozen=True)
class CliOverrides:
    """Optional startup overrides applied at highest precedence."""

    data_dir: Path | None = None
    source_roots: tuple[str, ...] | None = None
    spec_dirs: tuple[str, ...] | None = None


def default_config(project_root: Path) -> SyncConfig:
    """Build default config for a given project root."""
    resolved_root = project_root.resolve()
    return SyncConfig(
        project_root=resolved_root,
        data_dir=resolved_root / DEFAULT_DATA_DIR,
        sources=SourcesConfig(
            roots=DEFAULT_SOURCE_ROOTS,
            include_extensions=DEFAULT_INCLUDE_EXTENSIONS,
            exclude_dirs=DEFAULT_EXCLUDE_DIRS,
        ),
        specs=SpecsConfig(dirs=DEFAULT_SPEC_DIRS, suffix=DEFAULT_SPEC_SUFFIX),
    )


def load_project_config_file(project_root: Path) -> dict[str, object]:
    """Load optional spec_sync.toml from the project root."""
    config_path = project_root / CONFIG_FILE_NAME
    if not config_path.exists():
        return {}
    with config_path.open("rb") as handle:
        payload = tomllib.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"{CONFIG_FILE_NAME} must contain a top-level table.")
    return payload


def _get_table(payload: dict[str, object], key: str) -> dict[str, object]:
    value = payload.get(key, {})
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' must be a table.")
    return value


def _tuple_of_strings(value: object, section: str, field: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise ValueError(f"Config field '{section}.{field}' must be a list of strings.")
    output: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"Config field '{section}.{field}' must contain only strings.")
        output.append(item)
    return tuple(output)


def _extensions(value: object, section: str, field: str) -> tuple[str, ...]:
    output: list[str] = []
    for item in _tuple_of_strings(value, section, field):
        if not item.startswith("."):
            raise ValueError(f"Config field '{section}.{field}' entries must start with '.'.")
        output.append(item.lower())
    return tuple(output)


def _relative_dir(value: str, name: str) -> str:
    normalized = value.replace("\\", "/").strip().strip("/")
    if not normalized or normalized.startswith("..") or "/../" in f"/{normalized}/":
        raise ValueError(f"Config field '{name}' must be a project-relative directory.")
    return normalized


def merge_config(
    base: SyncConfig, project_payload: dict[str, object], overrides: CliOverrides
) -> SyncConfig:
    """Merge defaults, project config, then CLI overrides."""
    sources_payload = _get_table(project_payload, "sources")
    specs_payload = _get_table(project_payload, "specs")
    storage_payload = _get_table(project_payload, "storage")

    roots = base.sources.roots
    if "roots" in sources_payload:
        roots = tuple(
            _relative_dir(item, "sources.roots")
            for item in _tuple_of_strings(sources_payload["roots"], "sources", "roots")
        )
    include_extensions = base.sources.include_extensions
    if "include_extensions" in sources_payload:
        include_extensions = _extensions(
            sources_payload["include_extensions"], "sources", "include_extensions"
        )
    exclude_dirs = base.sources.exclude_dirs
    if "exclude_dirs" in sources_payload:
        exclude_dirs = _tuple_of_strings(sources_payload["exclude_dirs"], "sources", "exclude_dirs")

    spec_dirs = base.specs.dirs
    if "dirs" in specs_payload:
        spec_dirs = tuple(
            _relative_dir(item, "specs.dirs")
            for item in _tuple_of_strings(specs_payload["dirs"], "specs", "dirs")
        )
        if not spec_dirs:
            raise ValueError("Config field 'specs.dirs' must not be empty.")
    suffix = base.specs.suffix
    if "suffix" in specs_payload:
        raw_suffix = specs_payload["suffix"]
        if not isinstance(raw_suffix, str) or not raw_suffix.startswith("."):
            raise ValueError("Config field 'specs.suffix' must be a string starting with '.'.")
        suffix = raw_suffix

    data_dir = base.data_dir
    if "data_dir" in storage_payload:
        raw_data_dir = storage_payload["data_dir"]
        if not isinstance(raw_data_dir, str):
            raise ValueError("Config field 'storage.data_dir' must be a string.")
        data_dir = base.project_root / _relative_dir(raw_data_dir, "storage.data_dir")

    merged = SyncConfig(
        project_root=base.project_root,
        data_dir=data_dir,
        sources=SourcesConfig(
            roots=roots,
            include_extensions=include_extensions,
            exclude_dirs=exclude_dirs,
        ),
        specs=SpecsConfig(dirs=spec_dirs, suffix=suffix),
    )
    return apply_cli_overrides(merged, overrides)


def apply_cli_overrides(config: SyncConfig, overrides: CliOverrides) -> SyncConfig:
    """Apply startup overrides at highest precedence."""
    roots = config.sources.roots
    if overrides.source_roots is not None:
        roots = tuple(_relative_dir(item, "overrides.source_roots") for item in overrides.source_roots)
    spec_dirs = config.specs.dirs
    if overrides.spec_dirs is not None:
        spec_dirs = tuple(_relative_dir(item, "overrides.spec_dirs") for item in overrides.spec_dirs)
        if not spec_dirs:
            raise ValueError("Config field 'overrides.spec_dirs' must not be empty.")
    data_dir = overrides.data_dir or config.data_dir
    if not data_dir.is_absolute():
        data_dir = config.project_root / data_dir
    return SyncConfig(
        project_root=config.project_root,
        data_dir=data_dir.resolve(),
        sources=SourcesConfig(
            roots=roots,
            include_extensions=config.sources.include_extensions,
            exclude_dirs=config.sources.exclude_dirs,
        ),
        specs=SpecsConfig(dirs=spec_dirs, suffix=config.specs.suffix),
    )


def load_effective_config(project_root: Path, overrides: CliOverrides | None = None) -> SyncConfig:
    """Load effective config using merge order defaults -> project config -> overrides."""
    resolved_root = project_root.resolve()
    base = default_config(resolved_root)
    payload = load_project_config_file(resolved_root)
    return merge_config(base, payload, overrides or CliOverrides())
