"""Client configuration loading (convkit.toml / convkit.yaml) and effective settings."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .engine.merge import MergeConfig

CONFIG_FILENAMES = ("convkit.toml", "convkit.yaml", "convkit.yml")

DEFAULT_SCOPE = "repo"
DEFAULT_OUTPUT = "human"
OUTPUT_FORMATS = ("human", "json")


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class LineBreakConfig:
    """Runtime overrides for a policy's `linebreak` section."""

    between_groups: Optional[bool] = None
    before_fields: Dict[str, str] = field(default_factory=dict)
    in_fields: Dict[str, str] = field(default_factory=dict)


@dataclass
class FormatConfig:
    write: Optional[bool] = None
    diff: Optional[bool] = None
    check: Optional[bool] = None
    strict_linebreak: Optional[bool] = None
    linebreak: LineBreakConfig = field(default_factory=LineBreakConfig)


@dataclass
class SyncClientConfig:
    """Per sync rule settings from `[sync.config.<id>]`."""

    target: Optional[str] = None
    merge: Optional[MergeConfig] = None


@dataclass
class SyncConfig:
    write: Optional[bool] = None
    ignore: List[str] = field(default_factory=list)
    clients: Dict[str, SyncClientConfig] = field(default_factory=dict)
    post_hooks: Dict[str, List[str]] = field(default_factory=dict)


@dataclass
class ClientConfig:
    """Represents the settings defined in convkit.toml or convkit.yaml."""

    root: Path
    path: Optional[Path] = None
    index: Optional[str] = None
    scope: Optional[str] = None
    output: Optional[str] = None
    format: FormatConfig = field(default_factory=FormatConfig)
    rule_patterns: Dict[str, List[str]] = field(default_factory=dict)
    sync: SyncConfig = field(default_factory=SyncConfig)

    @property
    def found(self) -> bool:
        return self.path is not None


@dataclass
class Effective:
    """Fully resolved settings after applying CLI > config file > defaults."""

    repo_root: Path
    index: str
    index_configured: bool
    scope: str
    output: str
    write: bool
    diff: bool
    check: bool
    strict_linebreak: bool
    linebreak: LineBreakConfig
    pattern_overrides: Dict[str, List[str]]
    sync: SyncConfig
    config_found: bool = False

    @property
    def index_path(self) -> Path:
        candidate = Path(self.index).expanduser()
        return candidate if candidate.is_absolute() else self.repo_root / candidate


def detect_repo_root(start: Path) -> Path:
    """Walk upward from `start` until a convkit config file or `.git` is found."""
    start = start.expanduser().resolve()
    current = start
    while True:
        if any((current / name).exists() for name in CONFIG_FILENAMES):
            return current
        if (current / ".git").exists():
            return current
        if current.parent == current:
            return start
        current = current.parent


def find_config_file(root: Path) -> Optional[Path]:
    for name in CONFIG_FILENAMES:
        candidate = root / name
        if candidate.is_file():
            return candidate
    return None


def load_config(root: Path) -> ClientConfig:
    """Load configuration from `root`; missing files yield an empty config."""
    config_file = find_config_file(root)
    if config_file is None:
        return ClientConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{config_file.name} must contain a mapping at the root")

    format_data = _as_dict(data.get("format"))
    linebreak_data = _as_dict(format_data.get("linebreak"))
    format_config = FormatConfig(
        write=_as_bool(format_data.get("write")),
        diff=_as_bool(format_data.get("diff")),
        check=_as_bool(format_data.get("check")),
        strict_linebreak=_as_bool(format_data.get("strictLineBreak")),
        linebreak=LineBreakConfig(
            between_groups=_as_bool(linebreak_data.get("between_groups")),
            before_fields=_as_str_dict(linebreak_data.get("before_fields")),
            in_fields=_as_str_dict(linebreak_data.get("in_fields")),
        ),
    )

    rule_patterns: Dict[str, List[str]] = {}
    for rule_id, raw in _as_dict(data.get("rules")).items():
        patterns = _as_dict(raw).get("patterns")
        if patterns is not None:
            rule_patterns[str(rule_id)] = _as_str_list(patterns)

    sync_data = _as_dict(data.get("sync"))
    clients: Dict[str, SyncClientConfig] = {}
    for rule_id, raw in _as_dict(sync_data.get("config")).items():
        entry = _as_dict(raw)
        merge_data = entry.get("merge")
        clients[str(rule_id)] = SyncClientConfig(
            target=_as_str(entry.get("target")),
            merge=MergeConfig.from_mapping(merge_data) if isinstance(merge_data, dict) else None,
        )
    hooks = _as_dict(_as_dict(sync_data.get("hooks")).get("post"))
    sync_config = SyncConfig(
        write=_as_bool(sync_data.get("write")),
        ignore=_as_str_list(sync_data.get("ignore")),
        clients=clients,
        post_hooks={str(key): _as_str_list(value) for key, value in hooks.items()},
    )

    return ClientConfig(
        root=root,
        path=config_file,
        index=_as_str(data.get("index")),
        scope=_as_str(data.get("scope")),
        output=_as_str(data.get("output")),
        format=format_config,
        rule_patterns=rule_patterns,
        sync=sync_config,
    )


def resolve_effective(
    repo_root: Optional[Path] = None,
    *,
    index: Optional[str] = None,
    scope: Optional[str] = None,
    output: Optional[str] = None,
    write: Optional[bool] = None,
    diff: Optional[bool] = None,
    check: Optional[bool] = None,
) -> Effective:
    """Merge CLI flags, the discovered config file, and defaults."""
    root = detect_repo_root(repo_root or Path.cwd())
    config = load_config(root)

    index_value = index or config.index
    resolved_output = (output or config.output or DEFAULT_OUTPUT).strip().lower()
    if resolved_output not in OUTPUT_FORMATS:
        raise ConfigError(
            f"Unsupported output format '{resolved_output}' (expected one of: {', '.join(OUTPUT_FORMATS)})"
        )

    return Effective(
        repo_root=root,
        index=index_value or "",
        index_configured=bool(index_value),
        scope=scope or config.scope or DEFAULT_SCOPE,
        output=resolved_output,
        write=_first(write, config.format.write, False),
        diff=_first(diff, config.format.diff, False),
        check=_first(check, config.format.check, False),
        strict_linebreak=_first(None, config.format.strict_linebreak, True),
        linebreak=config.format.linebreak,
        pattern_overrides=dict(config.rule_patterns),
        sync=config.sync,
        config_found=config.found,
    )


def _first(*values: Optional[bool]) -> bool:
    for value in values:
        if value is not None:
            return bool(value)
    return False


def _read_config(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Failed to read {path.name}: {exc}") from exc
    if not text.strip():
        return {}
    if path.suffix == ".toml":
        try:
            return tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    try:
        return yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return str(value)


def _as_bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1", "on"}:
            return True
        if lowered in {"false", "no", "0", "off"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value if item is not None]
    return []


def _as_str_dict(value: Any) -> Dict[str, str]:
    return {str(key): str(item) for key, item in _as_dict(value).items()}


__all__ = [
    "ClientConfig",
    "ConfigError",
    "Effective",
    "FormatConfig",
    "LineBreakConfig",
    "SyncClientConfig",
    "SyncConfig",
    "detect_repo_root",
    "load_config",
    "resolve_effective",
]
