"""Configuration loading for docbranch (.docbranch.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .errors import ConfigurationError

CONFIG_FILE = ".docbranch.yml"
DEFAULT_BRANCH = "docs-generation"
DEFAULT_WORKSPACE = "temp-repos"


class ConfigError(ConfigurationError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class ProviderConfig:
    """One summarization endpoint, tried in the order listed."""

    name: str
    model: Optional[str] = None
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    api_key_env: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    request_timeout: Optional[float] = None


@dataclass
class SummarizeConfig:
    """Input guards and pacing for summarization calls."""

    max_chars: int = 50_000
    request_delay: float = 1.0


@dataclass
class DocBranchConfig:
    """Represents the settings defined in .docbranch.yml."""

    root: Path
    branch: str = DEFAULT_BRANCH
    main_branch: Optional[str] = None
    target_path: Optional[str] = None
    overwrite: bool = False
    workspace_dir: Path = Path(DEFAULT_WORKSPACE)
    keep_workdir: bool = False
    validate_access: bool = True
    providers: List[ProviderConfig] = field(default_factory=list)
    summarize: SummarizeConfig = field(default_factory=SummarizeConfig)
    extensions: List[str] = field(default_factory=list)
    exclude_patterns: List[str] = field(default_factory=list)
    exclude_paths: List[str] = field(default_factory=list)


def load_config(config_path: Optional[Path] = None) -> DocBranchConfig:
    """Load configuration from disk; a missing file yields the defaults."""
    config_file = _resolve_config_path(config_path or Path.cwd())
    root = config_file.parent.resolve()

    if not config_file.exists():
        return DocBranchConfig(root=root, workspace_dir=root / DEFAULT_WORKSPACE)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILE} must contain a mapping at the root")

    workspace_data = _as_dict(data.get("workspace"))
    workspace_dir_str = _as_str(workspace_data.get("dir")) or DEFAULT_WORKSPACE
    workspace_dir = Path(workspace_dir_str).expanduser()
    if not workspace_dir.is_absolute():
        workspace_dir = root / workspace_dir

    access_data = _as_dict(data.get("access"))
    validate_access = _as_bool(access_data.get("validate"))

    summarize_data = _as_dict(data.get("summarize"))
    summarize = SummarizeConfig()
    if summarize_data:
        max_chars = _as_int(summarize_data.get("max_chars"))
        delay = _as_float(summarize_data.get("request_delay"))
        if max_chars is not None:
            if max_chars <= 0:
                raise ConfigError("summarize.max_chars must be positive")
            summarize.max_chars = max_chars
        if delay is not None:
            if delay < 0:
                raise ConfigError("summarize.request_delay must not be negative")
            summarize.request_delay = delay

    classifier_data = _as_dict(data.get("classifier"))

    return DocBranchConfig(
        root=root,
        branch=_as_str(data.get("branch")) or DEFAULT_BRANCH,
        main_branch=_as_str(data.get("main_branch")),
        target_path=_as_str(data.get("target_path")),
        overwrite=_as_bool(data.get("overwrite")) or False,
        workspace_dir=workspace_dir,
        keep_workdir=_as_bool(workspace_data.get("keep")) or False,
        validate_access=True if validate_access is None else validate_access,
        providers=_parse_providers(data.get("providers")),
        summarize=summarize,
        extensions=_as_str_list(classifier_data.get("extensions")),
        exclude_patterns=_as_str_list(classifier_data.get("exclude")),
        exclude_paths=_as_str_list(data.get("exclude_paths")),
    )


def _parse_providers(value: Any) -> List[ProviderConfig]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError("providers must be a list of provider mappings")
    providers: List[ProviderConfig] = []
    for position, item in enumerate(value):
        if isinstance(item, str):
            providers.append(ProviderConfig(name=item))
            continue
        entry = _as_dict(item)
        name = _as_str(entry.get("name"))
        if not name:
            raise ConfigError(f"providers[{position}] is missing a name")
        providers.append(
            ProviderConfig(
                name=name,
                model=_as_str(entry.get("model")),
                base_url=_as_str(entry.get("base_url")),
                api_key=_as_str(entry.get("api_key")),
                api_key_env=_as_str(entry.get("api_key_env")),
                temperature=_as_float(entry.get("temperature")),
                max_tokens=_as_int(entry.get("max_tokens")),
                request_timeout=_as_float(entry.get("request_timeout")),
            )
        )
    return providers


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILE).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    return str(value) if isinstance(value, (str, int, float)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float)) and not isinstance(item, bool)]
    return []


__all__ = [
    "CONFIG_FILE",
    "ConfigError",
    "DocBranchConfig",
    "ProviderConfig",
    "SummarizeConfig",
    "load_config",
]
