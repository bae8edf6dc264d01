"""Run configuration: defaults, config files and CLI overrides.

Precedence, highest first: CLI flags, the ``--config`` file (YAML, YML or
JSON), the first default config location that exists, built-in defaults.
The result is an immutable ``StageConfig`` passed explicitly to every
component of the pipeline.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from common.errors import ConfigError
from constants import Constants
from resolution.models import RemoteRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StageConfig:
    """Everything a run needs to know, fixed before the run starts."""
    plugins_root: Path
    manifest_path: Optional[Path]
    local_repository: Path
    remote_repositories: Tuple[RemoteRepository, ...] = field(default_factory=tuple)
    process_loose_archives: bool = True
    skip_existing_dependencies: bool = True
    use_lock: bool = True


def central_repository() -> RemoteRepository:
    return RemoteRepository(Constants.MAVEN_CENTRAL_ID, Constants.MAVEN_CENTRAL_URL)


def _expand_env(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return os.path.expandvars(str(value))


def load_config_file(path: str) -> Dict[str, Any]:
    """Load a YAML or JSON config file into a dict.

    Raises:
        ConfigError: the file is missing, unreadable or not a mapping.
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            if path.lower().endswith(".json"):
                data = json.load(fh)
            else:
                data = yaml.safe_load(fh)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Cannot load config file '{path}': {exc}", subject=path) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file '{path}' must contain a mapping", subject=path)
    return data


def _load_default_config() -> Dict[str, Any]:
    for candidate in Constants.DEFAULT_CONFIG_LOCATIONS:
        if os.path.isfile(candidate):
            logger.debug("Using default config %s", candidate)
            return load_config_file(candidate)
    return {}


def parse_repository_option(text: str) -> RemoteRepository:
    """Parse a ``--repository ID=URL`` value."""
    repo_id, sep, url = str(text).partition("=")
    if not sep or not repo_id.strip() or not url.strip():
        raise ConfigError(f"Invalid repository '{text}'. Expected 'ID=URL'.", subject=str(text))
    return RemoteRepository(repo_id.strip(), url.strip())


def _repositories_from_config(entries: Any) -> List[RemoteRepository]:
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise ConfigError("'repositories' must be a list of {id, url} mappings")
    repos = []
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get("id") or not entry.get("url"):
            raise ConfigError(f"Invalid repository entry {entry!r}: 'id' and 'url' are required")
        repos.append(RemoteRepository(
            id=str(entry["id"]),
            url=str(entry["url"]),
            username=_expand_env(entry.get("username")),
            password=_expand_env(entry.get("password")),
        ))
    return repos


def _flag(args, name: str) -> bool:
    return bool(getattr(args, name, False))


def build_config(args) -> StageConfig:
    """Combine CLI arguments, config files and defaults into a StageConfig.

    Raises:
        ConfigError: a config file or repository option is invalid.
    """
    config_path = getattr(args, "CONFIG", None)
    file_cfg = load_config_file(config_path) if config_path else _load_default_config()

    plugins_root = getattr(args, "ROOT", None) or file_cfg.get("plugins_root") or Constants.DEFAULT_PLUGINS_ROOT

    if _flag(args, "NO_MANIFEST"):
        manifest_path = None
    else:
        manifest = getattr(args, "MANIFEST", None) or file_cfg.get("manifest", Constants.DEFAULT_MANIFEST)
        manifest_path = Path(manifest) if manifest else None

    local_repository = (
        getattr(args, "LOCAL_REPO", None)
        or file_cfg.get("local_repository")
        or Constants.DEFAULT_LOCAL_REPOSITORY
    )

    include_central = bool(file_cfg.get("include_central", True)) and not _flag(args, "NO_CENTRAL")
    repositories: List[RemoteRepository] = [central_repository()] if include_central else []
    repositories.extend(_repositories_from_config(file_cfg.get("repositories")))
    for item in getattr(args, "REPOSITORIES", None) or []:
        repositories.append(parse_repository_option(item))

    process_loose = bool(file_cfg.get("process_loose_archives", True)) and not _flag(args, "NO_LOOSE")
    skip_existing = bool(file_cfg.get("skip_existing_dependencies", True)) and not _flag(args, "NO_SKIP_EXISTING")

    return StageConfig(
        plugins_root=Path(os.path.expanduser(str(plugins_root))),
        manifest_path=Path(os.path.expanduser(str(manifest_path))) if manifest_path else None,
        local_repository=Path(os.path.expanduser(str(local_repository))),
        remote_repositories=tuple(repositories),
        process_loose_archives=process_loose,
        skip_existing_dependencies=skip_existing,
        use_lock=not _flag(args, "NO_LOCK"),
    )
