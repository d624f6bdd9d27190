"""
Configuration loading for evospec.

Layers, lowest precedence first:
- built-in defaults
- global ~/.evospec/config.yaml
- project .evospec/config.yaml
- environment (EVOSPEC_TAG_PREFIX)
"""

from __future__ import annotations

import copy
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .versioning.document import find_spec_files

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".evospec"
CONFIG_FILE_NAME = "config.yaml"
ENV_TAG_PREFIX = "EVOSPEC_TAG_PREFIX"

DEFAULT_CONFIG: dict[str, Any] = {
    "versioning": {
        "autoCommit": True,
        "autoTag": True,
        "tagPrefix": "v",
    },
    "project": {},
}


@dataclass(frozen=True)
class VersioningConfig:
    auto_commit: bool = True
    auto_tag: bool = True
    tag_prefix: str = "v"


@dataclass(frozen=True)
class EvospecConfig:
    versioning: VersioningConfig
    project_id: str | None = None
    spec_file: str | None = None


def global_config_file() -> Path:
    return Path.home() / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def local_config_file(cwd: Path) -> Path:
    return cwd / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``; nested mappings merge recursively."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = deep_merge(result[key], value)
        elif value is not None:
            result[key] = copy.deepcopy(value)
    return result


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Read a YAML mapping; missing or unreadable files contribute nothing."""
    if not path.is_file():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Ignoring unreadable config %s: %s", path, e)
        return {}
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: top level is not a mapping", path)
        return {}
    return data


def _as_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return default


def load_config(cwd: Path | None = None, *, global_file: Path | None = None) -> EvospecConfig:
    """Load the merged configuration for ``cwd``."""
    cwd = cwd or Path.cwd()
    merged = copy.deepcopy(DEFAULT_CONFIG)
    merged = deep_merge(merged, load_yaml_file(global_file or global_config_file()))
    merged = deep_merge(merged, load_yaml_file(local_config_file(cwd)))

    versioning = merged.get("versioning") if isinstance(merged.get("versioning"), dict) else {}
    tag_prefix = os.environ.get(ENV_TAG_PREFIX)
    if tag_prefix is None:
        tag_prefix = str(versioning.get("tagPrefix", "v"))

    project = merged.get("project") if isinstance(merged.get("project"), dict) else {}
    project_id = project.get("id")
    spec_file = project.get("specFile")

    return EvospecConfig(
        versioning=VersioningConfig(
            auto_commit=_as_bool(versioning.get("autoCommit"), True),
            auto_tag=_as_bool(versioning.get("autoTag"), True),
            tag_prefix=tag_prefix,
        ),
        project_id=str(project_id) if project_id else None,
        spec_file=str(spec_file) if spec_file else None,
    )


def find_spec_file(
    cwd: Path | None = None,
    *,
    explicit: Path | None = None,
    config: EvospecConfig | None = None,
) -> Path | None:
    """
    Locate the spec document.

    Order: explicit path, ``project.specFile`` from config, first
    ``*.evospec.yaml`` in ``cwd``.
    """
    cwd = cwd or Path.cwd()
    if explicit is not None:
        path = explicit if explicit.is_absolute() else cwd / explicit
        return path.resolve()

    config = config or load_config(cwd)
    if config.spec_file:
        candidate = cwd / config.spec_file
        if candidate.is_file():
            return candidate.resolve()

    candidates = find_spec_files(cwd)
    return candidates[0].resolve() if candidates else None
