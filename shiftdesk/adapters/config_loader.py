"""Settings and directory file loading (YAML or JSON)."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

import yaml

logger = logging.getLogger(__name__)

YAML_SUFFIXES = {".yaml", ".yml"}
DIRECTORY_SECTIONS = ("properties", "staff", "leave")


class ConfigError(ValueError):
    """Raised when a settings or directory file cannot be used."""


def load_config(path: str | Path) -> Dict[str, Any]:
    """Read a mapping from *path*. Empty files load as ``{}``."""

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)
    suffix = path.suffix.lower()
    if suffix not in YAML_SUFFIXES and suffix != ".json":
        raise ConfigError(f"Unsupported config format: {path.name}")
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) if suffix in YAML_SUFFIXES else json.load(fh)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Cannot parse {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping, got {type(data).__name__}")
    return data


def load_directory_file(path: str | Path) -> Dict[str, List[Dict[str, Any]]]:
    """Read the ``properties``/``staff``/``leave`` lists the web layer schedules against."""

    data = load_config(path)
    extra = sorted(set(data) - set(DIRECTORY_SECTIONS))
    if extra:
        logger.warning("Ignoring unknown directory sections in %s: %s", path, ", ".join(extra))
    sections: Dict[str, List[Dict[str, Any]]] = {}
    for name in DIRECTORY_SECTIONS:
        items = data.get(name) or []
        if not isinstance(items, list):
            raise ConfigError(f"Directory section {name!r} must be a list")
        sections[name] = items
    return sections
