from __future__ import annotations
import json
import os
from collections import Counter
from pathlib import Path
from typing import Any, Dict
from pydantic import ValidationError
from .models import RootConfig
from .errors import ConfigurationError
from .logging_setup import get_logger

log = get_logger("dayz.manager.config")

def expand_path(value: str) -> str:
    """Expand a leading ~ with $HOME, leave everything else alone."""
    if value.startswith("~"):
        return os.path.expanduser(value)
    return value

def load_json(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        raise ConfigurationError(f"{path} doesn't exist")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"{path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError("Config root must be an object")
    return data

def load_config(config_path: Path) -> RootConfig:
    log.info("Loading config: %s", config_path)
    try:
        cfg = RootConfig.model_validate(load_json(config_path))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid config {config_path}: {e}") from e

    if not cfg.install_directory.strip():
        raise ConfigurationError("install_directory must not be empty")
    cfg.install_directory = expand_path(cfg.install_directory)
    if cfg.backup.directory:
        cfg.backup.directory = expand_path(cfg.backup.directory)

    dupes = [name for name, n in Counter(m.name for m in cfg.mods).items() if n > 1]
    for name in dupes:
        log.warning("Mod name %r declared more than once; the last declaration wins its symlink", name)

    log.info("Config loaded: mods=%d resources=%d missions=%d",
             len(cfg.mods), len(cfg.resources), len(cfg.missions))
    return cfg
