"""
slotaudit - Configuration
Loads a YAML config file and merges it over the built-in defaults.
"""

import copy
import logging
from pathlib import Path

import yaml

from .errors import ConfigError

log = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = ".slotaudit.yml"

DEFAULT_CONFIG: dict = {
    "contracts": {
        "path": "src/",
        "exclude_paths": ["lib/", "test/", "script/"],
    },
    "upgrade": {
        "old_path": "",
        "new_path": "",
        "contract": "",
        "critical_penalty": 40,
        "warning_penalty": 15,
        "unsafe_warning_count": 2,
        "efficiency_drop_threshold": 10,
        "slot_growth_threshold": 5,
    },
    "output": {
        "format": "json",
        "path": "",
    },
}


def _merge(base: dict, override: dict, prefix: str = "") -> dict:
    """Recursively merge `override` into a copy of `base`.

    A key left empty in YAML (``output:``) loads as None and keeps the
    default value.
    """
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if value is None and key in merged:
            continue
        default = merged.get(key)
        if isinstance(default, dict):
            if not isinstance(value, dict):
                raise ConfigError(f"Section '{prefix}{key}' must be a mapping")
            merged[key] = _merge(default, value, f"{prefix}{key}.")
        else:
            merged[key] = value
    return merged


def load_config(path: str | None = None) -> dict:
    """Load configuration from `path` (or the default file) over defaults."""
    config_path = Path(path or DEFAULT_CONFIG_FILE)
    if not config_path.exists():
        if path:
            log.warning(f"Config file not found: {path}, using defaults")
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
    except (IOError, OSError) as e:
        raise ConfigError(f"Could not read {config_path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path}: top level must be a mapping")

    try:
        config = _merge(DEFAULT_CONFIG, data)
    except ConfigError as e:
        raise ConfigError(f"{config_path}: {e}") from e

    log.debug(f"Loaded config from {config_path}")
    return config
