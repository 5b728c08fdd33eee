from __future__ import annotations

import copy
import logging
import os
import sys
from typing import Any

import yaml

from .validator import validate_config, ConfigValidationError


DEFAULT_CONFIG_FILE = "config.yaml"
CONFIG_ENV_VAR = "MELODIQA_CONFIG"

DEFAULTS: dict[str, Any] = {
    "bot_token": None,
    "status": "dnd",
    "activity": "jams",
    "message_content_intent": True,
    "audio": {
        "host_api": None,
        "max_buffered_frames": 50,
    },
    "commands": {
        "enabled": True,
    },
    "permissions": {
        "admin_ids": [],
    },
}


def get_config_path(path: str | None = None) -> tuple[str, bool]:
    """
    Resolve the config path and whether it was explicitly requested.

    An explicit path (argument or MELODIQA_CONFIG) must exist; the default
    config.yaml is optional.
    """
    if path:
        return path, True
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return env_path, True
    return DEFAULT_CONFIG_FILE, False


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _load_raw_config(cfg_path: str) -> dict[str, Any]:
    try:
        with open(cfg_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logging.error("Config file not found: %s", cfg_path)
        sys.exit(1)
    except yaml.YAMLError as e:
        logging.error("YAML parsing error in %s: %s", cfg_path, e)
        sys.exit(1)

    if not isinstance(data, dict):
        logging.error("Config root must be a mapping, got %s", type(data).__name__)
        sys.exit(1)

    return data


def get_config(path: str | None = None) -> dict[str, Any]:
    """
    Public helper for loading configuration.

    - Respects --config, then MELODIQA_CONFIG, then ./config.yaml if present.
    - Validates the file and merges it over DEFAULTS.
    - Exits with error code 1 if an explicit file is missing or invalid.
    """
    cfg_path, explicit = get_config_path(path)
    if not explicit and not os.path.isfile(cfg_path):
        logging.debug("No %s found, using built-in defaults", cfg_path)
        return copy.deepcopy(DEFAULTS)

    raw = _load_raw_config(cfg_path)

    try:
        validate_config(raw, cfg_path)
    except ConfigValidationError:
        sys.exit(1)

    logging.info("Loaded config from %s", cfg_path)
    return _merge(DEFAULTS, raw)
