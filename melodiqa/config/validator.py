"""
YAML configuration validator for config.yaml.

Validates structure, value types, and common misconfigurations.
"""

from __future__ import annotations

import logging
from typing import Any


logger = logging.getLogger(__name__)

KNOWN_KEYS = {"bot_token", "status", "activity", "message_content_intent", "audio", "commands", "permissions"}
VALID_STATUSES = ("online", "idle", "dnd", "invisible")


class ConfigValidationError(Exception):
    """Raised when config validation fails."""
    pass


def validate_config(cfg: dict[str, Any], config_path: str = "config.yaml") -> None:
    """
    Validation of config.yaml structure and content.

    Every key is optional; missing ones fall back to loader.DEFAULTS.
    Logs detailed error messages before raising.

    Args:
        cfg: The loaded config dictionary
        config_path: Path to config file (for error messages)

    Raises:
        ConfigValidationError: If validation fails
    """
    errors = []
    warnings = []

    # ── Check root structure ────────────────────────────────────────────────
    if not isinstance(cfg, dict):
        errors.append(f"Config root must be a mapping, got {type(cfg).__name__}")
        cfg = {}

    for key in cfg:
        if key not in KNOWN_KEYS:
            warnings.append(f"Unknown top-level key '{key}' is ignored")

    # ── Discord session settings ────────────────────────────────────────────
    token = cfg.get("bot_token")
    if token is not None and not isinstance(token, str):
        errors.append(f"'bot_token' must be a string, got {type(token).__name__}")

    if "status" in cfg and cfg["status"] not in VALID_STATUSES:
        errors.append(
            f"'status' must be one of {', '.join(VALID_STATUSES)}, got {cfg['status']!r}"
        )

    if "activity" in cfg and cfg["activity"] is not None and not isinstance(cfg["activity"], str):
        errors.append(f"'activity' must be a string, got {type(cfg['activity']).__name__}")

    if "message_content_intent" in cfg and not isinstance(cfg["message_content_intent"], bool):
        errors.append(
            f"'message_content_intent' must be boolean, "
            f"got {type(cfg['message_content_intent']).__name__}"
        )

    # ── Validate audio section ──────────────────────────────────────────────
    if "audio" in cfg:
        audio = cfg["audio"]
        if not isinstance(audio, dict):
            errors.append(f"'audio' must be a mapping, got {type(audio).__name__}")
        else:
            host_api = audio.get("host_api")
            if host_api is not None and not isinstance(host_api, str):
                errors.append(f"'audio.host_api' must be a string, got {type(host_api).__name__}")

            if "max_buffered_frames" in audio:
                frames = audio["max_buffered_frames"]
                # bool is an int subclass
                if isinstance(frames, bool) or not isinstance(frames, int):
                    errors.append(
                        f"'audio.max_buffered_frames' must be an integer, got {type(frames).__name__}"
                    )
                elif frames < 1:
                    errors.append(f"'audio.max_buffered_frames' must be >= 1, got {frames}")
                elif frames > 500:
                    warnings.append(
                        f"'audio.max_buffered_frames' is {frames} ({frames * 20} ms); "
                        f"listeners will hear a long delay"
                    )

    # ── Validate commands section ───────────────────────────────────────────
    if "commands" in cfg:
        commands = cfg["commands"]
        if not isinstance(commands, dict):
            errors.append(f"'commands' must be a mapping, got {type(commands).__name__}")
        elif "enabled" in commands and not isinstance(commands["enabled"], bool):
            errors.append(
                f"'commands.enabled' must be boolean, got {type(commands['enabled']).__name__}"
            )

    # ── Validate permissions section ───────────────────────────────────────
    if "permissions" in cfg:
        perms = cfg["permissions"]
        if not isinstance(perms, dict):
            errors.append(
                f"'permissions' must be a mapping, got {type(perms).__name__}"
            )
        elif "admin_ids" in perms:
            ids = perms["admin_ids"]
            if not isinstance(ids, list):
                errors.append(
                    f"'permissions.admin_ids' must be a list, got {type(ids).__name__}"
                )
            else:
                for i, admin_id in enumerate(ids):
                    if isinstance(admin_id, bool) or not isinstance(admin_id, int):
                        errors.append(
                            f"'permissions.admin_ids[{i}]' must be an integer user id, "
                            f"got {type(admin_id).__name__}"
                        )

    # ── Log warnings ────────────────────────────────────────────────────────
    for warning in warnings:
        logger.warning("Config warning: %s", warning)

    # ── Log errors and raise if any ─────────────────────────────────────────
    if errors:
        logger.error("=" * 70)
        logger.error("CONFIG VALIDATION FAILED (%s)", config_path)
        logger.error("=" * 70)
        for i, error in enumerate(errors, 1):
            logger.error("[%d] %s", i, error)
        logger.error("=" * 70)
        logger.error("Please fix the errors above and restart the bot.")
        logger.error("=" * 70)
        raise ConfigValidationError(f"Config validation failed with {len(errors)} error(s)")
