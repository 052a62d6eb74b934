"""Settings storage for builder configuration."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


SETTINGS_PATH = Path(
    os.environ.get(
        "FSTAB_BUILDER_SETTINGS_PATH",
        Path.home() / ".config" / "fstab-builder" / "settings.json",
    )
)

# Default values - use these constants instead of hardcoding values elsewhere
DEFAULT_FSTAB_PATH = "/etc/fstab"
DEFAULT_MOUNT_ROOT = "/mnt"
DEFAULT_UUID_DIR = "/dev/disk/by-uuid"
DEFAULT_BACKUP_SUFFIX_FORMAT = "%Y-%m-%d_%H:%M:%S"

OVERWRITE_MODES = ("skip", "prompt", "replace")
VALIDATION_MODES = ("mount", "verify")

DEFAULT_SETTINGS: dict[str, Any] = {
    "fstab_path": DEFAULT_FSTAB_PATH,
    "mount_root": DEFAULT_MOUNT_ROOT,
    "uuid_dir": DEFAULT_UUID_DIR,
    "backup_suffix_format": DEFAULT_BACKUP_SUFFIX_FORMAT,
    "overwrite_mode": "prompt",
    "verify_devices": True,
    "offer_relabel": True,
    "validation_mode": "mount",
}


@dataclass
class SettingsStore:
    values: dict[str, Any] = field(default_factory=dict)


settings_store = SettingsStore()


def load_settings() -> None:
    settings_store.values = dict(DEFAULT_SETTINGS)
    if not SETTINGS_PATH.exists():
        return
    try:
        data = json.loads(SETTINGS_PATH.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return
    if isinstance(data, dict):
        settings_store.values.update(data)


def get_setting(key: str, default: Any | None = None) -> Any:
    return settings_store.values.get(key, default)


def get_bool(key: str, default: bool = False) -> bool:
    return bool(get_setting(key, default))


def get_choice(key: str, choices: tuple[str, ...], default: str) -> str:
    """Return a string setting constrained to ``choices``."""
    value = str(get_setting(key, default) or default).lower()
    if value not in choices:
        return default
    return value


load_settings()
