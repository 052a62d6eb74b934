"""Filesystem label updates.

Only ext4 labels are rewritten, using ``e2label``. NTFS labels are left alone.
"""

import shutil
import subprocess

from fstab_builder.domain.models import RELABEL_FS_TYPES
from fstab_builder.logging import LoggerFactory
from fstab_builder.storage.devices import run_command

log = LoggerFactory.for_devices()

# Longest label ext4 stores; e2label truncates anything longer
EXT4_LABEL_MAX_LENGTH = 16


def _validate_device_path(device_path: str) -> bool:
    """Validate that device path starts with /dev/."""
    return device_path.startswith("/dev/")


def apply_label(device_path: str, fs_type: str, label: str) -> bool:
    """Write ``label`` to the filesystem on ``device_path``.

    Returns:
        True on success, False on failure or for unsupported filesystems
    """
    if fs_type not in RELABEL_FS_TYPES:
        log.info(f"Note: {fs_type} label not applied to {device_path} (not supported)")
        return False
    if not _validate_device_path(device_path):
        log.warning(f"Refusing to relabel non-device path {device_path}")
        return False
    if not label:
        log.warning(f"Refusing to apply an empty label to {device_path}")
        return False
    if len(label) > EXT4_LABEL_MAX_LENGTH:
        log.warning(
            f"Label '{label}' is longer than {EXT4_LABEL_MAX_LENGTH} characters, "
            f"not applied to {device_path}"
        )
        return False
    if shutil.which("e2label") is None:
        log.warning("e2label not found, label not applied")
        return False

    try:
        run_command(["e2label", device_path, label], check=True)
    except (subprocess.CalledProcessError, OSError) as error:
        log.warning(f"Failed to apply label '{label}' to {device_path}: {error}")
        return False
    log.info(f"Applied label '{label}' to {device_path}")
    return True
