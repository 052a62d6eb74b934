"""Validation for mount names, generated entries and the mount table.

Name and entry checks return values instead of raising: a failing check only
skips the device being processed. The mount table check runs the system
tools against the committed table and reports overall success.

Example:
    from fstab_builder.storage.validation import sanitize_mount_name

    name = sanitize_mount_name("Backup Drive")  # "Backup_Drive"
"""

from __future__ import annotations

import re
from pathlib import Path

from fstab_builder.logging import LoggerFactory
from fstab_builder.storage.devices import run_command

MOUNT_NAME_RE = re.compile(r"^[A-Za-z0-9_]+$")
ENTRY_FIELD_COUNT = 6

log = LoggerFactory.for_fstab()


def sanitize_mount_name(name: str) -> str:
    """Replace whitespace runs with ``_`` and drop other disallowed characters."""
    name = re.sub(r"\s+", "_", name.strip())
    return re.sub(r"[^A-Za-z0-9_]", "", name)


def is_valid_mount_name(name: str) -> bool:
    return bool(name) and MOUNT_NAME_RE.fullmatch(name) is not None


def is_valid_entry_line(line: str) -> bool:
    """Check that a generated entry has exactly six fields."""
    return len(line.split()) == ENTRY_FIELD_COUNT


def mount_table_command(mode: str, fstab_path: Path | str) -> list[str]:
    """Return the command that validates the mount table.

    ``mount`` applies the table with ``mount -a``; already mounted entries
    are left alone. ``verify`` only parses and checks the table with
    ``findmnt --verify``.

    Raises:
        ValueError: If ``mode`` is unknown
    """
    if mode == "mount":
        if str(fstab_path) == "/etc/fstab":
            return ["mount", "-a"]
        return ["mount", "-a", "-T", str(fstab_path)]
    if mode == "verify":
        return ["findmnt", "--verify", "--tab-file", str(fstab_path)]
    raise ValueError(f"Unknown validation mode: {mode}")


def validate_mount_table(fstab_path: Path | str, mode: str = "mount") -> bool:
    """Run the mount table check; True when the table is usable."""
    command = mount_table_command(mode, fstab_path)
    try:
        result = run_command(command, check=False)
    except OSError as error:
        log.error(f"Could not run {command[0]}: {error}")
        return False
    if result.returncode != 0:
        stderr = result.stderr.strip() if result.stderr else "no error message"
        log.error(f"{' '.join(command)} failed (rc={result.returncode}): {stderr}")
        return False
    return True


__all__ = [
    "ENTRY_FIELD_COUNT",
    "MOUNT_NAME_RE",
    "is_valid_entry_line",
    "is_valid_mount_name",
    "mount_table_command",
    "sanitize_mount_name",
    "validate_mount_table",
]
