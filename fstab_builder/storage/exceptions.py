"""Custom exceptions for fstab building operations.

Every exception in this module is fatal to a run: it aborts the builder and
makes the CLI exit with status 1. Problems that only affect a single device
are not raised; they are reported as skipped record outcomes instead.

Exception Hierarchy:
    FstabBuilderError (base)
        ├── PreconditionError
        │   ├── InsufficientPrivilegesError (also a PermissionError)
        │   └── MissingConfigError
        ├── DeviceEnumerationError
        ├── ConfigWriteError
        │   ├── BackupError
        │   ├── CommitError
        │   └── RestoreError
        ├── RunAbortedError
        └── ValidationFailedError

Usage:
    from fstab_builder.storage.exceptions import MissingConfigError

    if not fstab_path.exists():
        raise MissingConfigError(fstab_path)
"""

from __future__ import annotations

from pathlib import Path


class FstabBuilderError(Exception):
    """Base exception for all fatal builder errors."""



class PreconditionError(FstabBuilderError):
    """A run precondition was not met."""



class InsufficientPrivilegesError(PreconditionError, PermissionError):
    """The builder is not running with root privileges."""

    def __init__(self, euid: int):
        self.euid = euid
        super().__init__(f"Must be run as root (effective uid is {euid})")


class MissingConfigError(PreconditionError):
    """The mount table file does not exist."""

    def __init__(self, path: Path | str):
        self.path = Path(path)
        super().__init__(f"Mount table not found: {self.path}")


class DeviceEnumerationError(FstabBuilderError):
    """Block devices could not be listed."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Failed to enumerate block devices: {reason}")


class ConfigWriteError(FstabBuilderError):
    """Base exception for mount table write failures."""

    def __init__(self, message: str, path: Path | str | None = None):
        self.path = Path(path) if path is not None else None
        super().__init__(message)


class BackupError(ConfigWriteError):
    """The mount table backup could not be written."""

    def __init__(self, path: Path | str, backup_path: Path | str, reason: str):
        self.backup_path = Path(backup_path)
        self.reason = reason
        super().__init__(
            f"Failed to back up {path} to {backup_path}: {reason}", path=path
        )


class CommitError(ConfigWriteError):
    """Staged entries could not be written to the mount table."""

    def __init__(self, path: Path | str, reason: str):
        self.reason = reason
        super().__init__(f"Failed to write entries to {path}: {reason}", path=path)


class RestoreError(ConfigWriteError):
    """The mount table could not be restored from its backup."""

    def __init__(self, path: Path | str, backup_path: Path | str, reason: str):
        self.backup_path = Path(backup_path)
        self.reason = reason
        super().__init__(
            f"Failed to restore {path} from {backup_path}: {reason}", path=path
        )


class RunAbortedError(FstabBuilderError):
    """The run was aborted while processing a device."""

    def __init__(self, reason: str, device: str | None = None):
        self.reason = reason
        self.device = device
        msg = "Run aborted"
        if device:
            msg += f" at {device}"
        super().__init__(f"{msg}: {reason}")


class ValidationFailedError(FstabBuilderError):
    """The updated mount table failed validation and was restored."""

    def __init__(self, path: Path | str, backup_path: Path | str | None):
        self.path = Path(path)
        self.backup_path = Path(backup_path) if backup_path is not None else None
        super().__init__(
            f"Validation of {self.path} failed; restored from {self.backup_path}"
        )
