"""Domain models for fstab building."""

from __future__ import annotations

from .models import (
    FS_PROFILES,
    SUPPORTED_FS_TYPES,
    DeviceRecord,
    FsProfile,
    MountEntry,
    RecordOutcome,
    RecordStatus,
    RunReport,
    RunState,
    profile_for,
)


__all__ = [
    "FS_PROFILES",
    "SUPPORTED_FS_TYPES",
    "DeviceRecord",
    "FsProfile",
    "MountEntry",
    "RecordOutcome",
    "RecordStatus",
    "RunReport",
    "RunState",
    "profile_for",
]
