"""Domain model for fstab building.

Type-safe records for the data that flows through a run: parsed block
devices, generated mount entries, and the per-device and per-run outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


# ==============================================================================
# Filesystem Profiles
# ==============================================================================


@dataclass(frozen=True)
class FsProfile:
    """Mount options and dump/pass fields for one filesystem type."""

    options: str
    dump: int
    passno: int


FS_PROFILES: dict[str, FsProfile] = {
    "ext4": FsProfile(options="defaults", dump=0, passno=2),
    "ntfs": FsProfile(options="defaults,uid=1000,gid=1000", dump=0, passno=0),
}

SUPPORTED_FS_TYPES = frozenset(FS_PROFILES)

# Filesystems whose label can be rewritten in place
RELABEL_FS_TYPES = frozenset({"ext4"})


def profile_for(fs_type: str) -> FsProfile:
    """Return the profile for ``fs_type``.

    Raises:
        KeyError: If the filesystem type is not supported
    """
    return FS_PROFILES[fs_type]


# ==============================================================================
# Device Domain
# ==============================================================================


@dataclass(frozen=True)
class DeviceRecord:
    """A block device as reported by blkid."""

    device: str  # e.g., "/dev/sda1"
    fs_type: Optional[str] = None  # e.g., "ext4"
    uuid: Optional[str] = None
    label: Optional[str] = None  # filesystem LABEL, never PARTLABEL

    @property
    def is_candidate(self) -> bool:
        return self.fs_type in SUPPORTED_FS_TYPES

    @property
    def can_relabel(self) -> bool:
        return self.fs_type in RELABEL_FS_TYPES

    def describe(self) -> list[str]:
        """Lines shown to the operator before confirmation."""
        return [
            "Found drive:",
            f"  Device: {self.device}",
            f"  UUID: {self.uuid}",
            f"  Filesystem: {self.fs_type}",
            f"  Label: {self.label or 'None'}",
        ]


# ==============================================================================
# Mount Entry Domain
# ==============================================================================


def _int_field(fields: list[str], index: int) -> int:
    try:
        return int(fields[index])
    except (IndexError, ValueError):
        return 0


@dataclass(frozen=True)
class MountEntry:
    """One line of the mount table referencing a filesystem by UUID."""

    uuid: str
    mount_point: str
    fs_type: str
    options: str
    dump: int = 0
    passno: int = 0

    @classmethod
    def for_device(cls, record: DeviceRecord, mount_point: str | Path) -> MountEntry:
        """Build the entry for ``record`` using its filesystem profile.

        Raises:
            ValueError: If the record has no UUID
            KeyError: If the filesystem type is not supported
        """
        if not record.uuid:
            raise ValueError(f"{record.device} has no UUID")
        profile = profile_for(record.fs_type or "")
        return cls(
            uuid=record.uuid,
            mount_point=str(mount_point),
            fs_type=record.fs_type or "",
            options=profile.options,
            dump=profile.dump,
            passno=profile.passno,
        )

    @classmethod
    def from_line(cls, line: str) -> Optional[MountEntry]:
        """Parse a mount table line referencing a UUID.

        Only the source and mount point are required. Missing or malformed
        dump and pass fields read as 0.

        Returns None for comments, blank lines, lines with fewer than two
        fields, and lines whose source is not ``UUID=...``.
        """
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            return None
        fields = stripped.split()
        if len(fields) < 2 or not fields[0].startswith("UUID="):
            return None
        uuid = fields[0][len("UUID="):].strip('"')
        if not uuid:
            return None
        return cls(
            uuid=uuid,
            mount_point=fields[1],
            fs_type=fields[2] if len(fields) > 2 else "auto",
            options=fields[3] if len(fields) > 3 else "defaults",
            dump=_int_field(fields, 4),
            passno=_int_field(fields, 5),
        )

    def to_line(self) -> str:
        return (
            f"UUID={self.uuid} {self.mount_point} {self.fs_type} "
            f"{self.options} {self.dump} {self.passno}"
        )


# ==============================================================================
# Outcomes
# ==============================================================================


class RecordStatus(Enum):
    """Result of processing a single device."""

    APPENDED = "appended"
    SKIPPED = "skipped"
    FATAL = "fatal"


@dataclass(frozen=True)
class RecordOutcome:
    """What happened to one candidate device."""

    status: RecordStatus
    device: str
    reason: str = ""
    entry: Optional[MountEntry] = None
    replaces_existing: bool = False

    @classmethod
    def appended(cls, device: str, entry: MountEntry, replaces_existing: bool = False):
        return cls(
            status=RecordStatus.APPENDED,
            device=device,
            entry=entry,
            replaces_existing=replaces_existing,
        )

    @classmethod
    def skipped(cls, device: str, reason: str):
        return cls(status=RecordStatus.SKIPPED, device=device, reason=reason)

    @classmethod
    def fatal(cls, device: str, reason: str):
        return cls(status=RecordStatus.FATAL, device=device, reason=reason)


class RunState(Enum):
    """Terminal state of a run that did not raise."""

    SUCCESS = "success"
    NO_ENTRIES = "no_entries"
    DRY_RUN = "dry_run"
    ROLLED_BACK = "rolled_back"


@dataclass
class RunReport:
    """Summary of a completed run."""

    state: RunState
    backup_path: Optional[Path] = None
    outcomes: list[RecordOutcome] = field(default_factory=list)
    entries: list[MountEntry] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state is not RunState.ROLLED_BACK

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1

    def count(self, status: RecordStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is status)
