"""Mount table file access with backup and restore.

The mount table is the only shared mutable resource of a run. All access goes
through a store object so the builder can be driven against an in-memory
table in tests.

Mutation Rules:
    - A timestamped backup is written before any mutation.
    - New entries are appended; existing lines are never edited in place.
    - When an entry replaces an existing UUID, the whole table is rewritten
      through a temporary file and an atomic rename, so a failed write leaves
      the original untouched.
    - Restore copies the backup back over the table byte for byte.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Iterable, Iterator, Optional, Protocol

from fstab_builder.config.settings import DEFAULT_BACKUP_SUFFIX_FORMAT
from fstab_builder.domain.models import MountEntry
from fstab_builder.logging import LoggerFactory
from fstab_builder.storage.exceptions import BackupError, CommitError, RestoreError

log = LoggerFactory.for_fstab()


class MountTableStore(Protocol):
    """Operations the builder needs from a mount table."""

    path: Path

    def exists(self) -> bool: ...

    def read_text(self) -> str: ...

    def backup(self, now: Optional[datetime] = None) -> Path: ...

    def append(self, lines: Iterable[str]) -> None: ...

    def replace(self, lines: Iterable[str], drop_uuids: Iterable[str]) -> None: ...

    def restore(self, backup_path: Path) -> None: ...


def iter_uuid_entries(text: str) -> Iterator[MountEntry]:
    """Yield the UUID-referenced entries of a mount table."""
    for line in text.splitlines():
        entry = MountEntry.from_line(line)
        if entry is not None:
            yield entry


def table_uuids(text: str) -> set[str]:
    return {entry.uuid for entry in iter_uuid_entries(text)}


def contains_uuid(text: str, uuid: str) -> bool:
    return uuid in table_uuids(text)


def drop_uuid_lines(text: str, uuids: Iterable[str]) -> str:
    """Return ``text`` without the entries referencing any of ``uuids``."""
    dropped = set(uuids)
    kept = []
    for line in text.splitlines(keepends=True):
        entry = MountEntry.from_line(line)
        if entry is not None and entry.uuid in dropped:
            continue
        kept.append(line)
    return "".join(kept)


def join_with_lines(text: str, lines: Iterable[str]) -> str:
    """Append ``lines`` to ``text``, keeping every line newline-terminated."""
    addition = "".join(f"{line}\n" for line in lines)
    if text and not text.endswith("\n"):
        text += "\n"
    return text + addition


def backup_path_for(
    path: Path,
    now: Optional[datetime] = None,
    suffix_format: str = DEFAULT_BACKUP_SUFFIX_FORMAT,
) -> Path:
    """Return an unused ``<path>.bak-<timestamp>`` path."""
    stamp = (now or datetime.now()).strftime(suffix_format)
    candidate = path.with_name(f"{path.name}.bak-{stamp}")
    counter = 1
    while candidate.exists():
        candidate = path.with_name(f"{path.name}.bak-{stamp}.{counter}")
        counter += 1
    return candidate


class FstabFile:
    """Mount table stored on disk (``/etc/fstab`` by default)."""

    def __init__(
        self,
        path: Path | str = "/etc/fstab",
        backup_suffix_format: str = DEFAULT_BACKUP_SUFFIX_FORMAT,
    ):
        self.path = Path(path)
        self.backup_suffix_format = backup_suffix_format

    def __repr__(self) -> str:
        return f"FstabFile({str(self.path)!r})"

    def exists(self) -> bool:
        return self.path.is_file()

    def read_text(self) -> str:
        return self.path.read_text(encoding="utf-8")

    def backup(self, now: Optional[datetime] = None) -> Path:
        """Copy the table to a timestamped backup path.

        Raises:
            BackupError: If the copy cannot be written
        """
        backup_path = backup_path_for(self.path, now, self.backup_suffix_format)
        try:
            shutil.copy2(self.path, backup_path)
        except OSError as error:
            raise BackupError(self.path, backup_path, str(error)) from error
        log.info(f"Backed up {self.path} to {backup_path}")
        return backup_path

    def append(self, lines: Iterable[str]) -> None:
        """Append entry lines to the table.

        Raises:
            CommitError: If the table cannot be written
        """
        lines = list(lines)
        try:
            current = self.path.read_bytes()
            with open(self.path, "a", encoding="utf-8") as handle:
                if current and not current.endswith(b"\n"):
                    handle.write("\n")
                for line in lines:
                    handle.write(f"{line}\n")
                handle.flush()
                os.fsync(handle.fileno())
        except OSError as error:
            raise CommitError(self.path, str(error)) from error
        log.info(f"Appended {len(lines)} entries to {self.path}")

    def replace(self, lines: Iterable[str], drop_uuids: Iterable[str]) -> None:
        """Rewrite the table without ``drop_uuids`` entries, then append ``lines``.

        Raises:
            CommitError: If the new table cannot be written
        """
        lines = list(lines)
        drop_uuids = list(drop_uuids)
        tmp_name = None
        try:
            content = join_with_lines(
                drop_uuid_lines(self.read_text(), drop_uuids), lines
            )
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
            shutil.copymode(self.path, tmp_name)
            os.replace(tmp_name, self.path)
        except OSError as error:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise CommitError(self.path, str(error)) from error
        log.info(
            f"Rewrote {self.path}: replaced {len(drop_uuids)} UUIDs, "
            f"wrote {len(lines)} entries"
        )

    def restore(self, backup_path: Path) -> None:
        """Copy ``backup_path`` back over the table.

        Raises:
            RestoreError: If the copy fails
        """
        try:
            shutil.copy2(backup_path, self.path)
        except OSError as error:
            raise RestoreError(self.path, backup_path, str(error)) from error
        log.info(f"Restored {self.path} from {backup_path}")
